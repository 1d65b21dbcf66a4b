from __future__ import annotations

from collections import Counter
from typing import Any, Dict, Optional

from core.records import NormalizedBatch


def compute_quality(batch: Optional[NormalizedBatch], *, sample_size: int = 20) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "row_count": 0,
        "schema": {},
        "unresolved_fields": [],
        "missing_counts": {},
        "warning_counts": {},
        "warning_sample": [],
    }
    if batch is None:
        return payload

    row_warnings = [w for w in batch.warnings if w.row is not None]
    payload["row_count"] = int(len(batch))
    payload["schema"] = batch.schema.as_dict()
    payload["unresolved_fields"] = list(batch.schema.unresolved)
    payload["missing_counts"] = {k: v for k, v in batch.missing_counts.items() if v}
    payload["warning_counts"] = dict(Counter(f"{w.field}:{w.code}" for w in row_warnings))
    payload["warning_sample"] = [w.as_dict() for w in row_warnings[:sample_size]]
    return payload
