from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from core.schema import CanonicalSchema, FieldSpec
from core.values import (
    UNKNOWN_LABEL,
    is_blank,
    normalize_category,
    normalize_label,
    normalize_text,
    parse_amount,
    parse_date,
    parse_integer,
    parse_time_of_day,
)

logger = logging.getLogger(__name__)

RAW_COLUMN = "_raw"

RawRecord = Mapping[str, Any]
Deriver = Callable[[pd.DataFrame], pd.DataFrame]

PARSERS: Dict[str, Callable[[object], Any]] = {
    "date": parse_date,
    "time": parse_time_of_day,
    "amount": parse_amount,
    "integer": parse_integer,
    "category": normalize_category,
    "label": normalize_label,
    "text": normalize_text,
}

DEFAULTS: Dict[str, Any] = {
    "date": None,
    "time": None,
    "amount": 0.0,
    "integer": 0,
    "category": UNKNOWN_LABEL,
    "label": UNKNOWN_LABEL,
    "text": "",
}

_HAS_DIGIT = re.compile(r"\d")


@dataclass(frozen=True)
class NormalizationWarning:
    field: str
    code: str
    row: Optional[int] = None
    raw_value: Any = None

    def as_dict(self) -> Dict[str, Any]:
        return {"field": self.field, "code": self.code, "row": self.row, "raw_value": None if self.raw_value is None else str(self.raw_value)}


@dataclass(frozen=True)
class NormalizedBatch:
    frame: pd.DataFrame
    schema: CanonicalSchema
    fields: Tuple[FieldSpec, ...]
    warnings: Tuple[NormalizationWarning, ...] = ()
    missing_counts: Dict[str, int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.frame)

    @property
    def empty(self) -> bool:
        return self.frame.empty


def _invalid_code(kind: str, raw: object, parsed: object) -> Optional[str]:
    if kind == "date" and parsed is None:
        return "invalid_date"
    if kind == "time" and parsed is None:
        return "invalid_time"
    if kind in ("amount", "integer") and parsed == 0 and not _HAS_DIGIT.search(str(raw)):
        return "invalid_number"
    return None


def _typed_column(kind: str, values: List[Any]) -> pd.Series:
    if kind == "date":
        return pd.to_datetime(pd.Series(values, dtype=object))
    if kind == "amount":
        return pd.Series(values, dtype="float64")
    if kind == "integer":
        return pd.Series(values, dtype="int64")
    return pd.Series(values, dtype=object)


def normalize_records(
    records: Sequence[RawRecord],
    schema: CanonicalSchema,
    fields: Iterable[FieldSpec],
    *,
    derive: Optional[Deriver] = None,
) -> NormalizedBatch:
    """Map raw records to a typed frame, one row per record, in source order.

    Unresolved fields take their kind's default. Bad cells become defaults and
    a warning; rows are never dropped.
    """
    fields = tuple(fields)
    warnings: List[NormalizationWarning] = []
    missing: Counter = Counter()
    columns: Dict[str, pd.Series] = {}

    for spec in fields:
        header = schema.get(spec.name)
        parser = PARSERS[spec.kind]
        if header is None:
            warnings.append(NormalizationWarning(field=spec.name, code="unresolved_field"))
            values = [DEFAULTS[spec.kind]] * len(records)
            missing[spec.name] = len(records)
        else:
            values = []
            for row, record in enumerate(records):
                raw = record.get(header)
                if is_blank(raw):
                    missing[spec.name] += 1
                    values.append(DEFAULTS[spec.kind])
                    continue
                parsed = parser(raw)
                code = _invalid_code(spec.kind, raw, parsed)
                if code:
                    warnings.append(NormalizationWarning(field=spec.name, code=code, row=row, raw_value=raw))
                values.append(parsed)
        columns[spec.name] = _typed_column(spec.kind, values)

    frame = pd.DataFrame(columns, index=pd.RangeIndex(len(records)))
    if derive is not None:
        frame = derive(frame)
    frame[RAW_COLUMN] = pd.Series([dict(r) for r in records], index=frame.index, dtype=object)

    logger.info(
        "normalized %d rows (%d/%d fields resolved, %d warnings)",
        len(frame),
        len(schema.mapping),
        len(fields),
        len(warnings),
    )
    return NormalizedBatch(
        frame=frame,
        schema=schema,
        fields=fields,
        warnings=tuple(warnings),
        missing_counts={spec.name: int(missing.get(spec.name, 0)) for spec in fields},
    )
