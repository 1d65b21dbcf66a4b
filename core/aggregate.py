from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Literal, Optional, Tuple

import numpy as np
import pandas as pd

from core.buckets import BucketKind, bucket_label, bucket_start
from core.values import UNKNOWN_LABEL, is_blank

Metric = Literal["count", "sum", "avg"]
# first_seen: source order of first appearance; desc: largest value first,
# ties keep first-seen order; label: ascending label text; key: ascending
# underlying key (bucket instant, hour, integer field).
Order = Literal["first_seen", "desc", "label", "key"]
KpiFn = Callable[[pd.DataFrame], Optional[float]]
RowFilter = Callable[[pd.DataFrame], pd.Series]


@dataclass(frozen=True)
class SeriesSpec:
    name: str
    field: str
    metric: Metric = "count"
    value_field: Optional[str] = None
    order: Order = "first_seen"
    bucket: Optional[BucketKind] = None
    top_n: Optional[int] = None
    title: str = ""
    chart: str = "bar"
    # one extra sub-series per distinct value of this field
    split_by: Optional[str] = None


@dataclass(frozen=True)
class KpiSpec:
    name: str
    compute: KpiFn
    title: str = ""
    fmt: Literal["count", "money", "pct", "number"] = "number"


@dataclass(frozen=True)
class AggregationSpec:
    kpis: Tuple[KpiSpec, ...] = ()
    series: Tuple[SeriesSpec, ...] = ()
    row_filter: Optional[RowFilter] = None


@dataclass(frozen=True)
class SeriesPoint:
    label: str
    value: float
    count: int


@dataclass(frozen=True)
class Series:
    spec: SeriesSpec
    points: Tuple[SeriesPoint, ...]
    full: Tuple[SeriesPoint, ...]
    splits: Tuple[Tuple[str, Tuple[SeriesPoint, ...]], ...] = ()

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def labels(self) -> List[str]:
        return [p.label for p in self.points]

    @property
    def values(self) -> List[float]:
        return [p.value for p in self.points]

    def as_mapping(self) -> Dict[str, float]:
        return {p.label: p.value for p in self.points}

    def split_mapping(self) -> Dict[str, Dict[str, float]]:
        return {name: {p.label: p.value for p in points} for name, points in self.splits}

    def as_dict(self) -> Dict[str, Any]:
        return {
            "name": self.spec.name,
            "title": self.spec.title or self.spec.name,
            "field": self.spec.field,
            "bucket": self.spec.bucket,
            "chart": self.spec.chart,
            "points": [{"label": p.label, "value": p.value} for p in self.points],
            "total_groups": len(self.full),
            "splits": [
                {"name": name, "points": [{"label": p.label, "value": p.value} for p in points]}
                for name, points in self.splits
            ],
        }


@dataclass(frozen=True)
class AggregationResult:
    kpis: Dict[str, Optional[float]] = field(default_factory=dict)
    series: Tuple[Series, ...] = ()
    record_count: int = 0

    def kpi(self, name: str) -> Optional[float]:
        return self.kpis[name]

    def get_series(self, name: str) -> Series:
        for s in self.series:
            if s.name == name:
                return s
        raise KeyError(name)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "record_count": self.record_count,
            "kpis": dict(self.kpis),
            "series": {s.name: s.as_dict() for s in self.series},
        }


def plain_number(value: object) -> Optional[float]:
    """numpy/pandas scalar -> int/float/None (never NaN)."""
    if value is None:
        return None
    if isinstance(value, (bool, np.bool_, int, np.integer)):
        return int(value)
    try:
        out = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if math.isnan(out) or math.isinf(out):
        return None
    return out


def safe_ratio(numerator: Optional[float], denominator: Optional[float]) -> float:
    if not denominator:
        return 0.0
    return float(numerator or 0) / float(denominator)


def _group_keys(frame: pd.DataFrame, spec: SeriesSpec) -> pd.Series:
    if spec.field not in frame.columns:
        return pd.Series([UNKNOWN_LABEL] * len(frame), index=frame.index, dtype=object)
    col = frame[spec.field]
    if spec.bucket is not None:
        return col.map(lambda v: bucket_start(spec.bucket, v)).astype(object)
    return col.map(lambda v: UNKNOWN_LABEL if is_blank(v) else v).astype(object)


def group_series(frame: pd.DataFrame, spec: SeriesSpec) -> Series:
    keys = _group_keys(frame, spec)
    if spec.value_field and spec.value_field in frame.columns:
        values = pd.to_numeric(frame[spec.value_field], errors="coerce").fillna(0.0).astype(float)
    else:
        values = pd.Series(0.0, index=frame.index)

    work = pd.DataFrame({"key": keys, "value": values}).dropna(subset=["key"])
    rows: List[Tuple[object, int, float]] = []
    if not work.empty:
        grouped = work.groupby("key", sort=False)["value"].agg(["size", "sum"])
        rows = [(k, int(r["size"]), float(r["sum"])) for k, r in grouped.iterrows()]
    if spec.bucket == "hour":
        by_hour = {int(k): (c, s) for k, c, s in rows}
        rows = [(h, *by_hour.get(h, (0, 0.0))) for h in range(24)]

    points = []
    for key, count, total in rows:
        if spec.metric == "count":
            value: float = count
        elif spec.metric == "sum":
            value = total
        else:
            value = safe_ratio(total, count)
        label = bucket_label(spec.bucket, key) if spec.bucket is not None else str(key)
        points.append((key, SeriesPoint(label=label, value=value, count=count)))

    order = "key" if spec.bucket is not None else spec.order
    if order == "desc":
        # stable sort: equal values keep first-seen order
        points.sort(key=lambda kp: -kp[1].value)
    elif order == "label":
        points.sort(key=lambda kp: kp[1].label)
    elif order == "key":
        # default labels (strings) sort after real keys
        points.sort(key=lambda kp: (isinstance(kp[0], str), kp[0]))

    full = tuple(p for _, p in points)
    shown = full[: spec.top_n] if spec.top_n else full
    return Series(spec=spec, points=shown, full=full, splits=_split_points(frame, spec))


def _split_points(frame: pd.DataFrame, spec: SeriesSpec) -> Tuple[Tuple[str, Tuple[SeriesPoint, ...]], ...]:
    if not spec.split_by or spec.split_by not in frame.columns or frame.empty:
        return ()
    inner = replace(spec, split_by=None, top_n=None)
    split_keys = frame[spec.split_by].map(lambda v: UNKNOWN_LABEL if is_blank(v) else str(v))
    return tuple(
        (str(value), group_series(part, inner).points) for value, part in frame.groupby(split_keys, sort=False)
    )


def aggregate(records: pd.DataFrame, spec: AggregationSpec) -> AggregationResult:
    """Full recomputation of every KPI and series over ``records``."""
    frame = records
    if spec.row_filter is not None and not frame.empty:
        frame = frame[spec.row_filter(frame)]
    kpis = {k.name: plain_number(k.compute(frame)) for k in spec.kpis}
    series = tuple(group_series(frame, s) for s in spec.series)
    return AggregationResult(kpis=kpis, series=series, record_count=int(len(frame)))
