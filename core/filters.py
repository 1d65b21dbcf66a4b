from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Mapping, Optional, Tuple

import pandas as pd

from core.values import parse_date

ALL = "All"

Predicate = Tuple[str, str]


def end_of_day(ts: pd.Timestamp) -> pd.Timestamp:
    return ts.normalize() + pd.Timedelta(days=1) - pd.Timedelta(1, unit="ns")


@dataclass(frozen=True)
class FilterState:
    predicates: Tuple[Predicate, ...] = ()
    date_start: Optional[pd.Timestamp] = None
    date_end: Optional[pd.Timestamp] = None

    @property
    def is_empty(self) -> bool:
        return not self.predicates and self.date_start is None and self.date_end is None

    @property
    def state(self) -> str:
        return "Unfiltered" if self.is_empty else "Filtered"

    def value_for(self, field: str) -> Optional[str]:
        return dict(self.predicates).get(field)

    def with_predicate(self, field: str, value: str) -> "FilterState":
        # Replacing keeps the field's original position in the ordered set.
        if field in dict(self.predicates):
            predicates = tuple((f, value if f == field else v) for f, v in self.predicates)
        else:
            predicates = self.predicates + ((field, value),)
        return FilterState(predicates=predicates, date_start=self.date_start, date_end=self.date_end)

    def without_predicate(self, field: str) -> "FilterState":
        predicates = tuple((f, v) for f, v in self.predicates if f != field)
        return FilterState(predicates=predicates, date_start=self.date_start, date_end=self.date_end)

    def with_date_range(self, start: Optional[pd.Timestamp], end: Optional[pd.Timestamp]) -> "FilterState":
        start = start.normalize() if start is not None else None
        end = end_of_day(end) if end is not None else None
        if start is not None and end is not None and start > end:
            start, end = end.normalize(), end_of_day(start)
        return FilterState(predicates=self.predicates, date_start=start, date_end=end)

    def as_dict(self) -> Dict[str, object]:
        return {
            "state": self.state,
            "predicates": [{"field": f, "value": v} for f, v in self.predicates],
            "date_start": self.date_start.isoformat() if self.date_start is not None else None,
            "date_end": self.date_end.isoformat() if self.date_end is not None else None,
        }


def apply_filters(frame: pd.DataFrame, state: FilterState, *, date_field: Optional[str] = None) -> pd.DataFrame:
    """Rows passing every predicate and the date bounds, in source order."""
    if frame.empty or state.is_empty:
        return frame
    mask = pd.Series(True, index=frame.index)
    for field, value in state.predicates:
        if field not in frame.columns:
            mask &= False
            continue
        mask &= frame[field].astype(str) == str(value)

    if date_field and (state.date_start is not None or state.date_end is not None):
        dates = frame[date_field] if date_field in frame.columns else pd.Series(pd.NaT, index=frame.index)
        # Undated rows cannot satisfy a date bound.
        mask &= dates.notna()
        if state.date_start is not None:
            mask &= dates >= state.date_start
        if state.date_end is not None:
            mask &= dates <= state.date_end
    return frame[mask]


def normalize_filters(
    raw: Mapping[str, object],
    *,
    filterable: Iterable[str],
    normalize_value: Optional[Callable[[str, object], str]] = None,
) -> FilterState:
    """Loose UI/API payload -> FilterState.

    ``All``/blank values and non-filterable fields are dropped; date bounds go
    through ``parse_date`` and inverted bounds are swapped.
    """
    allowed = list(filterable)
    state = FilterState()
    predicates = raw.get("predicates")
    source: Mapping[str, object] = predicates if isinstance(predicates, Mapping) else raw
    for field in allowed:
        value = source.get(field)
        if value is None or str(value).strip() in ("", ALL):
            continue
        text = normalize_value(field, value) if normalize_value else str(value).strip()
        state = state.with_predicate(field, text)
    return state.with_date_range(parse_date(raw.get("date_start")), parse_date(raw.get("date_end")))
