"""Filter/drill-down controller.

A ``DashboardSession`` owns the normalized records of the current load, the
active ``FilterState`` and the selector option lists. Every UI event runs
one synchronous pass: filter -> aggregate -> publish.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd

from core.aggregate import AggregationResult, aggregate
from core.buckets import bucket_bounds, parse_bucket_label
from core.filters import ALL, FilterState, apply_filters, normalize_filters
from core.profiles import Profile, get_profile
from core.records import RAW_COLUMN, NormalizedBatch, normalize_records
from core.schema import collect_headers, resolve
from core.sources import ImportFailure, ImportResult
from core.values import UNKNOWN_LABEL, parse_date

logger = logging.getLogger(__name__)

NO_DATA_NOTICE = "No data provided."
PREDICATE_KINDS = ("category", "label", "text", "integer")


class UnknownFieldError(ValueError):
    pass


@dataclass(frozen=True)
class DashboardUpdate:
    profile: str
    title: str
    filters: FilterState
    result: AggregationResult
    options: Dict[str, List[str]] = field(default_factory=dict)
    total_count: int = 0
    notice: Optional[str] = None

    @property
    def visible_count(self) -> int:
        return self.result.record_count

    def as_dict(self) -> Dict[str, Any]:
        payload = self.result.as_dict()
        return {
            "profile": self.profile,
            "title": self.title,
            "filters": self.filters.as_dict(),
            "kpis": payload["kpis"],
            "series": payload["series"],
            "options": {k: list(v) for k, v in self.options.items()},
            "visible_count": self.visible_count,
            "total_count": self.total_count,
            "notice": self.notice,
        }


Publisher = Callable[[DashboardUpdate], None]


def _option_sort_key(kind: str) -> Callable[[str], Any]:
    if kind == "integer":
        return lambda v: (0, int(v)) if v.lstrip("-").isdigit() else (1, v)
    return lambda v: v


class DashboardSession:
    def __init__(self, profile: Union[Profile, str] = "dispatch", *, publish: Optional[Publisher] = None) -> None:
        self._profile = get_profile(profile) if isinstance(profile, str) else profile
        self._publish = publish
        self._batch: Optional[NormalizedBatch] = None
        self._filters = FilterState()
        self._options: Dict[str, List[str]] = {}
        self._visible = pd.DataFrame()
        self._last: Optional[DashboardUpdate] = None
        self.notice: Optional[str] = NO_DATA_NOTICE

    # ------------------------------------------------------------------ state

    @property
    def profile(self) -> Profile:
        return self._profile

    @property
    def filters(self) -> FilterState:
        return self._filters

    @property
    def state(self) -> str:
        return self._filters.state

    @property
    def has_data(self) -> bool:
        return self._batch is not None and not self._batch.empty

    @property
    def batch(self) -> Optional[NormalizedBatch]:
        return self._batch

    @property
    def main_data(self) -> pd.DataFrame:
        return self._batch.frame.copy() if self._batch is not None else pd.DataFrame()

    @property
    def visible(self) -> pd.DataFrame:
        return self._visible.copy()

    @property
    def options(self) -> Dict[str, List[str]]:
        return {k: list(v) for k, v in self._options.items()}

    @property
    def last_update(self) -> Optional[DashboardUpdate]:
        return self._last

    # ----------------------------------------------------------------- events

    def load_complete(
        self,
        records: Sequence[Mapping[str, Any]],
        headers: Optional[Iterable[str]] = None,
        *,
        profile: Union[Profile, str, None] = None,
    ) -> Optional[DashboardUpdate]:
        """Replace main data with a new batch and reset the filters.

        An empty batch leaves the session as it was and only sets ``notice``.
        """
        if not records:
            self.notice = NO_DATA_NOTICE
            logger.info("load ignored: empty record batch")
            return None
        if profile is not None:
            self._profile = get_profile(profile) if isinstance(profile, str) else profile

        header_set = tuple(headers) if headers is not None else collect_headers(records)
        schema = resolve(header_set, self._profile.synonyms)
        if schema.unresolved:
            logger.info("profile %s: unresolved fields %s", self._profile.name, ", ".join(schema.unresolved))
        self._batch = normalize_records(records, schema, self._profile.fields, derive=self._profile.derive)
        self._filters = FilterState()
        self._options = self._build_options()
        self.notice = None
        return self._recompute()

    def load_from(
        self,
        loader: Callable[[], ImportResult],
        *,
        profile: Union[Profile, str, None] = None,
    ) -> Optional[DashboardUpdate]:
        """Run an import and load its records; a failed import keeps the current state."""
        try:
            imported = loader()
        except ImportFailure as exc:
            logger.warning("import failed: %s", exc)
            self.notice = str(exc)
            return None
        update = self.load_complete(imported.records, imported.headers, profile=profile)
        if update is not None:
            logger.info("loaded %d records from %s", len(imported), imported.source)
        return update

    def filter_changed(self, field: str, value: object) -> DashboardUpdate:
        if value is None or str(value).strip() in ("", ALL):
            return self.clear_predicate(field)
        return self.apply_predicate(field, value)

    def apply_predicate(self, field: str, value: object) -> DashboardUpdate:
        self._check_field(field)
        normalized = self._profile.normalize_value(field, value)
        self._filters = self._filters.with_predicate(field, normalized)
        logger.debug("predicate %s=%r", field, normalized)
        return self._recompute()

    def clear_predicate(self, field: str) -> DashboardUpdate:
        self._check_field(field)
        self._filters = self._filters.without_predicate(field)
        return self._recompute()

    def drill_down(self, field: str, value: object) -> DashboardUpdate:
        """Click on a group: same as selecting that group's label for its field."""
        return self.apply_predicate(field, value)

    def drill_down_period(self, series_name: str, label: str) -> DashboardUpdate:
        """Click on a time bucket: narrow the date range to that bucket."""
        series_spec = next((s for s in self._profile.spec.series if s.name == series_name), None)
        if series_spec is None or series_spec.bucket in (None, "hour"):
            raise UnknownFieldError(f"{series_name!r} is not a date-bucketed series")
        start = parse_bucket_label(series_spec.bucket, label)
        if start is None:
            raise ValueError(f"Bad bucket label {label!r} for {series_name!r}")
        return self.set_date_range(*bucket_bounds(series_spec.bucket, start))

    def date_range_changed(self, start: object, end: object) -> DashboardUpdate:
        return self.set_date_range(parse_date(start), parse_date(end))

    def set_date_range(self, start: Optional[pd.Timestamp], end: Optional[pd.Timestamp]) -> DashboardUpdate:
        self._filters = self._filters.with_date_range(start, end)
        return self._recompute()

    def replace_filters(self, raw: Mapping[str, object]) -> DashboardUpdate:
        """Replace the whole filter state from a loose payload (see ``normalize_filters``)."""
        self._filters = normalize_filters(
            raw,
            filterable=self._profile.filterable,
            normalize_value=self._profile.normalize_value,
        )
        return self._recompute()

    def reset(self) -> DashboardUpdate:
        self._filters = FilterState()
        return self._recompute()

    # ---------------------------------------------------------------- outputs

    def preview(self, limit: int = 500) -> List[Dict[str, Any]]:
        columns = [c for c in self._profile.table_columns if c in self._visible.columns]
        rows = []
        for _, row in self._visible.head(limit).iterrows():
            out: Dict[str, Any] = {}
            for col in columns:
                value = row[col]
                if value is None or (not isinstance(value, str) and pd.isna(value)):
                    out[col] = None
                elif isinstance(value, pd.Timestamp):
                    out[col] = value.date().isoformat()
                elif hasattr(value, "isoformat"):
                    out[col] = value.isoformat(timespec="minutes")
                elif hasattr(value, "item"):
                    out[col] = value.item()
                else:
                    out[col] = value
            rows.append(out)
        return rows

    def export_frame(self) -> pd.DataFrame:
        return self._visible.drop(columns=[RAW_COLUMN], errors="ignore").copy()

    # --------------------------------------------------------------- internal

    def _check_field(self, field: str) -> None:
        try:
            spec = self._profile.field(field)
        except KeyError:
            spec = None
        if spec is None or spec.kind not in PREDICATE_KINDS:
            raise UnknownFieldError(f"{field!r} is not a filterable field of profile {self._profile.name!r}")

    def _build_options(self) -> Dict[str, List[str]]:
        frame = self._batch.frame if self._batch is not None else pd.DataFrame()
        options: Dict[str, List[str]] = {}
        for name in self._profile.filterable:
            if name not in frame.columns:
                options[name] = [ALL]
                continue
            values = {str(v) for v in frame[name].tolist() if str(v) not in ("", UNKNOWN_LABEL)}
            kind = self._profile.field(name).kind
            options[name] = [ALL] + sorted(values, key=_option_sort_key(kind))
        return options

    def _recompute(self) -> DashboardUpdate:
        frame = self._batch.frame if self._batch is not None else pd.DataFrame()
        self._visible = apply_filters(frame, self._filters, date_field=self._profile.date_field)
        result = aggregate(self._visible, self._profile.spec)
        update = DashboardUpdate(
            profile=self._profile.name,
            title=self._profile.title,
            filters=self._filters,
            result=result,
            options=self.options,
            total_count=len(frame),
            notice=self.notice,
        )
        self._last = update
        if self._publish is not None:
            self._publish(update)
        return update
