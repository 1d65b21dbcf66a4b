from __future__ import annotations

from dataclasses import dataclass
from types import ModuleType
from typing import Dict, List, Optional, Tuple

from core import metrics_claims, metrics_dispatch, metrics_members, metrics_policies, metrics_society
from core.aggregate import AggregationSpec
from core.records import DEFAULTS, PARSERS, Deriver
from core.schema import FieldSpec, synonym_table
from core.values import UNKNOWN_LABEL


@dataclass(frozen=True)
class Profile:
    """One dashboard: its sheet layout, filters and aggregation spec."""

    name: str
    title: str
    fields: Tuple[FieldSpec, ...]
    spec: AggregationSpec
    date_field: Optional[str] = None
    filterable: Tuple[str, ...] = ()
    table_columns: Tuple[str, ...] = ()
    derive: Optional[Deriver] = None

    @classmethod
    def from_module(cls, module: ModuleType) -> "Profile":
        return cls(
            name=module.NAME,
            title=module.TITLE,
            fields=tuple(module.FIELDS),
            spec=module.SPEC,
            date_field=getattr(module, "DATE_FIELD", None),
            filterable=tuple(getattr(module, "FILTERABLE", ())),
            table_columns=tuple(getattr(module, "TABLE_COLUMNS", ())),
            derive=getattr(module, "derive", None),
        )

    @property
    def synonyms(self) -> Dict[str, Tuple[str, ...]]:
        return synonym_table(self.fields)

    def field(self, name: str) -> FieldSpec:
        for spec in self.fields:
            if spec.name == name:
                return spec
        raise KeyError(name)

    def normalize_value(self, name: str, value: object) -> str:
        """Apply the field's own normalization to a UI value so predicates compare like for like."""
        spec = self.field(name)
        if str(value).strip() == UNKNOWN_LABEL:
            return UNKNOWN_LABEL
        parsed = PARSERS[spec.kind](value)
        if parsed is None:
            parsed = DEFAULTS[spec.kind]
        return str(parsed)


PROFILES: Dict[str, Profile] = {
    p.name: p
    for p in (
        Profile.from_module(metrics_dispatch),
        Profile.from_module(metrics_claims),
        Profile.from_module(metrics_policies),
        Profile.from_module(metrics_members),
        Profile.from_module(metrics_society),
    )
}


def get_profile(name: str) -> Profile:
    try:
        return PROFILES[name]
    except KeyError:
        raise KeyError(f"Unknown profile {name!r}; expected one of {sorted(PROFILES)}") from None


def profile_names() -> List[str]:
    return list(PROFILES)
