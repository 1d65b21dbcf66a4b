from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, Literal, Mapping, Optional, Sequence, Tuple

FieldKind = Literal["date", "time", "amount", "integer", "category", "label", "text"]


@dataclass(frozen=True)
class FieldSpec:
    name: str
    kind: FieldKind
    synonyms: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CanonicalSchema:
    """Canonical field -> exact header key found in one record batch."""

    mapping: Mapping[str, str] = field(default_factory=dict)
    unresolved: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "mapping", MappingProxyType(dict(self.mapping)))

    def get(self, canonical: str) -> Optional[str]:
        return self.mapping.get(canonical)

    def __contains__(self, canonical: object) -> bool:
        return canonical in self.mapping

    def as_dict(self) -> Dict[str, Optional[str]]:
        out: Dict[str, Optional[str]] = dict(self.mapping)
        for name in self.unresolved:
            out[name] = None
        return out


def normalize_header(header: object) -> str:
    return str(header).strip().upper()


def synonym_table(fields: Iterable[FieldSpec]) -> Dict[str, Tuple[str, ...]]:
    """Build the canonical -> spellings table, always ending with the canonical name."""
    table: Dict[str, Tuple[str, ...]] = {}
    for spec in fields:
        spellings = list(spec.synonyms)
        for fallback in (spec.name, spec.name.replace("_", " ")):
            if normalize_header(fallback) not in {normalize_header(s) for s in spellings}:
                spellings.append(fallback)
        table[spec.name] = tuple(spellings)
    return table


def resolve(headers: Iterable[object], synonyms: Mapping[str, Sequence[str]]) -> CanonicalSchema:
    lookup: Dict[str, str] = {}
    for header in headers:
        if header is None:
            continue
        key = normalize_header(header)
        if key and key not in lookup:
            lookup[key] = str(header)

    mapping: Dict[str, str] = {}
    unresolved = []
    for canonical, spellings in synonyms.items():
        match = next((lookup[normalize_header(s)] for s in spellings if normalize_header(s) in lookup), None)
        if match is None:
            unresolved.append(canonical)
        else:
            mapping[canonical] = match
    return CanonicalSchema(mapping=mapping, unresolved=tuple(unresolved))


def collect_headers(records: Iterable[Mapping[str, object]]) -> Tuple[str, ...]:
    """Union of keys across a batch, in first-seen order."""
    seen: Dict[str, None] = {}
    for record in records:
        for key in record.keys():
            seen.setdefault(str(key), None)
    return tuple(seen)
