from __future__ import annotations

from typing import Iterable, Optional

import pandas as pd

from core.aggregate import KpiFn, safe_ratio


def row_count() -> KpiFn:
    return lambda df: int(len(df))


def total(field: str) -> KpiFn:
    def _total(df: pd.DataFrame) -> float:
        if field not in df.columns or df.empty:
            return 0.0
        return float(pd.to_numeric(df[field], errors="coerce").fillna(0).sum())

    return _total


def mean(field: str) -> KpiFn:
    """Mean over non-null values; None when there are none."""

    def _mean(df: pd.DataFrame) -> Optional[float]:
        if field not in df.columns:
            return None
        values = pd.to_numeric(df[field], errors="coerce").dropna()
        if values.empty:
            return None
        return float(values.sum() / len(values))

    return _mean


def per_record(field: str) -> KpiFn:
    """Sum of ``field`` divided by the record count (0 when there are no records)."""
    _total = total(field)
    return lambda df: safe_ratio(_total(df), len(df))


def matches(df: pd.DataFrame, field: str, values: Iterable[str]) -> pd.Series:
    if field not in df.columns:
        return pd.Series(False, index=df.index)
    wanted = {str(v).upper() for v in values}
    return df[field].astype(str).str.strip().str.upper().isin(wanted)


def count_where(field: str, *values: str) -> KpiFn:
    return lambda df: int(matches(df, field, values).sum())


def count_contains(field: str, *needles: str) -> KpiFn:
    def _count(df: pd.DataFrame) -> int:
        if field not in df.columns or df.empty:
            return 0
        text = df[field].astype(str).str.upper()
        mask = pd.Series(False, index=df.index)
        for needle in needles:
            mask |= text.str.contains(needle.upper(), regex=False)
        return int(mask.sum())

    return _count


def count_all(**conditions: str) -> KpiFn:
    """Records matching every ``field=value`` condition."""

    def _count(df: pd.DataFrame) -> int:
        mask = pd.Series(True, index=df.index)
        for field, value in conditions.items():
            mask &= matches(df, field, [value])
        return int(mask.sum())

    return _count


def count_at_most(field: str, limit: float) -> KpiFn:
    def _count(df: pd.DataFrame) -> int:
        if field not in df.columns:
            return 0
        values = pd.to_numeric(df[field], errors="coerce").dropna()
        return int((values <= limit).sum())

    return _count


def ratio(numerator: KpiFn, denominator: KpiFn, *, scale: float = 100.0, digits: Optional[int] = 1) -> KpiFn:
    """numerator / denominator * scale, 0 when the denominator is 0."""

    def _ratio(df: pd.DataFrame) -> float:
        value = safe_ratio(numerator(df), denominator(df)) * scale
        return round(value, digits) if digits is not None else value

    return _ratio


def rounded(fn: KpiFn, digits: int = 1) -> KpiFn:
    def _rounded(df: pd.DataFrame) -> Optional[float]:
        value = fn(df)
        return None if value is None else round(float(value), digits)

    return _rounded


def count_zero(field: str) -> KpiFn:
    def _count(df: pd.DataFrame) -> int:
        if field not in df.columns:
            return int(len(df))
        return int((pd.to_numeric(df[field], errors="coerce").fillna(0) == 0).sum())

    return _count
