from __future__ import annotations

from datetime import time
from typing import Literal, Optional, Tuple

import pandas as pd

BucketKind = Literal["day", "month", "iso_week", "hour"]

LABEL_FORMATS = {
    "day": "%Y-%m-%d",
    "month": "%Y-%m",
    "iso_week": "%Y-%m-%d",
}


def month_start(ts: pd.Timestamp) -> pd.Timestamp:
    return pd.Timestamp(year=ts.year, month=ts.month, day=1)


def day_start(ts: pd.Timestamp) -> pd.Timestamp:
    return pd.Timestamp(year=ts.year, month=ts.month, day=ts.day)


def iso_week(ts: pd.Timestamp) -> Tuple[int, int]:
    """(ISO week-year, ISO week number) via the week's Thursday.

    The Thursday of a week always falls in the ISO week-year, so dates near
    New Year land in the right year.
    """
    day = day_start(ts)
    thursday = day + pd.Timedelta(days=4 - day.isoweekday())
    ordinal = thursday.dayofyear
    return thursday.year, (ordinal - 1) // 7 + 1


def iso_week_monday(year: int, week: int) -> pd.Timestamp:
    # January 4th is always in week 1.
    jan4 = pd.Timestamp(year=year, month=1, day=4)
    week1_monday = jan4 - pd.Timedelta(days=jan4.isoweekday() - 1)
    return week1_monday + pd.Timedelta(weeks=week - 1)


def iso_week_start(ts: pd.Timestamp) -> pd.Timestamp:
    return iso_week_monday(*iso_week(ts))


def bucket_start(kind: BucketKind, value: object) -> Optional[object]:
    """Bucket key for one value; None for missing values.

    Date buckets return the bucket's first instant; the hour bucket returns an int.
    """
    if kind == "hour":
        if isinstance(value, time):
            return value.hour
        return None
    if value is None or pd.isna(value):
        return None
    ts = pd.Timestamp(value)
    if kind == "day":
        return day_start(ts)
    if kind == "month":
        return month_start(ts)
    if kind == "iso_week":
        return iso_week_start(ts)
    raise ValueError(f"Unknown bucket kind: {kind}")


def bucket_label(kind: BucketKind, start: object) -> str:
    if kind == "hour":
        return f"{int(start)}:00"
    return pd.Timestamp(start).strftime(LABEL_FORMATS[kind])


def bucket_bounds(kind: BucketKind, start: pd.Timestamp) -> Tuple[pd.Timestamp, pd.Timestamp]:
    """Inclusive [first day, last day] covered by a date bucket."""
    if kind == "day":
        return start, start
    if kind == "month":
        return start, start + pd.offsets.MonthEnd(0)
    if kind == "iso_week":
        return start, start + pd.Timedelta(days=6)
    raise ValueError(f"Bucket kind {kind!r} has no date bounds")


def parse_bucket_label(kind: BucketKind, label: str) -> Optional[pd.Timestamp]:
    try:
        return pd.to_datetime(label, format=LABEL_FORMATS[kind])
    except (KeyError, ValueError):
        return None
