from __future__ import annotations

import math
import re
from datetime import date, datetime, time
from numbers import Number
from typing import Optional

import pandas as pd


SERIAL_EPOCH = pd.Timestamp("1899-12-30")
UNKNOWN_LABEL = "Unknown"
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

_NULL_TOKENS = {"nan", "none", "null", "<na>", "nat"}

_DMY_OR_MDY = re.compile(r"^(\d{1,2})[/\-](\d{1,2})[/\-](\d{4})$")
_YMD = re.compile(r"^(\d{4})[/\-](\d{1,2})[/\-](\d{1,2})")
_TIME_OF_DAY = re.compile(r"(\d{1,2}):(\d{2})\s*(AM|PM)?", re.IGNORECASE)
_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_LEADING_NUMBER = re.compile(r"^-?(\d+\.?\d*|\.\d+)")


def is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        s = value.strip()
        return not s or s.lower() in _NULL_TOKENS
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _is_number(value: object) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


def _build_date(year: int, month: int, day: int) -> Optional[pd.Timestamp]:
    try:
        return pd.Timestamp(year=year, month=month, day=day)
    except (ValueError, OverflowError):
        return None


def parse_serial_date(serial: float) -> Optional[pd.Timestamp]:
    """Spreadsheet serial day count -> timestamp (fraction = time of day)."""
    try:
        return SERIAL_EPOCH + pd.to_timedelta(float(serial), unit="D")
    except (ValueError, OverflowError, TypeError):
        return None


def _naive(ts: pd.Timestamp) -> pd.Timestamp:
    # wall-clock time, zone dropped
    return ts.tz_localize(None) if ts.tzinfo is not None else ts


def parse_date(value: object) -> Optional[pd.Timestamp]:
    """Parse a raw cell into a timestamp.

    Rules, in order: native datetime values, spreadsheet serial numbers,
    ``M/D/YYYY`` (``D/M/YYYY`` when the first group is above 12),
    ``YYYY-M-D`` / ``YYYY/M/D``, then ``pandas.to_datetime`` as a last resort.
    Returns None when nothing matches.
    """
    if is_blank(value):
        return None
    if isinstance(value, pd.Timestamp):
        return _naive(value)
    if isinstance(value, (datetime, date)):
        try:
            return _naive(pd.Timestamp(value))
        except (ValueError, OverflowError):
            return None
    if _is_number(value):
        return parse_serial_date(value)  # type: ignore[arg-type]

    s = str(value).strip()
    m = _DMY_OR_MDY.match(s)
    if m:
        first, second, year = int(m.group(1)), int(m.group(2)), int(m.group(3))
        if first > 12:
            return _build_date(year, second, first)
        return _build_date(year, first, second)

    m = _YMD.match(s)
    if m:
        return _build_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))

    try:
        parsed = pd.to_datetime(s, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if parsed is None or pd.isna(parsed):
        return None
    return _naive(parsed)


def parse_time_of_day(value: object) -> Optional[time]:
    if is_blank(value):
        return None
    if isinstance(value, time):
        return time(value.hour, value.minute)
    if isinstance(value, datetime):
        return time(value.hour, value.minute)
    m = _TIME_OF_DAY.search(str(value).strip())
    if not m:
        return None
    hour = int(m.group(1))
    minute = int(m.group(2))
    meridiem = (m.group(3) or "").upper()
    if meridiem == "PM" and hour < 12:
        hour += 12
    if meridiem == "AM" and hour == 12:
        hour = 0
    if hour > 23 or minute > 59:
        return None
    return time(hour, minute)


def _finite(number: float) -> float:
    return number if math.isfinite(number) else 0.0


def parse_amount(value: object) -> float:
    """Money/number cell -> float. Anything unparseable is 0.0."""
    if is_blank(value):
        return 0.0
    if _is_number(value):
        text = value
    else:
        m = _LEADING_NUMBER.match(_NON_NUMERIC.sub("", str(value)))
        if not m:
            return 0.0
        text = m.group(0)
    try:
        out = float(text)  # type: ignore[arg-type]
    except (ValueError, OverflowError):
        return 0.0
    return _finite(out)


def parse_integer(value: object) -> int:
    """Whole number cell; values outside the int64 range become 0."""
    number = parse_amount(value)
    if not INT64_MIN <= number <= INT64_MAX:
        return 0
    return int(number)


def _cell_text(value: object) -> str:
    if is_blank(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def normalize_text(value: object) -> str:
    return _cell_text(value)


def normalize_label(value: object, default: str = UNKNOWN_LABEL) -> str:
    return _cell_text(value) or default


def normalize_category(value: object, default: str = UNKNOWN_LABEL) -> str:
    s = _cell_text(value)
    if not s or s.upper() == UNKNOWN_LABEL.upper():
        return default
    return s.upper()


def stay_days(date_out: Optional[pd.Timestamp], date_in: Optional[pd.Timestamp]) -> Optional[int]:
    if date_out is None or date_in is None or pd.isna(date_out) or pd.isna(date_in):
        return None
    days = (date_out - date_in) / pd.Timedelta(days=1)
    return max(0, int(math.floor(days + 0.5)))


def service_duration_hours(service_time: Optional[time], time_out: Optional[time]) -> Optional[float]:
    if service_time is None or time_out is None:
        return None
    return (service_time.hour + service_time.minute / 60.0) - time_out.hour


def age_in_years(born: Optional[pd.Timestamp], on: Optional[pd.Timestamp]) -> Optional[int]:
    if born is None or on is None or pd.isna(born) or pd.isna(on):
        return None
    years = on.year - born.year - ((on.month, on.day) < (born.month, born.day))
    return years if years >= 0 else None


def format_money(value: object, prefix: str = "M ") -> str:
    return f"{prefix}{parse_amount(value):,.2f}"
