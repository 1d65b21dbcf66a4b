from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any, Dict, List, Optional, Tuple, Union

import pandas as pd
import requests

logger = logging.getLogger(__name__)

SHEETS_VALUES_URL = "https://sheets.googleapis.com/v4/spreadsheets/{sheet_id}/values/{range}"
EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}
CSV_SUFFIXES = {".csv", ".txt"}

Source = Union[str, Path, IO[bytes], IO[str]]


class ImportFailure(RuntimeError):
    """The source could not be read or held no rows."""


@dataclass(frozen=True)
class ImportResult:
    records: List[Dict[str, Any]]
    headers: Tuple[str, ...]
    source: str

    def __len__(self) -> int:
        return len(self.records)


def _describe(source: Source) -> str:
    if isinstance(source, (str, Path)):
        return Path(source).name
    return getattr(source, "name", None) or type(source).__name__


def records_from_frame(df: pd.DataFrame, source: str) -> ImportResult:
    df = df.dropna(how="all")
    df.columns = [str(c).strip() for c in df.columns]
    df = df.loc[:, [c for c in df.columns if c and not c.startswith("Unnamed:")]]
    df = df.astype(object).where(pd.notna(df), "")
    records = df.to_dict(orient="records")
    if not records:
        raise ImportFailure(f"No data found in {source}.")
    return ImportResult(records=records, headers=tuple(df.columns), source=source)


def read_excel_records(source: Source, sheet_name: Union[int, str] = 0) -> ImportResult:
    name = _describe(source)
    try:
        df = pd.read_excel(source, sheet_name=sheet_name)
    except Exception as exc:
        raise ImportFailure(f"Error reading file {name}: {exc}") from exc
    return records_from_frame(df, f"Excel ({name})")


def read_csv_records(source: Source) -> ImportResult:
    name = _describe(source)
    try:
        df = pd.read_csv(source, dtype=str, keep_default_na=False, skip_blank_lines=True)
    except pd.errors.EmptyDataError as exc:
        raise ImportFailure(f"No data found in {name}.") from exc
    except Exception as exc:
        raise ImportFailure(f"CSV parse error in {name}: {exc}") from exc
    df = df.replace("", pd.NA)
    return records_from_frame(df, f"CSV ({name})")


def read_records(path: Union[str, Path]) -> ImportResult:
    suffix = Path(path).suffix.lower()
    if suffix in EXCEL_SUFFIXES:
        return read_excel_records(path)
    if suffix in CSV_SUFFIXES:
        return read_csv_records(path)
    raise ImportFailure(f"Unsupported file type: {suffix or Path(path).name}")


def rows_to_records(values: List[List[Any]], source: str) -> ImportResult:
    """First row is the header row; short rows are padded with blanks."""
    if not values or len(values) < 2:
        raise ImportFailure(f"No data found in {source}.")
    headers = [str(h).strip() for h in values[0]]
    records = []
    for row in values[1:]:
        if not any(str(cell).strip() for cell in row):
            continue
        padded = list(row) + [""] * (len(headers) - len(row))
        records.append({h: padded[i] for i, h in enumerate(headers) if h})
    if not records:
        raise ImportFailure(f"No data found in {source}.")
    return ImportResult(records=records, headers=tuple(h for h in headers if h), source=source)


def fetch_sheet_records(
    sheet_id: str,
    api_key: str,
    sheet_range: str = "Sheet1",
    *,
    session: Optional[requests.Session] = None,
    timeout: float = 20.0,
) -> ImportResult:
    if not sheet_id or not api_key:
        raise ImportFailure("Google Sheets is not configured.")
    http = session or requests.Session()
    url = SHEETS_VALUES_URL.format(sheet_id=sheet_id, range=sheet_range)
    try:
        response = http.get(url, params={"key": api_key}, timeout=timeout)
        response.raise_for_status()
        payload = response.json()
    except (requests.RequestException, ValueError) as exc:
        logger.warning("Google Sheets load failed: %s", exc)
        raise ImportFailure("Failed to load Google Sheet.") from exc
    return rows_to_records(payload.get("values") or [], "Google Sheets")
