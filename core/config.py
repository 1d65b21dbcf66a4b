from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Optional, Tuple

DATA_DIR = Path(__file__).resolve().parents[1]
DEFAULT_PROFILE = "dispatch"
DEFAULT_SHEET_RANGE = "Sheet1"
DEFAULT_PREVIEW_ROWS = 500
DEFAULT_CORS_ORIGINS = ("http://localhost:3000", "http://127.0.0.1:3000")


@dataclass(frozen=True)
class Settings:
    profile: str = DEFAULT_PROFILE
    data_dir: Path = DATA_DIR
    sheet_id: Optional[str] = None
    api_key: Optional[str] = None
    sheet_range: str = DEFAULT_SHEET_RANGE
    preview_rows: int = DEFAULT_PREVIEW_ROWS
    cors_origins: Tuple[str, ...] = field(default_factory=lambda: DEFAULT_CORS_ORIGINS)

    @property
    def sheet_configured(self) -> bool:
        return bool(self.sheet_id and self.api_key)


def _env_str(name: str) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return raw.strip()


def _env_int(name: str, default: int) -> int:
    raw = _env_str(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def load_settings() -> Settings:
    origins = _env_str("DASHBOARD_CORS_ORIGINS")
    return Settings(
        profile=(_env_str("DASHBOARD_PROFILE") or DEFAULT_PROFILE).lower(),
        data_dir=Path(_env_str("DASHBOARD_DATA_DIR") or DATA_DIR),
        sheet_id=_env_str("DASHBOARD_SHEET_ID"),
        api_key=_env_str("DASHBOARD_API_KEY"),
        sheet_range=_env_str("DASHBOARD_SHEET_RANGE") or DEFAULT_SHEET_RANGE,
        preview_rows=_env_int("DASHBOARD_PREVIEW_ROWS", DEFAULT_PREVIEW_ROWS),
        cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()) if origins else DEFAULT_CORS_ORIGINS,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
