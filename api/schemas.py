from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class LoadRequest(BaseModel):
    records: List[Dict[str, Any]] = Field(default_factory=list)
    headers: Optional[List[str]] = None
    profile: Optional[str] = None


class SheetLoadRequest(BaseModel):
    sheet_id: Optional[str] = None
    sheet_range: Optional[str] = None
    profile: Optional[str] = None


class FilterChangeModel(BaseModel):
    field: str
    value: Optional[str] = None


class DateRangeModel(BaseModel):
    start: Optional[str] = None
    end: Optional[str] = None


class DrillDownModel(BaseModel):
    field: Optional[str] = None
    value: Optional[str] = None
    series: Optional[str] = None
    label: Optional[str] = None


class DashboardFiltersModel(BaseModel):
    predicates: Dict[str, str] = Field(default_factory=dict)
    date_start: Optional[str] = None
    date_end: Optional[str] = None


class MetaOptionsResponse(BaseModel):
    profile: str
    options: Dict[str, List[str]]
