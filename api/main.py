from __future__ import annotations

import logging
import math
from typing import Optional

import numpy as np
import pandas as pd
from fastapi import FastAPI, Query
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import (
    DashboardFiltersModel,
    DateRangeModel,
    DrillDownModel,
    FilterChangeModel,
    LoadRequest,
    MetaOptionsResponse,
    SheetLoadRequest,
)
from core.charts import result_charts
from core.config import get_settings
from core.profiles import PROFILES
from core.quality import compute_quality
from core.session import DashboardSession, DashboardUpdate, UnknownFieldError
from core.sources import fetch_sheet_records

settings = get_settings()

app = FastAPI(title="Operations Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.session = DashboardSession(settings.profile)

CALLER_ERRORS = (UnknownFieldError, KeyError, ValueError)


def get_session() -> DashboardSession:
    return app.state.session


def reset_session(profile: Optional[str] = None) -> DashboardSession:
    """Drop all loaded data and start over with a fresh session."""
    app.state.session = DashboardSession(profile or settings.profile)
    return app.state.session


def _json(data: object, status_code: int = 200) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        ),
    )


def _error(exc: Exception, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc), "type": type(exc).__name__})


def _dashboard(update: Optional[DashboardUpdate], session: DashboardSession) -> JSONResponse:
    if update is None:
        return _json({"loaded": False, "notice": session.notice, "profile": session.profile.name})
    payload = update.as_dict()
    payload["loaded"] = True
    return _json(payload)


@app.get("/health")
def health():
    session = get_session()
    return _json(
        {
            "status": "ok",
            "profile": session.profile.name,
            "has_data": session.has_data,
            "state": session.state,
            "sheet_configured": settings.sheet_configured,
        }
    )


@app.get("/profiles")
def profiles():
    return _json({"profiles": [{"name": p.name, "title": p.title} for p in PROFILES.values()]})


@app.post("/load")
def load(request: LoadRequest):
    session = get_session()
    try:
        update = session.load_complete(request.records, request.headers, profile=request.profile)
        return _dashboard(update, session)
    except CALLER_ERRORS as exc:
        return _error(exc, 400)
    except Exception as exc:
        logger.exception("load failed")
        return _error(exc, 500)


@app.post("/load/sheet")
def load_sheet(request: SheetLoadRequest):
    session = get_session()
    sheet_id = request.sheet_id or settings.sheet_id
    sheet_range = request.sheet_range or settings.sheet_range
    try:
        update = session.load_from(
            lambda: fetch_sheet_records(sheet_id or "", settings.api_key or "", sheet_range),
            profile=request.profile,
        )
        if update is None:
            return _json({"loaded": False, "notice": session.notice, "profile": session.profile.name}, 502)
        return _dashboard(update, session)
    except CALLER_ERRORS as exc:
        return _error(exc, 400)
    except Exception as exc:
        logger.exception("load_sheet failed")
        return _error(exc, 500)


@app.get("/dashboard")
def dashboard():
    session = get_session()
    try:
        if not session.has_data:
            return _dashboard(None, session)
        return _dashboard(session.last_update or session.reset(), session)
    except Exception as exc:
        logger.exception("dashboard failed")
        return _error(exc, 500)


@app.get("/meta/options", response_model=MetaOptionsResponse)
def meta_options():
    session = get_session()
    return MetaOptionsResponse(profile=session.profile.name, options=session.options)


@app.post("/filter")
def filter_changed(change: FilterChangeModel):
    session = get_session()
    try:
        return _dashboard(session.filter_changed(change.field, change.value), session)
    except CALLER_ERRORS as exc:
        return _error(exc, 400)
    except Exception as exc:
        logger.exception("filter failed")
        return _error(exc, 500)


@app.post("/filters")
def replace_filters(filters: DashboardFiltersModel):
    session = get_session()
    try:
        return _dashboard(session.replace_filters(filters.model_dump()), session)
    except CALLER_ERRORS as exc:
        return _error(exc, 400)
    except Exception as exc:
        logger.exception("filters failed")
        return _error(exc, 500)


@app.post("/date-range")
def date_range(model: DateRangeModel):
    session = get_session()
    try:
        return _dashboard(session.date_range_changed(model.start, model.end), session)
    except CALLER_ERRORS as exc:
        return _error(exc, 400)
    except Exception as exc:
        logger.exception("date_range failed")
        return _error(exc, 500)


@app.post("/drilldown")
def drilldown(model: DrillDownModel):
    session = get_session()
    try:
        if model.series and model.label:
            update = session.drill_down_period(model.series, model.label)
        elif model.field:
            update = session.drill_down(model.field, model.value)
        else:
            raise ValueError("drilldown needs either field/value or series/label")
        return _dashboard(update, session)
    except CALLER_ERRORS as exc:
        return _error(exc, 400)
    except Exception as exc:
        logger.exception("drilldown failed")
        return _error(exc, 500)


@app.post("/reset")
def reset():
    session = get_session()
    try:
        return _dashboard(session.reset(), session)
    except Exception as exc:
        logger.exception("reset failed")
        return _error(exc, 500)


@app.get("/preview")
def preview(limit: int = Query(default=settings.preview_rows, ge=1, le=10000)):
    session = get_session()
    return _json({"rows": session.preview(limit), "visible_count": len(session.visible)})


@app.get("/quality")
def quality():
    try:
        return _json(compute_quality(get_session().batch))
    except Exception as exc:
        logger.exception("quality failed")
        return _error(exc, 500)


@app.get("/export")
def export():
    session = get_session()
    try:
        csv = session.export_frame().to_csv(index=False)
        filename = f"{session.profile.name}_filtered.csv"
        return Response(
            content=csv,
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )
    except Exception as exc:
        logger.exception("export failed")
        return _error(exc, 500)


@app.get("/charts")
def charts():
    session = get_session()
    try:
        update = session.last_update if session.has_data else None
        if update is None:
            return _json({"charts": {}})
        return _json({"charts": result_charts(update.result)})
    except Exception as exc:
        logger.exception("charts failed")
        return _error(exc, 500)
