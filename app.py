import altair as alt
import pandas as pd
import streamlit as st
from contextlib import contextmanager
from typing import Optional

from core.aggregate import AggregationResult, Series
from core.charts import DRILL_PARAM, kpi_bar, series_chart
from core.config import get_settings
from core.filters import ALL
from core.profiles import PROFILES, Profile
from core.quality import compute_quality
from core.session import DashboardSession, DashboardUpdate
from core.sources import ImportResult, fetch_sheet_records, read_csv_records, read_excel_records
from core.values import format_money

alt.data_transformers.disable_max_rows()
settings = get_settings()


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 2px solid #800000;margin-bottom: 10px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #800000;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #fff8dc;border: 1px solid #FFD700;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card'><div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def format_filter_summary(update: DashboardUpdate) -> str:
    chips = [f"State: {update.filters.state}", f"Rows: {update.visible_count} / {update.total_count}"]
    chips += [f"{field}: {value}" for field, value in update.filters.predicates]
    if update.filters.date_start is not None or update.filters.date_end is not None:
        start = update.filters.date_start.date() if update.filters.date_start is not None else "..."
        end = update.filters.date_end.date() if update.filters.date_end is not None else "..."
        chips.append(f"Dates: {start} - {end}")
    return "".join(f"<span class='chip'>{c}</span>" for c in chips)


def format_kpi(value: Optional[float], fmt: str) -> str:
    if value is None:
        return "N/A"
    if fmt == "money":
        return format_money(value)
    if fmt == "pct":
        return f"{value:.1f}%"
    if fmt == "count":
        return f"{int(value):,}"
    return f"{value:,.1f}"


def get_session(profile: str) -> DashboardSession:
    session = st.session_state.get("dashboard_session")
    if session is None:
        session = DashboardSession(profile)
        st.session_state["dashboard_session"] = session
    return session


def load_upload(session: DashboardSession, upload, profile: str) -> None:
    name = upload.name.lower()

    def _read() -> ImportResult:
        if name.endswith((".xlsx", ".xlsm", ".xls")):
            return read_excel_records(upload)
        return read_csv_records(upload)

    session.load_from(_read, profile=profile)


def render_kpis(profile: Profile, result: AggregationResult) -> None:
    specs = profile.spec.kpis
    for start in range(0, len(specs), 4):
        cols = st.columns(4)
        for col, spec in zip(cols, specs[start : start + 4]):
            col.metric(spec.title or spec.name, format_kpi(result.kpis.get(spec.name), spec.fmt))


def render_series(session: DashboardSession, series: Series) -> None:
    with card(series.spec.title or series.name):
        if not series.points:
            st.info("No data for the current filters.")
            return
        event = st.altair_chart(
            series_chart(series),
            use_container_width=True,
            on_select="rerun",
            key=f"chart_{series.name}",
        )
        picked = (event or {}).get("selection", {}).get(DRILL_PARAM) or []
        handled_key = f"_drilled_{series.name}"
        if not picked:
            st.session_state.pop(handled_key, None)
            return
        label = picked[0].get("label")
        if label is None or st.session_state.get(handled_key) == label:
            return
        st.session_state[handled_key] = label
        if series.spec.bucket in ("day", "month", "iso_week"):
            session.drill_down_period(series.name, str(label))
            st.rerun()
        elif series.spec.bucket is None and series.spec.field in session.profile.filterable:
            session.drill_down(series.spec.field, label)
            st.rerun()


# ---------- UI setup ----------
st.set_page_config(page_title="Operations Dashboard", layout="wide")
inject_base_styles()

with st.sidebar:
    st.markdown("### Dashboard")
    profile_names = list(PROFILES)
    default_index = profile_names.index(settings.profile) if settings.profile in PROFILES else 0
    profile_name = st.selectbox(
        "Profile",
        profile_names,
        index=default_index,
        format_func=lambda n: PROFILES[n].title,
    )
    session = get_session(profile_name)

    st.markdown("---")
    st.markdown("### Data source")
    upload = st.file_uploader("Upload Excel or CSV", type=["xlsx", "xlsm", "xls", "csv"])
    if upload is not None and st.session_state.get("_loaded_upload") != (upload.name, profile_name):
        load_upload(session, upload, profile_name)
        st.session_state["_loaded_upload"] = (upload.name, profile_name)
    if settings.sheet_configured and st.button("Load from Google Sheets"):
        session.load_from(
            lambda: fetch_sheet_records(settings.sheet_id or "", settings.api_key or "", settings.sheet_range),
            profile=profile_name,
        )

if session.notice:
    st.warning(session.notice)
if not session.has_data:
    st.info("Upload a file or load the Google Sheet to begin.")
    st.stop()

profile = session.profile
update = session.last_update or session.reset()

with st.sidebar:
    st.markdown("---")
    st.markdown("### Filters")
    for field in profile.filterable:
        key = f"filter_{field}"
        options = update.options.get(field, [ALL])
        current = update.filters.value_for(field) or ALL
        if current not in options:
            options = options + [current]
        # widgets mirror the session, which may have moved on a chart click
        st.session_state[key] = current
        st.selectbox(
            field.replace("_", " ").title(),
            options,
            key=key,
            on_change=lambda f=field, k=key: session.filter_changed(f, st.session_state[k]),
        )

    if profile.date_field:
        start = update.filters.date_start.date() if update.filters.date_start is not None else None
        end = update.filters.date_end.date() if update.filters.date_end is not None else None

        def _on_dates() -> None:
            picked = st.session_state["date_range"]
            if isinstance(picked, (list, tuple)) and len(picked) == 2:
                session.date_range_changed(picked[0], picked[1])
            elif not picked:
                session.set_date_range(None, None)

        st.session_state["date_range"] = (start, end) if start and end else ()
        st.date_input("Date range", key="date_range", on_change=_on_dates)

    st.button("Reset filters", on_click=session.reset)

top = st.container()
c1, c2 = top.columns([8, 2])
with c1:
    st.markdown(
        f"<div class='app-top-bar'><div class='page-title'>{profile.title}</div></div>",
        unsafe_allow_html=True,
    )
with c2:
    export_df = session.export_frame()
    if not export_df.empty:
        st.download_button(
            "Export CSV",
            data=export_df.to_csv(index=False).encode("utf-8"),
            file_name=f"{profile.name}_filtered.csv",
            mime="text/csv",
        )
st.markdown(f"<div class='chip-row'>{format_filter_summary(update)}</div>", unsafe_allow_html=True)

render_kpis(profile, update.result)

if {"total_cover", "total_paid"} <= set(update.result.kpis):
    with card("Cover vs Paid"):
        st.altair_chart(
            kpi_bar(
                update.result,
                ["total_cover", "total_paid"],
                title="Cover vs Paid",
                labels={"total_cover": "Cover", "total_paid": "Paid"},
            ),
            use_container_width=True,
        )

series_list = list(update.result.series)
for start in range(0, len(series_list), 2):
    cols = st.columns(2)
    for col, series in zip(cols, series_list[start : start + 2]):
        with col:
            render_series(session, series)

with card("Records"):
    rows = session.preview(settings.preview_rows)
    st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)
    if update.visible_count > settings.preview_rows:
        st.caption(f"Showing first {settings.preview_rows} of {update.visible_count} rows.")

with st.expander("Data quality", expanded=False):
    st.json(compute_quality(session.batch))
