from __future__ import annotations

import pandas as pd

from core import kpis
from core.aggregate import AggregationSpec, KpiSpec, SeriesSpec
from core.schema import FieldSpec
from core.values import service_duration_hours, stay_days

NAME = "dispatch"
TITLE = "Dispatch Dashboard"
TURNAROUND_DAYS = 7

FIELDS = (
    FieldSpec("branch", "category", ("BRANCH",)),
    FieldSpec("date_out", "date", ("DATE OUT", "DISPATCH DATE")),
    FieldSpec("corpse_name", "text", ("CORPSE NAME", "DECEASED NAME", "DECEASED")),
    FieldSpec("gender", "category", ("GENDER", "SEX")),
    FieldSpec("date_in", "date", ("DATE IN", "ADMISSION DATE")),
    FieldSpec("destination", "label", ("DESTINATION",)),
    FieldSpec("coffin", "label", ("COFFIN CODE", "COFFIN", "COFFIN TYPE")),
    FieldSpec("service_type", "label", ("SERVICE TYPE", "SERVICE")),
    FieldSpec("time_out", "time", ("TIME OUT",)),
    FieldSpec("service_time", "time", ("SERVICE TIME",)),
    FieldSpec("payment_mode", "category", ("MODE OF PAYMENT", "PAYMENT MODE", "PAYMENT")),
    FieldSpec("payment_category", "category", ("PAYMENT CATEGORY",)),
    FieldSpec("total_amount", "amount", ("TOTAL AMOUNT", "TOTAL", "AMOUNT")),
    FieldSpec("preneed", "amount", ("PRENEED",)),
    FieldSpec("cash", "amount", ("CASH",)),
    FieldSpec("society", "label", ("SOCIETY",)),
)

DATE_FIELD = "date_out"
FILTERABLE = ("branch", "payment_mode", "service_type")
TABLE_COLUMNS = (
    "branch",
    "date_out",
    "corpse_name",
    "gender",
    "date_in",
    "destination",
    "coffin",
    "service_type",
    "time_out",
    "payment_mode",
    "total_amount",
)


def derive(frame: pd.DataFrame) -> pd.DataFrame:
    frame["stay_days"] = pd.array(
        [stay_days(out, in_) for out, in_ in zip(frame["date_out"], frame["date_in"])],
        dtype="Int64",
    )
    frame["time_out_hour"] = pd.array([t.hour if t is not None else None for t in frame["time_out"]], dtype="Int64")
    frame["service_duration_hours"] = pd.array(
        [service_duration_hours(s, t) for s, t in zip(frame["service_time"], frame["time_out"])],
        dtype="Float64",
    )
    return frame


_within_turnaround = kpis.count_at_most("stay_days", TURNAROUND_DAYS)

SPEC = AggregationSpec(
    kpis=(
        KpiSpec("total_dispatches", kpis.row_count(), "Total Dispatches", "count"),
        KpiSpec("avg_stay_days", kpis.rounded(kpis.mean("stay_days"), 1), "Average Stay (days)"),
        KpiSpec("total_revenue", kpis.total("total_amount"), "Total Revenue", "money"),
        KpiSpec("avg_revenue_per_case", kpis.per_record("total_amount"), "Avg Revenue / Case", "money"),
        KpiSpec("total_preneed", kpis.total("preneed"), "Preneed Total", "money"),
        KpiSpec("total_cash", kpis.total("cash"), "Cash Total", "money"),
        KpiSpec("missing_totals", kpis.count_zero("total_amount"), "Missing Totals", "count"),
        KpiSpec("af_cases", kpis.count_contains("payment_mode", "A/F", "AF"), "AF / After-Funeral Cases", "count"),
        KpiSpec("turnaround_within_7", _within_turnaround, "Turnaround <= 7 days", "count"),
        KpiSpec(
            "turnaround_within_7_pct",
            kpis.ratio(_within_turnaround, kpis.row_count()),
            "Turnaround <= 7 days (%)",
            "pct",
        ),
    ),
    series=(
        SeriesSpec("dispatches_over_time", "date_out", bucket="day", title="Dispatches Over Time", chart="line"),
        SeriesSpec(
            "avg_stay_by_branch",
            "branch",
            metric="avg",
            value_field="stay_days",
            title="Average Stay (days) by Branch",
        ),
        SeriesSpec("service_types", "service_type", title="Dispatches by Service Type", chart="pie"),
        SeriesSpec("top_coffins", "coffin", order="desc", top_n=12, title="Top Coffin Types", chart="barh"),
        SeriesSpec("payment_mix", "payment_mode", title="Payment Mode Mix", chart="pie"),
        SeriesSpec(
            "revenue_by_month",
            "date_out",
            metric="sum",
            value_field="total_amount",
            bucket="month",
            title="Revenue by Month",
        ),
        SeriesSpec("dispatches_by_hour", "time_out", bucket="hour", title="Dispatches by Hour (Time Out)"),
    ),
)
