from __future__ import annotations

from core import kpis
from core.aggregate import AggregationSpec, KpiSpec, SeriesSpec
from core.schema import FieldSpec

NAME = "policies"
TITLE = "Policy Onboarding Dashboard"

FIELDS = (
    FieldSpec("capture_date", "date", ("CAPTURE DATE", "DATE CAPTURED", "DATE")),
    FieldSpec("month", "integer", ("MONTH",)),
    FieldSpec("week", "integer", ("WEEK",)),
    FieldSpec("day", "integer", ("DAY",)),
    FieldSpec("action", "category", ("ACTION",)),
    FieldSpec("status", "category", ("STATUS", "POLICY STATUS")),
    FieldSpec("plan_type", "label", ("PLAN TYPE", "PLAN")),
    FieldSpec("region", "category", ("REGION",)),
    FieldSpec("branch", "category", ("BRANCH",)),
    FieldSpec("captured_by", "label", ("CAPTURED BY", "CAPTURER")),
)

DATE_FIELD = "capture_date"
FILTERABLE = ("action", "status", "plan_type", "region", "branch", "captured_by", "month", "week")
TABLE_COLUMNS = ("month", "week", "day", "action", "status", "plan_type", "region", "branch", "captured_by")

_active = kpis.count_where("status", "ACTIVE")
_on_trial = kpis.count_where("status", "ON TRIAL")

SPEC = AggregationSpec(
    kpis=(
        KpiSpec("newly_captured", kpis.count_where("action", "NEW"), "Newly Captured Policies", "count"),
        KpiSpec("new_on_trial", kpis.count_all(action="NEW", status="ON TRIAL"), "New (On Trial)", "count"),
        KpiSpec("existing_active", kpis.count_all(action="NEW", status="ACTIVE"), "Existing (Active)", "count"),
        KpiSpec("upgrades", kpis.count_where("action", "UPGRADE"), "Upgrades", "count"),
        KpiSpec("downgrades", kpis.count_where("action", "DOWNGRADE"), "Downgrades", "count"),
        KpiSpec("active", _active, "Active", "count"),
        KpiSpec("on_trial", _on_trial, "On Trial", "count"),
        # conversion = active / on-trial policies
        KpiSpec("conversion_rate", kpis.ratio(_active, _on_trial), "Conversion Rate", "pct"),
        KpiSpec("cancelled", kpis.count_where("status", "CANCELLED"), "Cancelled", "count"),
    ),
    series=(
        SeriesSpec(
            "weekly_trend",
            "week",
            order="key",
            title="Weekly Trend by Action",
            chart="line",
            split_by="action",
        ),
        SeriesSpec("monthly_trend", "month", order="key", title="Monthly New Policies"),
        SeriesSpec("plan_types", "plan_type", title="Plan Type Distribution"),
        SeriesSpec("status_split", "status", title="Status Split", chart="pie"),
        SeriesSpec("regional_uptake", "region", title="Regional Uptake", chart="barh"),
        SeriesSpec("branch_leaderboard", "branch", order="desc", title="Branch Leaderboard"),
        SeriesSpec("captured_by_ranking", "captured_by", order="desc", title="Captured By Ranking"),
    ),
)
