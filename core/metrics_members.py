from __future__ import annotations

from core import kpis
from core.aggregate import AggregationSpec, KpiSpec, SeriesSpec
from core.schema import FieldSpec

NAME = "members"
TITLE = "Member Data Dashboard"

FIELDS = (
    FieldSpec("date", "date", ("DATE", "JOIN DATE")),
    FieldSpec("status", "category", ("STATUS", "MEMBER STATUS")),
    FieldSpec("region", "category", ("REGION",)),
)

DATE_FIELD = "date"
FILTERABLE = ("status", "region")
TABLE_COLUMNS = ("date", "status", "region")

_active = kpis.count_where("status", "ACTIVE")

SPEC = AggregationSpec(
    kpis=(
        KpiSpec("total_records", kpis.row_count(), "Total Records", "count"),
        KpiSpec("active", _active, "Active", "count"),
        KpiSpec("inactive", kpis.count_where("status", "INACTIVE"), "Inactive", "count"),
        # conversion = active / all records
        KpiSpec("conversion_rate", kpis.ratio(_active, kpis.row_count()), "Conversion Rate", "pct"),
    ),
    series=(
        SeriesSpec("weekly_trend", "date", bucket="iso_week", title="Weekly Trend"),
        SeriesSpec("monthly_trend", "date", bucket="month", title="Monthly Trend", chart="line"),
        SeriesSpec("status_split", "status", title="Status Split", chart="pie"),
        SeriesSpec("region_distribution", "region", title="Region Distribution"),
    ),
)
