from __future__ import annotations

import pandas as pd

from core import kpis
from core.aggregate import AggregationSpec, KpiSpec, SeriesSpec
from core.schema import FieldSpec

NAME = "claims"
TITLE = "Claims Dashboard"

FIELDS = (
    FieldSpec("claim_number", "text", ("CLAIM NUMBER", "CLAIM_NO", "CLAIMNO", "CLAIMNUMBER", "CLAIM #")),
    FieldSpec("claim_date", "date", ("CLAIM DATE", "DATE OF DEATH", "DATE", "DATE_OF_DEATH")),
    FieldSpec("cover_amount", "amount", ("COVER AMOUNT", "COVER", "COVERAMOUNT")),
    FieldSpec("paid_amount", "amount", ("PAID AMOUNT", "PAID", "PAIDAMOUNT", "AMOUNT PAID")),
    FieldSpec("status", "category", ("CLAIM STATUS", "STATUS")),
    FieldSpec("phase", "category", ("CLAIM PHASE STATUS", "CLAIM PHASE", "PHASE")),
    FieldSpec("cause", "label", ("CAUSE OF DEATH", "CAUSEOFDEATH", "CAUSE")),
)

DATE_FIELD = "claim_date"
FILTERABLE = ("status", "phase", "cause")
TABLE_COLUMNS = ("claim_number", "claim_date", "status", "phase", "cause", "cover_amount", "paid_amount")


def has_identity(frame: pd.DataFrame) -> pd.Series:
    """Rows with a claim number or a claim date; blank spreadsheet rows are left out of the figures."""
    return (frame["claim_number"] != "") | frame["claim_date"].notna()


SPEC = AggregationSpec(
    kpis=(
        KpiSpec("total_claims", kpis.row_count(), "Total Claims", "count"),
        KpiSpec("total_paid", kpis.total("paid_amount"), "Total Paid", "money"),
        KpiSpec("total_cover", kpis.total("cover_amount"), "Total Cover", "money"),
        KpiSpec("paid_pct", kpis.ratio(kpis.total("paid_amount"), kpis.total("cover_amount")), "Paid % of Cover", "pct"),
    ),
    series=(
        SeriesSpec("claims_by_status", "status", title="Claims by Status", chart="pie"),
        SeriesSpec("claims_by_phase", "phase", title="Claim Phase Status"),
        SeriesSpec("top_causes", "cause", order="desc", top_n=10, title="Top Causes (Top 10)", chart="barh"),
        SeriesSpec("monthly_claims", "claim_date", bucket="month", title="Monthly Claims Trend", chart="line"),
        SeriesSpec(
            "weekly_claims",
            "claim_date",
            bucket="iso_week",
            title="Weekly Claims Trend (week start = Monday)",
            chart="line",
        ),
    ),
    row_filter=has_identity,
)
