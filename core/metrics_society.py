from __future__ import annotations

import pandas as pd

from core import kpis
from core.aggregate import AggregationSpec, KpiSpec, SeriesSpec
from core.schema import FieldSpec
from core.values import age_in_years

NAME = "society"
TITLE = "Society Claims Dashboard"
AGE_BAND_YEARS = 10

FIELDS = (
    FieldSpec("claim_date", "date", ("CLAIM DATE", "DATE OF DEATH")),
    FieldSpec("branch", "category", ("BRANCH",)),
    FieldSpec("society", "label", ("SOCIETY NAME", "SOCIETY")),
    FieldSpec("cover_type", "label", ("COVER TYPE",)),
    FieldSpec("gender", "category", ("GENDER", "SEX")),
    FieldSpec("coffin", "label", ("COFFIN USED", "COFFIN")),
    FieldSpec("cover_amount", "amount", ("COVER AMOUNT", "COVER")),
    FieldSpec("date_of_birth", "date", ("DATE OF BIRTH", "DOB")),
)

DATE_FIELD = "claim_date"
FILTERABLE = ("branch", "society", "cover_type", "gender", "coffin")
TABLE_COLUMNS = ("claim_date", "branch", "society", "cover_type", "gender", "coffin", "cover_amount")


def derive(frame: pd.DataFrame) -> pd.DataFrame:
    # age at the claim date
    ages = [age_in_years(born, on) for born, on in zip(frame["date_of_birth"], frame["claim_date"])]
    frame["age"] = pd.array(ages, dtype="Int64")
    frame["age_band"] = pd.array(
        [a - a % AGE_BAND_YEARS if a is not None else None for a in ages],
        dtype="Int64",
    )
    return frame


SPEC = AggregationSpec(
    kpis=(
        KpiSpec("total_claims", kpis.row_count(), "Total Claims", "count"),
        KpiSpec("total_cover", kpis.total("cover_amount"), "Total Cover Amount", "money"),
        KpiSpec("avg_cover", kpis.rounded(kpis.per_record("cover_amount"), 2), "Average Cover", "money"),
    ),
    series=(
        SeriesSpec("claims_by_branch", "branch", title="Claims by Branch"),
        SeriesSpec("claims_by_society", "society", title="Claims by Society"),
        SeriesSpec("claims_by_cover_type", "cover_type", title="Claims by Cover Type", chart="pie"),
        SeriesSpec("claims_by_gender", "gender", title="Claims by Gender", chart="pie"),
        SeriesSpec("claims_by_coffin", "coffin", title="Claims by Coffin Used"),
        SeriesSpec(
            "avg_cover_by_society",
            "society",
            metric="avg",
            value_field="cover_amount",
            order="desc",
            title="Average Cover Amount by Society",
        ),
        SeriesSpec("claims_by_month", "claim_date", bucket="month", title="Claims by Month", chart="line"),
        SeriesSpec("age_distribution", "age_band", order="key", title="Age at Death (10-year bands)"),
    ),
)
