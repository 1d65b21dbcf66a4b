"""Tests for grouped series, ordering rules and scalar KPIs."""

from __future__ import annotations

from datetime import time

import numpy as np
import pandas as pd
import pytest

from core import kpis
from core.aggregate import (
    AggregationSpec,
    KpiSpec,
    SeriesSpec,
    aggregate,
    group_series,
    plain_number,
    safe_ratio,
)


@pytest.fixture
def frame() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "branch": ["NORTH", "SOUTH", "NORTH", "EAST", "Unknown", "SOUTH", "WEST"],
            "amount": [100.0, 50.0, 300.0, 20.0, 0.0, 70.0, 20.0],
            "stay": pd.array([2, None, 4, 1, None, 6, 1], dtype="Int64"),
            "date": pd.to_datetime(
                ["2024-03-15", "2024-01-02", None, "2024-12-31", "2025-01-01", "2024-02-10", "2024-03-01"]
            ),
            "time_out": [time(9, 0), time(14, 30), None, time(9, 15), None, time(23, 0), time(0, 5)],
        }
    )


def test_group_counts_partition_total(frame: pd.DataFrame) -> None:
    series = group_series(frame, SeriesSpec("by_branch", "branch"))
    assert series.labels == ["NORTH", "SOUTH", "EAST", "Unknown", "WEST"]
    assert sum(p.count for p in series.points) == len(frame)


def test_missing_field_groups_under_unknown(frame: pd.DataFrame) -> None:
    series = group_series(frame, SeriesSpec("by_status", "status"))
    assert series.as_mapping() == {"Unknown": len(frame)}


def test_group_average_divides_by_group_count(frame: pd.DataFrame) -> None:
    spec = SeriesSpec("avg_amount", "branch", metric="avg", value_field="amount")
    series = group_series(frame, spec)
    for point in series.points:
        members = frame[frame["branch"] == point.label]
        assert point.count == len(members)
        assert point.value == pytest.approx(members["amount"].sum() / len(members))


def test_group_sum(frame: pd.DataFrame) -> None:
    spec = SeriesSpec("sum_amount", "branch", metric="sum", value_field="amount")
    assert group_series(frame, spec).as_mapping()["NORTH"] == 400.0


def test_desc_order_keeps_first_seen_ties(frame: pd.DataFrame) -> None:
    spec = SeriesSpec("sum_amount", "branch", metric="sum", value_field="amount", order="desc")
    series = group_series(frame, spec)
    assert series.labels == ["NORTH", "SOUTH", "EAST", "WEST", "Unknown"]


def test_label_order(frame: pd.DataFrame) -> None:
    series = group_series(frame, SeriesSpec("by_branch", "branch", order="label"))
    assert series.labels == ["EAST", "NORTH", "SOUTH", "Unknown", "WEST"]


def test_top_n_keeps_full_aggregation(frame: pd.DataFrame) -> None:
    spec = SeriesSpec("top", "branch", order="desc", top_n=2)
    series = group_series(frame, spec)
    assert series.labels == ["NORTH", "SOUTH"]
    assert len(series.full) == 5
    assert series.as_dict()["total_groups"] == 5


def test_month_buckets_sorted_by_instant(frame: pd.DataFrame) -> None:
    series = group_series(frame, SeriesSpec("monthly", "date", bucket="month"))
    assert series.labels == ["2024-01", "2024-02", "2024-03", "2024-12", "2025-01"]
    assert series.as_mapping()["2024-03"] == 2


def test_iso_week_buckets_cross_year(frame: pd.DataFrame) -> None:
    series = group_series(frame, SeriesSpec("weekly", "date", bucket="iso_week"))
    assert series.as_mapping()["2024-12-30"] == 2


def test_hour_buckets_fill_all_hours(frame: pd.DataFrame) -> None:
    series = group_series(frame, SeriesSpec("hourly", "time_out", bucket="hour"))
    assert len(series.points) == 24
    assert series.labels[0] == "0:00"
    assert series.labels[-1] == "23:00"
    mapping = series.as_mapping()
    assert mapping["9:00"] == 2
    assert mapping["14:00"] == 1
    assert mapping["5:00"] == 0


def test_integer_keys_sort_numerically() -> None:
    df = pd.DataFrame({"week": [10, 2, 10, 1]})
    series = group_series(df, SeriesSpec("weeks", "week", order="key"))
    assert series.labels == ["1", "2", "10"]


def test_empty_frame_yields_empty_series() -> None:
    series = group_series(pd.DataFrame(), SeriesSpec("by_branch", "branch"))
    assert series.points == ()


def test_aggregate_is_idempotent(frame: pd.DataFrame) -> None:
    spec = AggregationSpec(
        kpis=(
            KpiSpec("count", kpis.row_count()),
            KpiSpec("revenue", kpis.total("amount")),
            KpiSpec("avg_stay", kpis.mean("stay")),
        ),
        series=(SeriesSpec("by_branch", "branch", metric="avg", value_field="amount", order="desc"),),
    )
    first = aggregate(frame, spec)
    second = aggregate(frame, spec)
    assert first == second
    assert first.as_dict() == second.as_dict()
    assert first.kpi("count") == 7
    assert first.kpi("revenue") == 560.0
    assert first.kpi("avg_stay") == pytest.approx(14 / 5)


def test_aggregate_does_not_mutate_input(frame: pd.DataFrame) -> None:
    before = frame.copy()
    aggregate(frame, AggregationSpec(series=(SeriesSpec("m", "date", bucket="month"),)))
    pd.testing.assert_frame_equal(frame, before)


def test_row_filter_applies_before_kpis(frame: pd.DataFrame) -> None:
    spec = AggregationSpec(
        kpis=(KpiSpec("count", kpis.row_count()),),
        row_filter=lambda df: df["amount"] > 50,
    )
    assert aggregate(frame, spec).kpi("count") == 3


def test_ratio_guards_zero_denominator() -> None:
    empty = pd.DataFrame({"status": []})
    fn = kpis.ratio(kpis.count_where("status", "ACTIVE"), kpis.row_count())
    assert fn(empty) == 0.0
    assert safe_ratio(5, 0) == 0.0
    assert safe_ratio(None, None) == 0.0


def test_kpi_builders(frame: pd.DataFrame) -> None:
    assert kpis.count_where("branch", "north")(frame) == 2
    assert kpis.count_all(branch="SOUTH")(frame) == 2
    assert kpis.count_contains("branch", "TH")(frame) == 4
    assert kpis.count_at_most("stay", 2)(frame) == 3
    assert kpis.count_zero("amount")(frame) == 1
    assert kpis.per_record("amount")(frame) == pytest.approx(80.0)
    assert kpis.mean("missing")(frame) is None


@pytest.mark.parametrize(
    "value, expected",
    [(np.int64(3), 3), (np.float64(2.5), 2.5), (float("nan"), None), (None, None), (pd.NA, None), (True, 1)],
)
def test_plain_number(value: object, expected: object) -> None:
    assert plain_number(value) == expected
