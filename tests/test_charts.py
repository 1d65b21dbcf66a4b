"""Chart specs keep the series order they are given."""

from __future__ import annotations

import pandas as pd

from core.aggregate import AggregationResult, SeriesSpec, group_series
from core.charts import kpi_bar, result_charts, series_chart, to_vega_spec


def _series(chart: str):
    frame = pd.DataFrame({"coffin": ["Pine", "Oak", "Oak", "Teak", "Oak", "Teak"]})
    return group_series(frame, SeriesSpec("top_coffins", "coffin", order="desc", chart=chart, title="Top"))


def test_bar_chart_sort_follows_series_order() -> None:
    spec = to_vega_spec(series_chart(_series("bar")))
    assert spec["encoding"]["x"]["sort"] == ["Oak", "Teak", "Pine"]
    assert spec["title"] == "Top"
    assert spec["mark"]["type"] == "bar"


def test_horizontal_bar_sorts_y_axis() -> None:
    spec = to_vega_spec(series_chart(_series("barh")))
    assert spec["encoding"]["y"]["sort"] == ["Oak", "Teak", "Pine"]


def test_pie_and_line_marks() -> None:
    assert to_vega_spec(series_chart(_series("pie")))["mark"]["type"] == "arc"
    assert to_vega_spec(series_chart(_series("line")))["mark"]["type"] == "line"


def test_result_charts_keyed_by_series_name() -> None:
    series = _series("bar")
    charts = result_charts(AggregationResult(kpis={}, series=(series,), record_count=6))
    assert list(charts) == ["top_coffins"]


def test_kpi_bar() -> None:
    result = AggregationResult(kpis={"total_cover": 100.0, "total_paid": None}, series=(), record_count=1)
    spec = to_vega_spec(
        kpi_bar(result, ["total_cover", "total_paid"], title="Cover vs Paid", labels={"total_cover": "Cover"})
    )
    assert spec["encoding"]["x"]["sort"] == ["Cover", "total_paid"]


def test_split_series_draws_one_line_per_group() -> None:
    frame = pd.DataFrame({"week": [2, 10, 2, 1], "action": ["NEW", "NEW", "UPGRADE", "NEW"]})
    series = group_series(frame, SeriesSpec("weekly_trend", "week", order="key", chart="line", split_by="action"))
    spec = to_vega_spec(series_chart(series))
    assert spec["mark"]["type"] == "line"
    assert spec["encoding"]["color"]["field"] == "split"
    assert spec["encoding"]["color"]["sort"] == ["NEW", "UPGRADE"]
    assert spec["encoding"]["x"]["sort"] == ["1", "2", "10"]
