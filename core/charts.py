from __future__ import annotations

from typing import Any, Dict, Iterable

import altair as alt
import pandas as pd

from core.aggregate import AggregationResult, Series

alt.data_transformers.disable_max_rows()

MAROON = "#800000"
GOLD = "#FFD700"
DRILL_PARAM = "drill"


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def series_frame(series: Series) -> pd.DataFrame:
    return pd.DataFrame({"label": series.labels, "value": series.values})


def series_chart(series: Series, *, height: int = 260) -> alt.Chart:
    """Chart for a finished series; the axis keeps the series order as given."""
    df = series_frame(series)
    order = df["label"].tolist()
    title = series.spec.title or series.name
    pick = alt.selection_point(fields=["label"], name=DRILL_PARAM)
    tooltip = [alt.Tooltip("label:N", title="Group"), alt.Tooltip("value:Q", title="Value", format=",.2~f")]

    kind = series.spec.chart
    if series.splits:
        long = pd.DataFrame(
            [{"label": p.label, "value": p.value, "split": name} for name, points in series.splits for p in points]
        )
        chart = (
            alt.Chart(long)
            .mark_line(point=True)
            .encode(
                x=alt.X("label:O", sort=order, title=None),
                y=alt.Y("value:Q", title=None),
                color=alt.Color("split:N", sort=[name for name, _ in series.splits], title=None),
                tooltip=[alt.Tooltip("split:N", title="Group")] + tooltip,
            )
        )
    elif kind == "pie":
        chart = (
            alt.Chart(df)
            .mark_arc(innerRadius=50)
            .encode(
                theta=alt.Theta("value:Q"),
                color=alt.Color("label:N", sort=order, title=None),
                order=alt.Order("index:Q"),
                tooltip=tooltip,
            )
            .transform_window(index="row_number()")
        )
    elif kind == "barh":
        chart = (
            alt.Chart(df)
            .mark_bar(color=MAROON)
            .encode(
                x=alt.X("value:Q", title=None),
                y=alt.Y("label:N", sort=order, title=None),
                tooltip=tooltip,
            )
        )
    elif kind == "line":
        chart = (
            alt.Chart(df)
            .mark_line(point={"filled": True, "size": 60}, color=MAROON)
            .encode(
                x=alt.X("label:O", sort=order, title=None),
                y=alt.Y("value:Q", title=None, axis=alt.Axis(gridDash=[4, 4], domain=False, ticks=False)),
                tooltip=tooltip,
            )
        )
    else:
        chart = (
            alt.Chart(df)
            .mark_bar(color=GOLD)
            .encode(
                x=alt.X("label:N", sort=order, title=None),
                y=alt.Y("value:Q", title=None),
                tooltip=tooltip,
            )
        )
    return chart.add_params(pick).properties(title=title, height=height)


def kpi_bar(result: AggregationResult, names: Iterable[str], *, title: str, labels: Dict[str, str]) -> alt.Chart:
    df = pd.DataFrame(
        [{"label": labels.get(n, n), "value": result.kpis.get(n) or 0} for n in names],
    )
    return (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X("label:N", sort=df["label"].tolist(), title=None),
            y=alt.Y("value:Q", title=None),
            color=alt.Color("label:N", scale=alt.Scale(range=["#6c757d", MAROON]), legend=None),
        )
        .properties(title=title, height=240)
    )


def result_charts(result: AggregationResult) -> Dict[str, Dict[str, Any]]:
    return {s.name: to_vega_spec(series_chart(s)) for s in result.series}
