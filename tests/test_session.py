"""Tests for the filter/drill-down session: load, filter, drill, reset."""

from __future__ import annotations

from typing import List

import pandas as pd
import pytest

from core.filters import ALL
from core.session import NO_DATA_NOTICE, DashboardSession, DashboardUpdate, UnknownFieldError
from core.sources import ImportFailure, ImportResult

ROWS = [
    {"Branch": "North", "Date Out": "3/15/2024", "Date In": "3/10/2024", "Total Amount": "1,500.00",
     "Mode of Payment": "Cash", "Service Type": "Burial", "Coffin Code": "Oak", "Time Out": "9:00 AM"},
    {"Branch": "north ", "Date Out": "15/03/2024", "Date In": "", "Total Amount": "",
     "Mode of Payment": "Preneed", "Service Type": "Cremation", "Coffin Code": "Pine", "Time Out": "2:30 PM"},
    {"Branch": "South", "Date Out": "", "Date In": "", "Total Amount": "800",
     "Mode of Payment": "cash", "Service Type": "Burial", "Coffin Code": "Oak", "Time Out": ""},
    {"Branch": "East", "Date Out": "4/02/2024", "Date In": "3/30/2024", "Total Amount": "M 2,000",
     "Mode of Payment": "A/F", "Service Type": "", "Coffin Code": "Oak", "Time Out": "10:15"},
]


@pytest.fixture
def session() -> DashboardSession:
    s = DashboardSession("dispatch")
    s.load_complete(ROWS)
    return s


def test_new_session_has_no_data() -> None:
    s = DashboardSession("dispatch")
    assert not s.has_data
    assert s.notice == NO_DATA_NOTICE
    assert s.last_update is None
    assert s.main_data.empty


def test_empty_load_is_ignored(session: DashboardSession) -> None:
    before = session.last_update
    assert session.load_complete([]) is None
    assert session.notice == NO_DATA_NOTICE
    assert session.last_update is before
    assert session.has_data


def test_load_publishes_update() -> None:
    published: List[DashboardUpdate] = []
    s = DashboardSession("dispatch", publish=published.append)
    update = s.load_complete(ROWS)
    assert published == [update]
    assert update.total_count == 4
    assert update.visible_count == 4
    assert update.filters.state == "Unfiltered"
    assert s.notice is None


def test_options_come_from_unfiltered_data(session: DashboardSession) -> None:
    assert session.options["branch"] == [ALL, "EAST", "NORTH", "SOUTH"]
    session.apply_predicate("branch", "North")
    assert session.options["branch"] == [ALL, "EAST", "NORTH", "SOUTH"]
    assert session.last_update.options["branch"] == [ALL, "EAST", "NORTH", "SOUTH"]


def test_options_leave_out_unknown(session: DashboardSession) -> None:
    assert "Unknown" not in session.options["service_type"]
    assert session.options["service_type"] == [ALL, "Burial", "Cremation"]


def test_drill_down_then_reset_restores_kpis(session: DashboardSession) -> None:
    original = session.last_update.result.kpis

    update = session.apply_predicate("branch", "North")
    frame = session.main_data
    assert update.result.kpi("total_dispatches") == int((frame["branch"] == "NORTH").sum()) == 2
    assert update.result.kpi("total_revenue") == 1500.0
    assert session.state == "Filtered"

    restored = session.reset()
    assert restored.result.kpis == original
    assert session.state == "Unfiltered"


def test_drill_down_replaces_same_field(session: DashboardSession) -> None:
    session.drill_down("branch", "NORTH")
    update = session.drill_down("branch", "SOUTH")
    assert update.filters.predicates == (("branch", "SOUTH"),)
    assert update.visible_count == 1


def test_predicates_stack_across_fields(session: DashboardSession) -> None:
    session.filter_changed("payment_mode", "cash")
    update = session.filter_changed("service_type", "Burial")
    assert update.visible_count == 2
    assert update.filters.predicates == (("payment_mode", "CASH"), ("service_type", "Burial"))


def test_filter_changed_all_clears_field(session: DashboardSession) -> None:
    session.filter_changed("branch", "NORTH")
    update = session.filter_changed("branch", ALL)
    assert update.filters.is_empty
    assert update.visible_count == 4


def test_drill_down_unknown_label(session: DashboardSession) -> None:
    update = session.drill_down("service_type", "Unknown")
    assert update.visible_count == 1


def test_unknown_field_is_rejected(session: DashboardSession) -> None:
    with pytest.raises(UnknownFieldError):
        session.apply_predicate("no_such_field", "x")
    with pytest.raises(UnknownFieldError):
        session.apply_predicate("total_amount", "5")


def test_date_range_and_period_drill(session: DashboardSession) -> None:
    update = session.date_range_changed("3/1/2024", "3/31/2024")
    assert update.visible_count == 2

    update = session.drill_down_period("revenue_by_month", "2024-04")
    assert update.filters.date_start == pd.Timestamp("2024-04-01")
    assert update.visible_count == 1
    assert update.result.kpi("total_revenue") == 2000.0


def test_period_drill_rejects_non_date_series(session: DashboardSession) -> None:
    with pytest.raises(UnknownFieldError):
        session.drill_down_period("top_coffins", "Oak")
    with pytest.raises(ValueError):
        session.drill_down_period("revenue_by_month", "April")


def test_replace_filters(session: DashboardSession) -> None:
    update = session.replace_filters({"predicates": {"branch": "north", "payment_mode": "All"}})
    assert update.filters.predicates == (("branch", "NORTH"),)
    assert update.visible_count == 2


def test_aggregation_is_idempotent_across_events(session: DashboardSession) -> None:
    first = session.apply_predicate("branch", "NORTH").result
    session.reset()
    second = session.apply_predicate("branch", "NORTH").result
    assert first == second


def test_new_load_resets_filters(session: DashboardSession) -> None:
    session.apply_predicate("branch", "NORTH")
    update = session.load_complete(ROWS[:2])
    assert update.filters.is_empty
    assert update.total_count == 2


def test_load_from_failure_keeps_state(session: DashboardSession) -> None:
    before = session.last_update

    def _fail() -> ImportResult:
        raise ImportFailure("No data found in upload.csv.")

    assert session.load_from(_fail) is None
    assert session.notice == "No data found in upload.csv."
    assert session.last_update is before
    assert len(session.main_data) == 4


def test_load_from_success_switches_profile() -> None:
    s = DashboardSession("dispatch")
    result = ImportResult(
        records=[{"Status": "Active", "Region": "North", "Date": "2024-01-02"}],
        headers=("Status", "Region", "Date"),
        source="test",
    )
    update = s.load_from(lambda: result, profile="members")
    assert update.profile == "members"
    assert update.result.kpi("active") == 1


def test_preview_and_export(session: DashboardSession) -> None:
    rows = session.preview(limit=2)
    assert len(rows) == 2
    assert rows[0]["branch"] == "NORTH"
    assert rows[0]["date_out"] == "2024-03-15"
    assert rows[0]["time_out"] == "09:00"
    assert rows[0]["total_amount"] == 1500.0

    exported = session.export_frame()
    assert "_raw" not in exported.columns
    assert len(exported) == 4


def test_update_as_dict_is_plain(session: DashboardSession) -> None:
    payload = session.last_update.as_dict()
    assert payload["profile"] == "dispatch"
    assert payload["visible_count"] == 4
    assert payload["series"]["avg_stay_by_branch"]["points"][0]["label"] == "NORTH"
    assert payload["kpis"]["total_dispatches"] == 4


def test_literal_unknown_joins_the_blank_group() -> None:
    s = DashboardSession("members")
    update = s.load_complete(
        [{"Region": "Unknown"}, {"Region": ""}, {"Region": "UNKNOWN"}, {"Region": "North"}]
    )
    assert update.result.get_series("region_distribution").as_mapping() == {"Unknown": 3, "NORTH": 1}
    assert s.options["region"] == [ALL, "NORTH"]
