"""Tests for the read-side projections used by the dashboard and chat layers."""

from __future__ import annotations

from datetime import datetime

import pytest

from utils.data_queries import DataQueries, resolve_dashboard_days
from utils.local_store import LocalStore
from tests.conftest import BODY, PROFILE, FakeNow, cycle_record, recovery_record, sleep_record, workout_record


@pytest.fixture
def queries(session_factory) -> DataQueries:
    return DataQueries(session_factory, now=FakeNow(datetime(2026, 1, 10, 12, 0, 0)))


@pytest.fixture
def populated(store: LocalStore) -> LocalStore:
    """Three daily cycles with recoveries, sleeps, one nap and workouts."""
    store.upsert_many("cycles", [
        cycle_record(1, "2025-11-01T06:00:00.000Z", strain=4.0),
        cycle_record(2, "2026-01-05T06:00:00.000Z", strain=9.5),
        cycle_record(3, "2026-01-08T06:00:00.000Z", strain=14.1),
    ])
    store.upsert_many("recovery", [
        recovery_record(1, "sleep-1", score=33.0),
        recovery_record(2, "sleep-2", score=55.0),
        recovery_record(3, "sleep-3", score=81.0),
    ])
    store.upsert_many("sleep", [
        sleep_record("sleep-1", "2025-10-31T23:00:00.000Z", performance=70.0),
        sleep_record("sleep-2", "2026-01-04T23:00:00.000Z", performance=85.0),
        sleep_record("sleep-3", "2026-01-07T23:00:00.000Z", performance=98.0),
        sleep_record("nap-1", "2026-01-08T14:00:00.000Z", nap=True, performance=100.0),
    ])
    store.upsert_many("workouts", [
        workout_record("w-old", "2025-11-02T17:00:00.000Z"),
        workout_record("w-new", "2026-01-08T17:00:00.000Z"),
    ])
    store.upsert("profile", PROFILE)
    store.upsert("body_measurements", BODY)
    return store


class TestResolveDashboardDays:
    @pytest.mark.parametrize("raw, expected", [
        (None, None),
        ("max", None),
        ("90", 90),
        (365, 365),
        ("45", 30),
        ("week", 30),
    ])
    def test_resolution(self, raw, expected) -> None:
        assert resolve_dashboard_days(raw) == expected


class TestListRecords:
    def test_cycles_newest_first(self, queries: DataQueries, populated: LocalStore) -> None:
        page = queries.list_records("cycles")

        assert [row["id"] for row in page["data"]] == [3, 2, 1]
        assert page["total"] == 3
        assert (page["limit"], page["offset"]) == (30, 0)

    def test_recovery_carries_cycle_start(self, queries: DataQueries, populated: LocalStore) -> None:
        page = queries.list_records("recovery", limit=2)

        assert [row["cycle_id"] for row in page["data"]] == [3, 2]
        assert page["data"][0]["cycle_start"] == "2026-01-08T06:00:00"
        assert page["total"] == 3

    def test_recovery_without_cycle_still_listed(self, queries: DataQueries, store: LocalStore) -> None:
        store.upsert("recovery", recovery_record(99))

        page = queries.list_records("recovery")

        assert page["data"][0]["cycle_id"] == 99
        assert page["data"][0]["cycle_start"] is None

    def test_sleep_list_excludes_naps(self, queries: DataQueries, populated: LocalStore) -> None:
        page = queries.list_records("sleep")

        assert [row["id"] for row in page["data"]] == ["sleep-3", "sleep-2", "sleep-1"]
        assert page["total"] == 3

    def test_offset_pages_through(self, queries: DataQueries, populated: LocalStore) -> None:
        page = queries.list_records("cycles", limit=1, offset=1)
        assert [row["id"] for row in page["data"]] == [2]

    @pytest.mark.parametrize("requested, applied", [(0, 30), (-5, 1), (500, 100), (15, 15)])
    def test_limit_is_clamped(self, queries: DataQueries, requested: int, applied: int) -> None:
        assert queries.list_records("workouts", limit=requested)["limit"] == applied

    def test_unknown_type_raises(self, queries: DataQueries) -> None:
        with pytest.raises(ValueError):
            queries.list_records("profile")


class TestLatest:
    def test_empty_store(self, queries: DataQueries) -> None:
        assert queries.get_profile() is None
        assert queries.get_body_measurements() is None
        assert queries.get_latest_cycle() is None
        assert queries.get_latest_sleep() is None
        assert queries.get_latest_recovery() is None

    def test_latest_records(self, queries: DataQueries, populated: LocalStore) -> None:
        assert queries.get_latest_cycle()["id"] == 3
        assert queries.get_latest_sleep()["id"] == "sleep-3"
        recovery = queries.get_latest_recovery()
        assert recovery["recovery_score"] == 81.0
        assert recovery["cycle_start"] == "2026-01-08T06:00:00"
        assert queries.get_profile()["email"] == PROFILE["email"]
        assert queries.get_body_measurements()["max_heart_rate"] == 200


class TestDashboard:
    def test_window_limits_series(self, queries: DataQueries, populated: LocalStore) -> None:
        data = queries.get_dashboard_data(days=30)

        assert [p["score_strain"] for p in data["cycles_range"]] == [9.5, 14.1]
        assert [p["recovery_score"] for p in data["recovery_range"]] == [55.0, 81.0]
        assert [p["performance"] for p in data["sleep_range"]] == [85.0, 98.0]
        assert [w["start_time"] for w in data["workouts_range"]] == ["2026-01-08T17:00:00"]
        assert data["latest_cycle"]["id"] == 3
        assert data["latest_sleep"]["id"] == "sleep-3"

    def test_full_history(self, queries: DataQueries, populated: LocalStore) -> None:
        data = queries.get_dashboard_data(days=None)

        assert len(data["cycles_range"]) == 3
        assert len(data["sleep_range"]) == 3
        assert [w["start_time"] for w in data["workouts_range"]] == [
            "2026-01-08T17:00:00",
            "2025-11-02T17:00:00",
        ]

    def test_recovery_without_stored_cycle(self, queries: DataQueries, store: LocalStore) -> None:
        store.upsert("recovery", recovery_record(77, score=62.0))

        full = queries.get_dashboard_data(days=None)["recovery_range"]
        assert [(p["recovery_score"], p["start_time"]) for p in full] == [(62.0, None)]
        assert queries.get_dashboard_data(days=30)["recovery_range"] == []

    def test_ai_context(self,queries: DataQueries, populated: LocalStore) -> None:
        context = queries.get_ai_context(days=365)

        assert set(context) == {"recovery", "sleep", "cycles", "workouts", "profile", "body_measurements"}
        assert len(context["recovery"]) == 3
        assert context["recovery"][0]["spo2_percentage"] == 95.69
        assert "respiratory_rate" in context["sleep"][0]
        assert context["workouts"][0]["score_distance_meter"] == 1772.77
        assert context["profile"]["user_id"] == 10129
