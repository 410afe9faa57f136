"""Shared fixtures and canned WHOOP API payloads for the sync tests."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from models import Base
from utils.local_store import LocalStore
from utils.rate_limiter import RateLimiter
from utils.token_store import TokenStore
from utils.whoop_client import WhoopClient

START_EPOCH = 1_767_225_600.0  # 2026-01-01T00:00:00Z
SYNC_TIME = datetime(2026, 1, 10, 12, 0, 0)


# ---------------------------------------------------------------------------
# Time doubles
# ---------------------------------------------------------------------------


class FakeClock:
    """Epoch-seconds clock whose sleep() only advances time and records it."""

    def __init__(self, start: float = START_EPOCH) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeNow:
    """Settable naive-UTC datetime source for the sync engine."""

    def __init__(self, value: datetime = SYNC_TIME) -> None:
        self.value = value

    def __call__(self) -> datetime:
        return self.value


# ---------------------------------------------------------------------------
# HTTP doubles
# ---------------------------------------------------------------------------


def make_response(
    status_code: int = 200,
    json_data: Optional[dict] = None,
    headers: Optional[dict] = None,
    text: str = "",
) -> MagicMock:
    """A stand-in for requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.headers = headers or {}
    response.json.return_value = json_data if json_data is not None else {}
    response.text = text
    return response


def token_response(access: str = "new-access", refresh: str = "new-refresh", expires_in: int = 3600) -> MagicMock:
    return make_response(200, {
        "access_token": access,
        "refresh_token": refresh,
        "expires_in": expires_in,
        "scope": "read:cycles offline",
        "token_type": "bearer",
    })


# ---------------------------------------------------------------------------
# Upstream record builders
# ---------------------------------------------------------------------------


def cycle_record(cycle_id: int = 93845, start: str = "2026-01-08T06:25:14.000Z", strain: Optional[float] = 5.29) -> dict:
    return {
        "id": cycle_id,
        "user_id": 10129,
        "created_at": start,
        "updated_at": start,
        "start": start,
        "end": None,
        "timezone_offset": "-05:00",
        "score_state": "SCORED" if strain is not None else "PENDING_SCORE",
        "score": {
            "strain": strain,
            "kilojoule": 8288.3,
            "average_heart_rate": 68,
            "max_heart_rate": 141,
        } if strain is not None else None,
    }


def recovery_record(cycle_id: int = 93845, sleep_id: str = "ecfc6a15-4661-442f-a9a4-f160dd7afae8", score: float = 44.0) -> dict:
    return {
        "cycle_id": cycle_id,
        "sleep_id": sleep_id,
        "user_id": 10129,
        "score_state": "SCORED",
        "score": {
            "user_calibrating": False,
            "recovery_score": score,
            "resting_heart_rate": 64.0,
            "hrv_rmssd_milli": 31.81,
            "spo2_percentage": 95.69,
            "skin_temp_celsius": 33.7,
        },
    }


def sleep_record(
    sleep_id: str = "ecfc6a15-4661-442f-a9a4-f160dd7afae8",
    start: str = "2026-01-07T23:10:00.000Z",
    nap: bool = False,
    performance: float = 98.0,
) -> dict:
    return {
        "id": sleep_id,
        "cycle_id": 93845,
        "user_id": 10129,
        "start": start,
        "end": "2026-01-08T06:25:14.000Z",
        "timezone_offset": "-05:00",
        "nap": nap,
        "score_state": "SCORED",
        "score": {
            "stage_summary": {
                "total_in_bed_time_milli": 30272735,
                "total_awake_time_milli": 1403507,
                "total_no_data_time_milli": 0,
                "total_light_sleep_time_milli": 14905851,
                "total_slow_wave_sleep_time_milli": 6630370,
                "total_rem_sleep_time_milli": 5879573,
                "sleep_cycle_count": 3,
                "disturbance_count": 12,
            },
            "sleep_needed": {
                "baseline_milli": 27395716,
                "need_from_sleep_debt_milli": 352230,
                "need_from_recent_strain_milli": 208595,
                "need_from_recent_nap_milli": -12312,
            },
            "respiratory_rate": 16.11328125,
            "sleep_performance_percentage": performance,
            "sleep_consistency_percentage": 90.0,
            "sleep_efficiency_percentage": 91.69533848,
        },
    }


def workout_record(workout_id: str = "ecfc6a15-4661-442f-a9a4-f160dd7afae9", start: str = "2026-01-08T17:00:00.000Z") -> dict:
    return {
        "id": workout_id,
        "user_id": 10129,
        "start": start,
        "end": "2026-01-08T18:00:00.000Z",
        "timezone_offset": "-05:00",
        "sport_id": 1,
        "sport_name": "running",
        "score_state": "SCORED",
        "score": {
            "strain": 8.25,
            "average_heart_rate": 123,
            "max_heart_rate": 146,
            "kilojoule": 1569.34,
            "percent_recorded": 100,
            "distance_meter": 1772.77,
            "altitude_gain_meter": 46.64,
            "altitude_change_meter": -0.78,
            "zone_durations": {
                "zone_zero_milli": 300000,
                "zone_one_milli": 600000,
            },
        },
    }


PROFILE = {"user_id": 10129, "email": "jsmith123@whoop.com", "first_name": "John", "last_name": "Smith"}
BODY = {"height_meter": 1.8288, "weight_kilogram": 90.7185, "max_heart_rate": 200}


# ---------------------------------------------------------------------------
# Database / component fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database shared across sessions."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture
def store(session_factory) -> LocalStore:
    local_store = LocalStore(session_factory)
    local_store.seed_sync_metadata()
    return local_store


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def token_store(session_factory, clock) -> TokenStore:
    return TokenStore(session_factory, clock=clock)


@pytest.fixture
def rate_limiter(clock) -> RateLimiter:
    return RateLimiter(max_per_minute=90, max_per_day=9500, clock=clock, sleep=clock.sleep)


@pytest.fixture
def http() -> MagicMock:
    """Mock requests.Session; tests set get/post return values or side effects."""
    return MagicMock()


@pytest.fixture
def whoop_client(token_store, rate_limiter, http, clock) -> WhoopClient:
    return WhoopClient(
        token_store=token_store,
        rate_limiter=rate_limiter,
        client_id="test_client_id",
        client_secret="test_client_secret",
        redirect_uri="http://localhost:3000/auth/callback",
        http_session=http,
        sleep=clock.sleep,
        clock=clock,
        refresh_margin=60,
        page_size=25,
        max_attempts=0,
        timeout=5,
    )


@pytest.fixture
def authenticated(token_store) -> TokenStore:
    """Token store holding a credential valid for another hour."""
    token_store.save("access-1", "refresh-1", 3600, "read:cycles offline")
    return token_store
