"""Read-only projections over the local store for the UI and chat layers."""

from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Union
from sqlalchemy.orm import sessionmaker
from config.settings import get_session_maker
from models import BodyMeasurement, Cycle, Profile, Recovery, Sleep, Workout
from models.database.base import utcnow

# Accepted dashboard ranges in days; anything else falls back to 30
VALID_DASHBOARD_RANGES = (30, 90, 180, 365, 730, 1095, 1825)
DEFAULT_DASHBOARD_DAYS = 30
MAX_PAGE_SIZE = 100

LIST_TYPES = ("cycles", "recovery", "sleep", "workouts")


def resolve_dashboard_days(raw: Optional[Union[str, int]]) -> Optional[int]:
    """Map a requested range to a supported number of days (None = all)."""
    if raw is None or raw == "max":
        return None
    try:
        days = int(raw)
    except (TypeError, ValueError):
        return DEFAULT_DASHBOARD_DAYS
    return days if days in VALID_DASHBOARD_RANGES else DEFAULT_DASHBOARD_DAYS


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class DataQueries:
    """Paginated lists, latest-record lookups and time-windowed series."""

    def __init__(self, session_factory: Optional[sessionmaker] = None, now: Callable[[], datetime] = utcnow):
        self._session_factory = session_factory or get_session_maker()
        self._now = now

    def _since(self, days: Optional[int]) -> Optional[datetime]:
        return self._now() - timedelta(days=days) if days else None

    # ------------------------------------------------------------------
    # Paginated lists
    # ------------------------------------------------------------------

    def list_records(self, data_type: str, limit: int = 30, offset: int = 0) -> Dict[str, Any]:
        """
        One page of stored records, newest first.

        Args:
            data_type: cycles, recovery, sleep or workouts
            limit: Page size, clamped to 1..100
            offset: Rows to skip

        Returns:
            {"data": [...], "total": int, "limit": int, "offset": int}
        """
        if data_type not in LIST_TYPES:
            raise ValueError(f"Unknown data type: {data_type}")
        limit = min(max(int(limit or 30), 1), MAX_PAGE_SIZE)
        offset = max(int(offset or 0), 0)

        session = self._session_factory()
        try:
            if data_type == "recovery":
                query = (
                    session.query(Recovery, Cycle.start_time)
                    .outerjoin(Cycle, Recovery.cycle_id == Cycle.id)
                    .order_by(Cycle.start_time.desc())
                )
                total = session.query(Recovery).count()
                data = []
                for recovery, cycle_start in query.limit(limit).offset(offset).all():
                    row = recovery.to_dict()
                    row["cycle_start"] = _iso(cycle_start)
                    data.append(row)
            else:
                model = {"cycles": Cycle, "sleep": Sleep, "workouts": Workout}[data_type]
                query = session.query(model)
                if model is Sleep:
                    query = query.filter(Sleep.nap.is_(False))
                total = query.count()
                rows = query.order_by(model.start_time.desc()).limit(limit).offset(offset).all()
                data = [row.to_dict() for row in rows]
        finally:
            session.close()

        return {"data": data, "total": total, "limit": limit, "offset": offset}

    # ------------------------------------------------------------------
    # Latest single records
    # ------------------------------------------------------------------

    def get_profile(self) -> Optional[Dict[str, Any]]:
        session = self._session_factory()
        try:
            row = session.query(Profile).first()
            return row.to_dict() if row else None
        finally:
            session.close()

    def get_body_measurements(self) -> Optional[Dict[str, Any]]:
        session = self._session_factory()
        try:
            row = session.query(BodyMeasurement).order_by(BodyMeasurement.id.desc()).first()
            return row.to_dict() if row else None
        finally:
            session.close()

    def get_latest_cycle(self) -> Optional[Dict[str, Any]]:
        session = self._session_factory()
        try:
            row = session.query(Cycle).order_by(Cycle.start_time.desc()).first()
            return row.to_dict() if row else None
        finally:
            session.close()

    def get_latest_sleep(self) -> Optional[Dict[str, Any]]:
        """Most recent main sleep (naps excluded)."""
        session = self._session_factory()
        try:
            row = (
                session.query(Sleep)
                .filter(Sleep.nap.is_(False))
                .order_by(Sleep.start_time.desc())
                .first()
            )
            return row.to_dict() if row else None
        finally:
            session.close()

    def get_latest_recovery(self) -> Optional[Dict[str, Any]]:
        """Recovery of the most recent cycle, with that cycle's start time."""
        session = self._session_factory()
        try:
            result = (
                session.query(Recovery, Cycle.start_time)
                .outerjoin(Cycle, Recovery.cycle_id == Cycle.id)
                .order_by(Cycle.start_time.desc())
                .first()
            )
            if result is None:
                return None
            recovery, cycle_start = result
            row = recovery.to_dict()
            row["cycle_start"] = _iso(cycle_start)
            return row
        finally:
            session.close()

    # ------------------------------------------------------------------
    # Time-windowed series
    # ------------------------------------------------------------------

    def _recovery_series(self, session, since: Optional[datetime], extended: bool = False) -> List[Dict[str, Any]]:
        query = session.query(Recovery, Cycle.start_time).outerjoin(Cycle, Recovery.cycle_id == Cycle.id)
        if since is not None:
            query = query.filter(Cycle.start_time >= since)
        series = []
        for recovery, start_time in query.order_by(Cycle.start_time.asc()).all():
            point = {
                "recovery_score": recovery.recovery_score,
                "hrv_rmssd_milli": recovery.hrv_rmssd_milli,
                "resting_heart_rate": recovery.resting_heart_rate,
                "start_time": _iso(start_time),
            }
            if extended:
                point["spo2_percentage"] = recovery.spo2_percentage
                point["skin_temp_celsius"] = recovery.skin_temp_celsius
            series.append(point)
        return series

    def _cycle_series(self, session, since: Optional[datetime], extended: bool = False) -> List[Dict[str, Any]]:
        query = session.query(Cycle)
        if since is not None:
            query = query.filter(Cycle.start_time >= since)
        series = []
        for cycle in query.order_by(Cycle.start_time.asc()).all():
            point = {
                "score_strain": cycle.score_strain,
                "score_kilojoule": cycle.score_kilojoule,
                "start_time": _iso(cycle.start_time),
            }
            if extended:
                point["score_average_heart_rate"] = cycle.score_average_heart_rate
            series.append(point)
        return series

    def _sleep_series(self, session, since: Optional[datetime], extended: bool = False) -> List[Dict[str, Any]]:
        query = session.query(Sleep).filter(Sleep.nap.is_(False))
        if since is not None:
            query = query.filter(Sleep.start_time >= since)
        series = []
        for sleep in query.order_by(Sleep.start_time.asc()).all():
            point = {
                "light": sleep.score_stage_summary_total_light_sleep_time_milli,
                "deep": sleep.score_stage_summary_total_slow_wave_sleep_time_milli,
                "rem": sleep.score_stage_summary_total_rem_sleep_time_milli,
                "awake": sleep.score_stage_summary_total_awake_time_milli,
                "performance": sleep.score_sleep_performance_percentage,
                "start_time": _iso(sleep.start_time),
            }
            if extended:
                point["efficiency"] = sleep.score_sleep_efficiency_percentage
                point["respiratory_rate"] = sleep.score_respiratory_rate
            series.append(point)
        return series

    def get_dashboard_data(self, days: Optional[int] = None) -> Dict[str, Any]:
        """
        Latest records plus chart series for the last ``days`` days.

        Args:
            days: Window length; None for the full history

        Returns:
            Dict with latest_recovery, latest_cycle, latest_sleep and the
            recovery_range, cycles_range, sleep_range, workouts_range series
        """
        since = self._since(days)
        session = self._session_factory()
        try:
            workouts_query = session.query(Workout)
            if since is not None:
                workouts_query = workouts_query.filter(Workout.start_time >= since)
            workouts = workouts_query.order_by(Workout.start_time.desc()).limit(20).all()

            ranges = {
                "recovery_range": self._recovery_series(session, since),
                "cycles_range": self._cycle_series(session, since),
                "sleep_range": self._sleep_series(session, since),
                "workouts_range": [
                    {
                        "sport_name": w.sport_name,
                        "score_strain": w.score_strain,
                        "score_kilojoule": w.score_kilojoule,
                        "start_time": _iso(w.start_time),
                    }
                    for w in workouts
                ],
            }
        finally:
            session.close()

        return {
            "latest_recovery": self.get_latest_recovery(),
            "latest_cycle": self.get_latest_cycle(),
            "latest_sleep": self.get_latest_sleep(),
            **ranges,
        }

    def get_ai_context(self, days: int = 365) -> Dict[str, Any]:
        """Series and profile data handed to the chat assistant."""
        since = self._since(days)
        session = self._session_factory()
        try:
            workouts_query = session.query(Workout)
            if since is not None:
                workouts_query = workouts_query.filter(Workout.start_time >= since)
            workouts = workouts_query.order_by(Workout.start_time.asc()).all()
            context = {
                "recovery": self._recovery_series(session, since, extended=True),
                "sleep": self._sleep_series(session, since, extended=True),
                "cycles": self._cycle_series(session, since, extended=True),
                "workouts": [
                    {
                        "sport_name": w.sport_name,
                        "score_strain": w.score_strain,
                        "score_average_heart_rate": w.score_average_heart_rate,
                        "score_max_heart_rate": w.score_max_heart_rate,
                        "score_kilojoule": w.score_kilojoule,
                        "score_distance_meter": w.score_distance_meter,
                        "start_time": _iso(w.start_time),
                        "end_time": _iso(w.end_time),
                    }
                    for w in workouts
                ],
            }
        finally:
            session.close()

        context["profile"] = self.get_profile()
        context["body_measurements"] = self.get_body_measurements()
        return context
