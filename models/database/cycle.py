"""Physiological cycle (daily strain) and recovery models."""

from typing import Any, Dict
from sqlalchemy import Column, BigInteger, Integer, String, Float, Boolean, DateTime, Text, Index
from models.database.base import Base, TimestampMixin, SerializableMixin, dump_raw, parse_timestamp


class Cycle(Base, TimestampMixin, SerializableMixin):
    """
    A WHOOP physiological cycle.

    One cycle spans wake-to-wake; its score carries the day strain and
    energy expenditure. The score is filled in by WHOOP some time after the
    cycle first appears, which is why incremental syncs re-fetch an overlap.
    """

    __tablename__ = "cycles"

    # Primary key (WHOOP cycle ID)
    id = Column(BigInteger, primary_key=True, autoincrement=False)

    user_id = Column(Integer, nullable=True)

    # Time window
    start_time = Column(DateTime, nullable=True)
    end_time = Column(DateTime, nullable=True)  # null while the cycle is open
    timezone_offset = Column(String(10), nullable=True)

    # Score
    score_state = Column(String(20), nullable=True)  # SCORED, PENDING_SCORE, UNSCORABLE
    score_strain = Column(Float, nullable=True)
    score_kilojoule = Column(Float, nullable=True)
    score_average_heart_rate = Column(Integer, nullable=True)
    score_max_heart_rate = Column(Integer, nullable=True)

    raw_json = Column(Text, nullable=True)

    __table_args__ = (
        Index("idx_cycles_start_time", "start_time"),
    )

    def __repr__(self) -> str:
        return f"<Cycle(id={self.id}, start={self.start_time}, strain={self.score_strain})>"

    @classmethod
    def values_from_api(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        score = data.get("score") or {}
        return {
            "id": data.get("id"),
            "user_id": data.get("user_id"),
            "start_time": parse_timestamp(data.get("start")),
            "end_time": parse_timestamp(data.get("end")),
            "timezone_offset": data.get("timezone_offset"),
            "score_state": data.get("score_state"),
            "score_strain": score.get("strain"),
            "score_kilojoule": score.get("kilojoule"),
            "score_average_heart_rate": score.get("average_heart_rate"),
            "score_max_heart_rate": score.get("max_heart_rate"),
            "raw_json": dump_raw(data),
        }


class Recovery(Base, TimestampMixin, SerializableMixin):
    """
    WHOOP recovery score, one per cycle.

    Joined to ``cycles`` on ``cycle_id`` for display; the join is not a
    database constraint because recovery can be synced before its cycle.
    """

    __tablename__ = "recovery"

    # Primary key (WHOOP cycle ID the recovery belongs to)
    cycle_id = Column(BigInteger, primary_key=True, autoincrement=False)

    sleep_id = Column(String(64), nullable=True)
    user_id = Column(Integer, nullable=True)

    score_state = Column(String(20), nullable=True)
    user_calibrating = Column(Boolean, nullable=False, default=False)
    recovery_score = Column(Float, nullable=True)
    resting_heart_rate = Column(Float, nullable=True)
    hrv_rmssd_milli = Column(Float, nullable=True)
    spo2_percentage = Column(Float, nullable=True)
    skin_temp_celsius = Column(Float, nullable=True)

    raw_json = Column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Recovery(cycle_id={self.cycle_id}, score={self.recovery_score})>"

    @classmethod
    def values_from_api(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        score = data.get("score") or {}
        return {
            "cycle_id": data.get("cycle_id"),
            "sleep_id": data.get("sleep_id"),
            "user_id": data.get("user_id"),
            "score_state": data.get("score_state"),
            # v2 nests user_calibrating inside the score
            "user_calibrating": bool(score.get("user_calibrating", data.get("user_calibrating"))),
            "recovery_score": score.get("recovery_score"),
            "resting_heart_rate": score.get("resting_heart_rate"),
            "hrv_rmssd_milli": score.get("hrv_rmssd_milli"),
            "spo2_percentage": score.get("spo2_percentage"),
            "skin_temp_celsius": score.get("skin_temp_celsius"),
            "raw_json": dump_raw(data),
        }
