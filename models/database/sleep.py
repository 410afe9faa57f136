"""Sleep and workout activity models."""

import json
from typing import Any, Dict, Optional
from sqlalchemy import Column, BigInteger, Integer, String, Float, Boolean, DateTime, Text, Index
from models.database.base import Base, TimestampMixin, SerializableMixin, dump_raw, parse_timestamp


def _upstream_id(data: Dict[str, Any]) -> Optional[str]:
    """UUID of a sleep/workout record; None when the upstream sent none."""
    value = data.get("id")
    return str(value) if value is not None else None


class Sleep(Base, TimestampMixin, SerializableMixin):
    """WHOOP sleep activity (naps included, flagged by ``nap``)."""

    __tablename__ = "sleep"

    # Primary key (WHOOP sleep UUID)
    id = Column(String(64), primary_key=True)

    cycle_id = Column(BigInteger, nullable=True)
    user_id = Column(Integer, nullable=True)
    nap = Column(Boolean, nullable=False, default=False)

    # Time window
    start_time = Column(DateTime, nullable=True)
    end_time = Column(DateTime, nullable=True)
    timezone_offset = Column(String(10), nullable=True)

    score_state = Column(String(20), nullable=True)

    # Stage summary (milliseconds)
    score_stage_summary_total_light_sleep_time_milli = Column(Integer, nullable=True)
    score_stage_summary_total_slow_wave_sleep_time_milli = Column(Integer, nullable=True)
    score_stage_summary_total_rem_sleep_time_milli = Column(Integer, nullable=True)
    score_stage_summary_total_awake_time_milli = Column(Integer, nullable=True)
    score_stage_summary_total_in_bed_time_milli = Column(Integer, nullable=True)
    score_stage_summary_total_no_data_time_milli = Column(Integer, nullable=True)

    # Sleep need (milliseconds)
    score_sleep_needed_baseline_milli = Column(Integer, nullable=True)
    score_sleep_needed_need_from_sleep_debt_milli = Column(Integer, nullable=True)
    score_sleep_needed_need_from_recent_strain_milli = Column(Integer, nullable=True)
    score_sleep_needed_need_from_recent_nap_milli = Column(Integer, nullable=True)

    score_sleep_efficiency_percentage = Column(Float, nullable=True)
    score_sleep_performance_percentage = Column(Float, nullable=True)
    score_sleep_consistency_percentage = Column(Float, nullable=True)
    score_respiratory_rate = Column(Float, nullable=True)

    raw_json = Column(Text, nullable=True)

    __table_args__ = (
        Index("idx_sleep_start_time", "start_time"),
    )

    def __repr__(self) -> str:
        return f"<Sleep(id='{self.id}', start={self.start_time}, nap={self.nap})>"

    @classmethod
    def values_from_api(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        score = data.get("score") or {}
        stages = score.get("stage_summary") or {}
        need = score.get("sleep_needed") or {}
        return {
            "id": _upstream_id(data),
            "cycle_id": data.get("cycle_id"),
            "user_id": data.get("user_id"),
            "nap": bool(data.get("nap")),
            "start_time": parse_timestamp(data.get("start")),
            "end_time": parse_timestamp(data.get("end")),
            "timezone_offset": data.get("timezone_offset"),
            "score_state": data.get("score_state"),
            "score_stage_summary_total_light_sleep_time_milli": stages.get("total_light_sleep_time_milli"),
            "score_stage_summary_total_slow_wave_sleep_time_milli": stages.get("total_slow_wave_sleep_time_milli"),
            "score_stage_summary_total_rem_sleep_time_milli": stages.get("total_rem_sleep_time_milli"),
            "score_stage_summary_total_awake_time_milli": stages.get("total_awake_time_milli"),
            "score_stage_summary_total_in_bed_time_milli": stages.get("total_in_bed_time_milli"),
            "score_stage_summary_total_no_data_time_milli": stages.get("total_no_data_time_milli"),
            "score_sleep_needed_baseline_milli": need.get("baseline_milli"),
            "score_sleep_needed_need_from_sleep_debt_milli": need.get("need_from_sleep_debt_milli"),
            "score_sleep_needed_need_from_recent_strain_milli": need.get("need_from_recent_strain_milli"),
            "score_sleep_needed_need_from_recent_nap_milli": need.get("need_from_recent_nap_milli"),
            "score_sleep_efficiency_percentage": score.get("sleep_efficiency_percentage"),
            "score_sleep_performance_percentage": score.get("sleep_performance_percentage"),
            "score_sleep_consistency_percentage": score.get("sleep_consistency_percentage"),
            "score_respiratory_rate": score.get("respiratory_rate"),
            "raw_json": dump_raw(data),
        }


class Workout(Base, TimestampMixin, SerializableMixin):
    """WHOOP workout activity."""

    __tablename__ = "workouts"

    # Primary key (WHOOP workout UUID)
    id = Column(String(64), primary_key=True)

    user_id = Column(Integer, nullable=True)
    sport_id = Column(Integer, nullable=True)
    sport_name = Column(String(100), nullable=True)

    # Time window
    start_time = Column(DateTime, nullable=True)
    end_time = Column(DateTime, nullable=True)
    timezone_offset = Column(String(10), nullable=True)

    # Score
    score_state = Column(String(20), nullable=True)
    score_strain = Column(Float, nullable=True)
    score_average_heart_rate = Column(Integer, nullable=True)
    score_max_heart_rate = Column(Integer, nullable=True)
    score_kilojoule = Column(Float, nullable=True)
    score_distance_meter = Column(Float, nullable=True)
    score_altitude_gain_meter = Column(Float, nullable=True)
    score_altitude_change_meter = Column(Float, nullable=True)
    score_zone_durations = Column(Text, nullable=True)  # JSON object of zone -> millis

    raw_json = Column(Text, nullable=True)

    __table_args__ = (
        Index("idx_workouts_start_time", "start_time"),
    )

    def __repr__(self) -> str:
        return f"<Workout(id='{self.id}', sport='{self.sport_name}', strain={self.score_strain})>"

    @classmethod
    def values_from_api(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        score = data.get("score") or {}
        zones = score.get("zone_durations") or score.get("zone_duration")
        return {
            "id": _upstream_id(data),
            "user_id": data.get("user_id"),
            "sport_id": data.get("sport_id"),
            "sport_name": data.get("sport_name"),
            "start_time": parse_timestamp(data.get("start")),
            "end_time": parse_timestamp(data.get("end")),
            "timezone_offset": data.get("timezone_offset"),
            "score_state": data.get("score_state"),
            "score_strain": score.get("strain"),
            "score_average_heart_rate": score.get("average_heart_rate"),
            "score_max_heart_rate": score.get("max_heart_rate"),
            "score_kilojoule": score.get("kilojoule"),
            "score_distance_meter": score.get("distance_meter"),
            "score_altitude_gain_meter": score.get("altitude_gain_meter"),
            "score_altitude_change_meter": score.get("altitude_change_meter"),
            "score_zone_durations": json.dumps(zones) if zones else None,
            "raw_json": dump_raw(data),
        }
