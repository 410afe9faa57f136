"""WHOOP user profile and body measurement models."""

from typing import Any, Dict
from sqlalchemy import Column, Integer, String, Float, Text
from models.database.base import Base, TimestampMixin, SerializableMixin, dump_raw


class Profile(Base, TimestampMixin, SerializableMixin):
    """WHOOP basic user profile (singleton per user)."""

    __tablename__ = "profile"

    # Primary key (WHOOP user ID)
    user_id = Column(Integer, primary_key=True, autoincrement=False)

    email = Column(String(255), nullable=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)

    # Full upstream payload
    raw_json = Column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Profile(user_id={self.user_id}, email='{self.email}')>"

    @property
    def fullname(self) -> str:
        """Get user's full name."""
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}"
        return self.first_name or self.email or f"User {self.user_id}"

    @classmethod
    def values_from_api(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "user_id": data.get("user_id"),
            "email": data.get("email"),
            "first_name": data.get("first_name"),
            "last_name": data.get("last_name"),
            "raw_json": dump_raw(data),
        }


class BodyMeasurement(Base, TimestampMixin, SerializableMixin):
    """WHOOP body measurements. The table holds at most one row."""

    __tablename__ = "body_measurements"

    id = Column(Integer, primary_key=True, autoincrement=True)

    height_meter = Column(Float, nullable=True)
    weight_kilogram = Column(Float, nullable=True)
    max_heart_rate = Column(Integer, nullable=True)

    raw_json = Column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<BodyMeasurement(height={self.height_meter}, weight={self.weight_kilogram})>"

    @classmethod
    def values_from_api(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "height_meter": data.get("height_meter"),
            "weight_kilogram": data.get("weight_kilogram"),
            "max_heart_rate": data.get("max_heart_rate"),
            "raw_json": dump_raw(data),
        }
