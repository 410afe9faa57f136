"""Declarative base and shared column mixins."""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from sqlalchemy import Column, DateTime, inspect
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    """Current time as a naive UTC datetime (the storage convention)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an upstream ISO-8601 timestamp into a naive UTC datetime.

    Accepts the trailing ``Z`` form the WHOOP API uses
    (``2024-01-01T08:00:00.000Z``) as well as explicit offsets.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def dump_raw(record: Dict[str, Any]) -> str:
    """Serialize the upstream record as the raw-JSON snapshot column."""
    return json.dumps(record, separators=(",", ":"))


class TimestampMixin:
    """Adds created_at / updated_at bookkeeping columns."""

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class SerializableMixin:
    """Plain-dict projection of a row for the read APIs."""

    def to_dict(self) -> Dict[str, Any]:
        row = {}
        for column in inspect(self).mapper.column_attrs:
            value = getattr(self, column.key)
            if isinstance(value, datetime):
                value = value.isoformat()
            row[column.key] = value
        return row
