"""Sync metadata model for tracking synchronization state."""

from sqlalchemy import Column, Integer, String, DateTime, Text
from models.database.base import Base, TimestampMixin, SerializableMixin

# Fixed set of synchronized data types, in sync order
DATA_TYPES = ("profile", "body_measurements", "cycles", "recovery", "sleep", "workouts")

STATUS_NEVER = "never"
STATUS_SYNCING = "syncing"
STATUS_COMPLETED = "completed"
STATUS_ERROR = "error"


class SyncMetadata(Base, TimestampMixin, SerializableMixin):
    """
    Per-data-type synchronization state.

    ``status`` always reflects the most recent attempt. ``last_synced_at``
    only moves when an attempt completes, so the next incremental window
    never starts past a period that failed to sync.
    """

    __tablename__ = "sync_metadata"

    # Primary key (one of DATA_TYPES)
    data_type = Column(String(32), primary_key=True)

    # Sync information
    last_synced_at = Column(DateTime, nullable=True)  # naive UTC, completion time
    status = Column(String(20), nullable=False, default=STATUS_NEVER)
    error_message = Column(Text, nullable=True)

    # Total rows stored for this type at the last status change
    record_count = Column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<SyncMetadata(data_type='{self.data_type}', status='{self.status}', records={self.record_count})>"

    @property
    def has_synced(self) -> bool:
        """True once any sync of this type has completed."""
        return self.last_synced_at is not None and self.status != STATUS_NEVER
