"""Write side of the local WHOOP data store: upserts and sync metadata."""

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session, sessionmaker
from config.settings import get_session_maker
from models import MODEL_BY_DATA_TYPE, BodyMeasurement, SyncMetadata, DATA_TYPES
from models.database.sync_metadata import STATUS_NEVER
from utils.logger import get_logger

logger = get_logger(__name__)

# Primary key column used to find the existing row of each keyed type
KEY_COLUMN = {
    "profile": "user_id",
    "cycles": "id",
    "recovery": "cycle_id",
    "sleep": "id",
    "workouts": "id",
}


class LocalStore:
    """
    Relational store for synced WHOOP records.

    Every write is insert-or-replace by upstream primary key: an existing row
    is overwritten column by column (raw snapshot included), never merged, so
    replaying the same records leaves the store unchanged.
    """

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._session_factory = session_factory or get_session_maker()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Session that commits on success and rolls back on error."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # ------------------------------------------------------------------
    # Domain records
    # ------------------------------------------------------------------

    def _upsert_row(self, session: Session, data_type: str, record: Dict[str, Any]):
        model = MODEL_BY_DATA_TYPE[data_type]
        values = model.values_from_api(record)

        if data_type == "body_measurements":
            # Single-row table: clear and insert
            session.query(BodyMeasurement).delete()
            session.add(BodyMeasurement(**values))
            return

        key_column = KEY_COLUMN[data_type]
        key = values[key_column]
        if key is None:
            raise ValueError(f"{data_type} record has no {key_column}")

        row = session.get(model, key)
        if row is None:
            row = model(**values)
            session.add(row)
        else:
            for column, value in values.items():
                setattr(row, column, value)

    def upsert(self, data_type: str, record: Dict[str, Any]):
        """Insert or replace one upstream record."""
        if data_type not in MODEL_BY_DATA_TYPE:
            raise ValueError(f"Unknown data type: {data_type}")
        with self.session_scope() as session:
            self._upsert_row(session, data_type, record)

    def upsert_many(self, data_type: str, records: Iterable[Dict[str, Any]]) -> int:
        """
        Insert or replace a batch of upstream records in one transaction.

        Returns:
            Number of records processed
        """
        if data_type not in MODEL_BY_DATA_TYPE:
            raise ValueError(f"Unknown data type: {data_type}")

        count = 0
        with self.session_scope() as session:
            for record in records:
                self._upsert_row(session, data_type, record)
                # flush so a later record with the same key finds this row
                session.flush()
                count += 1

        logger.debug(f"Upserted {count} {data_type} records")
        return count

    def get_record_count(self, data_type: str) -> int:
        """Total stored rows for a data type (0 for unknown types)."""
        model = MODEL_BY_DATA_TYPE.get(data_type)
        if model is None:
            return 0
        with self.session_scope() as session:
            return session.query(func.count()).select_from(model).scalar() or 0

    # ------------------------------------------------------------------
    # Sync metadata
    # ------------------------------------------------------------------

    def seed_sync_metadata(self):
        """Create the metadata row of every data type that lacks one."""
        with self.session_scope() as session:
            for data_type in DATA_TYPES:
                if session.get(SyncMetadata, data_type) is None:
                    session.add(SyncMetadata(data_type=data_type, status=STATUS_NEVER, record_count=0))

    def get_sync_status(self, data_type: str) -> Optional[Dict[str, Any]]:
        """Metadata row of one data type as a dict, or None."""
        with self.session_scope() as session:
            meta = session.get(SyncMetadata, data_type)
            return meta.to_dict() if meta else None

    def get_last_synced_at(self, data_type: str) -> Optional[datetime]:
        """Completion time of the last successful sync, or None."""
        with self.session_scope() as session:
            meta = session.get(SyncMetadata, data_type)
            if meta is None or not meta.has_synced:
                return None
            return meta.last_synced_at

    def get_all_sync_status(self) -> List[Dict[str, Any]]:
        """Metadata rows of all data types ordered by data type."""
        with self.session_scope() as session:
            rows = session.query(SyncMetadata).order_by(SyncMetadata.data_type).all()
            return [row.to_dict() for row in rows]

    def update_sync_status(
        self,
        data_type: str,
        status: str,
        last_synced_at: Optional[datetime] = None,
        error_message: Optional[str] = None,
    ):
        """
        Record the outcome of a sync attempt.

        ``last_synced_at`` is only written when given, which the sync engine
        does solely on completion. ``record_count`` is refreshed every time.
        """
        count = self.get_record_count(data_type)
        with self.session_scope() as session:
            meta = session.get(SyncMetadata, data_type)
            if meta is None:
                meta = SyncMetadata(data_type=data_type)
                session.add(meta)

            meta.status = status
            meta.error_message = error_message
            meta.record_count = count
            if last_synced_at is not None:
                meta.last_synced_at = last_synced_at

        logger.debug(f"Sync status for {data_type}: {status}")
