"""Synchronization manager for WHOOP data."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterator, List, NamedTuple, Optional
from config.settings import settings
from models import DATA_TYPES
from models.database.base import utcnow
from models.database.sync_metadata import STATUS_COMPLETED, STATUS_ERROR, STATUS_SYNCING
from utils.exceptions import ReauthenticationRequired
from utils.local_store import LocalStore
from utils.logger import get_logger, log_exception
from utils.rate_limiter import RateLimiter
from utils.token_store import TokenStore
from utils.whoop_client import WhoopClient, create_whoop_client

logger = get_logger(__name__)

# Cycles are synced before recovery so recovery rows can be joined to them
SYNC_ORDER = DATA_TYPES

# Single-resource endpoints; everything else is a paginated list
SINGLETON_TYPES = ("profile", "body_measurements")


def format_timestamp(value: datetime) -> str:
    """Render a naive UTC datetime the way the WHOOP API expects it."""
    return value.isoformat(timespec="milliseconds") + "Z"


class SyncWindow(NamedTuple):
    """Time range requested from the upstream; ``start`` None fetches all history."""

    start: Optional[datetime]
    end: datetime

    @property
    def is_full_history(self) -> bool:
        return self.start is None

    def as_params(self) -> Dict[str, Optional[str]]:
        return {
            "start": format_timestamp(self.start) if self.start else None,
            "end": format_timestamp(self.end),
        }

    def describe(self) -> str:
        if self.is_full_history:
            return "full history"
        params = self.as_params()
        return f"from {params['start']} to {params['end']}"


@dataclass
class SyncEvent:
    """
    One progress event in a sync stream.

    ``event`` is one of start, progress, complete, error, aborted, done.
    complete/error events carry the per-type result; the final done event
    carries the list of all results.
    """

    event: str
    data_type: Optional[str]
    message: str
    result: Any = None
    fatal: bool = False


class SyncManager:
    """
    Manages incremental synchronization of WHOOP data to the local store.

    Handles:
    - Per-type sync windows with a backward overlap for late scores
    - Sequential fetch of all six data types in a fixed order
    - Sync metadata state (never -> syncing -> completed | error)
    - Early abort of a full sync when the user must re-authenticate
    """

    def __init__(
        self,
        client: WhoopClient,
        store: LocalStore,
        overlap_hours: Optional[int] = None,
        now: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize sync manager.

        Args:
            client: Authenticated WHOOP client
            store: Local store receiving the records
            overlap_hours: Hours re-fetched before the last successful sync
            now: Returns the current naive UTC datetime
        """
        self.client = client
        self.store = store
        self.overlap = timedelta(hours=settings.SYNC_OVERLAP_HOURS if overlap_hours is None else overlap_hours)
        self._now = now

    def get_time_range(self, data_type: str) -> SyncWindow:
        """
        Compute the fetch window for a data type.

        First sync (or no successful sync yet) fetches the full history.
        Later syncs start ``overlap`` before the last successful completion,
        so scores WHOOP finalized after that sync are picked up again.
        """
        end = self._now()
        last_synced_at = self.store.get_last_synced_at(data_type)
        if last_synced_at is None:
            return SyncWindow(None, end)
        return SyncWindow(last_synced_at - self.overlap, end)

    def _fetch_and_store(self, data_type: str, window: SyncWindow) -> int:
        if data_type == "profile":
            self.store.upsert("profile", self.client.fetch_profile())
            return 1
        if data_type == "body_measurements":
            self.store.upsert("body_measurements", self.client.fetch_body_measurements())
            return 1

        fetchers = {
            "cycles": self.client.fetch_cycles,
            "recovery": self.client.fetch_recovery,
            "sleep": self.client.fetch_sleep,
            "workouts": self.client.fetch_workouts,
        }
        params = window.as_params()
        records = fetchers[data_type](start=params["start"], end=params["end"])
        return self.store.upsert_many(data_type, records)

    def iter_sync_data_type(self, data_type: str) -> Iterator[SyncEvent]:
        """
        Sync one data type, yielding progress events.

        The last event is ``complete`` or ``error`` and carries the result
        dict. Errors never propagate out of the stream.
        """
        if data_type not in SYNC_ORDER:
            message = f"Unknown data type: {data_type}"
            yield SyncEvent("error", data_type, message, {"type": data_type, "status": STATUS_ERROR, "error": message})
            return

        yield SyncEvent("start", data_type, "Starting...")

        try:
            self.store.update_sync_status(data_type, STATUS_SYNCING)
            window = self.get_time_range(data_type)
            logger.info(f"[{data_type}] Fetching {window.describe()}")
            yield SyncEvent("progress", data_type, f"Fetching {window.describe()}")

            count = self._fetch_and_store(data_type, window)

            # Completion time, not window end
            self.store.update_sync_status(data_type, STATUS_COMPLETED, last_synced_at=self._now())

        except Exception as e:
            log_exception(logger, e, f"[{data_type}] Sync failed")
            message = str(e)
            try:
                # last_synced_at stays put so the failed period is re-fetched next time
                self.store.update_sync_status(data_type, STATUS_ERROR, error_message=message)
            except Exception as store_error:
                log_exception(logger, store_error, f"[{data_type}] Could not record sync error")

            yield SyncEvent(
                "error",
                data_type,
                f"Error: {message}",
                {"type": data_type, "status": STATUS_ERROR, "error": message},
                fatal=isinstance(e, ReauthenticationRequired),
            )
            return

        logger.info(f"[{data_type}] Completed: {count} records processed")
        yield SyncEvent(
            "complete",
            data_type,
            f"Completed: {count} records processed",
            {"type": data_type, "status": STATUS_COMPLETED, "count": count},
        )

    def sync_data_type(self, data_type: str) -> Dict[str, Any]:
        """
        Sync one data type.

        Returns:
            {"type", "status": "completed", "count"} or
            {"type", "status": "error", "error"}
        """
        last_event = None
        for last_event in self.iter_sync_data_type(data_type):
            pass
        return last_event.result

    def iter_sync_all(self) -> Iterator[SyncEvent]:
        """
        Sync every data type in SYNC_ORDER, yielding progress events.

        A failure on one type is recorded and the next type proceeds, unless
        the failure means the user must re-authenticate, in which case the
        remaining types are skipped. The final ``done`` event carries the
        list of per-type results.
        """
        logger.info("Starting full WHOOP sync")
        results: List[Dict[str, Any]] = []

        for data_type in SYNC_ORDER:
            last_event = None
            for last_event in self.iter_sync_data_type(data_type):
                yield last_event
            results.append(last_event.result)

            if last_event.fatal:
                logger.warning(f"Aborting sync after {data_type}: re-authentication required")
                yield SyncEvent("aborted", data_type, "Re-authentication required; remaining types skipped")
                break

        failed = sum(1 for r in results if r["status"] == STATUS_ERROR)
        logger.info(f"Full sync finished: {len(results) - failed} completed, {failed} failed")
        yield SyncEvent("done", None, f"{len(results)} data types processed", results)

    def sync_all(self) -> List[Dict[str, Any]]:
        """Sync every data type; returns the per-type results in order."""
        last_event = None
        for last_event in self.iter_sync_all():
            pass
        return last_event.result

    def get_sync_status(self, data_type: str) -> Optional[Dict[str, Any]]:
        return self.store.get_sync_status(data_type)

    def get_all_sync_status(self) -> List[Dict[str, Any]]:
        return self.store.get_all_sync_status()


def create_sync_manager(principal: Optional[str] = None) -> SyncManager:
    """
    Factory function wiring a sync manager from settings.

    Args:
        principal: Credential principal; the single-user default when omitted

    Returns:
        SyncManager owning one RateLimiter and one TokenStore
    """
    token_store = TokenStore(principal=principal) if principal else TokenStore()
    client = create_whoop_client(token_store=token_store, rate_limiter=RateLimiter())
    return SyncManager(client=client, store=LocalStore())
