"""Dual-window request budget for the WHOOP API."""

import threading
import time
from typing import Callable, Dict, Optional
from config.settings import settings
from utils.exceptions import DailyRateLimitExceeded
from utils.logger import get_logger

logger = get_logger(__name__)

MINUTE_WINDOW_SECONDS = 60
DAY_WINDOW_SECONDS = 86400


class RateLimiter:
    """
    Token bucket with a per-minute and a per-day window.

    Each bucket is refilled to full the first time ``acquire()`` runs after
    its window has elapsed (fixed-window reset, no background timer and no
    sliding refill). An empty minute bucket makes the caller wait for the
    window to roll over; an empty day bucket fails immediately.
    """

    def __init__(
        self,
        max_per_minute: Optional[int] = None,
        max_per_day: Optional[int] = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the limiter with full buckets.

        Args:
            max_per_minute: Minute bucket capacity (WHOOP_RATE_LIMIT_MINUTE)
            max_per_day: Day bucket capacity (WHOOP_RATE_LIMIT_DAILY)
            clock: Returns wall-clock seconds
            sleep: Blocks the caller for the given seconds
        """
        self.max_per_minute = max_per_minute or settings.WHOOP_RATE_LIMIT_MINUTE
        self.max_per_day = max_per_day or settings.WHOOP_RATE_LIMIT_DAILY
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()

        now = clock()
        self.minute_tokens = self.max_per_minute
        self.day_tokens = self.max_per_day
        self.last_minute_refill = now
        self.last_day_refill = now

    def _refill(self):
        now = self._clock()
        if now - self.last_minute_refill >= MINUTE_WINDOW_SECONDS:
            self.minute_tokens = self.max_per_minute
            self.last_minute_refill = now
        if now - self.last_day_refill >= DAY_WINDOW_SECONDS:
            self.day_tokens = self.max_per_day
            self.last_day_refill = now

    def acquire(self):
        """
        Take one request from both buckets.

        Blocks while the minute bucket is empty. The lock is held across the
        wait so concurrent callers queue behind each other instead of racing
        the refill.

        Raises:
            DailyRateLimitExceeded: The day bucket is empty
        """
        with self._lock:
            self._refill()
            if self.day_tokens <= 0:
                logger.error("Daily request budget exhausted")
                raise DailyRateLimitExceeded()

            while self.minute_tokens <= 0:
                elapsed = self._clock() - self.last_minute_refill
                wait_time = max(MINUTE_WINDOW_SECONDS - elapsed, 1)
                logger.warning(f"Minute rate limit reached, waiting {wait_time:.0f}s")
                self._sleep(wait_time)
                self._refill()
                if self.day_tokens <= 0:
                    raise DailyRateLimitExceeded()

            self.minute_tokens -= 1
            self.day_tokens -= 1

    @property
    def status(self) -> Dict[str, int]:
        """Get current rate limit status."""
        return {
            "minute_used": self.max_per_minute - self.minute_tokens,
            "minute_limit": self.max_per_minute,
            "daily_used": self.max_per_day - self.day_tokens,
            "daily_limit": self.max_per_day,
        }
