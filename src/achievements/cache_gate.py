"""
Short cooldown in front of remote metadata refreshes.
"""

import threading
import time
from typing import Callable, Dict

DEFAULT_COOLDOWN_SECONDS = 5.0
DEFAULT_PRUNE_THRESHOLD = 256


class RemoteCacheGate:
    """
    Rate limiter for remote refresh triggers, one window per app.

    A writer that truncates and rewrites a file produces several change
    events in quick succession; only the first one within the cooldown
    window is allowed to trigger a refresh.

    Entries whose window has expired carry no information, so they are
    evicted whenever the table grows past ``prune_threshold``.
    """

    def __init__(
        self,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        prune_threshold: int = DEFAULT_PRUNE_THRESHOLD,
    ):
        """
        Initialize the gate.

        Args:
            cooldown_seconds: Minimum interval between refreshes of one app
            clock: Monotonic time source, injectable for tests
            prune_threshold: Table size above which expired entries are evicted
        """
        self.cooldown_seconds = cooldown_seconds
        self.prune_threshold = prune_threshold
        self._clock = clock
        self._last_refresh: Dict[str, float] = {}
        self._lock = threading.Lock()

    def should_refresh(self, app_id: str) -> bool:
        """
        Check and record a refresh attempt for an app.

        Args:
            app_id: App that wants a refresh

        Returns:
            True if no refresh was recorded within the cooldown window;
            the attempt is then recorded. False leaves state unchanged.
        """
        with self._lock:
            now = self._clock()
            last = self._last_refresh.get(app_id)
            if last is not None and now - last < self.cooldown_seconds:
                return False
            self._last_refresh[app_id] = now
            if len(self._last_refresh) > self.prune_threshold:
                self._evict_expired(now)
            return True

    def _evict_expired(self, now: float) -> int:
        """Drop entries whose window has passed. Caller holds the lock."""
        expired = [
            app_id for app_id, last in self._last_refresh.items()
            if now - last >= self.cooldown_seconds
        ]
        for app_id in expired:
            del self._last_refresh[app_id]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._last_refresh)
