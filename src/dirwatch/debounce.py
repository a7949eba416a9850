"""Per-path debounce timers."""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class PendingTimer:
    """A burst of notifications for one path waiting for its quiet period."""
    path: Path
    created: bool = False
    notifications: int = 0
    timer: Optional[threading.Timer] = None


class PathDebouncer:
    """
    Coalesces bursts of notifications per path.

    Every ``touch`` for a path restarts that path's timer. When a path
    stays quiet for the whole period, ``on_fire(path, created)`` is called
    once on the timer thread. ``created`` is True if any notification in
    the burst was a creation.
    """

    def __init__(
        self,
        on_fire: Callable[[Path, bool], None],
        quiet_period: float = 0.1,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ):
        """
        Initialize the debouncer.

        Args:
            on_fire: Callback receiving the path and whether it was created
            quiet_period: Seconds without notifications before firing
            timer_factory: Factory with the ``threading.Timer`` signature
        """
        self.on_fire = on_fire
        self.quiet_period = quiet_period
        self._timer_factory = timer_factory
        self._pending: Dict[Path, PendingTimer] = {}
        self._lock = threading.Lock()
        self._closed = False

    def touch(self, path: Path, created: bool = False) -> bool:
        """
        Record a write or create notification for a path.

        Args:
            path: Path the notification was about
            created: Whether the notification was a creation

        Returns:
            True if this started a new burst, False if it extended one
        """
        with self._lock:
            if self._closed:
                return False
            pending = self._pending.get(path)
            if pending is None:
                pending = PendingTimer(path=path)
                self._pending[path] = pending
            elif pending.timer is not None:
                pending.timer.cancel()
            pending.created = pending.created or created
            pending.notifications += 1
            timer = self._timer_factory(
                self.quiet_period, self._fire, args=(pending, pending.notifications)
            )
            timer.daemon = True
            pending.timer = timer
            timer.start()
            return pending.notifications == 1

    def _fire(self, pending: PendingTimer, generation: int) -> None:
        with self._lock:
            # A newer notification or a cancel superseded this timer.
            if self._pending.get(pending.path) is not pending or pending.notifications != generation:
                return
            del self._pending[pending.path]
        logger.debug(
            f"Debounce fired for {pending.path} "
            f"(notifications={pending.notifications}, created={pending.created})"
        )
        try:
            self.on_fire(pending.path, pending.created)
        except Exception as e:
            logger.error(f"Debounce callback failed for {pending.path}: {e}", exc_info=True)

    def cancel(self, path: Path) -> bool:
        """
        Discard a pending timer for a path.

        Args:
            path: Path whose burst should be dropped

        Returns:
            True if a pending timer was cancelled
        """
        with self._lock:
            pending = self._pending.pop(path, None)
        if pending is None:
            return False
        if pending.timer is not None:
            pending.timer.cancel()
        return True

    def is_pending(self, path: Path) -> bool:
        """Check whether a burst is being coalesced for a path."""
        with self._lock:
            return path in self._pending

    def pending_count(self) -> int:
        """Number of paths with a pending timer."""
        with self._lock:
            return len(self._pending)

    def close(self) -> int:
        """
        Abandon every pending timer and refuse new notifications.

        Returns:
            Number of timers abandoned
        """
        with self._lock:
            self._closed = True
            pending = list(self._pending.values())
            self._pending.clear()
        for item in pending:
            if item.timer is not None:
                item.timer.cancel()
        return len(pending)
