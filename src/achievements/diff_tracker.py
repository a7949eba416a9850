"""
Per-app achievement diffing with a notification volume guard.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Mapping, Optional

from .models import Achievement, Snapshot

logger = logging.getLogger(__name__)

DEFAULT_MAX_NOTIFY_ACHIEVEMENTS = 2


def diff_snapshots(old: Mapping[str, Achievement], new: Mapping[str, Achievement]) -> List[str]:
    """
    List achievement ids that count as newly unlocked.

    An id is a candidate when it is unlocked in ``new`` and was either
    absent from ``old`` or locked there. A newly listed but still locked
    id is not a transition. Ids keep the iteration order of ``new``.

    Args:
        old: Previous snapshot
        new: Fresh snapshot

    Returns:
        Candidate ids
    """
    candidates = []
    for achievement_id, state in new.items():
        previous = old.get(achievement_id)
        if state.achieved and (previous is None or not previous.achieved):
            candidates.append(achievement_id)
    return candidates


class AchievementDiffTracker:
    """
    Holds the last accepted snapshot per app and decides which
    transitions are worth a notification.

    A diff is accepted only when it has between one and
    ``max_notify_achievements`` candidates. Accepting replaces the stored
    snapshot; rejecting leaves it untouched, so a bulk rewrite or first
    load is swallowed and the next small change is still diffed against
    the old baseline.

    ``update`` calls for the same app are serialized on a per-app lock.
    Calls for different apps never contend on it.
    """

    def __init__(
        self,
        max_notify_achievements: int = DEFAULT_MAX_NOTIFY_ACHIEVEMENTS,
        sort_ids: bool = False,
    ):
        """
        Initialize the tracker.

        Args:
            max_notify_achievements: Largest diff that is still accepted
            sort_ids: Return accepted ids sorted instead of in file order
        """
        if max_notify_achievements < 1:
            raise ValueError(
                f"max_notify_achievements must be at least 1: {max_notify_achievements}"
            )
        self.max_notify_achievements = max_notify_achievements
        self.sort_ids = sort_ids
        self._snapshots: Dict[str, Snapshot] = {}
        self._locks: Dict[str, threading.RLock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, app_id: str) -> threading.RLock:
        with self._registry_lock:
            lock = self._locks.get(app_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[app_id] = lock
            return lock

    @contextmanager
    def locked(self, app_id: str) -> Iterator[None]:
        """
        Hold the per-app lock across a read-parse-update sequence.

        ``update`` and ``initialize`` may be called while holding it.
        """
        with self._lock_for(app_id):
            yield

    def initialize(self, app_id: str, snapshot: Mapping[str, Achievement]) -> None:
        """
        Seed the stored snapshot for an app without producing a diff.

        Args:
            app_id: App the snapshot belongs to
            snapshot: Snapshot found by the startup scan
        """
        with self._lock_for(app_id):
            self._snapshots[app_id] = dict(snapshot)
        logger.debug(f"Initialized app {app_id} with {len(snapshot)} achievements")

    def update(self, app_id: str, snapshot: Mapping[str, Achievement]) -> List[str]:
        """
        Diff a fresh snapshot against the stored one.

        Args:
            app_id: App the snapshot belongs to
            snapshot: Freshly parsed snapshot

        Returns:
            Newly unlocked ids, or an empty list if the diff was rejected
        """
        with self._lock_for(app_id):
            old = self._snapshots.get(app_id, {})
            candidates = diff_snapshots(old, snapshot)

            if not candidates:
                return []

            if len(candidates) > self.max_notify_achievements:
                logger.info(
                    f"Ignoring {len(candidates)} simultaneous unlocks for app {app_id} "
                    f"(limit {self.max_notify_achievements})"
                )
                return []

            self._snapshots[app_id] = dict(snapshot)

        if self.sort_ids:
            candidates.sort()
        logger.info(f"New achievements for app {app_id}: {', '.join(candidates)}")
        return candidates

    def get_snapshot(self, app_id: str) -> Optional[Snapshot]:
        """
        Get a copy of the stored snapshot for an app.

        Args:
            app_id: App to look up

        Returns:
            Copy of the snapshot, or None if the app is unknown
        """
        with self._lock_for(app_id):
            snapshot = self._snapshots.get(app_id)
            return dict(snapshot) if snapshot is not None else None

    def forget(self, app_id: str) -> bool:
        """
        Drop the stored snapshot for an app.

        Returns:
            True if the app was tracked
        """
        with self._lock_for(app_id):
            return self._snapshots.pop(app_id, None) is not None

    def tracked_apps(self) -> List[str]:
        """Ids of every app with a stored snapshot."""
        with self._registry_lock:
            return [app_id for app_id in self._locks if app_id in self._snapshots]

    def __len__(self) -> int:
        return len(self.tracked_apps())

    def __contains__(self, app_id: str) -> bool:
        return self.get_snapshot(app_id) is not None
