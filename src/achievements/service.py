"""
Achievement watcher service.

Startup scan → watch → parse → diff → notify.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional

from src.dirwatch import (
    DebouncedWatcher,
    PathFilter,
    RootError,
    WatchEvent,
    WatcherConfig,
)

from .app_id import extract_app_id
from .cache_gate import RemoteCacheGate
from .config import AppConfig
from .diff_tracker import AchievementDiffTracker
from .exceptions import MetadataError, ParseError
from .metadata import SteamMetadataCache
from .models import EventOutcome, ScanResult, UnlockNotification
from .notifier import Notifier, create_default_notifier
from .parsers import ParserRegistry, create_default_registry
from .settings import Settings, load_settings

logger = logging.getLogger(__name__)


def scan_existing(
    folders: Iterable[str],
    path_filter: PathFilter,
    resolver: Callable[[Path], str] = extract_app_id,
    registry: Optional[ParserRegistry] = None,
) -> Iterator[ScanResult]:
    """
    Find and parse every achievement file that already exists.

    Missing folders, files without an app id and files that fail to parse
    are skipped.

    Args:
        folders: Folders to walk
        path_filter: Selects achievement files
        resolver: Maps a path to an app id
        registry: Parsers to use

    Yields:
        One ScanResult per parsed file
    """
    registry = registry or create_default_registry()

    for folder in folders:
        root = Path(folder)
        if not root.is_dir():
            logger.info(f"Folder does not exist, skipping: {root}")
            continue

        logger.info(f"Scanning folder: {root}")
        for file_path in root.rglob("*"):
            if not path_filter(file_path) or not file_path.is_file():
                continue
            app_id = resolver(file_path)
            if not app_id:
                logger.debug(f"No app id in path, skipping: {file_path}")
                continue
            try:
                snapshot = registry.parse_file(file_path)
            except (ParseError, OSError) as e:
                logger.error(f"Error parsing file {file_path}: {e}")
                continue
            logger.info(f"Loaded {len(snapshot)} achievements for app {app_id}")
            yield ScanResult(app_id=app_id, path=file_path, snapshot=snapshot)


class AchievementWatcherService:
    """
    Watches emulator folders and notifies about newly unlocked achievements.

    Files found at startup only seed the diff tracker. Later changes are
    parsed and diffed; accepted unlocks are looked up in the metadata
    cache and shown through the notifier. Failures for one file or one
    achievement are logged and never affect other apps.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        settings: Optional[Settings] = None,
        tracker: Optional[AchievementDiffTracker] = None,
        gate: Optional[RemoteCacheGate] = None,
        parser_registry: Optional[ParserRegistry] = None,
        metadata: Optional[SteamMetadataCache] = None,
        notifier: Optional[Notifier] = None,
        resolver: Callable[[Path], str] = extract_app_id,
        watcher_factory: Callable[[WatcherConfig], DebouncedWatcher] = DebouncedWatcher,
    ):
        """
        Initialize the service.

        Args:
            config: Application configuration
            settings: User settings (loaded from config.settings_path if omitted)
            tracker: Diff tracker
            gate: Cooldown gate in front of metadata refreshes
            parser_registry: Achievement file parsers
            metadata: Remote metadata cache
            notifier: Notification backend
            resolver: Maps a path to an app id
            watcher_factory: Builds the directory watcher
        """
        self.config = config or AppConfig()
        self.settings = settings if settings is not None else load_settings(self.config.settings_path)
        self.api_key = self.config.metadata.get_api_key() or self.settings.api_key

        self.tracker = tracker or AchievementDiffTracker(
            max_notify_achievements=self.config.max_notify_achievements,
            sort_ids=self.config.sort_notifications,
        )
        self.gate = gate or RemoteCacheGate(self.config.cache_cooldown_s)
        self.parsers = parser_registry or create_default_registry()
        self._owns_metadata = metadata is None
        self.metadata = metadata or SteamMetadataCache(
            self.config.cache_dir,
            api_key=self.api_key,
            config=self.config.metadata,
        )
        self.notifier = notifier or create_default_notifier()
        self.resolver = resolver
        self._watcher_factory = watcher_factory
        self._path_filter = self.config.path_filter()

        self._watcher: Optional[DebouncedWatcher] = None
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.worker_threads,
            thread_name_prefix="AchievementWorker",
        )
        self._lock = threading.Lock()
        self._running = False
        self._stopped = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initial_scan(self) -> List[ScanResult]:
        """
        Seed the tracker with every existing achievement file.

        Returns:
            The scan results
        """
        results = list(scan_existing(
            self.settings.folders,
            self._path_filter,
            resolver=self.resolver,
            registry=self.parsers,
        ))
        for result in results:
            self.tracker.initialize(result.app_id, result.snapshot)

        if self.api_key:
            for app_id in sorted({r.app_id for r in results}):
                if self.gate.should_refresh(app_id):
                    self._executor.submit(self._warm_cache, app_id)

        logger.info(
            f"Initial scan found {len(results)} files for "
            f"{len({r.app_id for r in results})} apps"
        )
        return results

    def _warm_cache(self, app_id: str) -> None:
        try:
            self.metadata.ensure_cached(app_id)
        except Exception as e:
            logger.error(f"Error warming cache for app {app_id}: {e}", exc_info=True)

    def start(self) -> None:
        """Scan existing files, then start watching every configured folder."""
        with self._lock:
            if self._running or self._stopped:
                return
            self._running = True

        logger.info("Starting achievement watcher...")
        if not self.api_key:
            logger.warning("No API key set, achievement info cannot be fetched")

        self.initial_scan()

        try:
            watcher = self._watcher_factory(WatcherConfig(
                debounce_ms=self.config.debounce_ms,
                whitelist=list(self.config.achievement_files),
                ignore_patterns=list(self.config.ignore_patterns),
            ))
        except Exception:
            with self._lock:
                self._running = False
            raise
        with self._lock:
            self._watcher = watcher

        for folder in self.settings.folders:
            if not Path(folder).is_dir():
                logger.info(f"Folder does not exist, skipping: {folder}")
                continue
            try:
                watcher.add_root(folder)
            except RootError as e:
                logger.error(f"Error adding folder to watcher: {e}")

        watcher.on_event(self.handle_event)
        watcher.start()
        logger.info(f"Watching {len(watcher.get_roots())} folders")

    def stop(self) -> None:
        """Stop watching. Safe to call more than once."""
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            self._running = False
            watcher = self._watcher

        if watcher is not None:
            watcher.close()
        self._executor.shutdown(wait=False)
        if self._owns_metadata:
            self.metadata.close()
        logger.info("Achievement watcher stopped")

    def run_forever(self, stop_event: threading.Event, poll_interval: float = 0.5) -> None:
        """Run until ``stop_event`` is set."""
        self.start()
        try:
            while not stop_event.wait(poll_interval):
                pass
        finally:
            self.stop()

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._running

    # ------------------------------------------------------------------
    # Event handling
    # ------------------------------------------------------------------

    def handle_event(self, event: WatchEvent) -> Optional[EventOutcome]:
        """
        Process one debounced file event.

        Args:
            event: Event from the directory watcher

        Returns:
            What the event produced, or None if it was ignored
        """
        logger.debug(f"File event: {event.kind.value} {event.path}")

        app_id = self.resolver(event.path)
        if not app_id:
            logger.info(f"Could not extract app id from path: {event.path}")
            return None

        if not self.api_key:
            logger.warning("No API key set, cannot fetch achievement info")
            return None

        if self.gate.should_refresh(app_id):
            self._warm_cache(app_id)

        outcome = EventOutcome(app_id=app_id, path=event.path)
        with self.tracker.locked(app_id):
            try:
                snapshot = self.parsers.parse_file(event.path)
            except (ParseError, OSError) as e:
                logger.error(f"Error parsing file {event.path}: {e}")
                outcome.error = str(e)
                return outcome
            outcome.new_unlocks = self.tracker.update(app_id, snapshot)

        for achievement_id in outcome.new_unlocks:
            outcome.notifications.append(self._notify_unlock(app_id, achievement_id))
        return outcome

    def _notify_unlock(self, app_id: str, achievement_id: str) -> UnlockNotification:
        notification = UnlockNotification(app_id=app_id, achievement_id=achievement_id)

        try:
            info = self.metadata.lookup(app_id, achievement_id)
        except MetadataError as e:
            logger.error(f"Error fetching achievement info for {achievement_id}: {e}")
            return notification

        notification.title = info.display_name
        notification.body = info.description
        if info.icon:
            try:
                notification.icon_path = self.metadata.get_image(app_id, info.icon)
            except MetadataError as e:
                logger.warning(f"Error fetching achievement icon for {achievement_id}: {e}")

        try:
            notification.delivered = self.notifier.notify(
                notification.title, notification.body, notification.icon_path
            )
        except Exception as e:
            logger.error(f"Notifier failed for {achievement_id}: {e}", exc_info=True)

        if not notification.delivered:
            logger.warning(f"Notification for {achievement_id} (app {app_id}) was not shown")
        return notification
