"""Debounced, filtered, recursive directory watcher."""

import logging
import os
import queue
import stat
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Union

from watchdog.observers import Observer

from .config import WatcherConfig
from .debounce import PathDebouncer
from .exceptions import (
    RootError,
    RootNotFoundError,
    WatchSourceError,
    WatcherAlreadyRunningError,
    WatcherClosedError,
)
from .fs_watcher import FSEventHandler
from .models import RawEventType, RawFSEvent, WatchEvent, WatchEventKind
from .tree import TreeRegistry

logger = logging.getLogger(__name__)

Listener = Callable[[WatchEvent], None]

_STOP = object()


class DebouncedWatcher:
    """
    Turns a noisy stream of filesystem notifications into a small set of
    classified events.

    Raw notifications from watchdog are queued and consumed by a single
    dispatch thread. Writes and creations (re)start a per-path debounce
    timer; when a path goes quiet it is re-stated once and classified as
    ADDED or CHANGED. New directories are registered instead of being
    reported. Removals and renames cancel the pending timer for the old
    path. Events passing the path filter are handed to every listener on
    the listener executor, so listeners run concurrently with each other
    and with the dispatch thread.

    Each root is scheduled once with the observer (recursively unless
    configured otherwise), so the number of OS watch instances does not
    grow with the size of a tree and directories created, deleted or
    recreated later stay covered by their root's watch. The tree registry
    records every directory seen beneath a root. Deleted directories are
    never deregistered from it.
    """

    def __init__(
        self,
        config: Optional[WatcherConfig] = None,
        observer_factory: Callable[[], Any] = Observer,
    ):
        """
        Initialize the watcher.

        Args:
            config: Watcher configuration
            observer_factory: Factory for the watchdog observer

        Raises:
            WatchSourceError: If the OS notification primitive cannot be created
        """
        self.config = config or WatcherConfig()
        self._filter = self.config.path_filter()

        try:
            self._observer = observer_factory()
        except Exception as e:
            raise WatchSourceError(f"Unable to create filesystem observer: {e}") from e

        self._handler = FSEventHandler(self._enqueue)
        self._registry = TreeRegistry()
        self._scheduled: Dict[Path, Any] = {}
        self._debouncer = PathDebouncer(self._on_quiet, self.config.quiet_period)
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.dispatch_workers,
            thread_name_prefix="WatchListener",
        )

        self._listeners: List[Listener] = []
        self._listeners_lock = threading.Lock()
        self._raw_events: "queue.Queue[Any]" = queue.Queue()
        self._dispatch_thread: Optional[threading.Thread] = None
        self._state_lock = threading.Lock()
        self._running = False
        self._closed = False

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add_root(self, path: Union[str, Path]) -> int:
        """
        Watch a directory and every directory beneath it.

        May be called before or after ``start`` and concurrently with
        event delivery.

        Args:
            path: Directory to watch

        Returns:
            Number of directories newly registered

        Raises:
            RootNotFoundError: If the path does not exist
            RootError: If the path is not a directory
            WatchSourceError: If the root itself cannot be scheduled
            WatcherClosedError: If the watcher was closed
        """
        if self._closed:
            raise WatcherClosedError("Watcher is closed")

        root = Path(path).resolve()
        if not root.exists():
            raise RootNotFoundError(f"Root folder does not exist: {root}")
        if not root.is_dir():
            raise RootError(f"Root is not a directory: {root}")

        with self._registry.lock:
            covering = self._covering_watch(root)
            if covering is None:
                try:
                    watch = self._observer.schedule(
                        self._handler, str(root), recursive=self.config.recursive
                    )
                except Exception as e:
                    raise WatchSourceError(f"Unable to watch {root}: {e}") from e
                self._scheduled[root] = watch
            else:
                logger.debug(f"Root {root} is already covered by the watch on {covering}")
            self._registry.add_root(root)
            count = self._register_tree(root)

        logger.info(f"Watching root {root} ({count} new directories)")
        return count

    def _covering_watch(self, root: Path) -> Optional[Path]:
        """Find a scheduled root whose watch already sees ``root``. Caller holds the registry lock."""
        if root in self._scheduled:
            return root
        if not self.config.recursive:
            return None
        for scheduled in self._scheduled:
            try:
                root.relative_to(scheduled)
            except ValueError:
                continue
            return scheduled
        return None

    def _register_tree(self, top: Path) -> int:
        """Record ``top`` and, if recursive, its subdirectories. Caller holds the registry lock."""
        count = 0
        for directory in self._iter_directories(top):
            if self._registry.register_directory(directory):
                count += 1
        return count

    def _iter_directories(self, top: Path):
        yield top
        if not self.config.recursive:
            return

        def _on_walk_error(error: OSError) -> None:
            logger.warning(f"Error walking {error.filename}: {error}")

        for dirpath, dirnames, _ in os.walk(top, onerror=_on_walk_error):
            for name in dirnames:
                yield Path(dirpath) / name

    def on_event(self, listener: Listener) -> Listener:
        """
        Register a listener for classified events.

        Every listener receives every delivered event, on its own worker
        invocation. Listeners must not rely on ordering relative to each
        other.

        Args:
            listener: Callable receiving a WatchEvent

        Returns:
            The listener, so this can be used as a decorator
        """
        with self._listeners_lock:
            self._listeners.append(listener)
        return listener

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """
        Start the OS observer and the dispatch thread.

        Raises:
            WatcherClosedError: If the watcher was closed
            WatcherAlreadyRunningError: If already started
            WatchSourceError: If the observer fails to start
        """
        with self._state_lock:
            if self._closed:
                raise WatcherClosedError("Watcher is closed")
            if self._running:
                raise WatcherAlreadyRunningError("Watcher is already running")

            try:
                self._observer.start()
            except Exception as e:
                raise WatchSourceError(f"Unable to start filesystem observer: {e}") from e

            self._dispatch_thread = threading.Thread(
                target=self._dispatch_loop,
                name="WatchDispatch",
                daemon=True,
            )
            self._dispatch_thread.start()
            self._running = True

        logger.info(f"Watcher started ({self._registry.directory_count()} directories)")

    def close(self) -> bool:
        """
        Stop watching and release the OS watch handles.

        Safe to call repeatedly and from several threads at once. Pending
        debounce timers are abandoned, not flushed.

        Returns:
            True for the call that actually closed the watcher
        """
        with self._state_lock:
            if self._closed:
                return False
            self._closed = True
            was_running = self._running
            self._running = False

        abandoned = self._debouncer.close()

        try:
            self._observer.stop()
            if was_running:
                self._observer.join(timeout=self.config.join_timeout_s)
        except Exception as e:
            logger.warning(f"Error stopping filesystem observer: {e}")

        self._raw_events.put(_STOP)
        thread = self._dispatch_thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.config.join_timeout_s)

        with self._registry.lock:
            self._scheduled.clear()
            roots = self._registry.clear()

        self._executor.shutdown(wait=False)
        logger.info(f"Watcher closed ({roots} roots, abandoned {abandoned} pending events)")
        return True

    def __enter__(self) -> "DebouncedWatcher":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Event flow
    # ------------------------------------------------------------------

    def _enqueue(self, raw_event: RawFSEvent) -> None:
        """Receive a raw event on a watchdog emitter thread."""
        self._raw_events.put(raw_event)

    def _dispatch_loop(self) -> None:
        while True:
            item = self._raw_events.get()
            if item is _STOP:
                break
            try:
                self.process(item)
            except Exception as e:
                logger.error(f"Error processing filesystem event {item}: {e}", exc_info=True)
        logger.debug("Dispatch loop exited")

    def process(self, raw_event: RawFSEvent) -> None:
        """
        Apply one raw notification to the debounce state.

        Args:
            raw_event: The raw event from the filesystem source
        """
        logger.debug(f"Raw event: {raw_event.event_type.value} - {raw_event.src_path}")

        if raw_event.event_type.is_write:
            self._debouncer.touch(
                raw_event.src_path,
                created=raw_event.event_type is RawEventType.CREATED,
            )
            return

        self._debouncer.cancel(raw_event.src_path)
        if self.config.emit_removed and not raw_event.is_directory:
            self._dispatch(WatchEvent(WatchEventKind.REMOVED, raw_event.src_path))

        # The new name of a rename shows up like a creation.
        if raw_event.event_type is RawEventType.MOVED and raw_event.dest_path is not None:
            self._debouncer.touch(raw_event.dest_path, created=True)

    def _on_quiet(self, path: Path, created: bool) -> None:
        """Classify a path whose debounce period elapsed. Runs on the timer thread."""
        if self._closed:
            return

        try:
            st = os.stat(path)
        except FileNotFoundError:
            logger.debug(f"Dropping event for vanished path: {path}")
            return
        except OSError as e:
            logger.warning(f"Unable to stat {path}: {e}")
            return

        if stat.S_ISDIR(st.st_mode):
            # The recursive root watch already covers it; only the bookkeeping grows.
            if created and self.config.recursive:
                with self._registry.lock:
                    count = self._register_tree(path)
                logger.debug(f"Directory appeared: {path} ({count} newly recorded)")
            return

        if not stat.S_ISREG(st.st_mode):
            return

        kind = WatchEventKind.ADDED if created else WatchEventKind.CHANGED
        self._dispatch(WatchEvent(kind, path))

    def _dispatch(self, event: WatchEvent) -> None:
        if not self._filter(event.path):
            logger.debug(f"Filtered out: {event.path}")
            return

        with self._listeners_lock:
            listeners = list(self._listeners)

        logger.debug(f"Dispatching {event.kind.value} {event.path} to {len(listeners)} listeners")
        for listener in listeners:
            try:
                self._executor.submit(self._invoke, listener, event)
            except RuntimeError:
                # Executor already shut down by close().
                return

    @staticmethod
    def _invoke(listener: Listener, event: WatchEvent) -> None:
        try:
            listener(event)
        except Exception as e:
            logger.error(f"Listener {listener!r} failed for {event.path}: {e}", exc_info=True)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        """Whether the dispatch loop is running."""
        with self._state_lock:
            return self._running

    @property
    def is_closed(self) -> bool:
        """Whether ``close`` has been called."""
        with self._state_lock:
            return self._closed

    def get_roots(self) -> FrozenSet[Path]:
        """Roots passed to ``add_root``."""
        return self._registry.get_roots()

    def is_watching(self, directory: Union[str, Path]) -> bool:
        """Check whether a directory has been seen beneath a watched root."""
        return self._registry.is_registered(Path(directory).resolve())

    def directory_count(self) -> int:
        """Number of directories seen beneath the watched roots."""
        return self._registry.directory_count()

    def pending_count(self) -> int:
        """Number of paths currently being debounced."""
        return self._debouncer.pending_count()
