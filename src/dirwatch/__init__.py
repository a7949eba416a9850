"""
Directory Watcher Package

A recursive, debounced directory watcher that collapses bursts of
low-level filesystem notifications into a few meaningful events.

Features:
- Recursive registration of every directory beneath a root
- Automatic registration of directories created later
- Per-path debounce of write/create notifications
- ADDED / CHANGED classification (REMOVED on request)
- Whitelist and ignore patterns
- Concurrent fan-out to any number of listeners
"""

from .models import (
    WatchEventKind,
    WatchEvent,
    RawEventType,
    RawFSEvent,
)

from .config import WatcherConfig
from .filters import PathFilter, should_include, matches_pattern

from .exceptions import (
    WatcherError,
    WatchSourceError,
    RootError,
    RootNotFoundError,
    WatcherClosedError,
    WatcherAlreadyRunningError,
)

from .tree import WatchedTree, TreeRegistry
from .debounce import PathDebouncer
from .fs_watcher import FSEventHandler
from .watcher import DebouncedWatcher


__all__ = [
    # Models
    "WatchEventKind",
    "WatchEvent",
    "RawEventType",
    "RawFSEvent",
    # Config
    "WatcherConfig",
    "PathFilter",
    "should_include",
    "matches_pattern",
    # Exceptions
    "WatcherError",
    "WatchSourceError",
    "RootError",
    "RootNotFoundError",
    "WatcherClosedError",
    "WatcherAlreadyRunningError",
    # Components
    "WatchedTree",
    "TreeRegistry",
    "PathDebouncer",
    "FSEventHandler",
    "DebouncedWatcher",
]

__version__ = "0.1.0"
