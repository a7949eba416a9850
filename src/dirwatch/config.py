"""Configuration for the directory watcher package."""

from dataclasses import dataclass, field
from typing import List

from .filters import PathFilter


@dataclass
class WatcherConfig:
    """
    Configuration options for the debounced watcher.

    Attributes:
        debounce_ms: Quiet period before a burst of notifications for one path is classified
        whitelist: Patterns a file must match to be delivered (empty means all files)
        ignore_patterns: Patterns that unconditionally exclude a file
        recursive: Whether subdirectories are registered beneath each root
        emit_removed: Forward REMOVED events for deleted or renamed files
        dispatch_workers: Number of worker threads running listener callbacks
        join_timeout_s: Upper bound for joining background threads on close
    """
    debounce_ms: int = 100
    whitelist: List[str] = field(default_factory=list)
    ignore_patterns: List[str] = field(default_factory=list)
    recursive: bool = True
    emit_removed: bool = False
    dispatch_workers: int = 8
    join_timeout_s: float = 5.0

    def __post_init__(self):
        if self.debounce_ms < 0:
            raise ValueError(f"debounce_ms must be non-negative: {self.debounce_ms}")
        if self.dispatch_workers < 1:
            raise ValueError(f"dispatch_workers must be at least 1: {self.dispatch_workers}")

    @property
    def quiet_period(self) -> float:
        """Debounce quiet period in seconds."""
        return self.debounce_ms / 1000.0

    def path_filter(self) -> PathFilter:
        """Build the path filter described by this configuration."""
        return PathFilter(whitelist=tuple(self.whitelist), ignore=tuple(self.ignore_patterns))
