"""Data models for the directory watcher package."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional
import time


class WatchEventKind(Enum):
    """Classified, debounced event kinds delivered to listeners."""
    ADDED = "added"
    CHANGED = "changed"
    REMOVED = "removed"


class RawEventType(Enum):
    """Low-level notification types coming from the OS source."""
    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    MOVED = "moved"

    @property
    def is_write(self) -> bool:
        """Whether this notification (re)starts a debounce timer."""
        return self in (RawEventType.CREATED, RawEventType.MODIFIED)


@dataclass(frozen=True)
class WatchEvent:
    """
    A debounced, classified file event.

    Attributes:
        kind: ADDED if any notification in the burst was a creation, else CHANGED
        path: Absolute path to the affected regular file
        observed_at: Unix timestamp when the event was classified
    """
    kind: WatchEventKind
    path: Path
    observed_at: float = field(default_factory=time.time)

    def __post_init__(self):
        if not self.path.is_absolute():
            raise ValueError(f"path must be absolute: {self.path}")


@dataclass
class RawFSEvent:
    """
    Raw event from the filesystem source before debouncing.

    Attributes:
        event_type: Raw notification type
        src_path: Source path of the event
        dest_path: Destination path (for move events)
        is_directory: Whether the source reported a directory
        timestamp: Unix timestamp when the event occurred
    """
    event_type: RawEventType
    src_path: Path
    dest_path: Optional[Path] = None
    is_directory: bool = False
    timestamp: float = field(default_factory=time.time)
