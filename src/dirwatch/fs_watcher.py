"""Raw filesystem notifications using the watchdog library."""

import os
import time
from pathlib import Path
from typing import Callable, Optional

from watchdog.events import (
    FileSystemEventHandler,
    DirCreatedEvent,
    DirDeletedEvent,
    DirModifiedEvent,
    DirMovedEvent,
)

from .models import RawEventType, RawFSEvent


class FSEventHandler(FileSystemEventHandler):
    """Handler that converts watchdog events to RawFSEvent."""

    def __init__(self, callback: Callable[[RawFSEvent], None]):
        super().__init__()
        self.callback = callback

    def _emit(
        self,
        event_type: RawEventType,
        src_path: str,
        dest_path: Optional[str] = None,
        is_directory: bool = False,
    ):
        """Emit a RawFSEvent to the callback."""
        raw_event = RawFSEvent(
            event_type=event_type,
            src_path=Path(os.fsdecode(src_path)),
            dest_path=Path(os.fsdecode(dest_path)) if dest_path else None,
            is_directory=is_directory,
            timestamp=time.time(),
        )
        self.callback(raw_event)

    def on_created(self, event):
        is_dir = isinstance(event, DirCreatedEvent)
        self._emit(RawEventType.CREATED, event.src_path, is_directory=is_dir)

    def on_deleted(self, event):
        is_dir = isinstance(event, DirDeletedEvent)
        self._emit(RawEventType.DELETED, event.src_path, is_directory=is_dir)

    def on_modified(self, event):
        # Directory mtime changes accompany every child write.
        if isinstance(event, DirModifiedEvent):
            return
        self._emit(RawEventType.MODIFIED, event.src_path)

    def on_moved(self, event):
        is_dir = isinstance(event, DirMovedEvent)
        self._emit(
            RawEventType.MOVED,
            event.src_path,
            event.dest_path,
            is_directory=is_dir,
        )
