"""
Recursive filesystem watcher backed by watchdog.
"""

import logging
import os
from typing import Callable

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

_RELEVANT_EVENTS = {
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
}

class ChangeHandler(FileSystemEventHandler):
    """Forwards content changes as paths relative to the watched root."""

    def __init__(self, root: str, on_path: Callable[[str], None]):
        super().__init__()
        self.root = root
        self.on_path = on_path

    def on_any_event(self, event: FileSystemEvent):
        if event.event_type not in _RELEVANT_EVENTS:
            return
        # A directory "modified" event only echoes a change to one of its entries.
        if event.is_directory and event.event_type == EVENT_TYPE_MODIFIED:
            return

        path = os.fsdecode(getattr(event, "dest_path", "") or event.src_path)
        self.on_path(os.path.relpath(path, self.root))

class WatchdogWatcher:
    """
    Watches ``root`` recursively on watchdog's observer thread.

    ``on_path`` is called from that thread; callers marshal it onto
    their own event loop.
    """

    def __init__(self, root: str, on_path: Callable[[str], None]):
        self.root = os.path.abspath(root)
        self._observer = Observer()
        self._handler = ChangeHandler(self.root, on_path)

    def start(self):
        """Raises OSError when recursive watching cannot be set up."""
        self._observer.schedule(self._handler, self.root, recursive=True)
        self._observer.start()
        logger.debug(f"Watching {self.root}")

    def is_alive(self) -> bool:
        if not self._observer.is_alive():
            return False
        return all(emitter.is_alive() for emitter in self._observer.emitters)

    def close(self):
        if self._observer.is_alive():
            self._observer.stop()
            self._observer.join(timeout=5)
