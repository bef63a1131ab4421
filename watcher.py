#!/usr/bin/env python3
"""
Filesystem watcher for hosts sources.
Forwards write events through a bounded queue to a consumer thread that
collapses bursts into a single rebuild.
"""

import logging
import os
import queue
import threading
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional

from watchdog.events import FileModifiedEvent, FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

# Pushed by close() to unblock the consumer
_STOP = object()


class WatcherState(Enum):
    """Consumer states."""
    IDLE = "idle"
    ARMED = "armed"


def _real(path) -> str:
    return os.path.realpath(os.fsdecode(path))


class _WriteFilter(FileSystemEventHandler):
    """Passes content writes on watched paths to the watcher's queue."""

    def __init__(self, watcher: 'HostsWatcher'):
        super().__init__()
        self._watcher = watcher

    def on_modified(self, event: FileSystemEvent) -> None:
        try:
            if isinstance(event, FileModifiedEvent) and self._watcher.is_watched(event.src_path):
                self._watcher.enqueue(event)
        except Exception as e:
            # Raising here would end the observer thread
            logger.error(f"Error handling event for {event.src_path}: {e}", exc_info=True)


class HostsWatcher:
    """Watches hosts files and override directories for writes.

    on_write is called from the consumer thread once per drained burst of
    events. Rebuild errors are logged and never stop the loop; only close()
    does.
    """

    def __init__(self, files: Iterable[Path], dirs: Iterable[Path],
                 on_write: Callable[[], None], queue_size: int = 2):
        self._files = {_real(f) for f in files}
        self._dirs = {_real(d) for d in dirs}
        self._on_write = on_write
        self._events: "queue.Queue" = queue.Queue(maxsize=max(1, queue_size))
        self._observer: Optional[Observer] = None
        self._consumer: Optional[threading.Thread] = None
        self._closed = threading.Event()
        self.state = WatcherState.IDLE

    def is_watched(self, path) -> bool:
        """Whether a write to path concerns a hosts source."""
        real = _real(path)
        return real in self._files or os.path.dirname(real) in self._dirs

    def enqueue(self, event: FileSystemEvent) -> None:
        """Queue a write event; a full queue already guarantees a rebuild."""
        if self._closed.is_set():
            return
        try:
            self._events.put_nowait(event)
        except queue.Full:
            logger.debug(f"Coalesced write event for {event.src_path}")

    def _schedule_targets(self) -> Dict[str, str]:
        """Map each directory to observe onto the reason it is observed."""
        targets = {}
        for f in sorted(self._files):
            targets.setdefault(os.path.dirname(f), f)
        for d in sorted(self._dirs):
            targets[d] = d
        return targets

    def start(self) -> None:
        """Start the observer and the consumer thread.

        Raises OSError when the watch mechanism cannot be created at all.
        """
        observer = Observer()
        handler = _WriteFilter(self)

        for directory, target in self._schedule_targets().items():
            if not os.path.isdir(directory):
                logger.debug(f"Not watching missing directory {directory}")
                continue
            try:
                observer.schedule(handler, directory, recursive=False)
                logger.debug(f"Watching {directory} for {target}")
            except OSError as e:
                logger.error(f"Error while initializing watcher for {target}: {e}")

        observer.daemon = True
        try:
            observer.start()
        except OSError:
            # Emitters started before the failure still hold threads and watches
            observer.unschedule_all()
            observer.stop()
            raise
        self._observer = observer

        self._consumer = threading.Thread(
            target=self._consume, name="etchosts-watcher", daemon=True)
        self._consumer.start()
        logger.info("Hosts watcher started")

    def _drain(self) -> bool:
        """Discard every pending event without blocking.

        Returns False when the stop marker was among them.
        """
        while True:
            try:
                item = self._events.get_nowait()
            except queue.Empty:
                return True
            if item is _STOP:
                return False

    def _consume(self) -> None:
        while True:
            event = self._events.get()
            if event is _STOP:
                break

            self.state = WatcherState.ARMED
            running = self._drain()

            logger.debug(f"Modified: {event.src_path}")
            try:
                self._on_write()
            except Exception as e:
                logger.error(f"Hosts refresh failed: {e}", exc_info=True)
            self.state = WatcherState.IDLE

            if not running or self._closed.is_set():
                break

    def close(self) -> None:
        """Stop the observer, unblock the consumer and join both threads."""
        if self._closed.is_set():
            return
        self._closed.set()

        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None

        if self._consumer is not None:
            # Closed from on_write: the consumer exits once the callback returns
            if threading.current_thread() is not self._consumer:
                try:
                    self._events.put_nowait(_STOP)
                except queue.Full:
                    # A queued write wakes the consumer, which then sees _closed
                    pass
                self._consumer.join()
            self._consumer = None

        logger.info("Hosts watcher closed")
