#!/usr/bin/env python3
"""
Repository pattern implementation for hosts sources.
Reads the primary hosts file and override directories into snapshots and holds
the currently published one.
"""

import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, List, Optional

from models import Snapshot, TableBuilder

logger = logging.getLogger(__name__)


class HostsRepository(ABC):
    """Abstract source of hosts snapshots."""

    @abstractmethod
    def build_snapshot(self) -> Snapshot:
        """Read every source and return a freshly built snapshot."""
        pass

    @abstractmethod
    def watched_files(self) -> List[Path]:
        """Files whose writes should trigger a rebuild."""
        pass

    @abstractmethod
    def watched_dirs(self) -> List[Path]:
        """Directories whose direct children should trigger a rebuild."""
        pass


class FileHostsRepository(HostsRepository):
    """Builds snapshots from a primary hosts file and override directories."""

    def __init__(self, hosts_file: Path, hosts_dirs: Optional[Iterable[Path]] = None):
        self.hosts_file = Path(hosts_file)
        self.hosts_dirs = [Path(d) for d in (hosts_dirs or [])]

    def watched_files(self) -> List[Path]:
        return [self.hosts_file]

    def watched_dirs(self) -> List[Path]:
        return list(self.hosts_dirs)

    def load_file(self, builder: TableBuilder, path: Path) -> bool:
        """Fold one file into builder.

        Read errors are logged and leave the builder with whatever it already
        holds. Returns True when the file was read in full.
        """
        try:
            with open(path, 'r', encoding='utf-8', errors='replace') as f:
                logger.debug(f"Loading hosts from file {path}")
                count = builder.add_lines(f)
        except OSError as e:
            logger.error(f"Failed to read hosts file {path}: {e}")
            return False

        logger.debug(f"Loaded {count} entries from {path}")
        return True

    def list_dir(self, directory: Path) -> List[Path]:
        """Return the direct child files of directory, sorted by name.

        A missing directory yields an empty list without an error.
        """
        try:
            children = sorted(directory.iterdir(), key=lambda p: p.name)
        except FileNotFoundError:
            logger.debug(f"Hosts directory does not exist: {directory}")
            return []
        except OSError as e:
            logger.error(f"Opening directory {directory!r}: {e}")
            return []

        return [child for child in children if not child.is_dir()]

    def source_files(self) -> List[Path]:
        """All files of one refresh cycle, in load order."""
        files = [self.hosts_file]
        for directory in self.hosts_dirs:
            files.extend(self.list_dir(directory))
        return files

    def build_snapshot(self) -> Snapshot:
        builder = TableBuilder()
        for path in self.source_files():
            self.load_file(builder, path)
        return builder.build()


class SnapshotStore:
    """Holds the current snapshot and swaps it atomically.

    Readers take no lock: publishing is a single reference assignment, so
    current() always returns one whole snapshot. The lock only serializes
    publishers against each other.
    """

    def __init__(self, initial: Optional[Snapshot] = None):
        self._snapshot = initial if initial is not None else Snapshot()
        self._publish_lock = threading.Lock()
        self._generation = 0

    def current(self) -> Snapshot:
        return self._snapshot

    def publish(self, snapshot: Snapshot) -> int:
        """Make snapshot current and return its generation number."""
        with self._publish_lock:
            self._snapshot = snapshot
            self._generation += 1
            return self._generation

    @property
    def generation(self) -> int:
        """Number of snapshots published so far."""
        return self._generation
