#!/usr/bin/env python3
"""
Automatic DNS records from the system hosts file.
The container keeps forward and reverse tables in sync with the hosts file and
override directories and answers lookups for a DNS resolver.
"""

import logging
import threading
from dataclasses import replace
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from dnslib import QTYPE

from config import EtcHostsConfig
from models import IPAddress, Snapshot
from network_utils import unreverse_addr
from repository import FileHostsRepository, HostsRepository, SnapshotStore
from watcher import HostsWatcher

logger = logging.getLogger(__name__)

OnChanged = Callable[[], None]


class EtcHostsContainer:
    """Hostname <-> address tables backed by watched hosts files."""

    def __init__(self, config: Optional[EtcHostsConfig] = None,
                 hosts_file: Optional[Union[str, Path]] = None,
                 on_changed: Optional[OnChanged] = None,
                 repository: Optional[HostsRepository] = None):
        self.config = config or EtcHostsConfig()
        if hosts_file:
            self.config = replace(self.config, hosts_file=Path(hosts_file))

        self.repository = repository or FileHostsRepository(
            self.config.hosts_file, self.config.hosts_dirs)
        self.store = SnapshotStore()
        self.watcher: Optional[HostsWatcher] = None
        self._on_changed = on_changed
        self._refresh_lock = threading.Lock()

        self.update_hosts()

    def set_on_changed(self, on_changed: Optional[OnChanged]) -> None:
        """Register the callback run after every refresh, replacing any prior one."""
        self._on_changed = on_changed

    def _notify(self) -> None:
        callback = self._on_changed
        if callback is None:
            return
        try:
            callback()
        except Exception as e:
            logger.error(f"Hosts change callback failed: {e}", exc_info=True)

    def update_hosts(self) -> Snapshot:
        """Rebuild the tables from disk, publish them and notify."""
        with self._refresh_lock:
            snapshot = self.repository.build_snapshot()
            generation = self.store.publish(snapshot)

        logger.info(f"Loaded {len(snapshot.forward)} hostnames and "
                    f"{len(snapshot.reverse)} addresses (generation {generation})")
        self._notify()
        return snapshot

    def start(self) -> bool:
        """Refresh and start watching.

        Returns False when the watch mechanism is unavailable; the container
        then keeps serving the tables loaded so far.
        """
        logger.debug("Starting hosts container")
        self.update_hosts()

        if not self.config.watch_enabled:
            logger.info("Hosts watching disabled by configuration")
            return False
        if self.watcher is not None:
            return True

        watcher = HostsWatcher(
            self.repository.watched_files(),
            self.repository.watched_dirs(),
            self.update_hosts,
            queue_size=self.config.event_queue_size,
        )
        try:
            watcher.start()
        except OSError as e:
            logger.error(f"Cannot watch hosts files, serving a static table: {e}")
            watcher.close()
            return False

        self.watcher = watcher
        return True

    @property
    def watching(self) -> bool:
        return self.watcher is not None

    def close(self) -> None:
        if self.watcher is not None:
            self.watcher.close()
            self.watcher = None

    def process(self, host: str, qtype: int) -> Optional[List[IPAddress]]:
        """Return the addresses for host, or None if nothing is found.

        PTR queries are never answered here.
        """
        if qtype == QTYPE.PTR:
            return None

        ips = self.store.current().addresses(host)
        logger.debug(f"answer: {host} -> {ips}")
        return ips

    def process_reverse(self, addr: str, qtype: int) -> Optional[List[str]]:
        """Answer a PTR query for an arpa name, or None if nothing is found."""
        if qtype != QTYPE.PTR:
            return None

        ip = unreverse_addr(addr)
        if ip is None:
            return None

        hosts = self.store.current().hostnames(str(ip))
        if hosts is None:
            return None

        logger.debug(f"reverse-lookup: {addr} -> {hosts}")
        return hosts

    def list_hosts(self) -> Dict[str, List[str]]:
        """Return a copy of the address -> hostnames table."""
        return self.store.current().reverse_copy()
