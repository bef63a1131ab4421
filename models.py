#!/usr/bin/env python3
"""
Data models for etchosts.
Parses hosts file lines and accumulates them into forward and reverse tables.
"""

import ipaddress
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

logger = logging.getLogger(__name__)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


def parse_address(text: str) -> Optional[IPAddress]:
    """Parse an IPv4 or IPv6 literal, folding IPv4-mapped IPv6 into IPv4.

    Returns None when the text is not an address literal or carries a zone ID.
    """
    try:
        ip = ipaddress.ip_address(text)
    except ValueError:
        return None

    if isinstance(ip, ipaddress.IPv6Address):
        # Zoned addresses have no ip6.arpa form
        if ip.scope_id is not None:
            return None
        if ip.ipv4_mapped is not None:
            return ip.ipv4_mapped
    return ip


@dataclass
class HostEntry:
    """A single parsed hosts line: one address and its hostnames."""

    ip: IPAddress
    hostnames: List[str]
    line_number: Optional[int] = None

    @classmethod
    def from_line(cls, line: str, line_number: Optional[int] = None) -> Optional['HostEntry']:
        """Parse a host entry from a hosts file line.

        Returns None for blank lines, comments, lines without a valid address
        and lines whose hostname list is empty after comment stripping.
        """
        line = line.strip()

        if not line or line.startswith('#'):
            return None

        fields = line.split()
        if len(fields) < 2:
            return None

        ip = parse_address(fields[0])
        if ip is None:
            logger.debug(f"Skipping line {line_number}: invalid address {fields[0]!r}")
            return None

        hostnames = []
        for host in fields[1:]:
            if not host:
                break

            sharp = host.find('#')
            if sharp == 0:
                # Inline comment
                break
            if sharp > 0:
                hostnames.append(host[:sharp])
                break

            hostnames.append(host)

        if not hostnames:
            return None

        return cls(ip=ip, hostnames=hostnames, line_number=line_number)

    def pairs(self) -> Iterator[Tuple[IPAddress, str]]:
        """Yield (address, hostname) pairs in line order."""
        for hostname in self.hostnames:
            yield self.ip, hostname

    def __str__(self) -> str:
        return f"{self.ip} -> {' '.join(self.hostnames)}"


def parse_lines(lines: Iterable[str]) -> Iterator[HostEntry]:
    """Parse every line, skipping the ones that carry no entry."""
    for line_number, line in enumerate(lines, 1):
        entry = HostEntry.from_line(line, line_number)
        if entry is not None:
            yield entry


@dataclass(frozen=True)
class Snapshot:
    """One immutable pair of forward and reverse tables.

    forward maps hostname -> addresses, reverse maps the canonical address
    string -> hostnames. Both keep first-seen order.
    """

    forward: Mapping[str, Tuple[IPAddress, ...]] = field(
        default_factory=lambda: MappingProxyType({}))
    reverse: Mapping[str, Tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType({}))

    def addresses(self, hostname: str) -> Optional[List[IPAddress]]:
        ips = self.forward.get(hostname)
        return list(ips) if ips else None

    def hostnames(self, address: str) -> Optional[List[str]]:
        hosts = self.reverse.get(address)
        return list(hosts) if hosts else None

    def reverse_copy(self) -> Dict[str, List[str]]:
        return {address: list(hosts) for address, hosts in self.reverse.items()}

    def forward_copy(self) -> Dict[str, List[IPAddress]]:
        return {hostname: list(ips) for hostname, ips in self.forward.items()}

    def __len__(self) -> int:
        return len(self.forward)


class TableBuilder:
    """Accumulates (address, hostname) pairs into deduplicated tables."""

    def __init__(self):
        self._forward: Dict[str, List[IPAddress]] = {}
        self._reverse: Dict[str, List[str]] = {}

    def add(self, ip: IPAddress, hostname: str) -> None:
        """Apply one pair to both tables."""
        self._add_forward(hostname, ip)
        self._add_reverse(str(ip), hostname)

    def add_entry(self, entry: HostEntry) -> None:
        for ip, hostname in entry.pairs():
            self.add(ip, hostname)

    def add_lines(self, lines: Iterable[str]) -> int:
        """Fold every entry of the given lines in, returning the entry count."""
        count = 0
        for entry in parse_lines(lines):
            self.add_entry(entry)
            count += 1
        return count

    def _add_forward(self, hostname: str, ip: IPAddress) -> None:
        ips = self._forward.setdefault(hostname, [])
        if ip in ips:
            return
        ips.append(ip)
        logger.debug(f"added {ip} -> {hostname}")

    def _add_reverse(self, address: str, hostname: str) -> None:
        hosts = self._reverse.setdefault(address, [])
        if hostname in hosts:
            return
        hosts.append(hostname)
        logger.debug(f"added reverse-address {address} -> {hostname}")

    def build(self) -> Snapshot:
        """Freeze the accumulated tables into a Snapshot."""
        return Snapshot(
            forward=MappingProxyType({h: tuple(ips) for h, ips in self._forward.items()}),
            reverse=MappingProxyType({a: tuple(hs) for a, hs in self._reverse.items()}),
        )
