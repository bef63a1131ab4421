#!/usr/bin/env python3
"""
Network utilities for etchosts.
Converts between addresses and their in-addr.arpa / ip6.arpa query names.
"""

import ipaddress
import logging
from typing import Optional

from models import IPAddress, parse_address

logger = logging.getLogger(__name__)

ARPA_V4_SUFFIX = ".in-addr.arpa"
ARPA_V6_SUFFIX = ".ip6.arpa"

_HEX_DIGITS = set("0123456789abcdef")


def reverse_addr(ip: IPAddress) -> str:
    """Return the reverse-lookup name for an address, without a trailing dot."""
    return ip.reverse_pointer


def _unreverse_v4(labels: str) -> Optional[IPAddress]:
    octets = labels.split('.')
    if len(octets) != 4:
        return None
    if not all(o.isdigit() and o.isascii() for o in octets):
        return None
    return parse_address('.'.join(reversed(octets)))


def _unreverse_v6(labels: str) -> Optional[IPAddress]:
    nibbles = labels.split('.')
    if len(nibbles) != 32:
        return None
    if not all(len(n) == 1 and n in _HEX_DIGITS for n in nibbles):
        return None

    ip = ipaddress.IPv6Address(int(''.join(reversed(nibbles)), 16))
    # Keyed the same way the tables key IPv4-mapped literals
    if ip.ipv4_mapped is not None:
        return ip.ipv4_mapped
    return ip


def unreverse_addr(name: str) -> Optional[IPAddress]:
    """Convert a reverse-lookup query name back into an address.

    Accepts d.c.b.a.in-addr.arpa and 32-nibble ip6.arpa names, matching the
    suffix case-insensitively with an optional trailing dot. Returns None for
    anything that does not encode a complete address.
    """
    if not name:
        return None

    lowered = name.lower().rstrip('.')

    if lowered.endswith(ARPA_V4_SUFFIX):
        ip = _unreverse_v4(lowered[:-len(ARPA_V4_SUFFIX)])
    elif lowered.endswith(ARPA_V6_SUFFIX):
        ip = _unreverse_v6(lowered[:-len(ARPA_V6_SUFFIX)])
    else:
        ip = None

    if ip is None:
        logger.debug(f"Not a reverse-lookup name: {name!r}")
    return ip
