#!/usr/bin/env python3
"""
etchosts CLI tool.
Loads the hosts tables and answers lookups, or watches the sources and prints
the table after every refresh.
"""

import argparse
import logging
import sys
import threading
from pathlib import Path

from dnslib import QTYPE

from config import get_config
from etchosts import EtcHostsContainer
from models import parse_address
from network_utils import reverse_addr


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stderr)
        ]
    )


def print_table(table):
    if not table:
        print("No host entries found.")
        return
    for address, hostnames in table.items():
        print(f"{address:<40} {' '.join(hostnames)}")


def lookup_command(args, container: EtcHostsContainer):
    """Forward lookup of a hostname."""
    qtype = args.qtype.upper()
    if qtype not in QTYPE.reverse:
        print(f"❌ Unknown query type: {args.qtype}")
        return False

    ips = container.process(args.host, QTYPE.reverse[qtype])
    if not ips:
        print(f"❌ {args.host}: not found")
        return False

    for ip in ips:
        print(ip)
    return True


def reverse_command(args, container: EtcHostsContainer):
    """Reverse lookup of an arpa name or address literal."""
    name = args.name
    ip = parse_address(name)
    if ip is not None:
        name = reverse_addr(ip)

    hosts = container.process_reverse(name, QTYPE.PTR)
    if not hosts:
        print(f"❌ {args.name}: not found")
        return False

    for host in hosts:
        print(host)
    return True


def list_command(args, container: EtcHostsContainer):
    """List the address -> hostnames table."""
    print_table(container.list_hosts())
    return True


def watch_command(args, container: EtcHostsContainer):
    """Print the table after every refresh until interrupted."""
    def on_changed():
        print(f"\n🔄 Hosts table refreshed (generation {container.store.generation})")
        print_table(container.list_hosts())

    container.set_on_changed(on_changed)
    if not container.start():
        print("⚠️  Watching unavailable, showing a static table")
        return True

    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        pass
    finally:
        container.close()
    return True


def main():
    """Main CLI function."""
    parser = argparse.ArgumentParser(
        description="etchosts - hostname tables from the system hosts file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Forward lookup:   etchosts lookup router.lan
  AAAA lookup:      etchosts lookup router.lan --qtype AAAA
  Reverse lookup:   etchosts reverse 4.1.168.192.in-addr.arpa
  List table:       etchosts list --hosts-dir /tmp/hosts
  Watch changes:    etchosts watch
        """
    )

    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose output')
    parser.add_argument('--config', help='Configuration file (key=value)')
    parser.add_argument('--hosts-file', help='Primary hosts file')
    parser.add_argument('--hosts-dir', action='append', default=[],
                        help='Override directory (repeatable)')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    lookup_parser = subparsers.add_parser('lookup', help='Forward lookup')
    lookup_parser.add_argument('host', help='Hostname')
    lookup_parser.add_argument('--qtype', default='A', help='Query type (default: A)')

    reverse_parser = subparsers.add_parser('reverse', help='Reverse (PTR) lookup')
    reverse_parser.add_argument('name', help='Arpa name or IP address')

    subparsers.add_parser('list', help='List address -> hostnames table')
    subparsers.add_parser('watch', help='Watch sources and print every refresh')

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    config = get_config(Path(args.config) if args.config else None)
    if args.verbose:
        setup_logging(verbose=True)
    else:
        config.setup_logging()
    if args.hosts_file:
        config.hosts_file = Path(args.hosts_file)
    config.hosts_dirs.extend(Path(d) for d in args.hosts_dir)

    issues = config.validate()
    if issues:
        for issue in issues:
            print(f"❌ {issue}")
        return 1

    try:
        container = EtcHostsContainer(config)

        commands = {
            'lookup': lookup_command,
            'reverse': reverse_command,
            'list': list_command,
            'watch': watch_command,
        }

        success = commands[args.command](args, container)
        return 0 if success else 1

    except KeyboardInterrupt:
        print("\n\n⚠️  Operation cancelled by user.")
        return 1
    except Exception as e:
        print(f"❌ Unexpected error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
