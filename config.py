#!/usr/bin/env python3
"""
Configuration management for etchosts.
Resolves watched paths once at construction, with file and environment overrides.
"""

import os
import logging
import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

# OpenWrt's dnsmasq drops generated hosts files here, e.g. /tmp/hosts/dhcp.cfg01411c
OPENWRT_HOSTS_DIR = Path("/tmp/hosts")

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def default_hosts_file() -> Path:
    """Return the platform's system hosts file."""
    if platform.system().lower() == "windows":
        system_root = os.environ.get("SystemRoot", r"C:\Windows")
        return Path(system_root) / "system32" / "drivers" / "etc" / "hosts"
    return Path("/etc/hosts")


def detect_openwrt(etc_dir: Path = Path("/etc")) -> bool:
    """Check the *release files under etc_dir for an OpenWrt marker."""
    if platform.system().lower() != "linux":
        return False

    try:
        candidates = sorted(etc_dir.glob("*release"))
    except OSError as e:
        logger.debug(f"Cannot list {etc_dir}: {e}")
        return False

    for candidate in candidates:
        try:
            if "OpenWrt" in candidate.read_text(errors="replace"):
                return True
        except OSError:
            continue
    return False


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _split_dirs(value: str) -> List[Path]:
    return [Path(p) for p in value.split(os.pathsep) if p.strip()]


@dataclass
class EtcHostsConfig:
    """Configuration for the hosts container."""

    # Watched paths
    hosts_file: Path = field(default_factory=default_hosts_file)
    hosts_dirs: List[Path] = field(default_factory=list)

    # Watcher settings
    watch_enabled: bool = True
    event_queue_size: int = 2

    # Logging
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    def apply_platform(self, is_openwrt: bool) -> None:
        """Add the override directories a platform description implies."""
        if is_openwrt and OPENWRT_HOSTS_DIR not in self.hosts_dirs:
            self.hosts_dirs = self.hosts_dirs + [OPENWRT_HOSTS_DIR]

    @classmethod
    def from_env(cls) -> 'EtcHostsConfig':
        """Load configuration from environment variables with defaults."""
        log_file = os.getenv("ETCHOSTS_LOG_FILE")
        return cls(
            hosts_file=Path(os.getenv("ETCHOSTS_HOSTS_FILE", str(default_hosts_file()))),
            hosts_dirs=_split_dirs(os.getenv("ETCHOSTS_HOSTS_DIRS", "")),
            watch_enabled=_env_bool("ETCHOSTS_WATCH", "true"),
            event_queue_size=int(os.getenv("ETCHOSTS_QUEUE_SIZE", "2")),
            log_level=os.getenv("ETCHOSTS_LOG_LEVEL", "INFO").upper(),
            log_file=Path(log_file) if log_file else None,
        )

    @classmethod
    def from_file(cls, config_file: Path) -> 'EtcHostsConfig':
        """Load configuration from a file (simple key=value format)."""
        config = cls()

        if not config_file.exists():
            return config

        try:
            with open(config_file, 'r') as f:
                for line in f:
                    line = line.strip()
                    if not line or line.startswith('#') or '=' not in line:
                        continue
                    key, value = line.split('=', 1)
                    key = key.strip().lower()
                    value = value.strip().strip('"\'')

                    if key == 'hosts_file':
                        config.hosts_file = Path(value)
                    elif key == 'hosts_dirs':
                        config.hosts_dirs = _split_dirs(value)
                    elif key == 'watch_enabled':
                        config.watch_enabled = value.lower() == 'true'
                    elif key == 'event_queue_size':
                        config.event_queue_size = int(value)
                    elif key == 'log_level':
                        config.log_level = value.upper()
                    elif key == 'log_file':
                        config.log_file = Path(value) if value else None

        except (OSError, ValueError) as e:
            logger.warning(f"Error reading config file {config_file}: {e}")

        return config

    def save_to_file(self, config_file: Path) -> None:
        """Save current configuration to a file."""
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, 'w') as f:
            f.write("# etchosts configuration file\n\n")
            f.write(f"hosts_file={self.hosts_file}\n")
            f.write(f"hosts_dirs={os.pathsep.join(str(d) for d in self.hosts_dirs)}\n")
            f.write(f"watch_enabled={str(self.watch_enabled).lower()}\n")
            f.write(f"event_queue_size={self.event_queue_size}\n")
            f.write(f"log_level={self.log_level}\n")
            if self.log_file:
                f.write(f"log_file={self.log_file}\n")

    def setup_logging(self) -> None:
        """Setup logging based on configuration."""
        level = getattr(logging, self.log_level.upper(), logging.INFO)

        handlers: List[logging.Handler] = [logging.StreamHandler()]
        if self.log_file:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(self.log_file))

        logging.basicConfig(
            level=level,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            handlers=handlers
        )

    def validate(self) -> List[str]:
        """Validate configuration and return list of issues."""
        issues = []

        if not self.hosts_file.parent.exists():
            issues.append(f"Hosts file directory does not exist: {self.hosts_file.parent}")

        if self.event_queue_size < 1:
            issues.append("event_queue_size must be at least 1")

        if self.log_level not in VALID_LOG_LEVELS:
            issues.append(f"Invalid log level: {self.log_level}")

        return issues


def get_config(config_file: Optional[Path] = None,
               is_openwrt: Optional[Callable[[], bool]] = None) -> EtcHostsConfig:
    """Get configuration with precedence: env vars > config file > defaults."""
    if config_file is None:
        config_file = Path.home() / ".etchosts" / "config.ini"

    if config_file.exists():
        config = EtcHostsConfig.from_file(config_file)
    else:
        config = EtcHostsConfig()

    # Env takes precedence where it differs from the defaults
    env_config = EtcHostsConfig.from_env()
    defaults = EtcHostsConfig()
    for field_name in config.__dataclass_fields__:
        env_value = getattr(env_config, field_name)
        if env_value != getattr(defaults, field_name):
            setattr(config, field_name, env_value)

    check = is_openwrt if is_openwrt is not None else detect_openwrt
    config.apply_platform(check())

    issues = config.validate()
    if issues:
        logger.warning(f"Configuration issues found: {issues}")

    return config
