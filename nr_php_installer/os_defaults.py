from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Protocol, Tuple

from .errors import ConfigError
from .lib.env import PATHS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OsDefaults:
    """Platform-specific default parameters."""

    conf_dir: str
    package_name: str
    daemon_service_name: str
    extra_packages: Tuple[str, ...] = ()
    purge_files: Tuple[str, ...] = ()
    extra_ini_settings: Mapping[str, str] = field(default_factory=dict)
    daemon_settings: Mapping[str, str] = field(default_factory=dict)


class OsDefaultsProvider(Protocol):
    def defaults_for(self, family: str) -> OsDefaults:
        ...


_COMMON_INI = {
    "logfile": '"/var/log/newrelic/php_agent.log"',
    "loglevel": '"info"',
    "daemon.logfile": '"/var/log/newrelic/newrelic-daemon.log"',
    "daemon.location": '"/usr/bin/newrelic-daemon"',
}

_COMMON_DAEMON = {
    "logfile": "/var/log/newrelic/newrelic-daemon.log",
    "loglevel": "info",
    "pidfile": "/var/run/newrelic-daemon.pid",
    "address": "/tmp/.newrelic.sock",
}

DEFAULTS_TABLE: Dict[str, OsDefaults] = {
    "debian": OsDefaults(
        conf_dir="/etc/php5/mods-available",
        package_name="newrelic-php5",
        daemon_service_name="newrelic-daemon",
        extra_packages=("php5-cli",),
        # The installer drops an ini into every SAPI conf.d; the module ini
        # under mods-available is the single source of truth.
        purge_files=(
            "/etc/php5/cli/conf.d/newrelic.ini",
            "/etc/php5/apache2/conf.d/newrelic.ini",
            "/etc/php5/fpm/conf.d/newrelic.ini",
        ),
        extra_ini_settings=dict(_COMMON_INI),
        daemon_settings=dict(_COMMON_DAEMON),
    ),
    "redhat": OsDefaults(
        conf_dir="/etc/php.d",
        package_name="newrelic-php5",
        daemon_service_name="newrelic-daemon",
        extra_packages=("php-cli",),
        purge_files=(),
        extra_ini_settings=dict(_COMMON_INI),
        daemon_settings=dict(_COMMON_DAEMON),
    ),
}


@dataclass(frozen=True)
class StaticOsDefaults:
    """Default provider backed by a fixed table keyed by platform family."""

    table: Mapping[str, OsDefaults] = field(default_factory=lambda: dict(DEFAULTS_TABLE))

    def defaults_for(self, family: str) -> OsDefaults:
        try:
            return self.table[family]
        except KeyError:
            supported = ", ".join(sorted(self.table))
            raise ConfigError(f"Unsupported platform family {family!r} (supported: {supported})") from None


def _read_text(path: Path) -> Optional[str]:
    try:
        txt = path.read_text(encoding="utf-8", errors="ignore").strip()
        return txt or None
    except OSError:
        return None


def parse_os_release(text: str) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        k, v = line.split("=", 1)
        out[k.strip()] = v.strip().strip('"').strip("'")
    return out


def family_from_os_release(info: Mapping[str, str]) -> Optional[str]:
    ids = [info.get("ID", "")] + info.get("ID_LIKE", "").split()
    ids = [i.lower() for i in ids if i]

    for i in ids:
        if i in {"debian", "ubuntu"}:
            return "debian"
        if i in {"rhel", "centos", "fedora", "rocky", "almalinux", "amzn", "ol"}:
            return "redhat"
    return None


def detect_platform_family(os_release_path: str = PATHS.os_release) -> str:
    """Detect the platform family from os-release (debian | redhat)."""

    txt = _read_text(Path(os_release_path))
    if txt is None:
        raise ConfigError(f"Cannot detect platform: {os_release_path} is missing or empty")

    info = parse_os_release(txt)
    family = family_from_os_release(info)
    if family is None:
        raise ConfigError(f"Unsupported platform: ID={info.get('ID')!r} ID_LIKE={info.get('ID_LIKE')!r}")

    logger.info("Detected platform family=%s (ID=%s)", family, info.get("ID"))
    return family
