from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Paths:
    os_release: str = "/etc/os-release"
    daemon_cfg: str = "/etc/newrelic/newrelic.cfg"
    state_default: str = "/var/lib/nr-php-installer/state.json"
    log_default: str = "/var/log/nr-php-installer.log"
    exec_path_default: str = "/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin"


PATHS = Paths()
