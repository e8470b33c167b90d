from __future__ import annotations

import logging

from .command import run_cmd

logger = logging.getLogger(__name__)


def is_active(name: str) -> bool:
    return run_cmd(["systemctl", "is-active", "--quiet", name], check=False).returncode == 0


def is_enabled(name: str) -> bool:
    return run_cmd(["systemctl", "is-enabled", "--quiet", name], check=False).returncode == 0


def set_running(name: str, running: bool, *, dry_run: bool = False) -> None:
    run_cmd(["systemctl", "start" if running else "stop", name], dry_run=dry_run)


def set_enabled(name: str, enabled: bool, *, dry_run: bool = False) -> None:
    run_cmd(["systemctl", "enable" if enabled else "disable", name], dry_run=dry_run)


def restart(name: str, *, dry_run: bool = False) -> None:
    logger.info("Restarting %s", name)
    run_cmd(["systemctl", "restart", name], dry_run=dry_run)
