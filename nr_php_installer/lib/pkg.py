from __future__ import annotations

import logging
from typing import Optional

from .command import run_cmd

logger = logging.getLogger(__name__)

# Ensure values that mean "any version is fine".
UNPINNED = {"present", "installed"}


def installed_version(name: str, *, family: str) -> Optional[str]:
    """Return the installed version of ``name`` or None when absent."""

    if family == "debian":
        r = run_cmd(["dpkg-query", "-W", "-f=${Status} ${Version}", name], check=False)
        if r.returncode != 0 or "install ok installed" not in r.stdout:
            return None
        return r.stdout.rsplit(" ", 1)[-1].strip() or None

    r = run_cmd(["rpm", "-q", "--qf", "%{VERSION}-%{RELEASE}", name], check=False)
    if r.returncode != 0:
        return None
    return r.stdout.strip() or None


def package_satisfied(name: str, ensure: str, *, family: str) -> bool:
    version = installed_version(name, family=family)
    if version is None:
        return False
    if ensure in UNPINNED:
        return True
    if ensure == "latest":
        # Upgrades are left to the package manager; present is good enough here.
        return True
    return version == ensure or version.startswith(ensure + "-")


def install_package(name: str, ensure: str, *, family: str, dry_run: bool = False) -> None:
    pinned = ensure not in UNPINNED and ensure != "latest"

    if family == "debian":
        pkg_arg = f"{name}={ensure}" if pinned else name
        argv = ["apt-get", "install", "-y", "--no-install-recommends", pkg_arg]
        run_cmd(argv, env={"DEBIAN_FRONTEND": "noninteractive"}, dry_run=dry_run)
    else:
        pkg_arg = f"{name}-{ensure}" if pinned else name
        run_cmd(["yum", "install", "-y", pkg_arg], dry_run=dry_run)

    logger.info("Package %s ensured (%s)", name, ensure)
