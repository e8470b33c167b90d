from __future__ import annotations

import logging

from .command import run_cmd
from .files import file_matches, write_file

logger = logging.getLogger(__name__)

APT_SOURCE_PATH = "/etc/apt/sources.list.d/newrelic.list"
APT_KEY_URL = "https://download.newrelic.com/548C16BF.gpg"
APT_KEYRING_PATH = "/usr/share/keyrings/newrelic.gpg"
YUM_REPO_PATH = "/etc/yum.repos.d/newrelic.repo"


def apt_source_line(*, keyring: str = APT_KEYRING_PATH) -> str:
    return f"deb [signed-by={keyring}] http://apt.newrelic.com/debian/ newrelic non-free\n"


def yum_repo_file() -> str:
    return "\n".join(
        [
            "[newrelic]",
            "name=New Relic packages for Enterprise Linux",
            "baseurl=https://yum.newrelic.com/pub/newrelic/el5/$basearch",
            "enabled=1",
            "gpgcheck=1",
            "gpgkey=https://download.newrelic.com/548C16BF.gpg",
            "",
        ]
    )


def repo_configured(*, family: str) -> bool:
    if family == "debian":
        return file_matches(APT_SOURCE_PATH, apt_source_line())
    return file_matches(YUM_REPO_PATH, yum_repo_file())


def configure_repo(*, family: str, dry_run: bool = False) -> None:
    """Make the vendor packages installable.

    Debian: fetch the signing key, write the apt source and refresh the index.
    RedHat: write the yum repo definition (yum fetches the key on first use).
    """

    if family == "debian":
        run_cmd(
            ["sh", "-c", f"curl -fsSL {APT_KEY_URL} | gpg --dearmor --yes -o {APT_KEYRING_PATH}"],
            dry_run=dry_run,
        )
        write_file(APT_SOURCE_PATH, apt_source_line(), dry_run=dry_run)
        run_cmd(["apt-get", "update"], dry_run=dry_run)
    else:
        write_file(YUM_REPO_PATH, yum_repo_file(), dry_run=dry_run)

    logger.info("Configured New Relic package repository (%s)", family)
