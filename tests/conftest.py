from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Set, Tuple

import pytest

from nr_php_installer.agent_config import AgentConfig, build_agent_config
from nr_php_installer.assertions import (
    ExecAssertion,
    FileAssertion,
    PackageAssertion,
    RepositoryAssertion,
    ServiceAssertion,
)
from nr_php_installer.lib.command import CommandError
from nr_php_installer.logging_utils import SecretFilter
from nr_php_installer.probes import ProbeResult, ProbeStatus

LICENSE = "0123456789abcdef0123456789abcdef01234567"


@pytest.fixture(autouse=True)
def isolated_logging():
    root = logging.getLogger()
    level = root.level
    yield
    for h in list(root.handlers):
        if any(isinstance(f, SecretFilter) for f in h.filters):
            root.removeHandler(h)
            h.close()
    root.setLevel(level)
    for attr in ("_nr_php_configured", "_nr_php_log_path", "_nr_php_secret_filter"):
        if hasattr(root, attr):
            delattr(root, attr)


@pytest.fixture
def make_config():
    def _make(**params: Any) -> AgentConfig:
        params.setdefault("license_key", LICENSE)
        params.setdefault("platform_family", "debian")
        return build_agent_config(params)

    return _make


class FakeHost:
    """In-memory host. Applying an assertion changes the fake state, so a second
    converge over the same host sees everything satisfied."""

    def __init__(self, *, installer_creates: Tuple[str, ...] = ()) -> None:
        self.repos: Set[str] = set()
        self.packages: Dict[str, str] = {}
        self.files: Dict[str, str] = {}
        self.services: Dict[str, Tuple[bool, bool]] = {}
        self.calls: List[str] = []
        self.installer_creates = installer_creates
        self.exec_error: Optional[Exception] = None
        self.probe_override: Optional[ProbeResult] = None

    def check_repository(self, a: RepositoryAssertion) -> bool:
        return a.name in self.repos

    def apply_repository(self, a: RepositoryAssertion) -> None:
        self.calls.append(a.ref)
        self.repos.add(a.name)

    def check_package(self, a: PackageAssertion) -> bool:
        return a.name in self.packages

    def apply_package(self, a: PackageAssertion) -> None:
        self.calls.append(a.ref)
        self.packages[a.name] = a.ensure

    def probe_exec(self, a: ExecAssertion) -> ProbeResult:
        if self.probe_override is not None:
            return self.probe_override
        assert a.probe is not None
        content = self.files.get(a.probe.ini_path)
        if content is not None and a.probe.license_key in content:
            return ProbeResult(ProbeStatus.SATISFIED)
        return ProbeResult(ProbeStatus.NEEDS_APPLY)

    def run_exec(self, a: ExecAssertion) -> None:
        self.calls.append(a.ref)
        if self.exec_error is not None:
            raise self.exec_error
        assert a.probe is not None
        self.files[a.probe.ini_path] = f'newrelic.license = "{a.environment["NR_INSTALL_KEY"]}"\n'
        for p in self.installer_creates:
            self.files[p] = "; installer copy\n"

    def check_file(self, a: FileAssertion) -> bool:
        if a.ensure == "absent":
            return a.path not in self.files
        return self.files.get(a.path) == a.content

    def apply_file(self, a: FileAssertion) -> None:
        self.calls.append(a.ref)
        if a.ensure == "absent":
            self.files.pop(a.path, None)
        else:
            self.files[a.path] = a.content or ""

    def check_service(self, a: ServiceAssertion) -> bool:
        return self.services.get(a.name, (False, False)) == (a.ensure == "running", a.enable)

    def apply_service(self, a: ServiceAssertion) -> bool:
        self.calls.append(a.ref)
        was_running = self.services.get(a.name, (False, False))[0]
        self.services[a.name] = (a.ensure == "running", a.enable)
        return a.ensure == "running" and not was_running

    def restart_service(self, a: ServiceAssertion) -> None:
        self.calls.append(f"restart:{a.name}")


@pytest.fixture
def fake_host():
    return FakeHost


@pytest.fixture
def installer_missing():
    return CommandError(["newrelic-install", "install"], 127, "No such file or directory")
