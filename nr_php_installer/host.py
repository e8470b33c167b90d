from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from .assertions import ExecAssertion, FileAssertion, PackageAssertion, RepositoryAssertion, ServiceAssertion
from .lib import files, pkg, repo, service
from .lib.command import run_cmd
from .probes import ProbeResult, ProbeStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SystemHost:
    """Host operations against the local machine (apt/yum, systemd, filesystem)."""

    family: str
    dry_run: bool = False

    def check_repository(self, a: RepositoryAssertion) -> bool:
        return repo.repo_configured(family=self.family)

    def apply_repository(self, a: RepositoryAssertion) -> None:
        repo.configure_repo(family=self.family, dry_run=self.dry_run)

    def check_package(self, a: PackageAssertion) -> bool:
        return pkg.package_satisfied(a.name, a.ensure, family=self.family)

    def apply_package(self, a: PackageAssertion) -> None:
        pkg.install_package(a.name, a.ensure, family=self.family, dry_run=self.dry_run)

    def probe_exec(self, a: ExecAssertion) -> ProbeResult:
        if a.probe is None:
            return ProbeResult(ProbeStatus.NEEDS_APPLY, "no check configured")
        res = a.probe.check()
        logger.debug("Probe %s -> %s (%s)", a.ref, res.status.value, res.detail)
        return res

    def run_exec(self, a: ExecAssertion) -> None:
        secrets = [a.environment[k] for k in a.secret_env if k in a.environment]
        run_cmd(a.command, env=a.environment, path=a.path, secrets=secrets, dry_run=self.dry_run)

    def check_file(self, a: FileAssertion) -> bool:
        if a.ensure == "absent":
            return not Path(a.path).exists()
        return files.file_matches(a.path, a.content or "")

    def apply_file(self, a: FileAssertion) -> None:
        if a.ensure == "absent":
            files.remove_file(a.path, dry_run=self.dry_run)
        else:
            files.write_file(a.path, a.content or "", mode=a.mode, dry_run=self.dry_run)

    def check_service(self, a: ServiceAssertion) -> bool:
        running = a.ensure == "running"
        return service.is_active(a.name) == running and service.is_enabled(a.name) == a.enable

    def apply_service(self, a: ServiceAssertion) -> bool:
        running = a.ensure == "running"
        started = False
        if service.is_active(a.name) != running:
            service.set_running(a.name, running, dry_run=self.dry_run)
            started = running
        if service.is_enabled(a.name) != a.enable:
            service.set_enabled(a.name, a.enable, dry_run=self.dry_run)
        return started

    def restart_service(self, a: ServiceAssertion) -> None:
        service.restart(a.name, dry_run=self.dry_run)
