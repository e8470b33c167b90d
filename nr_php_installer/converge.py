"""Reference convergence driver.

Applies a resolved Plan to a host in dependency order. Assertions already in
their desired state are left alone; a failure blocks everything that depends
on the failed assertion but nothing is retried or rolled back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol, Set, Tuple

from .assertions import (
    ExecAssertion,
    FileAssertion,
    PackageAssertion,
    RepositoryAssertion,
    ResourceAssertion,
    ServiceAssertion,
)
from .errors import ProbeError
from .plan import Plan
from .probes import ProbeResult, ProbeStatus

logger = logging.getLogger(__name__)


class Host(Protocol):
    def check_repository(self, a: RepositoryAssertion) -> bool:
        ...

    def apply_repository(self, a: RepositoryAssertion) -> None:
        ...

    def check_package(self, a: PackageAssertion) -> bool:
        ...

    def apply_package(self, a: PackageAssertion) -> None:
        ...

    def probe_exec(self, a: ExecAssertion) -> ProbeResult:
        ...

    def run_exec(self, a: ExecAssertion) -> None:
        ...

    def check_file(self, a: FileAssertion) -> bool:
        ...

    def apply_file(self, a: FileAssertion) -> None:
        ...

    def check_service(self, a: ServiceAssertion) -> bool:
        ...

    def apply_service(self, a: ServiceAssertion) -> bool:
        """Returns True when this call started the service."""
        ...

    def restart_service(self, a: ServiceAssertion) -> None:
        ...


@dataclass(frozen=True)
class ConvergeResult:
    changed: List[str]
    unchanged: List[str]
    failed: List[str]
    blocked: List[str]
    refreshed: List[str] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed and not self.blocked

    def to_dict(self) -> Dict[str, Any]:
        return {
            "changed": list(self.changed),
            "unchanged": list(self.unchanged),
            "failed": list(self.failed),
            "blocked": list(self.blocked),
            "refreshed": list(self.refreshed),
            "errors": list(self.errors),
        }


def _converge_exec(a: ExecAssertion, host: Host, probe_failure_policy: str, *, assume_apply: bool) -> bool:
    if a.probe is not None:
        res = host.probe_exec(a)
        if res.status is ProbeStatus.SATISFIED:
            logger.info("%s: %s, skipping", a.ref, res.detail)
            return False
        if res.status is ProbeStatus.PROBE_FAILED:
            if assume_apply:
                # Dry run: prerequisites were only logged, so the host cannot be probed yet.
                logger.info("%s: %s; would run after prerequisites", a.ref, res.detail)
            elif probe_failure_policy == "error":
                raise ProbeError(f"{a.ref}: probe failed: {res.detail}")
            else:
                logger.warning("%s: probe failed (%s); running anyway", a.ref, res.detail)

    host.run_exec(a)
    return True


def _converge_one(
    a: ResourceAssertion, host: Host, probe_failure_policy: str, *, assume_apply: bool = False
) -> Tuple[bool, bool]:
    """Bring one assertion to its desired state.

    Returns (changed, started): ``started`` is True only when a service was
    started by this call.
    """

    if isinstance(a, ExecAssertion):
        return _converge_exec(a, host, probe_failure_policy, assume_apply=assume_apply), False

    if isinstance(a, ServiceAssertion):
        if host.check_service(a):
            return False, False
        return True, bool(host.apply_service(a))

    if isinstance(a, RepositoryAssertion):
        check, apply = host.check_repository, host.apply_repository
    elif isinstance(a, PackageAssertion):
        check, apply = host.check_package, host.apply_package
    elif isinstance(a, FileAssertion):
        check, apply = host.check_file, host.apply_file
    else:
        raise TypeError(f"Unsupported assertion type: {type(a).__name__}")

    if check(a):
        return False, False
    apply(a)
    return True, False


def converge(
    plan: Plan,
    host: Host,
    *,
    probe_failure_policy: str = "error",
    dry_run: bool = False,
) -> ConvergeResult:
    """Apply ``plan`` to ``host`` in topological order.

    With ``dry_run`` the host only logs changes, so an exec whose probe fails
    after a prerequisite "changed" is reported as would-run instead of failed.
    """

    changed: List[str] = []
    unchanged: List[str] = []
    failed: List[str] = []
    blocked: List[str] = []
    refreshed: List[str] = []
    errors: List[Dict[str, Any]] = []

    doomed: Set[str] = set()

    def _fail(ref: str, e: Exception) -> None:
        failed.append(ref)
        errors.append({"ref": ref, "error": str(e)})
        doomed.update(plan.dependents(ref))

    for a in plan.ordered():
        if a.ref in doomed:
            logger.warning("Skipping %s (dependency failed)", a.ref)
            blocked.append(a.ref)
            continue

        assume_apply = dry_run and any(r in changed for r in plan.prerequisites(a.ref))

        logger.info("Converging %s", a.ref)
        try:
            did_change, started = _converge_one(a, host, probe_failure_policy, assume_apply=assume_apply)
        except Exception as e:
            logger.exception("Failed to converge %s", a.ref)
            _fail(a.ref, e)
            continue

        (changed if did_change else unchanged).append(a.ref)

        # Change notifications: restart a running service when a notifier changed,
        # unless this run just started it.
        if isinstance(a, ServiceAssertion) and a.ensure == "running" and not started:
            triggers = [r for r in plan.notifiers_of(a.ref) if r in changed]
            if triggers:
                logger.info("Refreshing %s (notified by %s)", a.ref, ", ".join(triggers))
                try:
                    host.restart_service(a)
                    refreshed.append(a.ref)
                except Exception as e:
                    logger.exception("Failed to refresh %s", a.ref)
                    (changed if did_change else unchanged).remove(a.ref)
                    _fail(a.ref, e)

    result = ConvergeResult(
        changed=changed,
        unchanged=unchanged,
        failed=failed,
        blocked=blocked,
        refreshed=refreshed,
        errors=errors,
    )
    logger.info(
        "Convergence finished: changed=%d unchanged=%d failed=%d blocked=%d",
        len(changed),
        len(unchanged),
        len(failed),
        len(blocked),
    )
    return result
