from __future__ import annotations

import logging
from typing import List

from .agent_config import AgentConfig
from .assertions import (
    ExecAssertion,
    FileAssertion,
    PackageAssertion,
    RepositoryAssertion,
    ResourceAssertion,
    ServiceAssertion,
)
from .plan import Plan, plan_from
from .probes import LicenseKeyProbe
from .templates import render_agent_ini, render_daemon_cfg

logger = logging.getLogger(__name__)

REPO_NAME = "newrelic"
INSTALL_EXEC = "newrelic-install"
INSTALL_COMMAND = ("newrelic-install", "install")

# startup_mode -> (daemon cfg ensure, service ensure, service enable)
MODE_TABLE = {
    "agent": ("absent", "stopped", False),
    "external": ("file", "running", True),
}


def resolve(config: AgentConfig) -> Plan:
    """Derive the desired-state plan for one convergence run.

    Pure and deterministic: the same config always yields the same plan.
    """

    out: List[ResourceAssertion] = []

    pkg_requires: tuple[str, ...] = ()
    if config.manage_repo:
        repo = RepositoryAssertion(name=REPO_NAME)
        out.append(repo)
        pkg_requires = (repo.ref,)

    packages = [PackageAssertion(name=p, ensure="installed", requires=pkg_requires) for p in config.extra_packages]
    packages.append(PackageAssertion(name=config.package_name, ensure=config.package_ensure, requires=pkg_requires))
    out.extend(packages)

    install = ExecAssertion(
        name=INSTALL_EXEC,
        command=INSTALL_COMMAND,
        environment={"NR_INSTALL_SILENT": "1", "NR_INSTALL_KEY": config.license_key},
        path=config.exec_path,
        probe=LicenseKeyProbe(ini_path=config.ini_path, license_key=config.license_key),
        secret_env=("NR_INSTALL_KEY",),
        requires=tuple(p.ref for p in packages),
    )
    out.append(install)

    out.append(
        FileAssertion(
            path=config.ini_path,
            content=render_agent_ini(config.all_ini_settings, license_key=config.license_key),
            secret=True,
            requires=(install.ref,),
        )
    )

    cfg_ensure, svc_ensure, svc_enable = MODE_TABLE[config.startup_mode]
    service_ref = f"{ServiceAssertion.kind}:{config.daemon_service_name}"

    if cfg_ensure == "file":
        daemon_cfg = FileAssertion(
            path=config.daemon_cfg_path,
            content=render_daemon_cfg(config.daemon_settings),
            requires=(install.ref,),
            notifies=(service_ref,),
        )
    else:
        daemon_cfg = FileAssertion(path=config.daemon_cfg_path, ensure="absent", requires=(install.ref,))
    out.append(daemon_cfg)

    for path in config.purge_files:
        out.append(FileAssertion(path=path, ensure="absent", requires=(install.ref,)))

    out.append(
        ServiceAssertion(
            name=config.daemon_service_name,
            ensure=svc_ensure,
            enable=svc_enable,
            requires=(daemon_cfg.ref,),
        )
    )

    plan = plan_from(out)
    logger.info("Resolved %d assertions (mode=%s)", len(plan.assertions), config.startup_mode)
    return plan
