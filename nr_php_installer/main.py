from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Any, Dict, Optional

from .agent_config import STARTUP_MODES, AgentConfig, load_agent_config
from .converge import ConvergeResult, converge
from .errors import ConfigError
from .host import SystemHost
from .lib.env import PATHS
from .logging_utils import DEFAULT_LOG_PATH, configure_logging, register_secret
from .resolver import resolve
from .state_store import ensure_defaults, load_state, record_run, save_state

logger = logging.getLogger(__name__)

LICENSE_ENV = "NEWRELIC_LICENSE_KEY"


def config_summary(cfg: AgentConfig) -> Dict[str, Any]:
    return {
        "platform_family": cfg.platform_family,
        "startup_mode": cfg.startup_mode,
        "package_name": cfg.package_name,
        "package_ensure": cfg.package_ensure,
        "conf_dir": cfg.conf_dir,
        "daemon_service_name": cfg.daemon_service_name,
        "manage_repo": cfg.manage_repo,
    }


def run(
    cfg: AgentConfig,
    *,
    state_path: str = PATHS.state_default,
    dry_run: bool = False,
) -> ConvergeResult:
    """Resolve the plan for ``cfg`` and converge the local host, persisting the run record."""

    plan = resolve(cfg)
    host = SystemHost(family=cfg.platform_family, dry_run=dry_run)
    state = ensure_defaults(load_state(state_path))

    result: Optional[ConvergeResult] = None
    try:
        result = converge(plan, host, probe_failure_policy=cfg.probe_failure_policy, dry_run=dry_run)
        return result
    finally:
        outcome = result.to_dict() if result is not None else {"failed": ["<driver>"], "blocked": []}
        record_run(state, summary=config_summary(cfg), result=outcome, dry_run=dry_run)
        save_state(state_path, state)


def _load_from_args(args: argparse.Namespace) -> AgentConfig:
    overrides = {
        "license_key": args.license_key or os.environ.get(LICENSE_ENV),
        "startup_mode": args.startup_mode,
        "platform_family": args.platform,
    }
    cfg = load_agent_config(args.config, overrides=overrides, os_release_path=args.os_release)
    register_secret(cfg.license_key)
    return cfg


def cmd_validate(args: argparse.Namespace) -> int:
    cfg = _load_from_args(args)
    print(json.dumps(config_summary(cfg), indent=2, sort_keys=True))
    return 0


def cmd_plan(args: argparse.Namespace) -> int:
    cfg = _load_from_args(args)
    plan = resolve(cfg)
    print(json.dumps(plan.to_dict(), indent=2))
    return 0


def cmd_apply(args: argparse.Namespace) -> int:
    cfg = _load_from_args(args)
    result = run(cfg, state_path=args.state, dry_run=bool(args.dry_run))
    if not result.ok:
        logger.error("Run finished with failures: failed=%s blocked=%s", result.failed, result.blocked)
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="nr-php-installer")
    p.add_argument("--config", default=None, help="Agent config (YAML)")
    p.add_argument("--license-key", default=None, help=f"License key (default: ${LICENSE_ENV})")
    p.add_argument("--startup-mode", default=None, help=f"One of: {', '.join(STARTUP_MODES)}")
    p.add_argument("--platform", default=None, help="Platform family (debian|redhat); detected when omitted")
    p.add_argument("--os-release", default=PATHS.os_release, help=argparse.SUPPRESS)
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to the run log")

    sub = p.add_subparsers(dest="subcmd", required=True)

    sp = sub.add_parser("validate", help="Validate the config and print the resolved settings")
    sp.set_defaults(func=cmd_validate)

    sp = sub.add_parser("plan", help="Print the resolved assertion plan as JSON")
    sp.set_defaults(func=cmd_plan)

    sp = sub.add_parser("apply", help="Converge this host to the plan")
    sp.add_argument("--state", default=PATHS.state_default, help="Path to run state (json|yaml)")
    sp.add_argument("--dry-run", action="store_true", help="Log commands without executing them")
    sp.set_defaults(func=cmd_apply)

    return p


def main(argv: Optional[list[str]] = None) -> int:
    p = build_parser()
    args = p.parse_args(argv)
    configure_logging(log_path=args.log)
    try:
        return int(args.func(args))
    except ConfigError as e:
        logger.error("Invalid configuration: %s", e)
        print(f"error: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
