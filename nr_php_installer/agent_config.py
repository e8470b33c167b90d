from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Literal, Mapping, Optional, Tuple

from .errors import ConfigError
from .lib.env import PATHS
from .os_defaults import OsDefaultsProvider, StaticOsDefaults, detect_platform_family

logger = logging.getLogger(__name__)

StartupMode = Literal["agent", "external"]
STARTUP_MODES: Tuple[str, ...] = ("agent", "external")

ProbeFailurePolicy = Literal["error", "apply"]
PROBE_FAILURE_POLICIES: Tuple[str, ...] = ("error", "apply")

KNOWN_KEYS = frozenset(
    {
        "license_key",
        "conf_dir",
        "package_name",
        "daemon_service_name",
        "package_ensure",
        "startup_mode",
        "extra_packages",
        "ini_settings",
        "extra_ini_settings",
        "daemon_settings",
        "purge_files",
        "exec_path",
        "manage_repo",
        "daemon_cfg_path",
        "probe_failure_policy",
        "platform_family",
    }
)


def merge_ini_settings(defaults: Mapping[str, str], overrides: Mapping[str, str]) -> Dict[str, str]:
    """Right-biased merge: keys in ``overrides`` win over ``defaults``."""

    merged = dict(defaults)
    merged.update(overrides)
    return merged


@dataclass(frozen=True)
class AgentConfig:
    """Resolved parameter set for one convergence run."""

    license_key: str = field(repr=False)
    conf_dir: str
    package_name: str
    daemon_service_name: str
    platform_family: str
    package_ensure: str = "present"
    startup_mode: StartupMode = "agent"
    extra_packages: Tuple[str, ...] = ()
    ini_settings: Mapping[str, str] = field(default_factory=dict)
    extra_ini_settings: Mapping[str, str] = field(default_factory=dict)
    daemon_settings: Mapping[str, str] = field(default_factory=dict)
    purge_files: Tuple[str, ...] = ()
    exec_path: str = PATHS.exec_path_default
    manage_repo: bool = False
    daemon_cfg_path: str = PATHS.daemon_cfg
    probe_failure_policy: ProbeFailurePolicy = "error"

    def __post_init__(self) -> None:
        # Freeze the mapping fields so the config cannot drift mid-run.
        for name in ("ini_settings", "extra_ini_settings", "daemon_settings"):
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))
        object.__setattr__(self, "extra_packages", tuple(self.extra_packages))
        object.__setattr__(self, "purge_files", tuple(self.purge_files))
        validate_agent_config(self)

    @property
    def ini_path(self) -> str:
        return str(Path(self.conf_dir) / "newrelic.ini")

    @property
    def all_ini_settings(self) -> Dict[str, str]:
        return merge_ini_settings(self.extra_ini_settings, self.ini_settings)


def _require_absolute(name: str, value: str) -> None:
    if not value or not value.startswith("/"):
        raise ConfigError(f"{name} must be an absolute path, got {value!r}")


def validate_agent_config(cfg: AgentConfig) -> None:
    if not isinstance(cfg.license_key, str) or not cfg.license_key.strip():
        raise ConfigError("license_key is required")

    if cfg.startup_mode not in STARTUP_MODES:
        raise ConfigError(
            f"startup_mode must be one of {', '.join(STARTUP_MODES)}, got {cfg.startup_mode!r}"
        )

    if cfg.probe_failure_policy not in PROBE_FAILURE_POLICIES:
        raise ConfigError(
            f"probe_failure_policy must be one of {', '.join(PROBE_FAILURE_POLICIES)}, "
            f"got {cfg.probe_failure_policy!r}"
        )

    _require_absolute("conf_dir", cfg.conf_dir)
    _require_absolute("daemon_cfg_path", cfg.daemon_cfg_path)
    for p in cfg.purge_files:
        _require_absolute("purge_files entry", p)

    for name in ("package_name", "daemon_service_name", "package_ensure", "exec_path"):
        if not str(getattr(cfg, name) or "").strip():
            raise ConfigError(f"{name} must not be empty")

    # Each resource may be asserted only once.
    if len(set(cfg.extra_packages)) != len(cfg.extra_packages) or cfg.package_name in cfg.extra_packages:
        raise ConfigError("extra_packages must be unique and must not repeat package_name")
    if len(set(cfg.purge_files)) != len(cfg.purge_files):
        raise ConfigError("purge_files must be unique")
    managed = {cfg.ini_path, cfg.daemon_cfg_path}
    clash = sorted(managed.intersection(cfg.purge_files))
    if clash or cfg.ini_path == cfg.daemon_cfg_path:
        raise ConfigError(f"purge_files must not include managed files: {', '.join(clash) or cfg.ini_path}")


def _as_str_mapping(name: str, value: Any) -> Dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"{name} must be a mapping, got {type(value).__name__}")
    return {str(k): _ini_value(v) for k, v in value.items()}


def _ini_value(v: Any) -> str:
    # YAML booleans come back as bool; the agent expects lowercase literals.
    if isinstance(v, bool):
        return "true" if v else "false"
    return str(v)


def _as_str_list(name: str, value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple)):
        raise ConfigError(f"{name} must be a list, got {type(value).__name__}")
    return tuple(str(v) for v in value)


def build_agent_config(
    params: Mapping[str, Any],
    *,
    defaults_provider: Optional[OsDefaultsProvider] = None,
    os_release_path: str = PATHS.os_release,
) -> AgentConfig:
    """Layer caller params over OS defaults and validate the result.

    Raises ConfigError before anything is resolved.
    """

    unknown = sorted(set(params) - KNOWN_KEYS)
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")

    provider = defaults_provider or StaticOsDefaults()
    family = params.get("platform_family") or detect_platform_family(os_release_path)
    osd = provider.defaults_for(str(family))

    def pick(key: str, default: Any) -> Any:
        v = params.get(key)
        return default if v is None else v

    manage_repo = pick("manage_repo", False)
    if not isinstance(manage_repo, bool):
        raise ConfigError(f"manage_repo must be a boolean, got {manage_repo!r}")

    cfg = AgentConfig(
        license_key=str(params.get("license_key") or ""),
        conf_dir=str(pick("conf_dir", osd.conf_dir)),
        package_name=str(pick("package_name", osd.package_name)),
        daemon_service_name=str(pick("daemon_service_name", osd.daemon_service_name)),
        platform_family=str(family),
        package_ensure=str(pick("package_ensure", "present")),
        startup_mode=pick("startup_mode", "agent"),
        extra_packages=_as_str_list("extra_packages", pick("extra_packages", osd.extra_packages)),
        ini_settings=_as_str_mapping("ini_settings", params.get("ini_settings")),
        extra_ini_settings=_as_str_mapping(
            "extra_ini_settings", pick("extra_ini_settings", osd.extra_ini_settings)
        ),
        daemon_settings=_as_str_mapping("daemon_settings", pick("daemon_settings", osd.daemon_settings)),
        purge_files=_as_str_list("purge_files", pick("purge_files", osd.purge_files)),
        exec_path=str(pick("exec_path", PATHS.exec_path_default)),
        manage_repo=manage_repo,
        daemon_cfg_path=str(pick("daemon_cfg_path", PATHS.daemon_cfg)),
        probe_failure_policy=pick("probe_failure_policy", "error"),
    )

    logger.info(
        "Agent config resolved (family=%s mode=%s package=%s conf_dir=%s)",
        cfg.platform_family,
        cfg.startup_mode,
        cfg.package_name,
        cfg.conf_dir,
    )
    return cfg


def load_config_file(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.is_file():
        raise ConfigError(f"config file not found: {path}")

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ConfigError("agent config must be YAML")

    try:
        import yaml  # type: ignore
    except Exception as e:
        raise RuntimeError("PyYAML is required to read the agent config") from e

    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"{path} is not valid YAML: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a mapping/object")
    return raw


def load_agent_config(
    path: Optional[str],
    *,
    overrides: Optional[Mapping[str, Any]] = None,
    defaults_provider: Optional[OsDefaultsProvider] = None,
    os_release_path: str = PATHS.os_release,
) -> AgentConfig:
    """Load a YAML config file (optional) and apply non-None overrides on top."""

    params: Dict[str, Any] = load_config_file(path) if path else {}
    for k, v in (overrides or {}).items():
        if v is not None:
            params[k] = v
    return build_agent_config(params, defaults_provider=defaults_provider, os_release_path=os_release_path)
