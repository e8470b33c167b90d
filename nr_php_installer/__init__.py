"""New Relic PHP agent installer (desired-state, idempotent).

Core design goals:
- Pure resolution of config into a dependency-ordered plan
- Idempotent assertions, re-checked on every run
- No retries and no rollback; failures block only their dependents
- Secrets never reach logs or serialized plans
"""

from .agent_config import AgentConfig, build_agent_config, load_agent_config, merge_ini_settings
from .errors import ConfigError, PlanError, ProbeError
from .resolver import resolve

__all__ = [
    "AgentConfig",
    "ConfigError",
    "PlanError",
    "ProbeError",
    "build_agent_config",
    "load_agent_config",
    "merge_ini_settings",
    "resolve",
]
