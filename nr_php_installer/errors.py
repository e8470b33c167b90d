from __future__ import annotations


class ConfigError(ValueError):
    """Invalid or incomplete agent configuration."""


class PlanError(ValueError):
    """Malformed assertion graph (dangling reference or cycle)."""


class ProbeError(RuntimeError):
    """A current-state probe could not determine the host state."""
