from __future__ import annotations

from typing import Mapping

INI_SECTION = "newrelic"
INI_PREFIX = "newrelic."

_HEADER_INI = "; Managed by nr-php-installer. Local changes will be overwritten."
_HEADER_CFG = "# Managed by nr-php-installer. Local changes will be overwritten."


def render_agent_ini(settings: Mapping[str, str], *, license_key: str) -> str:
    """Render {conf_dir}/newrelic.ini.

    Every setting is written as ``newrelic.<key> = <value>`` in the single
    [newrelic] section. The license comes from ``license_key`` unless a
    ``license`` setting overrides it.
    """

    values = dict(settings)
    values.setdefault("license", f'"{license_key}"')

    lines = [
        _HEADER_INI,
        f"[{INI_SECTION}]",
        'extension = "newrelic.so"',
    ]
    for key in sorted(values):
        lines.append(f"{INI_PREFIX}{key} = {values[key]}")
    lines.append("")
    return "\n".join(lines)


def render_daemon_cfg(settings: Mapping[str, str]) -> str:
    lines = [_HEADER_CFG]
    for key in sorted(settings):
        lines.append(f"{key}={settings[key]}")
    lines.append("")
    return "\n".join(lines)
