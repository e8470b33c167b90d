from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)

STATE_VERSION = 1


def _detect_format(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    if ext in {"json", "yaml", "yml"}:
        return ext
    # Default to JSON for unknown extensions.
    return "json"


def _yaml():
    try:
        import yaml  # type: ignore
    except Exception as e:  # pragma: no cover
        raise RuntimeError("YAML state requested but PyYAML is not available. Use a .json state path.") from e
    return yaml


def load_state(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        return {}

    txt = p.read_text(encoding="utf-8")
    if _detect_format(p) in {"yaml", "yml"}:
        data = _yaml().safe_load(txt) or {}
    else:
        data = json.loads(txt)

    if not isinstance(data, dict):
        raise ValueError(f"State file must be an object/dict, got {type(data)}")

    return data


def save_state(path: str, state: Dict[str, Any]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    if _detect_format(p) in {"yaml", "yml"}:
        p.write_text(_yaml().safe_dump(state, sort_keys=False) + "\n", encoding="utf-8")
    else:
        p.write_text(json.dumps(state, indent=2, sort_keys=True) + "\n", encoding="utf-8")


def ensure_defaults(state: Dict[str, Any]) -> Dict[str, Any]:
    """Fill required keys with defaults (without overriding stored values)."""

    state.setdefault("version", STATE_VERSION)
    state.setdefault("last_run", None)
    state.setdefault("history", [])
    return state


def record_run(
    state: Dict[str, Any],
    *,
    summary: Dict[str, Any],
    result: Dict[str, Any],
    dry_run: bool,
    keep: int = 10,
) -> Dict[str, Any]:
    """Store the outcome of one run as ``last_run`` and append a short history entry."""

    ensure_defaults(state)
    run = {
        "finished_at": time.strftime("%Y-%m-%dT%H:%M:%S%z"),
        "dry_run": dry_run,
        "config": summary,
        "result": result,
    }
    state["last_run"] = run

    history = state["history"]
    history.append(
        {
            "finished_at": run["finished_at"],
            "dry_run": dry_run,
            "ok": not result.get("failed") and not result.get("blocked"),
            "changed": len(result.get("changed") or []),
        }
    )
    del history[:-keep]
    return state
