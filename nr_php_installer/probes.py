from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict

logger = logging.getLogger(__name__)


class ProbeStatus(str, enum.Enum):
    SATISFIED = "satisfied"
    NEEDS_APPLY = "needs_apply"
    PROBE_FAILED = "probe_failed"


@dataclass(frozen=True)
class ProbeResult:
    status: ProbeStatus
    detail: str = ""


@dataclass(frozen=True)
class LicenseKeyProbe:
    """Is the installer already done? True when the ini carries the license key.

    Unlike a bare ``grep``, a missing config directory or an unreadable file
    is reported as PROBE_FAILED instead of being folded into "not installed".
    """

    ini_path: str
    license_key: str = field(repr=False)

    def describe(self) -> Dict[str, str]:
        return {"probe": "license_key_in_file", "path": self.ini_path}

    def check(self) -> ProbeResult:
        p = Path(self.ini_path)

        if not p.parent.is_dir():
            return ProbeResult(ProbeStatus.PROBE_FAILED, f"config directory missing: {p.parent}")
        if not p.exists():
            return ProbeResult(ProbeStatus.NEEDS_APPLY, f"{p} does not exist")

        try:
            txt = p.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            return ProbeResult(ProbeStatus.PROBE_FAILED, f"cannot read {p}: {e}")

        if self.license_key in txt:
            return ProbeResult(ProbeStatus.SATISFIED, f"license key present in {p}")
        return ProbeResult(ProbeStatus.NEEDS_APPLY, f"license key not found in {p}")
