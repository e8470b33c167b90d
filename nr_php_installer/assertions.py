"""Declarative resource assertions.

Each assertion names one host resource and its desired state. Ordering is
expressed with typed edges: ``require`` (apply after) and ``notify`` (apply
after, and refresh the target when this assertion changed something).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Mapping, Optional, Tuple, Union

from .lib.command import REDACTED
from .probes import LicenseKeyProbe

EdgeKind = Literal["require", "notify"]
FileEnsure = Literal["file", "absent"]
ServiceEnsure = Literal["running", "stopped"]


@dataclass(frozen=True)
class Edge:
    source: str
    target: str
    kind: EdgeKind = "require"


@dataclass(frozen=True)
class _Base:
    requires: Tuple[str, ...] = field(default=(), kw_only=True)
    notifies: Tuple[str, ...] = field(default=(), kw_only=True)

    kind = "base"

    @property
    def target(self) -> str:
        raise NotImplementedError

    @property
    def ref(self) -> str:
        return f"{self.kind}:{self.target}"

    def _common(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"ref": self.ref, "kind": self.kind, "target": self.target}
        if self.requires:
            d["requires"] = list(self.requires)
        if self.notifies:
            d["notifies"] = list(self.notifies)
        return d


@dataclass(frozen=True)
class RepositoryAssertion(_Base):
    name: str
    ensure: str = "present"

    kind = "repository"

    @property
    def target(self) -> str:
        return self.name

    def to_dict(self) -> Dict[str, Any]:
        return {**self._common(), "ensure": self.ensure}


@dataclass(frozen=True)
class PackageAssertion(_Base):
    name: str
    ensure: str = "present"

    kind = "package"

    @property
    def target(self) -> str:
        return self.name

    def to_dict(self) -> Dict[str, Any]:
        return {**self._common(), "ensure": self.ensure}


@dataclass(frozen=True)
class FileAssertion(_Base):
    path: str
    ensure: FileEnsure = "file"
    content: Optional[str] = field(default=None, repr=False)
    mode: int = 0o644
    secret: bool = field(default=False, repr=False)

    kind = "file"

    @property
    def target(self) -> str:
        return self.path

    def to_dict(self) -> Dict[str, Any]:
        d = {**self._common(), "ensure": self.ensure}
        if self.ensure == "file":
            d["mode"] = oct(self.mode)
            d["content"] = REDACTED if self.secret else self.content
        return d


@dataclass(frozen=True)
class ExecAssertion(_Base):
    name: str
    command: Tuple[str, ...]
    environment: Mapping[str, str] = field(default_factory=dict, repr=False)
    path: str = ""
    probe: Optional[LicenseKeyProbe] = None
    secret_env: Tuple[str, ...] = ()

    kind = "exec"

    @property
    def target(self) -> str:
        return self.name

    def to_dict(self) -> Dict[str, Any]:
        env = {k: (REDACTED if k in self.secret_env else v) for k, v in self.environment.items()}
        d = {**self._common(), "command": list(self.command), "environment": env, "path": self.path}
        if self.probe is not None:
            d["unless"] = self.probe.describe()
        return d


@dataclass(frozen=True)
class ServiceAssertion(_Base):
    name: str
    ensure: ServiceEnsure
    enable: bool
    hasrestart: bool = True
    hasstatus: bool = True

    kind = "service"

    @property
    def target(self) -> str:
        return self.name

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self._common(),
            "ensure": self.ensure,
            "enable": self.enable,
            "hasrestart": self.hasrestart,
            "hasstatus": self.hasstatus,
        }


ResourceAssertion = Union[
    RepositoryAssertion, PackageAssertion, FileAssertion, ExecAssertion, ServiceAssertion
]
