from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Set, Tuple

from .assertions import Edge, ResourceAssertion
from .errors import PlanError


@dataclass(frozen=True)
class Plan:
    """Ordered assertions plus the dependency DAG between them."""

    assertions: Tuple[ResourceAssertion, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "assertions", tuple(self.assertions))
        self._check_refs()
        # Raises on cycles.
        self.topological_order()

    def _check_refs(self) -> None:
        seen: Set[str] = set()
        for a in self.assertions:
            if a.ref in seen:
                raise PlanError(f"Duplicate assertion {a.ref}")
            seen.add(a.ref)

        for e in self.edges():
            if e.target not in seen:
                raise PlanError(f"{e.source} references unknown assertion {e.target}")

    @property
    def refs(self) -> List[str]:
        return [a.ref for a in self.assertions]

    def get(self, ref: str) -> ResourceAssertion:
        for a in self.assertions:
            if a.ref == ref:
                return a
        raise KeyError(ref)

    def of_kind(self, kind: str) -> List[ResourceAssertion]:
        return [a for a in self.assertions if a.kind == kind]

    def edges(self) -> List[Edge]:
        """Normalized edges: ``source`` is the dependent, ``target`` the prerequisite.

        ``require`` on A naming B and ``notify`` on B naming A both mean "B before A".
        """

        out: List[Edge] = []
        for a in self.assertions:
            for r in a.requires:
                out.append(Edge(source=a.ref, target=r, kind="require"))
        for a in self.assertions:
            for n in a.notifies:
                out.append(Edge(source=n, target=a.ref, kind="notify"))
        return out

    def prerequisites(self, ref: str) -> List[str]:
        return [e.target for e in self.edges() if e.source == ref]

    def notifiers_of(self, ref: str) -> List[str]:
        return [e.target for e in self.edges() if e.source == ref and e.kind == "notify"]

    def dependents(self, ref: str) -> Set[str]:
        """All assertions that transitively depend on ``ref``."""

        edges = self.edges()
        out: Set[str] = set()
        stack = [ref]
        while stack:
            cur = stack.pop()
            for e in edges:
                if e.target == cur and e.source not in out:
                    out.add(e.source)
                    stack.append(e.source)
        return out

    def topological_order(self) -> List[str]:
        """Kahn's algorithm, ties broken by emission order (stable, deterministic)."""

        refs = self.refs
        pending: Dict[str, Set[str]] = {r: set() for r in refs}
        for e in self.edges():
            if e.source in pending:
                pending[e.source].add(e.target)

        order: List[str] = []
        done: Set[str] = set()
        while len(order) < len(refs):
            ready = [r for r in refs if r not in done and pending[r] <= done]
            if not ready:
                stuck = [r for r in refs if r not in done]
                raise PlanError(f"Dependency cycle among: {', '.join(stuck)}")
            order.append(ready[0])
            done.add(ready[0])
        return order

    def ordered(self) -> List[ResourceAssertion]:
        return [self.get(r) for r in self.topological_order()]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "assertions": [a.to_dict() for a in self.assertions],
            "order": self.topological_order(),
            "edges": [{"from": e.target, "to": e.source, "kind": e.kind} for e in self.edges()],
        }


def plan_from(assertions: Iterable[ResourceAssertion]) -> Plan:
    return Plan(assertions=tuple(assertions))
