"""Read-only views of a finished graph for the external collaborators.
SolverQuery is what a solver consumes: kind-tagged free variables, node
definitions in dependency order and the assertion roots. CodeGraph is what
the code generator consumes: the same definitions plus designated inputs
and outputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from symbv.core.graph import FreeVariable, Node, NodeId
from symbv.core.kinds import Kind


@dataclass(frozen=True)
class BoundVariable:
    """A free variable together with its node."""

    name: str
    kind: Kind
    ordinal: int
    node_id: NodeId

    @staticmethod
    def bind(var: FreeVariable, node_id: NodeId) -> BoundVariable:
        return BoundVariable(var.name, var.kind, var.ordinal, node_id)


def _collect_kinds(kind: Kind, into: set[Kind]) -> None:
    into.add(kind)
    if kind.is_either:
        _collect_kinds(kind.left, into)
        _collect_kinds(kind.right, into)


@dataclass
class SolverQuery:
    """A closed, self-contained satisfiability problem.
    Attributes:
        variables: Free variables in ordinal order
        nodes: Definitions; every operand is defined earlier in the list
        assertions: Boolean node ids that must all hold
    """

    variables: list[BoundVariable] = field(default_factory=list)
    nodes: list[Node] = field(default_factory=list)
    assertions: list[NodeId] = field(default_factory=list)

    def kinds(self) -> set[Kind]:
        """Every kind mentioned, including Either components."""
        found: set[Kind] = set()
        for node in self.nodes:
            _collect_kinds(node.kind, found)
        return found

    @property
    def uses_floats(self) -> bool:
        return any(k.is_float for k in self.kinds())

    @property
    def uses_either(self) -> bool:
        return any(k.is_either for k in self.kinds())

    def variable(self, name: str) -> BoundVariable:
        for var in self.variables:
            if var.name == name:
                return var
        raise KeyError(name)

    def __str__(self) -> str:
        lines = [f"INPUTS: {', '.join(f'{v.name} :: {v.kind}' for v in self.variables)}"]
        lines.extend(f"  {node}" for node in self.nodes)
        lines.append(f"ASSERT: {', '.join(str(a) for a in self.assertions)}")
        return "\n".join(lines)


@dataclass
class CodeGraph:
    """Topologically ordered definitions with designated inputs and outputs."""

    inputs: list[BoundVariable] = field(default_factory=list)
    nodes: list[Node] = field(default_factory=list)
    outputs: list[tuple[str, NodeId]] = field(default_factory=list)

    def node(self, node_id: NodeId) -> Node:
        for node in self.nodes:
            if node.node_id == node_id:
                return node
        raise KeyError(node_id)

    def tuples(self) -> list[tuple[NodeId, object, tuple[NodeId, ...], Kind]]:
        """(node id, descriptor, operand ids, kind) for each definition."""
        return [(n.node_id, n.descriptor, n.operands, n.kind) for n in self.nodes]


__all__ = ["BoundVariable", "SolverQuery", "CodeGraph"]
