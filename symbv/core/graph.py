"""Expression graph store for symbv.
One ExpressionGraph owns every node built during a single symbolic run.
The store is append-only: nodes are never mutated or deleted once
inserted, so node ids can be shared freely between lazily evaluated
branches and across threads. All mutation goes through insert(), which
funnels into the hash-consing cache.
"""

from __future__ import annotations

import itertools
import threading
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from symbv.core.exceptions import DuplicateFreeVariableName, InvalidGraphHandle
from symbv.core.hashcons import CacheStats, HashConsCache
from symbv.core.kinds import Kind
from symbv.core.ops import Op, OpDescriptor, canonical_key
from symbv.logging import LogLevel, get_logger

_graph_tokens = itertools.count(1)


@dataclass(frozen=True)
class NodeId:
    """Opaque handle of a node.
    Attributes:
        graph: Token of the store that allocated the node
        index: Position in allocation order
    """

    graph: int
    index: int

    def __str__(self) -> str:
        return f"s{self.index}"


@dataclass(frozen=True)
class Node:
    """One operation instance in the graph."""

    node_id: NodeId
    descriptor: OpDescriptor
    operands: tuple[NodeId, ...]
    kind: Kind

    @property
    def op(self) -> Op:
        return self.descriptor.op

    @property
    def params(self) -> tuple:
        return self.descriptor.params

    def __str__(self) -> str:
        args = " ".join(str(o) for o in self.operands)
        return f"{self.node_id} :: {self.kind} = {self.descriptor} {args}".rstrip()


@dataclass(frozen=True)
class FreeVariable:
    """A named symbolic input of a run."""

    name: str
    kind: Kind
    ordinal: int


class ExpressionGraph:
    """Run-scoped, thread-safe, hash-consed node store."""

    def __init__(self, name: str | None = None) -> None:
        self.token = next(_graph_tokens)
        self.name = name or f"graph_{self.token}"
        self._nodes: list[Node] = []
        self._alloc_lock = threading.Lock()
        self._cache = HashConsCache()
        self._free_vars: dict[str, FreeVariable] = {}
        self._names_lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def cache_stats(self) -> CacheStats:
        return self._cache.stats

    @property
    def node_count(self) -> int:
        with self._alloc_lock:
            return len(self._nodes)

    def __len__(self) -> int:
        return self.node_count

    def close(self) -> None:
        """Expire the store; every later use of its ids is an error."""
        self._closed = True
        get_logger().debug(
            f"closed {self.name} with {self.node_count} nodes ({self.cache_stats})",
            category="graph",
        )

    def _ensure_open(self) -> None:
        if self._closed:
            raise InvalidGraphHandle(f"{self.name} is closed")

    def owns(self, node_id: Any) -> bool:
        """Whether node_id was allocated by this store."""
        return isinstance(node_id, NodeId) and node_id.graph == self.token

    def _check_handle(self, node_id: Any) -> None:
        self._ensure_open()
        if not self.owns(node_id):
            raise InvalidGraphHandle(f"{node_id!r} does not belong to {self.name}")
        if node_id.index >= self.node_count:
            raise InvalidGraphHandle(f"{node_id!r} is not defined in {self.name}")

    def _append(self, descriptor: OpDescriptor, operands: tuple[NodeId, ...], kind: Kind) -> NodeId:
        with self._alloc_lock:
            node_id = NodeId(self.token, len(self._nodes))
            self._nodes.append(Node(node_id, descriptor, operands, kind))
        return node_id

    def insert(self, descriptor: OpDescriptor, operands: Sequence[NodeId], kind: Kind) -> NodeId:
        """Insert a node, or return the existing node with the same structure.
        Args:
            descriptor: What the node computes
            operands: Operand node ids, in order
            kind: Kind of the value the node produces
        Returns:
            The id of the (possibly pre-existing) node.
        Raises:
            InvalidGraphHandle: If an operand is foreign, undefined, or the
                store is closed.
        """
        operands = tuple(operands)
        self._ensure_open()
        for operand in operands:
            self._check_handle(operand)
        key = canonical_key(descriptor, kind, operands)
        node_id, created = self._cache.intern(
            key, lambda: self._append(descriptor, operands, kind)
        )
        logger = get_logger()
        if created and logger.enabled_for(LogLevel.TRACE):
            logger.trace(str(self.lookup(node_id)), category="graph")
        return node_id

    def constant(self, kind: Kind, value: Any) -> NodeId:
        """Hash-consed literal node; value must already be normalized."""
        return self.insert(OpDescriptor(Op.CONST, (value,)), (), kind)

    def lookup(self, node_id: NodeId) -> Node:
        """Return the node for an id allocated by this store.
        Raises:
            InvalidGraphHandle: For ids of another or a closed store.
        """
        self._check_handle(node_id)
        with self._alloc_lock:
            return self._nodes[node_id.index]

    def reserve_name(self, name: str, kind: Kind) -> FreeVariable:
        """Record a free variable's external name and ordinal.
        Raises:
            DuplicateFreeVariableName: If the name is already taken.
        """
        self._ensure_open()
        with self._names_lock:
            if name in self._free_vars:
                raise DuplicateFreeVariableName(name)
            var = FreeVariable(name, kind, len(self._free_vars))
            self._free_vars[name] = var
            return var

    @property
    def free_variables(self) -> list[FreeVariable]:
        """Declared free variables in ordinal order."""
        with self._names_lock:
            return sorted(self._free_vars.values(), key=lambda v: v.ordinal)

    def variable_node(self, name: str) -> NodeId | None:
        """Node of a free variable, or None if it has not been forced yet."""
        with self._names_lock:
            var = self._free_vars.get(name)
        if var is None:
            return None
        return self._cache.get(canonical_key(OpDescriptor(Op.VAR, (name,)), var.kind, ()))

    def nodes(self) -> list[Node]:
        """Snapshot of all nodes in allocation order."""
        self._ensure_open()
        with self._alloc_lock:
            return list(self._nodes)

    def topological_order(self, roots: Iterable[NodeId] | None = None) -> list[Node]:
        """Nodes reachable from roots, operands before users.
        Operands always exist before the node that uses them is allocated,
        so allocation order restricted to the reachable set is topological.
        """
        all_nodes = self.nodes()
        if roots is None:
            return all_nodes
        seen: set[int] = set()
        stack = []
        for root in roots:
            self._check_handle(root)
            stack.append(root.index)
        while stack:
            index = stack.pop()
            if index in seen:
                continue
            seen.add(index)
            stack.extend(o.index for o in all_nodes[index].operands)
        return [all_nodes[i] for i in sorted(seen)]

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"ExpressionGraph({self.name}, nodes={self.node_count}, {state})"


__all__ = ["NodeId", "Node", "FreeVariable", "ExpressionGraph"]
