"""Hash-consing cache for the expression graph.
Maps a structural key (descriptor + kind + operand ids) to the node that was
created for it. The cache never evicts: dropping an entry would let a second
node appear for the same key, which is exactly what hash-consing forbids.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from symbv.core.graph import NodeId


@dataclass
class CacheStats:
    """Statistics for hash-consing performance."""

    hits: int = 0
    misses: int = 0

    @property
    def lookups(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Return cache hit rate as a percentage."""
        total = self.lookups
        return (self.hits / total * 100) if total > 0 else 0.0

    def __str__(self) -> str:
        return f"CacheStats(hits={self.hits}, misses={self.misses}, hit_rate={self.hit_rate:.1f}%)"


class HashConsCache:
    """Thread-safe insert-or-return-existing map from structural keys to nodes.
    intern() holds the lock across the creation callback, so for a given key
    exactly one node is ever created and every concurrent caller receives
    that winner.
    """

    def __init__(self) -> None:
        self._table: dict[str, NodeId] = {}
        self._lock = threading.Lock()
        self.stats = CacheStats()

    def intern(self, key: str, create: Callable[[], NodeId]) -> tuple[NodeId, bool]:
        """Return the node cached under key, creating it if absent.
        Args:
            key: Canonical structural key
            create: Allocates a fresh node; called at most once per key
        Returns:
            (node_id, created) where created tells whether create() ran.
        """
        with self._lock:
            existing = self._table.get(key)
            if existing is not None:
                self.stats.hits += 1
                return existing, False
            self.stats.misses += 1
            node_id = create()
            self._table[key] = node_id
            return node_id, True

    def get(self, key: str) -> NodeId | None:
        """Look up a key without inserting."""
        with self._lock:
            return self._table.get(key)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._table

    def __len__(self) -> int:
        with self._lock:
            return len(self._table)


__all__ = ["CacheStats", "HashConsCache"]
