"""
Generic order-N Markov chain.

A chain maps fixed-width windows of tokens ("nodes") to weighted tables of
the tokens observed right after them ("links"). Sequences are padded with
a boundary marker so generation can both start and stop naturally.

Works with any hashable token type; text-specific helpers live in
text_chain.py.
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from types import MappingProxyType
from typing import (
    Dict,
    Generic,
    Hashable,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
    Union,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Hashable)


class Boundary:
    """Sentinel for "no token here": sequence padding and the stop transition."""

    _instance: Optional["Boundary"] = None

    def __new__(cls) -> "Boundary":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "BOUNDARY"

    def __reduce__(self):
        # Unpickles to the module-level singleton
        return "BOUNDARY"


BOUNDARY = Boundary()

Slot = Union[T, Boundary]
Node = Tuple[Slot, ...]
Link = Dict[Slot, int]


class ChainOrderError(ValueError):
    """Raised when chains of different order are combined."""


@dataclass
class ChainStats:
    """Summary statistics for a chain."""
    order: int = 0
    node_count: int = 0
    link_count: int = 0
    total_weight: int = 0
    vocab_size: int = 0


class Chain(Generic[T]):
    """
    Markov chain of a fixed order over hashable tokens.

    Training only ever adds or increments transitions; there is no removal.
    Chains of the same order can be combined with merge().
    """

    def __init__(self, order: int = 1, rng: Optional[random.Random] = None):
        """
        Initialize an empty chain.

        Args:
            order: Number of tokens per node (>= 1)
            rng: Random source for generation; defaults to the random module
        """
        if isinstance(order, bool) or not isinstance(order, int) or order < 1:
            raise ValueError(f"order must be a positive integer, got {order!r}")
        self._order = order
        self._chain: Dict[Node, Link] = {}
        self._rng = rng if rng is not None else random

    @property
    def order(self) -> int:
        """Number of tokens per node. Fixed for the chain's lifetime."""
        return self._order

    @property
    def transitions(self) -> Mapping[Node, Link]:
        """Read-only view of the transition table."""
        return MappingProxyType(self._chain)

    def is_empty(self) -> bool:
        return not self._chain

    def __len__(self) -> int:
        return len(self._chain)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Chain):
            return NotImplemented
        return self._order == other._order and self._chain == other._chain

    def __repr__(self) -> str:
        return f"{type(self).__name__}(order={self._order}, nodes={len(self._chain)})"

    def nodes(self) -> Iterator[Node]:
        return iter(self._chain)

    def get_link(self, node: Sequence[Slot]) -> Mapping[Slot, int]:
        """Read-only link table for a node (empty if the node is unknown)."""
        return MappingProxyType(self._chain.get(tuple(node), {}))

    def train(self, sequence: Iterable[T]) -> "Chain[T]":
        """
        Train the chain on one sequence of tokens.

        Short sequences are right-padded with BOUNDARY up to the order so
        they still produce a full-width node. Every sequence contributes a
        transition from the all-boundary node to its first token and one
        from its tail to BOUNDARY.

        Args:
            sequence: Tokens to learn from; empty sequences are ignored

        Returns:
            self, so calls can be chained
        """
        items: List[Slot] = list(sequence)
        if not items:
            return self

        if len(items) < self._order:
            items.extend([BOUNDARY] * (self._order - len(items)))

        window: Node = (BOUNDARY,) * self._order
        for item in items:
            self._update_link(window, item)
            window = window[1:] + (item,)
        self._update_link(window, BOUNDARY)
        return self

    def merge(self, other: "Chain[T]") -> "Chain[T]":
        """
        Fold another chain's weights into this one.

        Weights are summed per (node, next) pair. Merging the same chain
        twice counts its weights twice.

        Raises:
            ChainOrderError: if the orders differ
        """
        if self._order != other._order:
            raise ChainOrderError(
                f"orders must be equal in order to merge markov chains "
                f"({self._order} != {other._order})"
            )

        if not self._chain:
            self._chain = {node: dict(link) for node, link in other._chain.items()}
            return self

        for node, link in list(other._chain.items()):
            for next_item, weight in list(link.items()):
                self._update_link_weight(node, next_item, weight)
        return self

    def generate(self) -> List[T]:
        """Generate a sequence with no length limit."""
        return self.generate_limit(-1)

    def generate_limit(self, max_len: int) -> List[T]:
        """
        Generate a sequence starting from a random node.

        If the starting node holds any BOUNDARY slot, its real tokens are the
        whole result. Otherwise the walk continues until BOUNDARY is drawn or
        max_len tokens have been produced.

        Args:
            max_len: Maximum number of tokens; <= 0 means unbounded

        Returns:
            Generated tokens (empty for an empty chain)
        """
        if not self._chain:
            return []

        current = self._choose_random_node()

        if BOUNDARY in current:
            return [item for item in current if item is not BOUNDARY]

        result: List[T] = list(current)

        while True:
            next_item = self._choose_random_link(current)
            if next_item is BOUNDARY:
                break
            result.append(next_item)
            current = current[1:] + (next_item,)

            if 0 < max_len <= len(result):
                break

        return result

    def get_stats(self) -> ChainStats:
        """Get statistics about the chain."""
        vocab = set()
        link_count = 0
        total_weight = 0

        for node, link in self._chain.items():
            vocab.update(item for item in node if item is not BOUNDARY)
            vocab.update(item for item in link if item is not BOUNDARY)
            link_count += len(link)
            total_weight += sum(link.values())

        return ChainStats(
            order=self._order,
            node_count=len(self._chain),
            link_count=link_count,
            total_weight=total_weight,
            vocab_size=len(vocab),
        )

    # --- helpers ---
    def _update_link(self, node: Node, next_item: Slot):
        self._update_link_weight(node, next_item, 1)

    def _update_link_weight(self, node: Node, next_item: Slot, weight: int):
        link = self._chain.get(node)
        if link is None:
            self._chain[node] = {next_item: weight}
        else:
            link[next_item] = link.get(next_item, 0) + weight

    def _choose_random_node(self) -> Node:
        return self._rng.choice(list(self._chain))

    def _choose_random_link(self, node: Node) -> Slot:
        """
        Sample the next item from a node's link table.

        Each candidate is drawn with probability proportional to its weight.
        An unknown node yields BOUNDARY.
        """
        link = self._chain.get(node)
        if not link:
            return BOUNDARY

        candidates = list(link.keys())
        weights = [link[c] for c in candidates]
        return self._rng.choices(candidates, weights=weights, k=1)[0]
