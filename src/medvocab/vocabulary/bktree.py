"""Metric search tree for approximate string lookup.

A BK-tree stores each item under its parent at the edge labelled with their
distance. By the triangle inequality, a query for everything within ``d``
of ``word`` only has to descend edges labelled ``[dist - d, dist + d]``,
which keeps retrieval close to logarithmic for small ``d``.
"""

from __future__ import annotations

from typing import Callable, Iterable, Protocol

from rapidfuzz.distance import Levenshtein

DistanceFn = Callable[[str, str], int]


class MetricTree(Protocol):
    """Build-once, query-many approximate lookup structure."""

    def insert(self, item: str) -> None:
        ...

    def find_within(self, word: str, max_distance: int) -> list[tuple[int, str]]:
        ...


class _Node:
    __slots__ = ("item", "children")

    def __init__(self, item: str):
        self.item = item
        self.children: dict[int, _Node] = {}


class BKTree:
    """BK-tree over strings under an integer metric (Levenshtein by default).

    Example:
        tree = BKTree(["metformin", "lisinopril"])
        tree.find_within("metfromin", 2)  # [(2, "metformin")]
    """

    def __init__(
        self,
        items: Iterable[str] = (),
        distance: DistanceFn = Levenshtein.distance,
    ):
        self._distance = distance
        self._root: _Node | None = None
        self._size = 0

        for item in items:
            self.insert(item)

    def insert(self, item: str) -> None:
        """Add an item; inserting an item already present is a no-op."""
        if self._root is None:
            self._root = _Node(item)
            self._size = 1
            return

        node = self._root
        while True:
            dist = self._distance(item, node.item)
            if dist == 0:
                return
            child = node.children.get(dist)
            if child is None:
                node.children[dist] = _Node(item)
                self._size += 1
                return
            node = child

    def find_within(self, word: str, max_distance: int) -> list[tuple[int, str]]:
        """Return ``(distance, item)`` for every item within ``max_distance``.

        Results are sorted by distance, then item, so callers get a stable
        order regardless of insertion history.
        """
        if self._root is None or max_distance < 0:
            return []

        found: list[tuple[int, str]] = []
        stack = [self._root]

        while stack:
            node = stack.pop()
            dist = self._distance(word, node.item)
            if dist <= max_distance:
                found.append((dist, node.item))

            children = node.children
            for edge in range(max(dist - max_distance, 1), dist + max_distance + 1):
                child = children.get(edge)
                if child is not None:
                    stack.append(child)

        found.sort()
        return found

    def __len__(self) -> int:
        return self._size

    def __contains__(self, item: object) -> bool:
        if not isinstance(item, str):
            return False
        return any(dist == 0 for dist, _ in self.find_within(item, 0))
