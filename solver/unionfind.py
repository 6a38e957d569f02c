# solver/unionfind.py
from __future__ import annotations

from typing import Dict, Generic, Hashable, List, TypeVar

T = TypeVar("T", bound=Hashable)


class UnionFind(Generic[T]):
    """Disjoint sets with path compression and union by rank."""

    def __init__(self):
        self._parent: Dict[T, T] = {}
        self._rank: Dict[T, int] = {}

    def __contains__(self, item: T) -> bool:
        return item in self._parent

    def __len__(self) -> int:
        return len(self._parent)

    def add(self, item: T) -> None:
        if item not in self._parent:
            self._parent[item] = item
            self._rank[item] = 0

    def find(self, item: T) -> T:
        root = item
        while self._parent[root] != root:
            root = self._parent[root]
        while self._parent[item] != root:
            self._parent[item], item = root, self._parent[item]
        return root

    def union(self, a: T, b: T) -> bool:
        self.add(a)
        self.add(b)
        ra, rb = self.find(a), self.find(b)
        if ra == rb:
            return False
        if self._rank[ra] < self._rank[rb]:
            ra, rb = rb, ra
        self._parent[rb] = ra
        if self._rank[ra] == self._rank[rb]:
            self._rank[ra] += 1
        return True

    def connected(self, a: T, b: T) -> bool:
        return self.find(a) == self.find(b)

    def component_count(self) -> int:
        return sum(1 for item in self._parent if self.find(item) == item)

    def get_all_components(self) -> List[List[T]]:
        groups: Dict[T, List[T]] = {}
        for item in self._parent:
            groups.setdefault(self.find(item), []).append(item)
        return list(groups.values())

    def clone(self) -> "UnionFind[T]":
        out: UnionFind[T] = UnionFind()
        out._parent = dict(self._parent)
        out._rank = dict(self._rank)
        return out
