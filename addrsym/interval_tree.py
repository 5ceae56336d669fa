from typing import Generic, Iterable, Iterator, List, Optional, TypeVar

from sortedcontainers import SortedKeyList

from addrsym.types import Module

T = TypeVar('T')


class Node(Generic[T]):
    __slots__ = ('start', 'end', 'value')

    def __init__(self, start: int, end: int, value: T):
        self.start = start
        self.end = end  # exclusive
        self.value = value


class IntervalIndex(Generic[T]):
    """Non-overlapping [start, end) intervals, looked up by address.

    Later insertions never replace earlier ones: an interval overlapping an
    already indexed one is rejected, so a point lookup yields at most one
    value.
    """

    def __init__(self):
        self.store = SortedKeyList(key=lambda node: node.end)

    def add(self, start: int, end: int, value: T) -> bool:
        if start >= end:
            return False
        for node in self.store.irange_key(start + 1):
            if node.start >= end:
                break
            return False
        self.store.add(Node(start, end, value))
        return True

    def find(self, address: int) -> Optional[T]:
        for node in self.store.irange_key(address + 1):
            if node.start <= address:
                return node.value
            break
        return None

    def __len__(self) -> int:
        return len(self.store)

    def __iter__(self) -> Iterator[Node[T]]:
        return iter(self.store)


class ModuleLocator:
    def __init__(self, modules: Iterable[Module]):
        self.index: IntervalIndex[Module] = IntervalIndex()
        self.rejected: List[Module] = []
        for module in modules:
            if not self.index.add(module.start, module.end, module):
                self.rejected.append(module)

    def locate(self, address: int) -> Optional[Module]:
        return self.index.find(address)
