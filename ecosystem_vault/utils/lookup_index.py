"""
Case-insensitive natural key index.

Both CSV foreign key resolution and external profile reconciliation match
entities by name or email. They share this index so the matching rules
cannot drift apart.
"""

from typing import Callable, Dict, Generic, Iterable, Iterator, List, Optional, TypeVar

T = TypeVar("T")


def natural_key(value: Optional[str]) -> str:
    """Normalize a name or email for comparison."""
    return (value or "").strip().casefold()


class NameIndex(Generic[T]):
    """
    Maps the normalized natural key of each item to the item.

    Insertion order is preserved. When two items share a key the first one
    wins, which mirrors a one-pass greedy match. Items whose key is blank are
    not indexed; ``add`` reports them with False like duplicates.
    """

    def __init__(self, items: Iterable[T] = (), key: Callable[[T], str] = str):
        self._key = key
        self._items: Dict[str, T] = {}
        for item in items:
            self.add(item)

    def add(self, item: T) -> bool:
        """Index ``item``; returns False if its key was already taken."""
        normalized = natural_key(self._key(item))
        if not normalized or normalized in self._items:
            return False
        self._items[normalized] = item
        return True

    def get(self, name: Optional[str]) -> Optional[T]:
        return self._items.get(natural_key(name))

    def pop(self, name: Optional[str]) -> Optional[T]:
        return self._items.pop(natural_key(name), None)

    def values(self) -> List[T]:
        return list(self._items.values())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and natural_key(name) in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items.values()))
