"""Id-keyed local caches for listings reconciled against the backend."""
from datetime import datetime, timezone
from typing import Callable, Dict, Generic, Hashable, Iterable, List, Optional, TypeVar

T = TypeVar("T")


class KeyedCache(Generic[T]):
    """
    Items keyed by id, iterated in fetch order.

    Merge rules:
    - replace_all: a fresh fetch replaces the whole collection at once and
      moves the reconciled_at marker; stale and fresh rows are never mixed.
    - patch: a local change to one known item, applied between fetches.
    """

    def __init__(self, key: Callable[[T], Hashable]):
        self._key = key
        self._items: Dict[Hashable, T] = {}
        self.reconciled_at: Optional[datetime] = None

    def replace_all(self, items: Iterable[T]) -> None:
        fresh = {}
        for item in items:
            fresh[self._key(item)] = item
        self._items = fresh
        self.reconciled_at = datetime.now(timezone.utc)

    def patch(self, key: Hashable, update: Callable[[T], T]) -> Optional[T]:
        current = self._items.get(key)
        if current is None:
            return None
        updated = update(current)
        self._items[key] = updated
        return updated

    def get(self, key: Hashable) -> Optional[T]:
        return self._items.get(key)

    def values(self) -> List[T]:
        return list(self._items.values())

    def __contains__(self, key: Hashable) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)

    def put(self, item: T) -> None:
        """Local insert of an item the backend just confirmed."""
        self._items[self._key(item)] = item

    def remove(self, key: Hashable) -> Optional[T]:
        return self._items.pop(key, None)
