"""
Keyed storage used for sessions and behaviour profiles.

The session store and behaviour tracker receive a store through their
constructors, so the in-memory default can be swapped for an external
TTL-capable cache without touching call sites.
"""

from typing import Callable, Dict, Generic, List, Optional, Protocol, TypeVar

V = TypeVar("V")


class KeyedStore(Protocol[V]):
    """Minimal keyed store contract."""

    def get(self, key: str) -> Optional[V]: ...

    def put(self, key: str, value: V) -> None: ...

    def delete(self, key: str) -> bool: ...

    def keys(self) -> List[str]: ...

    def sweep(self, predicate: Callable[[V], bool]) -> List[str]: ...

    def clear(self) -> None: ...

    def __len__(self) -> int: ...


class InMemoryKeyedStore(Generic[V]):
    """Process-local dict-backed store. Not safe for concurrent threads."""

    def __init__(self):
        self._items: Dict[str, V] = {}

    def get(self, key: str) -> Optional[V]:
        return self._items.get(key)

    def put(self, key: str, value: V) -> None:
        self._items[key] = value

    def delete(self, key: str) -> bool:
        return self._items.pop(key, None) is not None

    def keys(self) -> List[str]:
        return list(self._items.keys())

    def sweep(self, predicate: Callable[[V], bool]) -> List[str]:
        """Delete every value matching predicate; return the removed keys."""
        removed = [key for key, value in self._items.items() if predicate(value)]
        for key in removed:
            del self._items[key]
        return removed

    def clear(self) -> None:
        self._items.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)
