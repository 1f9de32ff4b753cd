"""
Versioned in-memory storage shared by the InMemory repositories.

Entities are stored as deep copies so callers never alias stored state,
saves are compare-and-set on ``version`` like the Django repositories,
and ``snapshot``/``restore`` let InMemoryUnitOfWork roll back.
"""

from typing import Any, Dict, Generic, List, Optional, TypeVar
import copy

from .exceptions import ConcurrencyError

T = TypeVar("T")


class InMemoryVersionedStore(Generic[T]):
    """
    Dict-backed store with optimistic concurrency.

    Entities must expose ``id`` and ``version`` attributes.
    """

    entity_name = "Entity"

    def __init__(self):
        self._rows: Dict[str, T] = {}

    def _put(self, entity: T) -> None:
        stored = self._rows.get(entity.id)
        stored_version = stored.version if stored is not None else 0
        if stored_version != entity.version:
            raise ConcurrencyError(
                f"{self.entity_name} {entity.id} was modified concurrently "
                f"(expected version {entity.version}, found {stored_version})"
            )
        entity.version += 1
        self._rows[entity.id] = copy.deepcopy(entity)

    def _get(self, entity_id: str) -> Optional[T]:
        stored = self._rows.get(entity_id)
        return copy.deepcopy(stored) if stored is not None else None

    def _all(self) -> List[T]:
        return [copy.deepcopy(e) for e in self._rows.values()]

    def snapshot(self) -> Any:
        return copy.deepcopy(self._rows)

    def restore(self, state: Any) -> None:
        self._rows = state

    def clear(self) -> None:
        self._rows.clear()

    def count(self) -> int:
        return len(self._rows)
