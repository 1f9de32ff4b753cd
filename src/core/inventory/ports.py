"""
Ports of the Inventory context.

- InventoryItemRepository: persistence of the item aggregate
- InstallationRequestLookup: existence check for installation references
"""

from typing import Dict, List, Optional, Protocol, runtime_checkable

from src.core.shared.memory import InMemoryVersionedStore

from .entities import InventoryItem


@runtime_checkable
class InventoryItemRepository(Protocol):
    def save(self, item: InventoryItem) -> None:
        """
        Persist the item with its buckets and new journal entries.

        Raises:
            ConcurrencyError: Stored version moved since the item was loaded
        """
        ...

    def get_by_id(self, item_id: str) -> Optional[InventoryItem]:
        ...

    def get_for_update(self, item_id: str) -> Optional[InventoryItem]:
        """Load the item locking its row until the transaction ends."""
        ...

    def list_all(self, item_type: Optional[str] = None) -> List[InventoryItem]:
        ...


@runtime_checkable
class InstallationRequestLookup(Protocol):
    def exists(self, request_id: str) -> bool:
        ...


class InMemoryInventoryItemRepository(InMemoryVersionedStore[InventoryItem]):
    """
    In-memory InventoryItemRepository.

    ``get_for_update`` is a plain read: the version check on save is
    what rejects the slower of two concurrent writers.
    """

    entity_name = "InventoryItem"

    def save(self, item: InventoryItem) -> None:
        self._put(item)

    def get_by_id(self, item_id: str) -> Optional[InventoryItem]:
        return self._get(item_id)

    def get_for_update(self, item_id: str) -> Optional[InventoryItem]:
        return self._get(item_id)

    def list_all(self, item_type: Optional[str] = None) -> List[InventoryItem]:
        items = [i for i in self._all() if item_type is None or i.item_type == item_type]
        return sorted(items, key=lambda i: i.name)


class InMemoryInstallationRequestLookup:
    def __init__(self):
        self._requests: Dict[str, str] = {}

    def add(self, request_id: str, number: str = "") -> None:
        self._requests[request_id] = number

    def exists(self, request_id: str) -> bool:
        return request_id in self._requests
