"""
Domain Events of the Inventory context.

Events:
- InventoryItemCreatedEvent
- StockDispatchedEvent / StockReturnedEvent: journal entries
- LowStockReachedEvent: quantity crossed the reorder point
- ReorderPointChangedEvent
"""

from dataclasses import dataclass
from typing import Optional

from src.core.shared.events import DomainEvent


@dataclass
class _InventoryEvent(DomainEvent):
    item_name: str = ""

    @property
    def aggregate_type(self) -> str:
        return "InventoryItem"


@dataclass
class InventoryItemCreatedEvent(_InventoryEvent):
    item_type: str = ""
    quantity: int = 0
    created_by: Optional[str] = None


@dataclass
class StockDispatchedEvent(_InventoryEvent):
    """
    Event: stock left the warehouse.

    Attributes:
        movement_id: Journal entry id
        quantity / condition: What was taken
        reference_kind / reference_id: What it was taken for
        remaining: Item quantity after the dispatch
    """

    movement_id: str = ""
    quantity: int = 0
    condition: str = ""
    reference_kind: str = ""
    reference_id: str = ""
    remaining: int = 0
    actor_id: str = ""


@dataclass
class StockReturnedEvent(_InventoryEvent):
    movement_id: str = ""
    quantity: int = 0
    condition: str = ""
    reference_kind: str = ""
    reference_id: str = ""
    remaining: int = 0
    actor_id: str = ""


@dataclass
class LowStockReachedEvent(_InventoryEvent):
    quantity: int = 0
    reorder_point: int = 0


@dataclass
class ReorderPointChangedEvent(_InventoryEvent):
    previous_reorder_point: int = 0
    reorder_point: int = 0
    changed_by: str = ""
