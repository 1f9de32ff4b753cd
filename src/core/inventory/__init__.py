"""
Inventory context - spare parts stock ledger.

Contents:
- InventoryItem aggregate with condition buckets and movement journal
- MovementReference (ticket or installation request)
- Use cases: create item, dispatch, return, reorder point, queries
- Low stock alerts on threshold crossing
"""

from .entities import (
    InventoryItem,
    InventoryMovement,
    ItemStatus,
    MovementReference,
    MovementType,
    ReferenceKind,
    StockChange,
    StockCondition,
)
from .events import (
    InventoryItemCreatedEvent,
    LowStockReachedEvent,
    ReorderPointChangedEvent,
    StockDispatchedEvent,
    StockReturnedEvent,
)
from .dtos import (
    CreateItemInputDTO,
    ItemOutputDTO,
    MovementOutputDTO,
    StockMovementInputDTO,
    StockMovementResultDTO,
    UpdateReorderPointInputDTO,
)
from .notifications import StockNotifier
from .ports import (
    InstallationRequestLookup,
    InventoryItemRepository,
    InMemoryInstallationRequestLookup,
    InMemoryInventoryItemRepository,
)
from .use_cases import (
    CreateInventoryItemService,
    DispatchPartService,
    GetItemService,
    ListItemsService,
    ListMovementsService,
    ReturnPartService,
    UpdateReorderPointService,
)

__all__ = [
    "InventoryItem",
    "InventoryMovement",
    "ItemStatus",
    "MovementReference",
    "MovementType",
    "ReferenceKind",
    "StockChange",
    "StockCondition",
    "InventoryItemCreatedEvent",
    "LowStockReachedEvent",
    "ReorderPointChangedEvent",
    "StockDispatchedEvent",
    "StockReturnedEvent",
    "CreateItemInputDTO",
    "ItemOutputDTO",
    "MovementOutputDTO",
    "StockMovementInputDTO",
    "StockMovementResultDTO",
    "UpdateReorderPointInputDTO",
    "StockNotifier",
    "InstallationRequestLookup",
    "InventoryItemRepository",
    "InMemoryInstallationRequestLookup",
    "InMemoryInventoryItemRepository",
    "CreateInventoryItemService",
    "DispatchPartService",
    "GetItemService",
    "ListItemsService",
    "ListMovementsService",
    "ReturnPartService",
    "UpdateReorderPointService",
]
