"""
DTOs of the Inventory context.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Mapping, Optional

from src.core.shared.collaborators import Actor

from .entities import InventoryItem, InventoryMovement, StockChange


# =============================================================================
# INPUT DTOs
# =============================================================================

@dataclass(frozen=True)
class CreateItemInputDTO:
    """
    Attributes:
        actor: Who registers the item
        name / item_type: Description of the part
        reorder_point: Low stock threshold
        stock: Condition name -> opening quantity
        locations: Condition name -> storage location
    """

    actor: Actor
    name: str
    item_type: str
    reorder_point: int = 0
    stock: Mapping[str, int] = field(default_factory=dict)
    locations: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class StockMovementInputDTO:
    """
    Dispatch or return request.

    Attributes:
        actor: Who moves the stock
        item_id: Inventory item
        quantity: Positive number of units
        condition: Bucket name (NEW, REPAIRED, REPARABLE)
        reference_kind: TICKET or INSTALLATION_REQUEST
        reference_id: Id of the referenced entity
        docket_number: Courier docket, if any
        note: Free text kept on the journal entry
    """

    actor: Actor
    item_id: str
    quantity: int
    condition: str
    reference_kind: str
    reference_id: str
    docket_number: Optional[str] = None
    note: str = ""

    def to_dict(self) -> dict:
        return {
            "actor_id": self.actor.user_id,
            "item_id": self.item_id,
            "quantity": self.quantity,
            "condition": self.condition,
            "reference_kind": self.reference_kind,
            "reference_id": self.reference_id,
            "docket_number": self.docket_number,
            "note": self.note,
        }


@dataclass(frozen=True)
class UpdateReorderPointInputDTO:
    actor: Actor
    item_id: str
    reorder_point: int


# =============================================================================
# OUTPUT DTOs
# =============================================================================

@dataclass
class MovementOutputDTO:
    id: str
    movement_type: str
    quantity: int
    condition: str
    reference_kind: str
    reference_id: str
    actor_id: str
    occurred_at: datetime
    balance_after: int
    status: str
    docket_number: Optional[str]
    note: str

    @classmethod
    def from_movement(cls, movement: InventoryMovement) -> "MovementOutputDTO":
        return cls(
            id=movement.id,
            movement_type=movement.movement_type.value,
            quantity=movement.quantity,
            condition=movement.condition.value,
            reference_kind=movement.reference.kind.value,
            reference_id=movement.reference.id,
            actor_id=movement.actor_id,
            occurred_at=movement.occurred_at,
            balance_after=movement.balance_after,
            status=movement.status.value,
            docket_number=movement.docket_number,
            note=movement.note,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "movement_type": self.movement_type,
            "quantity": self.quantity,
            "condition": self.condition,
            "reference": {"kind": self.reference_kind, "id": self.reference_id},
            "actor_id": self.actor_id,
            "occurred_at": self.occurred_at.isoformat(),
            "balance_after": self.balance_after,
            "status": self.status,
            "docket_number": self.docket_number,
            "note": self.note,
        }


@dataclass
class ItemOutputDTO:
    id: str
    name: str
    item_type: str
    quantity: int
    status: str
    reorder_point: int
    is_low_stock: bool
    stock: Dict[str, int]
    locations: Dict[str, Optional[str]]
    version: int

    @classmethod
    def from_entity(cls, entity: InventoryItem) -> "ItemOutputDTO":
        return cls(
            id=entity.id,
            name=entity.name,
            item_type=entity.item_type,
            quantity=entity.quantity,
            status=entity.status.value,
            reorder_point=entity.reorder_point,
            is_low_stock=entity.is_low_stock,
            stock={c.value: e.quantity for c, e in entity.entries.items()},
            locations={c.value: e.location for c, e in entity.entries.items()},
            version=entity.version,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "item_type": self.item_type,
            "quantity": self.quantity,
            "status": self.status,
            "reorder_point": self.reorder_point,
            "is_low_stock": self.is_low_stock,
            "stock": self.stock,
            "locations": self.locations,
            "version": self.version,
        }


@dataclass
class StockMovementResultDTO:
    """
    Outcome of a dispatch or return.

    ``ticket_status`` is set when a ticket-referenced dispatch moved the
    ticket; ``ticket_status_overridden`` tells that RESOLVED was requested
    but the approval policy applied PENDING_APPROVAL.
    """

    item: ItemOutputDTO
    movement: MovementOutputDTO
    low_stock_alert: bool = False
    ticket_status: Optional[str] = None
    ticket_status_overridden: bool = False

    @classmethod
    def build(cls, item: InventoryItem, change: StockChange) -> "StockMovementResultDTO":
        return cls(
            item=ItemOutputDTO.from_entity(item),
            movement=MovementOutputDTO.from_movement(change.movement),
            low_stock_alert=change.crossed_threshold,
        )

    def to_dict(self) -> dict:
        return {
            "item": self.item.to_dict(),
            "movement": self.movement.to_dict(),
            "low_stock_alert": self.low_stock_alert,
            "ticket_status": self.ticket_status,
            "ticket_status_overridden": self.ticket_status_overridden,
        }


def movements_to_dtos(movements: List[InventoryMovement]) -> List[MovementOutputDTO]:
    return [MovementOutputDTO.from_movement(m) for m in movements]
