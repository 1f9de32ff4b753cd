"""
Mappers between the inventory aggregate and its Django models.

The aggregate spans three tables: the item row, one row per
condition bucket and the movement journal.
"""

from typing import Dict, Iterable, List

from src.core.inventory.entities import (
    InventoryItem,
    InventoryMovement,
    MovementReference,
    MovementStatus,
    MovementType,
    ReferenceKind,
    StockCondition,
    StockEntry,
)

from .models import InventoryItemModel, InventoryMovementModel, StockEntryModel


class InventoryItemMapper:
    """
    - item_fields(): Entity -> column values of the item row
    - to_entity(): item row + buckets + journal -> Entity
    """

    @staticmethod
    def item_fields(item: InventoryItem) -> Dict:
        return {
            'name': item.name,
            'item_type': item.item_type,
            'reorder_point': item.reorder_point,
            'quantity': item.quantity,
            'initial_quantity': item.initial_quantity,
            'created_by': item.created_by,
            'created_at': item.created_at,
            'updated_at': item.updated_at,
        }

    @staticmethod
    def to_entity(
        model: InventoryItemModel,
        entries: Iterable[StockEntryModel],
        movements: Iterable[InventoryMovementModel],
    ) -> InventoryItem:
        buckets = {}
        for entry in entries:
            condition = StockCondition(entry.condition)
            buckets[condition] = StockEntry(condition, entry.quantity, entry.location)

        return InventoryItem(
            id=model.id,
            name=model.name,
            item_type=model.item_type,
            reorder_point=model.reorder_point,
            entries=buckets,
            quantity=model.quantity,
            initial_quantity=model.initial_quantity,
            movements=[MovementMapper.to_entity(m) for m in movements],
            created_by=model.created_by,
            created_at=model.created_at,
            updated_at=model.updated_at,
            version=model.version,
        )


class MovementMapper:

    @staticmethod
    def to_model(item_id: str, movement: InventoryMovement) -> InventoryMovementModel:
        return InventoryMovementModel(
            id=movement.id,
            item_id=item_id,
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

    @staticmethod
    def to_entity(model: InventoryMovementModel) -> InventoryMovement:
        return InventoryMovement(
            id=model.id,
            movement_type=MovementType(model.movement_type),
            quantity=model.quantity,
            condition=StockCondition(model.condition),
            reference=MovementReference(ReferenceKind(model.reference_kind), model.reference_id),
            actor_id=model.actor_id,
            occurred_at=model.occurred_at,
            balance_after=model.balance_after,
            status=MovementStatus(model.status),
            docket_number=model.docket_number,
            note=model.note,
        )

    @staticmethod
    def to_model_list(item_id: str, movements: Iterable[InventoryMovement]) -> List[InventoryMovementModel]:
        return [MovementMapper.to_model(item_id, m) for m in movements]
