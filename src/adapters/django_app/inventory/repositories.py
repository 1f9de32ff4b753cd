"""
Django repositories of the Inventory context.

DjangoInventoryItemRepository writes the item row with a
compare-and-set on ``version``, upserts the condition buckets and
inserts only the journal entries that are not stored yet. Loading for
update takes a row lock (``select_for_update``) so concurrent
dispatches against the same item queue up inside the transaction.
"""

from typing import List, Optional
import logging

from django.db import transaction
from django.utils import timezone

from src.core.inventory.entities import InventoryItem

from ..shared.repository import compare_and_set
from .mappers import InventoryItemMapper, MovementMapper
from .models import (
    InstallationRequestModel,
    InventoryItemModel,
    InventoryMovementModel,
    StockEntryModel,
)

logger = logging.getLogger(__name__)


class DjangoInventoryItemRepository:
    """
    Django implementation of InventoryItemRepository.

    Example:
        repo = DjangoInventoryItemRepository()
        with uow:
            item = repo.get_for_update(item_id)
            item.dispatch(...)
            repo.save(item)
    """

    def __init__(self):
        self._mapper = InventoryItemMapper()

    def save(self, item: InventoryItem) -> None:
        """
        Persist item row, buckets and new journal entries.

        Raises:
            ConcurrencyError: Stale version
        """
        with transaction.atomic():
            compare_and_set(
                InventoryItemModel,
                item,
                self._mapper.item_fields(item),
                "InventoryItem",
            )

            for condition, entry in item.entries.items():
                StockEntryModel.objects.update_or_create(
                    item_id=item.id,
                    condition=condition.value,
                    defaults={'quantity': entry.quantity, 'location': entry.location},
                )

            stored = set(
                InventoryMovementModel.objects
                .filter(item_id=item.id)
                .values_list('id', flat=True)
            )
            new_movements = [m for m in item.movements if m.id not in stored]
            if new_movements:
                InventoryMovementModel.objects.bulk_create(
                    MovementMapper.to_model_list(item.id, new_movements)
                )

        logger.debug(f"Inventory item saved: {item.name} qty={item.quantity} v{item.version}")

    def _load(self, model: InventoryItemModel) -> InventoryItem:
        entries = StockEntryModel.objects.filter(item_id=model.id)
        movements = InventoryMovementModel.objects.filter(item_id=model.id).order_by('occurred_at')
        return self._mapper.to_entity(model, entries, movements)

    def get_by_id(self, item_id: str) -> Optional[InventoryItem]:
        try:
            return self._load(InventoryItemModel.objects.get(id=item_id))
        except InventoryItemModel.DoesNotExist:
            return None

    def get_for_update(self, item_id: str) -> Optional[InventoryItem]:
        try:
            model = InventoryItemModel.objects.select_for_update().get(id=item_id)
        except InventoryItemModel.DoesNotExist:
            return None
        return self._load(model)

    def list_all(self, item_type: Optional[str] = None) -> List[InventoryItem]:
        queryset = InventoryItemModel.objects.all()
        if item_type:
            queryset = queryset.filter(item_type=item_type)
        return [self._load(m) for m in queryset.order_by('name')]


class DjangoInstallationRequestLookup:
    """
    Installation requests stored in ``installation_requests``.

    ``register`` allocates the next sequential six digit number.
    """

    def exists(self, request_id: str) -> bool:
        return InstallationRequestModel.objects.filter(id=request_id).exists()

    def next_number(self) -> str:
        last = InstallationRequestModel.objects.order_by('-number').values_list('number', flat=True).first()
        return f"{int(last or 0) + 1:06d}"

    def register(self, request_id: str, customer_id: str, description: str = '',
                 created_by: Optional[str] = None) -> InstallationRequestModel:
        with transaction.atomic():
            return InstallationRequestModel.objects.create(
                id=request_id,
                number=self.next_number(),
                customer_id=customer_id,
                description=description,
                created_by=created_by,
                created_at=timezone.now(),
            )
