"""
Django models of the Inventory context.

Tables:
- inventory_items: item aggregate root (quantity counter and version)
- inventory_stock_entries: one row per (item, condition) bucket
- inventory_movements: append-only journal
- installation_requests: targets of installation movements
"""

from django.db import models
from django.utils import timezone


class StockConditionChoices(models.TextChoices):
    NEW = 'NEW', 'New'
    REPAIRED = 'REPAIRED', 'Repaired'
    REPARABLE = 'REPARABLE', 'Reparable'


class MovementTypeChoices(models.TextChoices):
    DISPATCH = 'DISPATCH', 'Dispatch'
    RETURN = 'RETURN', 'Return'


class ReferenceKindChoices(models.TextChoices):
    TICKET = 'TICKET', 'Ticket'
    INSTALLATION_REQUEST = 'INSTALLATION_REQUEST', 'Installation request'


class InventoryItemModel(models.Model):
    """Persistence of InventoryItem."""

    id = models.CharField(max_length=36, primary_key=True, editable=False)

    name = models.CharField(max_length=200, db_index=True)

    item_type = models.CharField(max_length=100, db_index=True)

    reorder_point = models.PositiveIntegerField(default=0)

    quantity = models.PositiveIntegerField(
        default=0,
        help_text="Sum of the condition buckets"
    )

    initial_quantity = models.PositiveIntegerField(
        default=0,
        help_text="Opening stock, base of the journal balance"
    )

    created_by = models.CharField(max_length=100, null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    version = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = 'inventory_items'
        verbose_name = 'Inventory item'
        verbose_name_plural = 'Inventory items'
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.quantity})"

    def __repr__(self):
        return f"<InventoryItemModel name={self.name} qty={self.quantity} v{self.version}>"


class StockEntryModel(models.Model):
    """Quantity of one condition bucket."""

    item = models.ForeignKey(
        InventoryItemModel,
        on_delete=models.CASCADE,
        related_name='entries',
    )

    condition = models.CharField(max_length=20, choices=StockConditionChoices.choices)

    quantity = models.PositiveIntegerField(default=0)

    location = models.CharField(max_length=200, null=True, blank=True)

    class Meta:
        db_table = 'inventory_stock_entries'
        verbose_name = 'Stock entry'
        verbose_name_plural = 'Stock entries'
        constraints = [
            models.UniqueConstraint(fields=['item', 'condition'], name='unique_item_condition'),
        ]

    def __str__(self):
        return f"{self.item_id} {self.condition}: {self.quantity}"


class InventoryMovementModel(models.Model):
    """Journal entry; rows are inserted once and never updated."""

    id = models.CharField(max_length=36, primary_key=True, editable=False)

    item = models.ForeignKey(
        InventoryItemModel,
        on_delete=models.PROTECT,
        related_name='movements',
    )

    movement_type = models.CharField(max_length=10, choices=MovementTypeChoices.choices)

    quantity = models.PositiveIntegerField()

    condition = models.CharField(max_length=20, choices=StockConditionChoices.choices)

    reference_kind = models.CharField(max_length=30, choices=ReferenceKindChoices.choices)

    reference_id = models.CharField(max_length=36, db_index=True)

    actor_id = models.CharField(max_length=100)

    occurred_at = models.DateTimeField(db_index=True)

    balance_after = models.IntegerField()

    status = models.CharField(max_length=20, default='COMPLETED')

    docket_number = models.CharField(max_length=100, null=True, blank=True)

    note = models.TextField(blank=True, default='')

    class Meta:
        db_table = 'inventory_movements'
        verbose_name = 'Inventory movement'
        verbose_name_plural = 'Inventory movements'
        ordering = ['occurred_at']
        indexes = [
            models.Index(fields=['item', 'occurred_at'], name='movements_item_time_idx'),
            models.Index(fields=['reference_kind', 'reference_id'], name='movements_reference_idx'),
        ]

    def __str__(self):
        return f"{self.movement_type} {self.quantity} {self.condition} -> {self.reference_id}"


class InstallationRequestModel(models.Model):
    """Installation request a part can be dispatched against."""

    id = models.CharField(max_length=36, primary_key=True, editable=False)

    number = models.CharField(
        max_length=6,
        unique=True,
        help_text="Six digit request number"
    )

    customer_id = models.CharField(max_length=100, db_index=True)

    description = models.TextField(blank=True, default='')

    created_by = models.CharField(max_length=100, null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'installation_requests'
        verbose_name = 'Installation request'
        verbose_name_plural = 'Installation requests'
        ordering = ['-created_at']

    def __str__(self):
        return f"IR-{self.number}"
