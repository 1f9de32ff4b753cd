"""
Unit tests for the Inventory entities.

Covers:
- Item creation and bucket totals
- Dispatch / return ledger and journal balance
- Threshold crossing rules
"""

import pytest
from datetime import datetime, timezone

from src.core.inventory.entities import (
    InventoryItem,
    ItemStatus,
    MovementReference,
    MovementType,
    ReferenceKind,
    StockCondition,
)
from src.core.shared.exceptions import InsufficientStockError, ValidationError

NOW = datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc)
TICKET_REF = MovementReference.ticket("t-1")


def make_item(reorder_point=3, stock=None, **kwargs):
    return InventoryItem.create(
        name="Toner X200",
        item_type="Consumable",
        reorder_point=reorder_point,
        stock=stock if stock is not None else {"NEW": 10},
        **kwargs,
    )


class TestInventoryItemCreation:

    def test_create(self):
        item = make_item(stock={"NEW": 10, "repaired": 2}, locations={"NEW": "Shelf A"}, created_by="inv-1")

        assert item.quantity == 12
        assert item.initial_quantity == 12
        assert item.on_hand(StockCondition.REPAIRED) == 2
        assert item.on_hand(StockCondition.REPARABLE) == 0
        assert item.entries[StockCondition.NEW].location == "Shelf A"
        assert item.status == ItemStatus.AVAILABLE
        assert item.is_consistent()

    def test_location_without_stock_creates_empty_bucket(self):
        item = make_item(stock={}, locations={"REPARABLE": "Workshop"})

        assert item.entries[StockCondition.REPARABLE].quantity == 0
        assert item.status == ItemStatus.OUT_OF_STOCK

    @pytest.mark.parametrize("kwargs,field", [
        ({"name": ""}, "name"),
        ({"item_type": "  "}, "item_type"),
        ({"reorder_point": -1}, "reorder_point"),
        ({"stock": {"NEW": -2}}, "stock"),
        ({"stock": {"BROKEN": 1}}, "condition"),
        ({"name": 200}, "name"),
        ({"stock": [("NEW", 1)]}, "stock"),
        ({"locations": "Shelf A"}, "locations"),
        ({"locations": {"NEW": 7}}, "locations"),
    ])
    def test_invalid(self, kwargs, field):
        values = dict(name="Toner X200", item_type="Consumable", reorder_point=0, stock={"NEW": 1})
        values.update(kwargs)

        with pytest.raises(ValidationError) as exc:
            InventoryItem.create(**values)

        assert exc.value.field == field

    def test_reference_requires_id(self):
        with pytest.raises(ValidationError):
            MovementReference(ReferenceKind.TICKET, "")


class TestDispatch:

    def test_dispatch_debits_bucket_and_journals(self):
        item = make_item()

        change = item.dispatch(2, StockCondition.NEW, TICKET_REF, "eng-1", docket_number="DK-1", now=NOW)

        assert change.previous_quantity == 10
        assert change.new_quantity == 8
        assert item.on_hand(StockCondition.NEW) == 8
        movement = item.movements[-1]
        assert movement.movement_type == MovementType.DISPATCH
        assert movement.balance_after == 8
        assert movement.docket_number == "DK-1"
        assert movement.occurred_at == NOW
        assert item.journal_balance() == 2
        assert item.is_consistent()

    def test_insufficient_stock_changes_nothing(self):
        item = make_item(stock={"NEW": 10, "REPAIRED": 1})

        with pytest.raises(InsufficientStockError) as exc:
            item.dispatch(2, StockCondition.REPAIRED, TICKET_REF, "eng-1")

        assert exc.value.requested == 2
        assert exc.value.available == 1
        assert exc.value.condition == "REPAIRED"
        assert item.quantity == 11
        assert item.movements == []

    def test_empty_bucket(self):
        item = make_item()

        with pytest.raises(InsufficientStockError):
            item.dispatch(1, StockCondition.REPARABLE, TICKET_REF, "eng-1")

    @pytest.mark.parametrize("quantity", [0, -1, True, 1.5])
    def test_quantity_must_be_positive_integer(self, quantity):
        item = make_item()

        with pytest.raises(ValidationError):
            item.dispatch(quantity, StockCondition.NEW, TICKET_REF, "eng-1")

    def test_dispatch_to_zero_is_out_of_stock(self):
        item = make_item(reorder_point=0, stock={"NEW": 2})

        item.dispatch(2, StockCondition.NEW, TICKET_REF, "eng-1")

        assert item.status == ItemStatus.OUT_OF_STOCK
        assert item.is_low_stock


class TestThresholdCrossing:

    def test_crossing_reported_once(self):
        item = make_item(reorder_point=3, stock={"NEW": 5})

        first = item.dispatch(1, StockCondition.NEW, TICKET_REF, "eng-1")
        second = item.dispatch(1, StockCondition.NEW, TICKET_REF, "eng-1")
        third = item.dispatch(1, StockCondition.NEW, TICKET_REF, "eng-1")

        assert [first.crossed_threshold, second.crossed_threshold, third.crossed_threshold] == [False, True, False]

    def test_recross_after_restock(self):
        item = make_item(reorder_point=3, stock={"NEW": 4})
        item.dispatch(1, StockCondition.NEW, TICKET_REF, "eng-1")
        item.return_stock(5, StockCondition.NEW, TICKET_REF, "eng-1")

        change = item.dispatch(5, StockCondition.NEW, TICKET_REF, "eng-1")

        assert change.crossed_threshold is True

    def test_raising_reorder_point_above_quantity(self):
        item = make_item(reorder_point=3, stock={"NEW": 5})

        assert item.update_reorder_point(5) is True
        assert item.update_reorder_point(8) is False
        assert item.update_reorder_point(2) is False

    def test_invalid_reorder_point(self):
        with pytest.raises(ValidationError):
            make_item().update_reorder_point(-1)


class TestReturn:

    def test_return_has_no_upper_bound(self):
        item = make_item(stock={"NEW": 1})

        change = item.return_stock(
            4, StockCondition.REPARABLE, MovementReference.installation_request("ir-1"), "inv-1"
        )

        assert change.new_quantity == 5
        assert change.crossed_threshold is False
        assert item.on_hand(StockCondition.REPARABLE) == 4
        assert item.journal_balance() == -4
        assert item.is_consistent()

    def test_journal_balance_after_mixed_movements(self):
        item = make_item(stock={"NEW": 10, "REPAIRED": 5})

        item.dispatch(3, StockCondition.NEW, TICKET_REF, "eng-1")
        item.dispatch(2, StockCondition.REPAIRED, TICKET_REF, "eng-1")
        item.return_stock(1, StockCondition.REPARABLE, TICKET_REF, "eng-1")

        assert item.journal_balance() == item.initial_quantity - item.quantity == 4
        assert [m.balance_after for m in item.movements] == [12, 10, 11]
