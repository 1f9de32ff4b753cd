"""
Unit tests for the Inventory use cases.

Strategy:
- In-memory item and ticket repositories under one InMemoryUnitOfWork
- A failed dispatch must leave both item and ticket untouched

Coverage:
- CreateInventoryItemService
- DispatchPartService (installation and ticket references, alerts, rollback)
- ReturnPartService
- UpdateReorderPointService
- GetItemService / ListItemsService / ListMovementsService
"""

import pytest

from src.core.inventory.dtos import (
    CreateItemInputDTO,
    StockMovementInputDTO,
    UpdateReorderPointInputDTO,
)
from src.core.inventory.entities import InventoryItem, MovementReference, StockCondition
from src.core.inventory.use_cases import (
    CreateInventoryItemService,
    DispatchPartService,
    GetItemService,
    ListItemsService,
    ListMovementsService,
    ReturnPartService,
    UpdateReorderPointService,
)
from src.core.policy.entities import PolicySnapshot, TicketSettings
from src.core.shared.collaborators import NotificationKind
from src.core.shared.exceptions import (
    AuthorizationError,
    ConcurrencyError,
    ConflictError,
    EntityNotFoundError,
    InsufficientStockError,
    TransientError,
    ValidationError,
)
from src.core.shared.roles import Role
from src.core.tickets.entities import TicketEntity
from src.core.tickets.state_machine import TicketStatus


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def item(item_repo):
    item = InventoryItem.create("Toner X200", "Consumable", reorder_point=3, stock={"NEW": 5, "REPAIRED": 1})
    item_repo.save(item)
    return item


@pytest.fixture
def ticket(ticket_repo):
    """Ticket created by mgr-1 and assigned to eng-1."""
    ticket = TicketEntity.create(
        code="TKT202610190001",
        title="Printer offline",
        description="The office printer does not answer to ping",
        customer_id="cust-1",
        created_by="mgr-1",
        policy=PolicySnapshot(),
    )
    ticket.assign("eng-1", "mgr-1")
    ticket_repo.save(ticket)
    return ticket


@pytest.fixture
def dispatch_service(
    item_repo, uow, role_oracle, stock_notifier, ticket_repo, installation_lookup,
    policy_provider, ticket_access, ticket_notifications, audit_logger,
):
    return DispatchPartService(
        item_repo,
        uow,
        role_oracle,
        stock_notifier,
        ticket_repo,
        installation_lookup,
        policy_provider,
        ticket_access,
        ticket_notifications,
        audit_logger,
    )


@pytest.fixture
def return_service(item_repo, uow, role_oracle, stock_notifier, ticket_repo, installation_lookup, audit_logger):
    return ReturnPartService(
        item_repo, uow, role_oracle, stock_notifier, ticket_repo, installation_lookup, audit_logger
    )


def movement(actor, item_id, quantity=1, condition="NEW", kind="INSTALLATION_REQUEST", ref="ir-1", **kwargs):
    return StockMovementInputDTO(
        actor=actor,
        item_id=item_id,
        quantity=quantity,
        condition=condition,
        reference_kind=kind,
        reference_id=ref,
        **kwargs,
    )


def event_types(uow):
    return [e.event_type for e in uow.published_events]


# =============================================================================
# Create
# =============================================================================

class TestCreateInventoryItemService:

    @pytest.fixture
    def service(self, item_repo, uow, role_oracle, stock_notifier, audit_logger):
        return CreateInventoryItemService(item_repo, uow, role_oracle, stock_notifier, audit_logger)

    def test_create(self, service, stock_manager, item_repo, uow, audit_logger):
        output = service.execute(CreateItemInputDTO(
            actor=stock_manager,
            name="Router R1",
            item_type="Router",
            reorder_point=2,
            stock={"NEW": 4, "REPAIRED": 1},
            locations={"NEW": "Shelf B"},
        ))

        assert output.quantity == 5
        assert output.stock == {"NEW": 4, "REPAIRED": 1}
        assert output.locations["NEW"] == "Shelf B"
        assert item_repo.get_by_id(output.id).is_consistent()
        assert event_types(uow) == ["InventoryItemCreatedEvent"]
        assert audit_logger.actions() == ["inventory.create"]

    def test_created_low_is_not_an_alert(self, service, stock_manager, notifier):
        output = service.execute(CreateItemInputDTO(
            actor=stock_manager, name="Router R1", item_type="Router", reorder_point=5, stock={"NEW": 1}
        ))

        assert output.is_low_stock is True
        assert notifier.sent == []

    def test_engineer_cannot_create(self, service, engineer):
        with pytest.raises(AuthorizationError):
            service.execute(CreateItemInputDTO(actor=engineer, name="Router R1", item_type="Router"))


# =============================================================================
# Dispatch
# =============================================================================

class TestDispatchPartService:

    def test_dispatch_for_installation_request(self, dispatch_service, item, stock_manager, item_repo, uow, audit_logger):
        result = dispatch_service.execute(movement(stock_manager, item.id, quantity=1, docket_number="DK-1"))

        assert result.item.quantity == 5
        assert result.movement.movement_type == "DISPATCH"
        assert result.movement.reference_kind == "INSTALLATION_REQUEST"
        assert result.movement.docket_number == "DK-1"
        assert result.ticket_status is None
        assert result.low_stock_alert is False
        assert item_repo.get_by_id(item.id).quantity == 5
        assert event_types(uow) == ["StockDispatchedEvent"]
        assert audit_logger.actions() == ["inventory.dispatch"]

    def test_dispatch_resolves_ticket_pending_approval(self, dispatch_service, item, ticket, engineer, ticket_repo, uow):
        result = dispatch_service.execute(
            movement(engineer, item.id, quantity=1, kind="TICKET", ref=ticket.id, docket_number="DK-7")
        )

        assert result.ticket_status == "PENDING_APPROVAL"
        assert result.ticket_status_overridden is True
        stored = ticket_repo.get_by_id(ticket.id)
        assert stored.status == TicketStatus.PENDING_APPROVAL
        assert stored.resolved_by == "eng-1"
        assert stored.comments[-1].text == "Dispatched 1 NEW unit(s) of Toner X200 (docket DK-7)"
        assert stored.comments[-1].is_system is True
        assert stored.history[-1].action == "dispatch"
        assert set(event_types(uow)) == {"StockDispatchedEvent", "TicketStatusChangedEvent"}

    def test_dispatch_resolves_ticket_with_auto_approval(self, dispatch_service, item, ticket, engineer, settings_repo):
        settings_repo.save(TicketSettings(auto_approval=True, auto_approval_roles=[Role.ENGINEER]))

        result = dispatch_service.execute(movement(engineer, item.id, kind="TICKET", ref=ticket.id))

        assert result.ticket_status == "RESOLVED"
        assert result.ticket_status_overridden is False

    def test_low_stock_alert_on_crossing_only(self, dispatch_service, item, stock_manager, notifier, uow):
        first = dispatch_service.execute(movement(stock_manager, item.id, quantity=2))
        second = dispatch_service.execute(movement(stock_manager, item.id, quantity=1))
        third = dispatch_service.execute(movement(stock_manager, item.id, quantity=1))

        assert [first.low_stock_alert, second.low_stock_alert, third.low_stock_alert] == [False, True, False]
        assert notifier.recipients(NotificationKind.LOW_STOCK.value) == ["inv-1"]
        assert event_types(uow).count("LowStockReachedEvent") == 1

    def test_insufficient_stock_rolls_back_everything(self, dispatch_service, item, ticket, engineer, item_repo, ticket_repo, uow):
        with pytest.raises(InsufficientStockError):
            dispatch_service.execute(
                movement(engineer, item.id, quantity=2, condition="REPAIRED", kind="TICKET", ref=ticket.id)
            )

        assert item_repo.get_by_id(item.id).quantity == 6
        stored = ticket_repo.get_by_id(ticket.id)
        assert stored.status == TicketStatus.ASSIGNED
        assert stored.comments == []
        assert uow.rolled_back
        assert uow.published_events == []

    def test_closed_ticket_rolls_back_item(self, dispatch_service, item, ticket, manager, item_repo, ticket_repo):
        closed = ticket_repo.get_by_id(ticket.id)
        closed.change_status(TicketStatus.CLOSED_BY_CUSTOMER, "mgr-1", Role.SUPPORT_MANAGER, PolicySnapshot())
        ticket_repo.save(closed)

        with pytest.raises(ConflictError):
            dispatch_service.execute(movement(manager, item.id, kind="TICKET", ref=ticket.id))

        stored = item_repo.get_by_id(item.id)
        assert stored.quantity == 6
        assert stored.movements == []

    def test_engineer_must_own_the_ticket(self, dispatch_service, item, ticket, other_engineer):
        with pytest.raises(AuthorizationError):
            dispatch_service.execute(movement(other_engineer, item.id, kind="TICKET", ref=ticket.id))

    def test_unknown_installation_request(self, dispatch_service, item, stock_manager):
        with pytest.raises(EntityNotFoundError) as exc:
            dispatch_service.execute(movement(stock_manager, item.id, ref="ir-404"))

        assert exc.value.entity_type == "InstallationRequest"

    def test_unknown_ticket(self, dispatch_service, item, engineer):
        with pytest.raises(EntityNotFoundError):
            dispatch_service.execute(movement(engineer, item.id, kind="TICKET", ref="missing"))

    def test_unknown_item(self, dispatch_service, stock_manager):
        with pytest.raises(EntityNotFoundError):
            dispatch_service.execute(movement(stock_manager, "missing"))

    @pytest.mark.parametrize("overrides,field", [
        ({"condition": "BROKEN"}, "condition"),
        ({"kind": "ORDER"}, "reference"),
        ({"quantity": 0}, "quantity"),
    ])
    def test_invalid_request(self, dispatch_service, item, stock_manager, overrides, field):
        with pytest.raises(ValidationError) as exc:
            dispatch_service.execute(movement(stock_manager, item.id, **overrides))

        assert exc.value.field == field

    def test_notifier_failure_does_not_fail_dispatch(self, dispatch_service, item, stock_manager, notifier, item_repo):
        notifier.fail_with = TransientError("mail relay down", channel="notification")

        dispatch_service.execute(movement(stock_manager, item.id, quantity=3))

        assert item_repo.get_by_id(item.id).quantity == 3

    def test_directory_failure_does_not_fail_dispatch(self, dispatch_service, item, stock_manager, users, notifier, item_repo):
        def unavailable(role):
            raise TransientError("directory unavailable", channel="directory")

        users.list_active_by_role = unavailable

        result = dispatch_service.execute(movement(stock_manager, item.id, quantity=3))

        assert result.low_stock_alert is True
        assert item_repo.get_by_id(item.id).quantity == 3
        assert notifier.sent == []

    def test_stale_item_copy_is_rejected(self, dispatch_service, item, stock_manager, item_repo):
        stale = item_repo.get_by_id(item.id)
        dispatch_service.execute(movement(stock_manager, item.id, quantity=1))

        stale.dispatch(1, StockCondition.NEW, MovementReference.installation_request("ir-1"), "inv-1")

        with pytest.raises(ConcurrencyError):
            item_repo.save(stale)

        assert item_repo.get_by_id(item.id).quantity == 5


# =============================================================================
# Return
# =============================================================================

class TestReturnPartService:

    def test_return_can_exceed_dispatched(self, return_service, item, engineer, ticket, item_repo, uow):
        result = return_service.execute(
            movement(engineer, item.id, quantity=4, condition="REPARABLE", kind="TICKET", ref=ticket.id)
        )

        assert result.item.quantity == 10
        assert result.item.stock["REPARABLE"] == 4
        assert result.movement.movement_type == "RETURN"
        stored = item_repo.get_by_id(item.id)
        assert stored.is_consistent()
        assert stored.journal_balance() == -4
        assert event_types(uow) == ["StockReturnedEvent"]

    def test_return_for_unknown_ticket(self, return_service, item, engineer):
        with pytest.raises(EntityNotFoundError):
            return_service.execute(movement(engineer, item.id, kind="TICKET", ref="missing"))

    def test_return_for_unknown_installation_request(self, return_service, item, stock_manager):
        with pytest.raises(EntityNotFoundError):
            return_service.execute(movement(stock_manager, item.id, ref="ir-404"))


# =============================================================================
# Reorder point
# =============================================================================

class TestUpdateReorderPointService:

    @pytest.fixture
    def service(self, item_repo, uow, role_oracle, stock_notifier, audit_logger):
        return UpdateReorderPointService(item_repo, uow, role_oracle, stock_notifier, audit_logger)

    def test_raising_above_quantity_alerts(self, service, item, stock_manager, notifier, uow):
        output = service.execute(UpdateReorderPointInputDTO(actor=stock_manager, item_id=item.id, reorder_point=6))

        assert output.is_low_stock is True
        assert notifier.recipients(NotificationKind.LOW_STOCK.value) == ["inv-1"]
        assert event_types(uow) == ["ReorderPointChangedEvent", "LowStockReachedEvent"]

    def test_lowering_does_not_alert(self, service, item, stock_manager, notifier):
        service.execute(UpdateReorderPointInputDTO(actor=stock_manager, item_id=item.id, reorder_point=1))

        assert notifier.sent == []

    def test_engineer_refused(self, service, item, engineer):
        with pytest.raises(AuthorizationError):
            service.execute(UpdateReorderPointInputDTO(actor=engineer, item_id=item.id, reorder_point=1))


# =============================================================================
# Queries
# =============================================================================

class TestInventoryQueries:

    @pytest.fixture
    def items(self, item_repo, item):
        router = InventoryItem.create("Router R1", "Router", reorder_point=1, stock={"NEW": 8})
        item_repo.save(router)
        return item, router

    def test_list_items(self, items, item_repo, role_oracle, engineer):
        service = ListItemsService(item_repo, role_oracle)

        assert [i.name for i in service.execute(engineer)] == ["Router R1", "Toner X200"]
        assert [i.name for i in service.execute(engineer, item_type="Router")] == ["Router R1"]

    def test_list_low_stock_only(self, items, item_repo, role_oracle, dispatch_service, stock_manager):
        toner, _ = items
        dispatch_service.execute(movement(stock_manager, toner.id, quantity=3))

        rows = ListItemsService(item_repo, role_oracle).execute(stock_manager, low_stock_only=True)

        assert [i.name for i in rows] == ["Toner X200"]

    def test_get_item(self, item, item_repo, role_oracle, engineer):
        service = GetItemService(item_repo, role_oracle)

        assert service.execute(engineer, item.id).quantity == 6
        with pytest.raises(EntityNotFoundError):
            service.execute(engineer, "missing")

    def test_list_movements_oldest_first(self, item, item_repo, role_oracle, dispatch_service, return_service, stock_manager):
        dispatch_service.execute(movement(stock_manager, item.id, quantity=2))
        return_service.execute(movement(stock_manager, item.id, quantity=1, condition="REPAIRED"))

        rows = ListMovementsService(item_repo, role_oracle).execute(stock_manager, item.id)

        assert [(m.movement_type, m.balance_after) for m in rows] == [("DISPATCH", 4), ("RETURN", 5)]
