"""
Use Cases of the Inventory context.

- CreateInventoryItemService
- DispatchPartService: debit a bucket; a ticket reference also resolves the ticket
- ReturnPartService: credit a bucket
- UpdateReorderPointService
- GetItemService / ListItemsService / ListMovementsService

The item is loaded for update and saved with a version check, so two
concurrent dispatches cannot both spend the same unit. A ticket-referenced
dispatch saves item and ticket in the same Unit of Work.
"""

from typing import List, Optional, Tuple
import logging

from src.core.policy.use_cases import PolicySnapshotProvider
from src.core.shared.clock import utcnow
from src.core.shared.collaborators import Actor, AuditLogger, RoleOracle, best_effort
from src.core.shared.exceptions import (
    AuthorizationError,
    EntityNotFoundError,
    ValidationError,
)
from src.core.shared.interfaces import UnitOfWork
from src.core.shared.roles import Permission
from src.core.shared.validation import clean_text
from src.core.tickets.access import TicketAccessPolicy
from src.core.tickets.entities import FieldChange, StatusChange, TicketEntity
from src.core.tickets.notifications import TicketNotifier
from src.core.tickets.ports import TicketRepository
from src.core.tickets.use_cases import assigned_event, status_event

from .dtos import (
    CreateItemInputDTO,
    ItemOutputDTO,
    MovementOutputDTO,
    StockMovementInputDTO,
    StockMovementResultDTO,
    UpdateReorderPointInputDTO,
    movements_to_dtos,
)
from .entities import (
    InventoryItem,
    MovementReference,
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
from .notifications import StockNotifier
from .ports import InstallationRequestLookup, InventoryItemRepository

logger = logging.getLogger(__name__)


def _require(role_oracle: RoleOracle, actor: Actor, permission: Permission) -> None:
    if not role_oracle.has_permission(actor.role, permission):
        raise AuthorizationError(
            f"Role {actor.role.value} may not {permission.value}",
            actor_id=actor.user_id,
            action=permission.value,
        )


def _load_item(item_repo: InventoryItemRepository, item_id: str, for_update: bool = False) -> InventoryItem:
    item = item_repo.get_for_update(item_id) if for_update else item_repo.get_by_id(item_id)
    if not item:
        raise EntityNotFoundError(
            f"Inventory item {item_id} not found",
            entity_type="InventoryItem",
            entity_id=item_id,
        )
    return item


def _parse_movement(input_dto: StockMovementInputDTO) -> Tuple[StockCondition, MovementReference]:
    try:
        condition = StockCondition.from_string(input_dto.condition)
    except ValueError as e:
        raise ValidationError(str(e), field="condition")
    try:
        kind = ReferenceKind.from_string(input_dto.reference_kind)
    except ValueError as e:
        raise ValidationError(str(e), field="reference")
    return condition, MovementReference(kind, clean_text(input_dto.reference_id, "reference"))


def _low_stock_event(item: InventoryItem) -> LowStockReachedEvent:
    return LowStockReachedEvent(
        aggregate_id=item.id,
        item_name=item.name,
        quantity=item.quantity,
        reorder_point=item.reorder_point,
    )


class _StockCommand:
    """Shared dependencies of the mutating inventory use cases."""

    def __init__(
        self,
        item_repo: InventoryItemRepository,
        uow: UnitOfWork,
        role_oracle: RoleOracle,
        stock_notifier: StockNotifier,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self.item_repo = item_repo
        self.uow = uow
        self.role_oracle = role_oracle
        self.stock_notifier = stock_notifier
        self.audit_logger = audit_logger

    def _audit(self, actor: Actor, action: str, details: str) -> None:
        if self.audit_logger is None:
            return
        best_effort(
            self.audit_logger.record,
            actor.user_id,
            action,
            details,
            actor.ip_address,
            channel="audit",
        )


class CreateInventoryItemService(_StockCommand):
    """
    Use Case: register an item with its opening stock.

    An item created at or below its reorder point is not an alert: no
    movement crossed the threshold.
    """

    def execute(self, input_dto: CreateItemInputDTO) -> ItemOutputDTO:
        actor = input_dto.actor
        _require(self.role_oracle, actor, Permission.CREATE_ITEM)

        with self.uow:
            item = InventoryItem.create(
                name=input_dto.name,
                item_type=input_dto.item_type,
                reorder_point=input_dto.reorder_point,
                stock=input_dto.stock,
                locations=input_dto.locations,
                created_by=actor.user_id,
            )
            self.item_repo.save(item)
            self.uow.publish_event(
                InventoryItemCreatedEvent(
                    aggregate_id=item.id,
                    item_name=item.name,
                    item_type=item.item_type,
                    quantity=item.quantity,
                    created_by=actor.user_id,
                )
            )

        logger.info(f"Inventory item {item.name} created with {item.quantity} unit(s)")
        self._audit(actor, "inventory.create", f"Created item {item.name}")
        return ItemOutputDTO.from_entity(item)


class DispatchPartService(_StockCommand):
    """
    Use Case: dispatch stock against a ticket or an installation request.

    Flow:
    1. Check permission, parse condition and reference
    2. Load the item for update, check the reference exists
    3. Debit the bucket (InsufficientStockError leaves everything untouched)
    4. Ticket reference: resolve the ticket (approval policy applies) and
       add a system comment with quantity, condition and docket number
    5. Save item and ticket in the same Unit of Work
    6. After commit: low stock alert on threshold crossing, ticket
       status notification, audit

    Example:
        result = service.execute(StockMovementInputDTO(
            actor=engineer, item_id=item.id, quantity=1, condition="NEW",
            reference_kind="TICKET", reference_id=ticket.id,
        ))
        result.ticket_status  # "PENDING_APPROVAL"
    """

    def __init__(
        self,
        item_repo: InventoryItemRepository,
        uow: UnitOfWork,
        role_oracle: RoleOracle,
        stock_notifier: StockNotifier,
        ticket_repo: TicketRepository,
        installation_lookup: InstallationRequestLookup,
        policy_provider: PolicySnapshotProvider,
        ticket_access: TicketAccessPolicy,
        ticket_notifications: TicketNotifier,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(item_repo, uow, role_oracle, stock_notifier, audit_logger)
        self.ticket_repo = ticket_repo
        self.installation_lookup = installation_lookup
        self.policy_provider = policy_provider
        self.ticket_access = ticket_access
        self.ticket_notifications = ticket_notifications

    def execute(self, input_dto: StockMovementInputDTO) -> StockMovementResultDTO:
        """
        Raises:
            AuthorizationError: Role may not dispatch, or ticket not actionable
            ValidationError: Bad quantity, condition or reference
            EntityNotFoundError: Unknown item, ticket or installation request
            InsufficientStockError: Not enough units in the bucket
            ConflictError: Ticket closed
        """
        actor = input_dto.actor
        _require(self.role_oracle, actor, Permission.DISPATCH_PART)
        condition, reference = _parse_movement(input_dto)
        policy = self.policy_provider.snapshot()
        ticket = None
        ticket_change = None

        with self.uow:
            item = _load_item(self.item_repo, input_dto.item_id, for_update=True)
            if reference.is_ticket:
                ticket = self._load_ticket(actor, reference.id)
            else:
                self._check_installation_request(reference.id)

            now = utcnow()
            change = item.dispatch(
                input_dto.quantity,
                condition,
                reference,
                actor.user_id,
                docket_number=input_dto.docket_number,
                note=input_dto.note,
                now=now,
            )

            if ticket is not None:
                ticket_change = self._resolve_ticket(ticket, item, change, actor, policy, now)

            self.item_repo.save(item)
            self._publish(item, change, actor)

        logger.info(
            f"Dispatched {input_dto.quantity} {condition.value} unit(s) of {item.name} "
            f"for {reference.kind.value} {reference.id}"
        )
        if change.crossed_threshold:
            self.stock_notifier.low_stock(item)
        if ticket_change is not None and ticket_change.changed:
            self.ticket_notifications.status_changed(ticket, actor.user_id, policy)
        self._audit(
            actor,
            "inventory.dispatch",
            f"Dispatched {input_dto.quantity} {condition.value} unit(s) of {item.name}",
        )

        result = StockMovementResultDTO.build(item, change)
        if ticket_change is not None:
            result.ticket_status = ticket_change.applied.value
            result.ticket_status_overridden = ticket_change.overridden
        return result

    def _load_ticket(self, actor: Actor, ticket_id: str) -> TicketEntity:
        ticket = self.ticket_repo.get_by_id(ticket_id)
        if not ticket:
            raise EntityNotFoundError(
                f"Ticket {ticket_id} not found", entity_type="Ticket", entity_id=ticket_id
            )
        if not self.ticket_access.can_act_on(actor, ticket):
            raise AuthorizationError(
                f"Not allowed to dispatch parts for ticket {ticket.code}",
                actor_id=actor.user_id,
                action=Permission.DISPATCH_PART.value,
            )
        return ticket

    def _check_installation_request(self, request_id: str) -> None:
        if not self.installation_lookup.exists(request_id):
            raise EntityNotFoundError(
                f"Installation request {request_id} not found",
                entity_type="InstallationRequest",
                entity_id=request_id,
            )

    def _resolve_ticket(self, ticket, item, change, actor, policy, now) -> StatusChange:
        previous_assignee = ticket.assigned_to
        ticket_change = ticket.resolve_by_dispatch(actor.user_id, actor.role, policy, now=now)

        text = (
            f"Dispatched {change.movement.quantity} {change.movement.condition.value} "
            f"unit(s) of {item.name}"
        )
        if change.movement.docket_number:
            text += f" (docket {change.movement.docket_number})"
        ticket.add_comment(actor.user_id, text, is_internal=True, is_system=True, now=now)

        diffs = []
        if ticket_change.self_assigned:
            diffs.append(FieldChange("assigned_to", previous_assignee, ticket.assigned_to))
        if ticket_change.changed:
            diffs.append(
                FieldChange("status", ticket_change.previous.value, ticket_change.applied.value)
            )
        ticket.record_history("dispatch", actor.user_id, text, changes=diffs, comments_added=1, at=now)
        self.ticket_repo.save(ticket)

        if ticket_change.self_assigned:
            self.uow.publish_event(assigned_event(ticket, previous_assignee))
        if ticket_change.changed:
            self.uow.publish_event(status_event(ticket, ticket_change, actor.user_id))
        return ticket_change

    def _publish(self, item: InventoryItem, change: StockChange, actor: Actor) -> None:
        movement = change.movement
        self.uow.publish_event(
            StockDispatchedEvent(
                aggregate_id=item.id,
                item_name=item.name,
                movement_id=movement.id,
                quantity=movement.quantity,
                condition=movement.condition.value,
                reference_kind=movement.reference.kind.value,
                reference_id=movement.reference.id,
                remaining=item.quantity,
                actor_id=actor.user_id,
            )
        )
        if change.crossed_threshold:
            self.uow.publish_event(_low_stock_event(item))


class ReturnPartService(_StockCommand):
    """
    Use Case: return stock to a bucket.

    Never fails on quantity: returns may exceed what was dispatched.
    """

    def __init__(
        self,
        item_repo: InventoryItemRepository,
        uow: UnitOfWork,
        role_oracle: RoleOracle,
        stock_notifier: StockNotifier,
        ticket_repo: TicketRepository,
        installation_lookup: InstallationRequestLookup,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(item_repo, uow, role_oracle, stock_notifier, audit_logger)
        self.ticket_repo = ticket_repo
        self.installation_lookup = installation_lookup

    def execute(self, input_dto: StockMovementInputDTO) -> StockMovementResultDTO:
        actor = input_dto.actor
        _require(self.role_oracle, actor, Permission.RETURN_PART)
        condition, reference = _parse_movement(input_dto)

        with self.uow:
            item = _load_item(self.item_repo, input_dto.item_id, for_update=True)
            self._check_reference(reference)
            change = item.return_stock(
                input_dto.quantity,
                condition,
                reference,
                actor.user_id,
                docket_number=input_dto.docket_number,
                note=input_dto.note,
            )
            self.item_repo.save(item)
            movement = change.movement
            self.uow.publish_event(
                StockReturnedEvent(
                    aggregate_id=item.id,
                    item_name=item.name,
                    movement_id=movement.id,
                    quantity=movement.quantity,
                    condition=movement.condition.value,
                    reference_kind=reference.kind.value,
                    reference_id=reference.id,
                    remaining=item.quantity,
                    actor_id=actor.user_id,
                )
            )

        logger.info(f"Returned {input_dto.quantity} {condition.value} unit(s) of {item.name}")
        self._audit(
            actor,
            "inventory.return",
            f"Returned {input_dto.quantity} {condition.value} unit(s) of {item.name}",
        )
        return StockMovementResultDTO.build(item, change)

    def _check_reference(self, reference: MovementReference) -> None:
        if reference.is_ticket:
            if self.ticket_repo.get_by_id(reference.id) is None:
                raise EntityNotFoundError(
                    f"Ticket {reference.id} not found", entity_type="Ticket", entity_id=reference.id
                )
        elif not self.installation_lookup.exists(reference.id):
            raise EntityNotFoundError(
                f"Installation request {reference.id} not found",
                entity_type="InstallationRequest",
                entity_id=reference.id,
            )


class UpdateReorderPointService(_StockCommand):
    """
    Use Case: change an item's reorder point.

    Raising the threshold above the current quantity counts as a
    crossing and alerts the Inventory Managers.
    """

    def execute(self, input_dto: UpdateReorderPointInputDTO) -> ItemOutputDTO:
        actor = input_dto.actor
        _require(self.role_oracle, actor, Permission.UPDATE_ITEM)

        with self.uow:
            item = _load_item(self.item_repo, input_dto.item_id, for_update=True)
            previous = item.reorder_point
            crossed = item.update_reorder_point(input_dto.reorder_point)
            self.item_repo.save(item)
            self.uow.publish_event(
                ReorderPointChangedEvent(
                    aggregate_id=item.id,
                    item_name=item.name,
                    previous_reorder_point=previous,
                    reorder_point=item.reorder_point,
                    changed_by=actor.user_id,
                )
            )
            if crossed:
                self.uow.publish_event(_low_stock_event(item))

        if crossed:
            self.stock_notifier.low_stock(item)
        self._audit(
            actor,
            "inventory.reorder_point",
            f"Reorder point of {item.name} changed from {previous} to {item.reorder_point}",
        )
        return ItemOutputDTO.from_entity(item)


# =============================================================================
# Queries
# =============================================================================

class GetItemService:
    def __init__(self, item_repo: InventoryItemRepository, role_oracle: RoleOracle):
        self.item_repo = item_repo
        self.role_oracle = role_oracle

    def execute(self, actor: Actor, item_id: str) -> ItemOutputDTO:
        _require(self.role_oracle, actor, Permission.VIEW_ITEM)
        return ItemOutputDTO.from_entity(_load_item(self.item_repo, item_id))


class ListItemsService:
    def __init__(self, item_repo: InventoryItemRepository, role_oracle: RoleOracle):
        self.item_repo = item_repo
        self.role_oracle = role_oracle

    def execute(self, actor: Actor, item_type: Optional[str] = None, low_stock_only: bool = False) -> List[ItemOutputDTO]:
        _require(self.role_oracle, actor, Permission.VIEW_ITEM)
        items = self.item_repo.list_all(item_type)
        if low_stock_only:
            items = [i for i in items if i.is_low_stock]
        return [ItemOutputDTO.from_entity(i) for i in items]


class ListMovementsService:
    """Use Case: journal of an item, oldest first."""

    def __init__(self, item_repo: InventoryItemRepository, role_oracle: RoleOracle):
        self.item_repo = item_repo
        self.role_oracle = role_oracle

    def execute(self, actor: Actor, item_id: str) -> List[MovementOutputDTO]:
        _require(self.role_oracle, actor, Permission.VIEW_ITEM)
        return movements_to_dtos(_load_item(self.item_repo, item_id).movements)
