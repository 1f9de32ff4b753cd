"""
Use Cases (application services) of the Tickets context.

Use cases:
- CreateTicketService: raise a ticket (due date, code, optional auto-assign)
- UpdateTicketService: field and status changes with mandatory comment
- AssignTicketService: append to the assignment history
- ApproveTicketService: approve a pending resolution
- CloseByCustomerService: customer-initiated closure
- AddCommentService / AddAttachmentsService
- GetTicketService / ListTicketsService / GetAssignmentHistoryService
- CheckOverdueTicketsService: periodic overdue notification

Responsibilities:
- Take one policy snapshot per request
- Authorize through TicketAccessPolicy before mutating
- Mutate inside the Unit of Work, publish events through it
- Notify and audit only after commit, best effort
"""

from datetime import datetime
from typing import List, Optional
import logging

from src.core.policy.use_cases import PolicySnapshotProvider
from src.core.shared.clock import utcnow
from src.core.shared.collaborators import (
    Actor,
    AuditLogger,
    CustomerDirectory,
    UserDirectory,
    best_effort,
)
from src.core.shared.exceptions import EntityNotFoundError, ValidationError
from src.core.shared.interfaces import UnitOfWork
from src.core.shared.roles import Permission, Role
from src.core.shared.validation import clean_mapping, clean_text

from .access import TicketAccessPolicy
from .dtos import (
    AddAttachmentsInputDTO,
    AddCommentInputDTO,
    ApproveTicketInputDTO,
    AssignmentRecordDTO,
    AssignTicketInputDTO,
    CloseByCustomerInputDTO,
    CreateTicketInputDTO,
    DeleteAttachmentInputDTO,
    TicketFilterDTO,
    TicketListItemDTO,
    TicketOutputDTO,
    UpdateTicketInputDTO,
    UpdateTicketResultDTO,
)
from .entities import (
    FieldChange,
    StatusChange,
    TicketCategory,
    TicketEntity,
    TicketPriority,
)
from .events import (
    TicketApprovedEvent,
    TicketAssignedEvent,
    TicketCommentAddedEvent,
    TicketCreatedEvent,
    TicketStatusChangedEvent,
    TicketUpdatedEvent,
)
from .notifications import TicketNotifier
from .ports import TicketRepository
from .state_machine import TicketStatus

logger = logging.getLogger(__name__)

AUTO_ASSIGN_NOTE = "Auto-assigned based on system settings"


def parse_enum(enum_cls, value, field_name: str):
    """Convert a request value to ``enum_cls`` or raise ValidationError."""
    try:
        return enum_cls.from_string(value)
    except ValueError as e:
        raise ValidationError(str(e), field=field_name)


def status_event(ticket: TicketEntity, change: StatusChange, actor_id: str) -> TicketStatusChangedEvent:
    return TicketStatusChangedEvent(
        aggregate_id=ticket.id,
        code=ticket.code,
        previous_status=change.previous.value,
        requested_status=change.requested.value,
        applied_status=change.applied.value,
        changed_by=actor_id,
    )


def assigned_event(ticket: TicketEntity, previous: Optional[str], automatic: bool = False) -> TicketAssignedEvent:
    return TicketAssignedEvent(
        aggregate_id=ticket.id,
        code=ticket.code,
        assigned_to=ticket.assigned_to,
        assigned_by=ticket.assigned_by,
        previous_assignee=previous,
        automatic=automatic,
    )


class _TicketCommand:
    """Shared dependencies and helpers of the mutating ticket use cases."""

    def __init__(
        self,
        ticket_repo: TicketRepository,
        uow: UnitOfWork,
        policy_provider: PolicySnapshotProvider,
        access: TicketAccessPolicy,
        notifications: TicketNotifier,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self.ticket_repo = ticket_repo
        self.uow = uow
        self.policy_provider = policy_provider
        self.access = access
        self.notifications = notifications
        self.audit_logger = audit_logger

    def _load(self, ticket_id: str) -> TicketEntity:
        ticket = self.ticket_repo.get_by_id(ticket_id)
        if not ticket:
            raise EntityNotFoundError(
                f"Ticket {ticket_id} not found",
                entity_type="Ticket",
                entity_id=ticket_id,
            )
        return ticket

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


class CreateTicketService(_TicketCommand):
    """
    Use Case: raise a new ticket.

    Flow:
    1. Check permission and that the customer is active
    2. Take a policy snapshot, compute code and due date
    3. Auto-assign to the first active Support Manager when the policy asks
    4. Persist, publish TicketCreated (and TicketAssigned)
    5. After commit: notify the auto-assignee, audit

    Example:
        output = service.execute(CreateTicketInputDTO(
            actor=Actor("mgr-1", Role.SUPPORT_MANAGER),
            title="Printer offline",
            description="The office printer does not answer to ping",
            customer_id="cust-1",
            priority="HIGH",
        ))
        print(output.code)  # TKT202610190001
    """

    def __init__(
        self,
        ticket_repo: TicketRepository,
        uow: UnitOfWork,
        policy_provider: PolicySnapshotProvider,
        access: TicketAccessPolicy,
        notifications: TicketNotifier,
        customer_directory: CustomerDirectory,
        user_directory: UserDirectory,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(ticket_repo, uow, policy_provider, access, notifications, audit_logger)
        self.customer_directory = customer_directory
        self.user_directory = user_directory

    def execute(self, input_dto: CreateTicketInputDTO) -> TicketOutputDTO:
        """
        Raises:
            AuthorizationError: Role may not create tickets
            EntityNotFoundError: Customer missing or inactive
            ValidationError: Invalid input
        """
        actor = input_dto.actor
        self.access.require(actor, Permission.CREATE_TICKET)
        priority = parse_enum(TicketPriority, input_dto.priority, "priority")
        category = parse_enum(TicketCategory, input_dto.category, "category")

        customer = self.customer_directory.get_active_customer(input_dto.customer_id)
        if customer is None:
            raise EntityNotFoundError(
                f"Active customer {input_dto.customer_id} not found",
                entity_type="Customer",
                entity_id=input_dto.customer_id,
            )

        policy = self.policy_provider.snapshot()
        auto_assigned = False

        with self.uow:
            now = utcnow()
            prefix = TicketEntity.code_prefix_for(now)
            code = TicketEntity.format_code(now, self.ticket_repo.next_sequence(prefix))

            ticket = TicketEntity.create(
                code=code,
                title=input_dto.title,
                description=input_dto.description,
                customer_id=customer.customer_id,
                created_by=actor.user_id,
                policy=policy,
                priority=priority,
                category=category,
                due_date=input_dto.due_date,
                inventory_item_id=input_dto.inventory_item_id,
                serial_number=input_dto.serial_number,
                item_metadata=input_dto.item_metadata,
                now=now,
            )

            if policy.default_assign_to_support_manager and actor.role != Role.SUPER_ADMIN:
                auto_assigned = self._auto_assign(ticket, actor, now)

            self.ticket_repo.save(ticket)

            self.uow.publish_event(
                TicketCreatedEvent(
                    aggregate_id=ticket.id,
                    code=ticket.code,
                    created_by=ticket.created_by,
                    customer_id=ticket.customer_id,
                    priority=ticket.priority.value,
                    due_date=ticket.due_date.isoformat() if ticket.due_date else None,
                )
            )
            if auto_assigned:
                self.uow.publish_event(assigned_event(ticket, None, automatic=True))

        logger.info(f"Ticket {ticket.code} created by {actor.user_id}")
        if auto_assigned:
            self.notifications.assigned(ticket, actor.user_id)
        self._audit(actor, "ticket.create", f"Created ticket {ticket.code}")
        return TicketOutputDTO.from_entity(ticket)

    def _auto_assign(self, ticket: TicketEntity, actor: Actor, now: datetime) -> bool:
        managers = self.user_directory.list_active_by_role(Role.SUPPORT_MANAGER)
        if not managers:
            logger.warning(f"Auto-assignment enabled but no active Support Manager for {ticket.code}")
            return False
        manager = managers[0]
        ticket.assign(manager.user_id, actor.user_id, AUTO_ASSIGN_NOTE, now=now)
        ticket.record_history(
            "assign",
            actor.user_id,
            AUTO_ASSIGN_NOTE,
            changes=[FieldChange("assigned_to", None, manager.user_id)],
            at=now,
        )
        return True


class UpdateTicketService(_TicketCommand):
    """
    Use Case: update ticket fields and/or status.

    Every update carries a comment, stored as an internal system comment
    and as the note of a history entry with the field diffs. Nothing is
    persisted when any check fails.

    The result tells requested and applied status apart, so a RESOLVED
    request that landed in PENDING_APPROVAL is visible to the caller.
    """

    def execute(self, input_dto: UpdateTicketInputDTO) -> UpdateTicketResultDTO:
        """
        Raises:
            ValidationError: Missing comment, bad value, assigned_to in changes
            EntityNotFoundError: Unknown ticket
            AuthorizationError: Role or ownership gate failed
            IllegalTransitionError: Status not reachable
            ConflictError: Reopen refused by policy
        """
        actor = input_dto.actor
        comment = clean_text(input_dto.comment, "comment")
        if not comment:
            raise ValidationError("A comment describing the change is required", field="comment")

        changes = clean_mapping(input_dto.changes, "changes")
        policy = self.policy_provider.snapshot()
        status_change = None

        with self.uow:
            ticket = self._load(input_dto.ticket_id)
            self.access.ensure_can_update(actor, ticket, changes)

            requested_status = None
            if "status" in changes:
                requested_status = parse_enum(TicketStatus, changes.pop("status"), "status")
            if "priority" in changes:
                changes["priority"] = parse_enum(TicketPriority, changes["priority"], "priority")
            if "category" in changes:
                changes["category"] = parse_enum(TicketCategory, changes["category"], "category")

            now = utcnow()
            previous_assignee = ticket.assigned_to
            diffs = ticket.update_fields(changes, now=now)
            field_names = [d.field for d in diffs]

            if requested_status is not None:
                status_change = ticket.change_status(
                    requested_status, actor.user_id, actor.role, policy, now=now
                )
                if status_change.self_assigned:
                    diffs.append(FieldChange("assigned_to", previous_assignee, ticket.assigned_to))
                if status_change.changed:
                    diffs.append(
                        FieldChange("status", status_change.previous.value, status_change.applied.value)
                    )

            ticket.add_comment(actor.user_id, comment, is_internal=True, is_system=True, now=now)
            ticket.record_history(
                "update",
                actor.user_id,
                comment,
                changes=diffs,
                comments_added=1,
                at=now,
            )
            self.ticket_repo.save(ticket)

            if field_names:
                self.uow.publish_event(
                    TicketUpdatedEvent(
                        aggregate_id=ticket.id,
                        code=ticket.code,
                        changed_fields=field_names,
                        updated_by=actor.user_id,
                    )
                )
            if status_change is not None and status_change.self_assigned:
                self.uow.publish_event(assigned_event(ticket, previous_assignee))
            if status_change is not None and status_change.changed:
                self.uow.publish_event(status_event(ticket, status_change, actor.user_id))

        if status_change is not None and status_change.overridden:
            logger.info(
                f"Ticket {ticket.code}: {status_change.requested.value} requested, "
                f"{status_change.applied.value} applied"
            )
        if status_change is not None and status_change.changed:
            self.notifications.status_changed(ticket, actor.user_id, policy)
        self._audit(actor, "ticket.update", f"Updated ticket {ticket.code}: {comment}")
        return UpdateTicketResultDTO.build(ticket, [d.field for d in diffs], status_change)


class AssignTicketService(_TicketCommand):
    """
    Use Case: assign a ticket.

    Appends an AssignmentRecord (never rewrites earlier ones), mirrors
    it on the ticket and promotes OPEN/REOPENED to ASSIGNED.
    """

    def execute(self, input_dto: AssignTicketInputDTO) -> TicketOutputDTO:
        """
        Raises:
            AuthorizationError: Actor may not assign, or target outranks actor
            EntityNotFoundError: Unknown ticket or user
            ValidationError: Target inactive or not assignable
            ConflictError: Ticket not in an assignable state
        """
        actor = input_dto.actor
        assignee = self.access.ensure_can_assign(actor, input_dto.assignee_id)

        with self.uow:
            ticket = self._load(input_dto.ticket_id)
            now = utcnow()
            previous_status = ticket.status
            previous_assignee = ticket.assigned_to

            ticket.assign(assignee.user_id, actor.user_id, input_dto.note, now=now)

            diffs = [FieldChange("assigned_to", previous_assignee, assignee.user_id)]
            if ticket.status != previous_status:
                diffs.append(FieldChange("status", previous_status.value, ticket.status.value))
            ticket.record_history("assign", actor.user_id, input_dto.note, changes=diffs, at=now)
            self.ticket_repo.save(ticket)

            self.uow.publish_event(assigned_event(ticket, previous_assignee))
            if ticket.status != previous_status:
                change = StatusChange(previous_status, ticket.status, ticket.status)
                self.uow.publish_event(status_event(ticket, change, actor.user_id))

        logger.info(f"Ticket {ticket.code} assigned to {assignee.user_id} by {actor.user_id}")
        self.notifications.assigned(ticket, actor.user_id)
        self._audit(actor, "ticket.assign", f"Assigned ticket {ticket.code} to {assignee.user_id}")
        return TicketOutputDTO.from_entity(ticket)


class ApproveTicketService(_TicketCommand):
    """Use Case: approve a resolution waiting in PENDING_APPROVAL."""

    def execute(self, input_dto: ApproveTicketInputDTO) -> TicketOutputDTO:
        """
        Raises:
            ValidationError: Missing reason
            AuthorizationError: Not a Support Manager or Super Admin
            ConflictError: Ticket not pending approval
        """
        actor = input_dto.actor
        reason = clean_text(input_dto.reason, "reason")
        if not reason:
            raise ValidationError("An approval reason is required", field="reason")
        self.access.ensure_can_approve(actor)
        policy = self.policy_provider.snapshot()

        with self.uow:
            ticket = self._load(input_dto.ticket_id)
            now = utcnow()
            change = ticket.approve(actor.user_id, now=now)
            ticket.add_comment(
                actor.user_id, f"Approved: {reason}", is_internal=True, is_system=True, now=now
            )
            ticket.record_history(
                "approve",
                actor.user_id,
                reason,
                changes=[FieldChange("status", change.previous.value, change.applied.value)],
                comments_added=1,
                at=now,
            )
            self.ticket_repo.save(ticket)

            self.uow.publish_event(
                TicketApprovedEvent(
                    aggregate_id=ticket.id,
                    code=ticket.code,
                    approved_by=actor.user_id,
                    reason=reason,
                )
            )
            self.uow.publish_event(status_event(ticket, change, actor.user_id))

        self.notifications.approved(ticket, actor.user_id)
        self.notifications.status_changed(ticket, actor.user_id, policy)
        self._audit(actor, "ticket.approve", f"Approved ticket {ticket.code}: {reason}")
        return TicketOutputDTO.from_entity(ticket)


class CloseByCustomerService(_TicketCommand):
    """
    Use Case: record that the customer closed the ticket.

    The reason, when given, is kept as a system comment.
    """

    def execute(self, input_dto: CloseByCustomerInputDTO) -> UpdateTicketResultDTO:
        actor = input_dto.actor
        policy = self.policy_provider.snapshot()
        reason = clean_text(input_dto.reason, "reason")

        with self.uow:
            ticket = self._load(input_dto.ticket_id)
            self.access.ensure_can_update(
                actor, ticket, {"status": TicketStatus.CLOSED_BY_CUSTOMER.value}
            )
            now = utcnow()
            change = ticket.change_status(
                TicketStatus.CLOSED_BY_CUSTOMER, actor.user_id, actor.role, policy, now=now
            )
            comments_added = 0
            if reason:
                ticket.add_comment(
                    actor.user_id,
                    f"Closed by customer: {reason}",
                    is_internal=False,
                    is_system=True,
                    now=now,
                )
                comments_added = 1
            diffs = []
            if change.changed:
                diffs.append(FieldChange("status", change.previous.value, change.applied.value))
            ticket.record_history(
                "close_by_customer",
                actor.user_id,
                reason,
                changes=diffs,
                comments_added=comments_added,
                at=now,
            )
            self.ticket_repo.save(ticket)
            if change.changed:
                self.uow.publish_event(status_event(ticket, change, actor.user_id))

        if change.changed:
            self.notifications.status_changed(ticket, actor.user_id, policy)
        self._audit(actor, "ticket.close_by_customer", f"Ticket {ticket.code} closed by customer")
        return UpdateTicketResultDTO.build(ticket, [d.field for d in diffs], change)


class AddCommentService(_TicketCommand):
    """
    Use Case: comment on a ticket.

    Internal comments reach the assignee (and the Support Managers when
    the assignee is an Engineer); external ones reach creator and assignee.
    """

    def execute(self, input_dto: AddCommentInputDTO) -> TicketOutputDTO:
        actor = input_dto.actor

        with self.uow:
            ticket = self._load(input_dto.ticket_id)
            self.access.ensure_can_comment(actor, ticket)
            now = utcnow()
            attachments = [a.to_attachment(actor.user_id, now) for a in input_dto.attachments]
            comment = ticket.add_comment(
                actor.user_id,
                input_dto.text,
                is_internal=input_dto.is_internal,
                attachments=attachments,
                now=now,
            )
            ticket.record_history(
                "comment",
                actor.user_id,
                attachments_added=[a.file_name for a in attachments],
                comments_added=1,
                at=now,
            )
            self.ticket_repo.save(ticket)
            self.uow.publish_event(
                TicketCommentAddedEvent(
                    aggregate_id=ticket.id,
                    code=ticket.code,
                    comment_id=comment.id,
                    author_id=actor.user_id,
                    is_internal=comment.is_internal,
                )
            )

        self.notifications.comment_added(ticket, comment)
        return TicketOutputDTO.from_entity(ticket)


class AddAttachmentsService(_TicketCommand):
    """Use Case: attach files (references) to a ticket."""

    def execute(self, input_dto: AddAttachmentsInputDTO) -> TicketOutputDTO:
        actor = input_dto.actor

        with self.uow:
            ticket = self._load(input_dto.ticket_id)
            self.access.ensure_can_comment(actor, ticket)
            now = utcnow()
            added = ticket.add_attachments(
                [a.to_attachment(actor.user_id, now) for a in input_dto.attachments],
                now=now,
            )
            names = [a.file_name for a in added]
            ticket.record_history("attachments", actor.user_id, attachments_added=names, at=now)
            self.ticket_repo.save(ticket)
            self.uow.publish_event(
                TicketUpdatedEvent(
                    aggregate_id=ticket.id,
                    code=ticket.code,
                    changed_fields=["attachments"],
                    updated_by=actor.user_id,
                )
            )

        self._audit(actor, "ticket.attachments", f"Added {len(names)} attachment(s) to {ticket.code}")
        return TicketOutputDTO.from_entity(ticket)


class DeleteAttachmentService(_TicketCommand):
    """
    Use Case: remove one attachment from a ticket.

    Gated like adding attachments. Only the reference is dropped;
    the stored file is not touched.

    Raises:
        EntityNotFoundError: Unknown ticket or attachment
        AuthorizationError: Actor may not comment on the ticket
    """

    def execute(self, input_dto: DeleteAttachmentInputDTO) -> TicketOutputDTO:
        actor = input_dto.actor

        with self.uow:
            ticket = self._load(input_dto.ticket_id)
            self.access.ensure_can_comment(actor, ticket)
            now = utcnow()
            removed = ticket.remove_attachment(input_dto.attachment_id, now=now)
            ticket.record_history(
                "attachment_deleted",
                actor.user_id,
                attachments_removed=[removed.file_name],
                at=now,
            )
            self.ticket_repo.save(ticket)
            self.uow.publish_event(
                TicketUpdatedEvent(
                    aggregate_id=ticket.id,
                    code=ticket.code,
                    changed_fields=["attachments"],
                    updated_by=actor.user_id,
                )
            )

        self._audit(
            actor,
            "ticket.attachment_delete",
            f"Removed attachment {removed.file_name} from {ticket.code}",
        )
        return TicketOutputDTO.from_entity(ticket)


# =============================================================================
# Queries
# =============================================================================

class GetTicketService:
    """Use Case: ticket details, subject to visibility."""

    def __init__(self, ticket_repo: TicketRepository, access: TicketAccessPolicy):
        self.ticket_repo = ticket_repo
        self.access = access

    def execute(self, actor: Actor, ticket_id: str) -> TicketOutputDTO:
        """
        Raises:
            EntityNotFoundError: Unknown ticket
            AuthorizationError: Ticket not visible to the actor
        """
        ticket = self.ticket_repo.get_by_id(ticket_id)
        if not ticket:
            raise EntityNotFoundError(
                f"Ticket {ticket_id} not found",
                entity_type="Ticket",
                entity_id=ticket_id,
            )
        self.access.ensure_can_view(actor, ticket)
        return TicketOutputDTO.from_entity(ticket)


class GetAssignmentHistoryService(GetTicketService):
    """Use Case: the ordered assignment records of a ticket."""

    def execute(self, actor: Actor, ticket_id: str) -> List[AssignmentRecordDTO]:
        return super().execute(actor, ticket_id).assignment_history


class ListTicketsService:
    """
    Use Case: list the tickets an actor may see.

    Engineers see tickets assigned to or created by them; Support
    Managers also see tickets assigned to Engineers and every ticket
    pending approval; Super Admins see everything.
    """

    def __init__(self, ticket_repo: TicketRepository, access: TicketAccessPolicy):
        self.ticket_repo = ticket_repo
        self.access = access

    def execute(self, actor: Actor, filters: Optional[TicketFilterDTO] = None) -> List[TicketListItemDTO]:
        self.access.require(actor, Permission.VIEW_TICKET)
        filters = self._normalize(filters or TicketFilterDTO())
        tickets = self.access.visible(actor, self.ticket_repo.search(filters))
        return [TicketListItemDTO.from_entity(t) for t in tickets]

    @staticmethod
    def _normalize(filters: TicketFilterDTO) -> TicketFilterDTO:
        return TicketFilterDTO(
            status=parse_enum(TicketStatus, filters.status, "status").value if filters.status else None,
            priority=parse_enum(TicketPriority, filters.priority, "priority").value if filters.priority else None,
            category=parse_enum(TicketCategory, filters.category, "category").value if filters.category else None,
            assigned_to=filters.assigned_to,
            customer_id=filters.customer_id,
            created_by=filters.created_by,
        )


class CheckOverdueTicketsService:
    """
    Use Case: notify assignees of open tickets past their due date.

    Run periodically by the scheduler.

    Returns:
        Codes of the overdue tickets found
    """

    def __init__(self, ticket_repo: TicketRepository, notifications: TicketNotifier):
        self.ticket_repo = ticket_repo
        self.notifications = notifications

    def execute(self, now: Optional[datetime] = None) -> List[str]:
        overdue = self.ticket_repo.list_overdue(now or utcnow())
        for ticket in overdue:
            self.notifications.overdue(ticket)
        if overdue:
            logger.info(f"{len(overdue)} overdue ticket(s) found")
        return [t.code for t in overdue]
