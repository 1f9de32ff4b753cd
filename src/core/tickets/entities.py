"""
Ticket domain entities.

Entities:
- TicketEntity: the ticket aggregate
- TicketStatus / TicketPriority / TicketCategory
- AssignmentRecord, Comment, Attachment, HistoryEntry, FieldChange:
  value objects owned by the aggregate (no identity of their own)
- StatusChange: outcome of a status request ("requested X, applied Y")

Business rules enforced here:
- Title 5..100 characters, description at least 10
- Due date set exactly once, at creation
- Assignment mirror fields always equal the newest assignment record
- Status transitions validated by TicketStateMachine
- Resolutions land in PENDING_APPROVAL unless the policy auto-approves
- Reopening honours the reopen window and clears the closing stamps
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple
import uuid

from src.core.policy.entities import PolicySnapshot
from src.core.shared.clock import utcnow
from src.core.shared.exceptions import (
    ConflictError,
    EntityNotFoundError,
    IllegalTransitionError,
    ValidationError,
)
from src.core.shared.roles import Role
from src.core.shared.validation import clean_mapping, clean_optional_text, clean_text

from .state_machine import TicketStateMachine, TicketStatus

CODE_PREFIX = "TKT"


class TicketPriority(Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @classmethod
    def from_string(cls, value: str) -> "TicketPriority":
        """
        Convert "High" or "HIGH" to the enum.

        Raises:
            ValueError: Unknown priority
        """
        if isinstance(value, TicketPriority):
            return value
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            raise ValueError(f"Invalid priority: {value}")


class TicketCategory(Enum):
    HARDWARE = "HARDWARE"
    SOFTWARE = "SOFTWARE"
    NETWORK = "NETWORK"
    ACCOUNT = "ACCOUNT"
    OTHER = "OTHER"

    @classmethod
    def from_string(cls, value: str) -> "TicketCategory":
        if isinstance(value, TicketCategory):
            return value
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            raise ValueError(f"Invalid category: {value}")


# =============================================================================
# Value objects
# =============================================================================

@dataclass(frozen=True)
class AssignmentRecord:
    assigned_to: str
    assigned_by: str
    assigned_at: datetime
    note: str = ""


@dataclass(frozen=True)
class Attachment:
    file_name: str
    url: str
    uploaded_by: str
    uploaded_at: datetime
    content_type: Optional[str] = None
    size: Optional[int] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))


@dataclass(frozen=True)
class Comment:
    id: str
    author_id: str
    text: str
    is_internal: bool
    created_at: datetime
    is_system: bool = False
    attachments: Tuple[Attachment, ...] = ()


@dataclass(frozen=True)
class FieldChange:
    """One scalar field diff; values are stored in their serialized form."""

    field: str
    old: Any
    new: Any


@dataclass(frozen=True)
class HistoryEntry:
    """
    Audit entry for one mutating action on the ticket.

    Scalar field diffs go to ``changes``; attachment and comment
    additions (and attachment removals) are recorded separately.
    """

    action: str
    actor_id: str
    at: datetime
    note: str = ""
    changes: Tuple[FieldChange, ...] = ()
    attachments_added: Tuple[str, ...] = ()
    comments_added: int = 0
    attachments_removed: Tuple[str, ...] = ()


@dataclass(frozen=True)
class StatusChange:
    """
    Result of a status request.

    ``applied`` differs from ``requested`` when the approval policy
    turned a resolution into PENDING_APPROVAL.
    """

    previous: TicketStatus
    requested: TicketStatus
    applied: TicketStatus
    self_assigned: bool = False

    @property
    def changed(self) -> bool:
        return self.previous != self.applied

    @property
    def overridden(self) -> bool:
        return self.requested != self.applied


def _serialize(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return value


@dataclass
class TicketEntity:
    """
    Domain Entity: Ticket (aggregate root).

    Owns its assignment history, comments, attachments and audit history.
    Customer, users and inventory items are referenced by id only.

    Attributes:
        id: Internal UUID
        code: Human readable code, TKT{YYYYMMDD}{seq:04d}
        title / description / priority / category: Ticket content
        status: Current lifecycle state
        customer_id: Active customer at creation time
        created_by: Staff member who raised the ticket
        inventory_item_id / serial_number / item_metadata: Linked item
        assigned_to / assigned_by / assigned_at: Mirror of the newest assignment
        due_date: Set once at creation
        approved_by/at, resolved_by/at, closed_by/at: Lifecycle stamps
        version: Optimistic concurrency counter

    Example:
        ticket = TicketEntity.create(
            code="TKT202610190001",
            title="Printer offline",
            description="The office printer does not answer to ping",
            customer_id="cust-1",
            created_by="mgr-1",
            policy=PolicySnapshot(),
            priority=TicketPriority.HIGH,
        )
        ticket.assign("eng-1", "mgr-1", "Nearest engineer")
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    code: str = ""

    title: str = ""
    description: str = ""
    priority: TicketPriority = TicketPriority.MEDIUM
    category: TicketCategory = TicketCategory.OTHER
    status: TicketStatus = TicketStatus.OPEN

    customer_id: str = ""
    created_by: str = ""

    inventory_item_id: Optional[str] = None
    serial_number: Optional[str] = None
    item_metadata: Dict[str, str] = field(default_factory=dict)

    assigned_to: Optional[str] = None
    assigned_by: Optional[str] = None
    assigned_at: Optional[datetime] = None

    due_date: Optional[datetime] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    closed_by: Optional[str] = None
    closed_at: Optional[datetime] = None

    assignment_history: List[AssignmentRecord] = field(default_factory=list)
    comments: List[Comment] = field(default_factory=list)
    attachments: List[Attachment] = field(default_factory=list)
    history: List[HistoryEntry] = field(default_factory=list)

    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    version: int = 0

    TITLE_MIN_LENGTH = 5
    TITLE_MAX_LENGTH = 100
    DESCRIPTION_MIN_LENGTH = 10
    UPDATABLE_FIELDS = (
        "title",
        "description",
        "priority",
        "category",
        "inventory_item_id",
        "serial_number",
        "item_metadata",
    )

    @staticmethod
    def format_code(day: datetime, sequence: int) -> str:
        return f"{CODE_PREFIX}{day.strftime('%Y%m%d')}{sequence:04d}"

    @staticmethod
    def code_prefix_for(day: datetime) -> str:
        return f"{CODE_PREFIX}{day.strftime('%Y%m%d')}"

    @classmethod
    def create(
        cls,
        code: str,
        title: str,
        description: str,
        customer_id: str,
        created_by: str,
        policy: PolicySnapshot,
        priority: TicketPriority = TicketPriority.MEDIUM,
        category: TicketCategory = TicketCategory.OTHER,
        due_date: Optional[datetime] = None,
        inventory_item_id: Optional[str] = None,
        serial_number: Optional[str] = None,
        item_metadata: Optional[Dict[str, str]] = None,
        now: Optional[datetime] = None,
    ) -> "TicketEntity":
        """
        Factory method: validate input and compute the due date.

        An explicit ``due_date`` wins; otherwise the policy table gives
        the number of days for ``priority``.

        Raises:
            ValidationError: Invalid input
        """
        cls._validate_title(title)
        cls._validate_description(description)
        if not customer_id:
            raise ValidationError("Customer is required", field="customer_id")
        if not created_by:
            raise ValidationError("Creator is required", field="created_by")

        created_at = now or utcnow()
        ticket = cls(
            code=code,
            title=clean_text(title, "title"),
            description=clean_text(description, "description"),
            priority=priority,
            category=category,
            status=TicketStateMachine.initial_state(),
            customer_id=customer_id,
            created_by=created_by,
            inventory_item_id=clean_optional_text(inventory_item_id, "inventory_item_id"),
            serial_number=clean_optional_text(serial_number, "serial_number"),
            item_metadata=clean_mapping(item_metadata, "item_metadata"),
            due_date=due_date or policy.due_date_for(priority, created_at),
            created_at=created_at,
            updated_at=created_at,
        )
        ticket.record_history("create", created_by, "Ticket created", at=created_at)
        return ticket

    @classmethod
    def _validate_title(cls, title: str) -> None:
        cleaned = clean_text(title, "title")
        if not cleaned:
            raise ValidationError("Title is required", field="title")
        if len(cleaned) < cls.TITLE_MIN_LENGTH:
            raise ValidationError(
                f"Title must have at least {cls.TITLE_MIN_LENGTH} characters",
                field="title",
            )
        if len(cleaned) > cls.TITLE_MAX_LENGTH:
            raise ValidationError(
                f"Title must have at most {cls.TITLE_MAX_LENGTH} characters",
                field="title",
            )

    @classmethod
    def _validate_description(cls, description: str) -> None:
        cleaned = clean_text(description, "description")
        if len(cleaned) < cls.DESCRIPTION_MIN_LENGTH:
            raise ValidationError(
                f"Description must have at least {cls.DESCRIPTION_MIN_LENGTH} characters",
                field="description",
            )

    # =========================================================================
    # Assignment
    # =========================================================================

    def assign(
        self,
        assignee_id: str,
        assigned_by: str,
        note: str = "",
        now: Optional[datetime] = None,
    ) -> AssignmentRecord:
        """
        Append an assignment record and mirror it on the ticket.

        OPEN and REOPENED tickets move to ASSIGNED; a ticket already in
        progress keeps its status. Earlier records are never touched.

        Raises:
            ValidationError: Missing assignee
            ConflictError: Ticket is not in an assignable state
        """
        if not assignee_id:
            raise ValidationError("Assignee is required", field="assigned_to")
        if self.status not in TicketStateMachine.ASSIGNABLE:
            raise ConflictError(
                f"Ticket in status {self.status.value} cannot be assigned",
                rule="assign_requires_open_ticket",
            )

        at = now or utcnow()
        record = AssignmentRecord(
            assigned_to=assignee_id,
            assigned_by=assigned_by,
            assigned_at=at,
            note=clean_text(note, "note"),
        )
        self.assignment_history.append(record)
        self.assigned_to = record.assigned_to
        self.assigned_by = record.assigned_by
        self.assigned_at = record.assigned_at

        if self.status in (TicketStatus.OPEN, TicketStatus.REOPENED):
            self.status = TicketStatus.ASSIGNED
        self._touch(at)
        return record

    # =========================================================================
    # Status
    # =========================================================================

    def change_status(
        self,
        requested: TicketStatus,
        actor_id: str,
        actor_role: Role,
        policy: PolicySnapshot,
        now: Optional[datetime] = None,
    ) -> StatusChange:
        """
        Move the ticket towards ``requested``.

        Rules:
        - ASSIGNED only through ``assign``; PENDING_APPROVAL only by policy
        - PENDING_APPROVAL → RESOLVED only through ``approve``
        - IN_PROGRESS/RESOLVED on an unassigned ticket self-assigns the actor
        - RESOLVED stamps resolver; applied status is PENDING_APPROVAL
          unless the policy auto-approves the actor's role
        - REOPENED requires the policy flag and the reopen window,
          and clears closed_by/closed_at
        - CLOSED and CLOSED_BY_CUSTOMER stamp closed_by/closed_at

        Returns:
            StatusChange with requested and applied statuses

        Raises:
            IllegalTransitionError: Transition not allowed
            ConflictError: Reopen refused by policy
        """
        previous = self.status
        if requested == previous:
            return StatusChange(previous, requested, previous)

        if requested == TicketStatus.ASSIGNED:
            raise IllegalTransitionError(
                previous.value, requested.value,
                "Use the assignment operation to assign a ticket",
            )
        if requested == TicketStatus.PENDING_APPROVAL:
            raise IllegalTransitionError(
                previous.value, requested.value,
                "PENDING_APPROVAL is set by the approval policy, request RESOLVED instead",
            )
        if previous == TicketStatus.PENDING_APPROVAL and requested == TicketStatus.RESOLVED:
            raise IllegalTransitionError(
                previous.value, requested.value,
                "Ticket is pending approval and must be approved",
            )
        TicketStateMachine.assert_transition(previous, requested)

        at = now or utcnow()
        applied = requested
        self_assigned = False

        if requested in (TicketStatus.IN_PROGRESS, TicketStatus.RESOLVED) and not self.assigned_to:
            self.assign(actor_id, actor_id, f"Self-assigned on {requested.value}", now=at)
            self_assigned = True

        if requested == TicketStatus.RESOLVED:
            self.resolved_by = actor_id
            self.resolved_at = at
            if policy.requires_approval(actor_role):
                applied = TicketStatus.PENDING_APPROVAL
        elif requested in (TicketStatus.CLOSED, TicketStatus.CLOSED_BY_CUSTOMER):
            self.closed_by = actor_id
            self.closed_at = at
        elif requested == TicketStatus.REOPENED:
            self._assert_reopen_allowed(policy, at)
            self.closed_by = None
            self.closed_at = None

        self.status = applied
        self._touch(at)
        return StatusChange(previous, requested, applied, self_assigned)

    def _assert_reopen_allowed(self, policy: PolicySnapshot, now: datetime) -> None:
        if not policy.allow_reopen_closed_tickets:
            raise ConflictError(
                "Reopening closed tickets is disabled",
                rule="reopen_disabled",
            )
        if not policy.reopen_allowed(self.closed_at, now):
            raise ConflictError(
                f"Ticket was closed more than {policy.reopen_window_days} days ago "
                f"and can no longer be reopened",
                rule="reopen_window_expired",
            )

    def approve(self, actor_id: str, now: Optional[datetime] = None) -> StatusChange:
        """
        Approve a pending resolution.

        Raises:
            ConflictError: Ticket is not pending approval
        """
        if self.status != TicketStatus.PENDING_APPROVAL:
            raise ConflictError(
                f"Only tickets pending approval can be approved (status is {self.status.value})",
                rule="approve_requires_pending_approval",
            )
        at = now or utcnow()
        previous = self.status
        self.status = TicketStatus.RESOLVED
        self.approved_by = actor_id
        self.approved_at = at
        self._touch(at)
        return StatusChange(previous, TicketStatus.RESOLVED, TicketStatus.RESOLVED)

    def resolve_by_dispatch(
        self,
        actor_id: str,
        actor_role: Role,
        policy: PolicySnapshot,
        now: Optional[datetime] = None,
    ) -> StatusChange:
        """
        Resolve the ticket because a part was dispatched against it.

        A ticket already resolved or awaiting approval keeps its status.

        Raises:
            ConflictError: Ticket is closed
        """
        if self.status in (TicketStatus.RESOLVED, TicketStatus.PENDING_APPROVAL):
            return StatusChange(self.status, TicketStatus.RESOLVED, self.status)
        if self.status.is_closed:
            raise ConflictError(
                f"Cannot dispatch parts against a ticket in status {self.status.value}",
                rule="dispatch_requires_open_ticket",
            )
        return self.change_status(TicketStatus.RESOLVED, actor_id, actor_role, policy, now)

    # =========================================================================
    # Content
    # =========================================================================

    def update_fields(self, changes: Dict[str, Any], now: Optional[datetime] = None) -> List[FieldChange]:
        """
        Apply scalar field changes (already converted to domain types).

        The due date is deliberately absent: it is never recomputed.

        Returns:
            Diffs of the fields whose value actually changed

        Raises:
            ValidationError: Unknown field or invalid value
        """
        unknown = set(changes) - set(self.UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(
                f"Field(s) cannot be updated: {', '.join(sorted(unknown))}",
                field=sorted(unknown)[0],
            )
        if "title" in changes:
            self._validate_title(changes["title"])
        if "description" in changes:
            self._validate_description(changes["description"])

        cleaned = {}
        for name in self.UPDATABLE_FIELDS:
            if name not in changes:
                continue
            new_value = changes[name]
            if name in ("title", "description"):
                new_value = clean_text(new_value, name)
            elif name in ("inventory_item_id", "serial_number"):
                new_value = clean_optional_text(new_value, name)
            elif name == "item_metadata":
                new_value = clean_mapping(new_value, name)
            cleaned[name] = new_value

        diffs = []
        for name, new_value in cleaned.items():
            old_value = getattr(self, name)
            if old_value != new_value:
                setattr(self, name, new_value)
                diffs.append(FieldChange(name, _serialize(old_value), _serialize(new_value)))

        if diffs:
            self._touch(now)
        return diffs

    def add_comment(
        self,
        author_id: str,
        text: str,
        is_internal: bool = False,
        attachments: Iterable[Attachment] = (),
        is_system: bool = False,
        now: Optional[datetime] = None,
    ) -> Comment:
        """
        Append a comment.

        Raises:
            ValidationError: Empty text
        """
        text = clean_text(text, "text")
        if not text:
            raise ValidationError("Comment text is required", field="text")
        at = now or utcnow()
        comment = Comment(
            id=str(uuid.uuid4()),
            author_id=author_id,
            text=text,
            is_internal=is_internal,
            created_at=at,
            is_system=is_system,
            attachments=tuple(attachments),
        )
        self.comments.append(comment)
        self._touch(at)
        return comment

    def add_attachments(self, attachments: Iterable[Attachment], now: Optional[datetime] = None) -> List[Attachment]:
        added = list(attachments)
        if not added:
            raise ValidationError("At least one attachment is required", field="attachments")
        self.attachments.extend(added)
        self._touch(now)
        return added

    def remove_attachment(self, attachment_id: str, now: Optional[datetime] = None) -> Attachment:
        """
        Remove one attachment from the ticket's attachment list.

        Attachments carried by comments are part of the comment and stay.

        Raises:
            EntityNotFoundError: No attachment with that id
        """
        for index, attachment in enumerate(self.attachments):
            if attachment.id == attachment_id:
                del self.attachments[index]
                self._touch(now)
                return attachment
        raise EntityNotFoundError(
            f"Attachment {attachment_id} not found on ticket {self.code}",
            entity_type="Attachment",
            entity_id=attachment_id,
        )

    def record_history(
        self,
        action: str,
        actor_id: str,
        note: str = "",
        changes: Iterable[FieldChange] = (),
        attachments_added: Iterable[str] = (),
        comments_added: int = 0,
        attachments_removed: Iterable[str] = (),
        at: Optional[datetime] = None,
    ) -> HistoryEntry:
        entry = HistoryEntry(
            action=action,
            actor_id=actor_id,
            at=at or utcnow(),
            note=note,
            changes=tuple(changes),
            attachments_added=tuple(attachments_added),
            comments_added=comments_added,
            attachments_removed=tuple(attachments_removed),
        )
        self.history.append(entry)
        return entry

    def _touch(self, now: Optional[datetime] = None) -> None:
        self.updated_at = now or utcnow()

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def is_open(self) -> bool:
        return self.status not in (
            TicketStatus.RESOLVED,
            TicketStatus.CLOSED,
            TicketStatus.CLOSED_BY_CUSTOMER,
            TicketStatus.PENDING_APPROVAL,
        )

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        if not self.due_date or not self.is_open:
            return False
        return (now or utcnow()) > self.due_date

    def __repr__(self) -> str:
        return (
            f"TicketEntity("
            f"code={self.code}, "
            f"status={self.status.value}, "
            f"priority={self.priority.value}, "
            f"version={self.version}"
            f")"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TicketEntity):
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)
