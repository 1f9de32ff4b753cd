"""
Data Transfer Objects of the Tickets context.

DTOs carry data between layers without leaking entities outward.

Kinds:
- Input DTOs: validated request data handed to use cases (frozen)
- Output DTOs: what views and APIs render
- Filter DTO: listing criteria
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

from src.core.shared.collaborators import Actor

from .entities import (
    AssignmentRecord,
    Attachment,
    Comment,
    HistoryEntry,
    StatusChange,
    TicketEntity,
)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# =============================================================================
# INPUT DTOs
# =============================================================================

@dataclass(frozen=True)
class AttachmentInputDTO:
    """An uploaded file already stored somewhere; only its reference is kept."""

    file_name: str
    url: str
    content_type: Optional[str] = None
    size: Optional[int] = None

    def to_attachment(self, uploaded_by: str, uploaded_at: datetime) -> Attachment:
        return Attachment(
            file_name=self.file_name,
            url=self.url,
            uploaded_by=uploaded_by,
            uploaded_at=uploaded_at,
            content_type=self.content_type,
            size=self.size,
        )


@dataclass(frozen=True)
class CreateTicketInputDTO:
    """
    Input for creating a ticket.

    Attributes:
        actor: Who raises the ticket
        title: 5..100 characters
        description: At least 10 characters
        customer_id: Must be an active customer
        priority: Priority name (default MEDIUM)
        category: Category name (default OTHER)
        due_date: Explicit due date; computed from priority when absent
        inventory_item_id / serial_number / item_metadata: Linked item
    """

    actor: Actor
    title: str
    description: str
    customer_id: str
    priority: str = "MEDIUM"
    category: str = "OTHER"
    due_date: Optional[datetime] = None
    inventory_item_id: Optional[str] = None
    serial_number: Optional[str] = None
    item_metadata: Mapping[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "actor_id": self.actor.user_id,
            "title": self.title,
            "description": self.description,
            "customer_id": self.customer_id,
            "priority": self.priority,
            "category": self.category,
            "due_date": _iso(self.due_date),
            "inventory_item_id": self.inventory_item_id,
            "serial_number": self.serial_number,
            "item_metadata": dict(self.item_metadata),
        }


@dataclass(frozen=True)
class UpdateTicketInputDTO:
    """
    Input for updating a ticket.

    Attributes:
        actor: Who updates
        ticket_id: Target ticket
        comment: Mandatory description of the change
        changes: Field name -> new value; may include "status"
    """

    actor: Actor
    ticket_id: str
    comment: str
    changes: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AssignTicketInputDTO:
    actor: Actor
    ticket_id: str
    assignee_id: str
    note: str = ""

    def to_dict(self) -> dict:
        return {
            "actor_id": self.actor.user_id,
            "ticket_id": self.ticket_id,
            "assignee_id": self.assignee_id,
            "note": self.note,
        }


@dataclass(frozen=True)
class ApproveTicketInputDTO:
    actor: Actor
    ticket_id: str
    reason: str


@dataclass(frozen=True)
class CloseByCustomerInputDTO:
    actor: Actor
    ticket_id: str
    reason: str = ""


@dataclass(frozen=True)
class AddCommentInputDTO:
    actor: Actor
    ticket_id: str
    text: str
    is_internal: bool = False
    attachments: Tuple[AttachmentInputDTO, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class AddAttachmentsInputDTO:
    actor: Actor
    ticket_id: str
    attachments: Tuple[AttachmentInputDTO, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class DeleteAttachmentInputDTO:
    actor: Actor
    ticket_id: str
    attachment_id: str


@dataclass(frozen=True)
class TicketFilterDTO:
    """
    Listing criteria; every field is optional and values are enum names.
    """

    status: Optional[str] = None
    priority: Optional[str] = None
    category: Optional[str] = None
    assigned_to: Optional[str] = None
    customer_id: Optional[str] = None
    created_by: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "priority": self.priority,
            "category": self.category,
            "assigned_to": self.assigned_to,
            "customer_id": self.customer_id,
            "created_by": self.created_by,
        }


# =============================================================================
# OUTPUT DTOs
# =============================================================================

@dataclass
class AssignmentRecordDTO:
    assigned_to: str
    assigned_by: str
    assigned_at: datetime
    note: str

    @classmethod
    def from_record(cls, record: AssignmentRecord) -> "AssignmentRecordDTO":
        return cls(
            assigned_to=record.assigned_to,
            assigned_by=record.assigned_by,
            assigned_at=record.assigned_at,
            note=record.note,
        )

    def to_dict(self) -> dict:
        return {
            "assigned_to": self.assigned_to,
            "assigned_by": self.assigned_by,
            "assigned_at": self.assigned_at.isoformat(),
            "note": self.note,
        }


def _attachment_dict(attachment: Attachment) -> dict:
    return {
        "id": attachment.id,
        "file_name": attachment.file_name,
        "url": attachment.url,
        "uploaded_by": attachment.uploaded_by,
        "uploaded_at": attachment.uploaded_at.isoformat(),
        "content_type": attachment.content_type,
        "size": attachment.size,
    }


def _comment_dict(comment: Comment) -> dict:
    return {
        "id": comment.id,
        "author_id": comment.author_id,
        "text": comment.text,
        "is_internal": comment.is_internal,
        "is_system": comment.is_system,
        "created_at": comment.created_at.isoformat(),
        "attachments": [_attachment_dict(a) for a in comment.attachments],
    }


def _history_dict(entry: HistoryEntry) -> dict:
    return {
        "action": entry.action,
        "actor_id": entry.actor_id,
        "at": entry.at.isoformat(),
        "note": entry.note,
        "changes": [
            {"field": c.field, "old": c.old, "new": c.new} for c in entry.changes
        ],
        "attachments_added": list(entry.attachments_added),
        "comments_added": entry.comments_added,
        "attachments_removed": list(entry.attachments_removed),
    }


@dataclass
class TicketOutputDTO:
    """
    Full ticket representation, embedded collections included.

    Internal comments are part of the output: only staff read tickets.
    """

    id: str
    code: str
    title: str
    description: str
    status: str
    priority: str
    category: str
    customer_id: str
    created_by: str
    assigned_to: Optional[str]
    assigned_by: Optional[str]
    assigned_at: Optional[datetime]
    due_date: Optional[datetime]
    is_overdue: bool
    inventory_item_id: Optional[str]
    serial_number: Optional[str]
    item_metadata: Dict[str, str]
    approved_by: Optional[str]
    approved_at: Optional[datetime]
    resolved_by: Optional[str]
    resolved_at: Optional[datetime]
    closed_by: Optional[str]
    closed_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime
    version: int
    assignment_history: List[AssignmentRecordDTO] = field(default_factory=list)
    comments: List[dict] = field(default_factory=list)
    attachments: List[dict] = field(default_factory=list)
    history: List[dict] = field(default_factory=list)

    @classmethod
    def from_entity(cls, entity: TicketEntity) -> "TicketOutputDTO":
        return cls(
            id=entity.id,
            code=entity.code,
            title=entity.title,
            description=entity.description,
            status=entity.status.value,
            priority=entity.priority.value,
            category=entity.category.value,
            customer_id=entity.customer_id,
            created_by=entity.created_by,
            assigned_to=entity.assigned_to,
            assigned_by=entity.assigned_by,
            assigned_at=entity.assigned_at,
            due_date=entity.due_date,
            is_overdue=entity.is_overdue(),
            inventory_item_id=entity.inventory_item_id,
            serial_number=entity.serial_number,
            item_metadata=dict(entity.item_metadata),
            approved_by=entity.approved_by,
            approved_at=entity.approved_at,
            resolved_by=entity.resolved_by,
            resolved_at=entity.resolved_at,
            closed_by=entity.closed_by,
            closed_at=entity.closed_at,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
            version=entity.version,
            assignment_history=[
                AssignmentRecordDTO.from_record(r) for r in entity.assignment_history
            ],
            comments=[_comment_dict(c) for c in entity.comments],
            attachments=[_attachment_dict(a) for a in entity.attachments],
            history=[_history_dict(h) for h in entity.history],
        )

    def to_dict(self) -> dict:
        """Serialize for JSON responses."""
        return {
            "id": self.id,
            "code": self.code,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "priority": self.priority,
            "category": self.category,
            "customer_id": self.customer_id,
            "created_by": self.created_by,
            "assigned_to": self.assigned_to,
            "assigned_by": self.assigned_by,
            "assigned_at": _iso(self.assigned_at),
            "due_date": _iso(self.due_date),
            "is_overdue": self.is_overdue,
            "inventory_item_id": self.inventory_item_id,
            "serial_number": self.serial_number,
            "item_metadata": self.item_metadata,
            "approved_by": self.approved_by,
            "approved_at": _iso(self.approved_at),
            "resolved_by": self.resolved_by,
            "resolved_at": _iso(self.resolved_at),
            "closed_by": self.closed_by,
            "closed_at": _iso(self.closed_at),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "version": self.version,
            "assignment_history": [r.to_dict() for r in self.assignment_history],
            "comments": self.comments,
            "attachments": self.attachments,
            "history": self.history,
        }


@dataclass
class TicketListItemDTO:
    """Lightweight row for listings."""

    id: str
    code: str
    title: str
    status: str
    priority: str
    assigned_to: Optional[str]
    due_date: Optional[datetime]
    is_overdue: bool
    created_at: datetime

    @classmethod
    def from_entity(cls, entity: TicketEntity) -> "TicketListItemDTO":
        return cls(
            id=entity.id,
            code=entity.code,
            title=entity.title,
            status=entity.status.value,
            priority=entity.priority.value,
            assigned_to=entity.assigned_to,
            due_date=entity.due_date,
            is_overdue=entity.is_overdue(),
            created_at=entity.created_at,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "title": self.title,
            "status": self.status,
            "priority": self.priority,
            "assigned_to": self.assigned_to,
            "due_date": _iso(self.due_date),
            "is_overdue": self.is_overdue,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class UpdateTicketResultDTO:
    """
    Outcome of an update.

    ``status_overridden`` is True when the requested status was replaced
    by the approval policy (e.g. RESOLVED requested, PENDING_APPROVAL applied).
    """

    ticket: TicketOutputDTO
    changed_fields: List[str]
    requested_status: Optional[str] = None
    applied_status: Optional[str] = None
    status_overridden: bool = False
    self_assigned: bool = False

    @classmethod
    def build(
        cls,
        entity: TicketEntity,
        changed_fields: List[str],
        status_change: Optional[StatusChange] = None,
    ) -> "UpdateTicketResultDTO":
        result = cls(ticket=TicketOutputDTO.from_entity(entity), changed_fields=changed_fields)
        if status_change is not None:
            result.requested_status = status_change.requested.value
            result.applied_status = status_change.applied.value
            result.status_overridden = status_change.overridden
            result.self_assigned = status_change.self_assigned
        return result

    def to_dict(self) -> dict:
        return {
            "ticket": self.ticket.to_dict(),
            "changed_fields": self.changed_fields,
            "requested_status": self.requested_status,
            "applied_status": self.applied_status,
            "status_overridden": self.status_overridden,
            "self_assigned": self.self_assigned,
        }
