"""
Domain Events of the Tickets context.

Events:
- TicketCreatedEvent: New ticket raised
- TicketAssignedEvent: Ticket (re)assigned
- TicketStatusChangedEvent: Status moved (carries requested vs applied)
- TicketUpdatedEvent: Content fields changed
- TicketApprovedEvent: Pending resolution approved
- TicketCommentAddedEvent: Comment appended

Usage:
    Events are queued on the Unit of Work and published after commit.

    with uow:
        repo.save(ticket)
        uow.publish_event(TicketCreatedEvent(aggregate_id=ticket.id, ...))
"""

from dataclasses import dataclass, field
from typing import List, Optional

from src.core.shared.events import DomainEvent


@dataclass
class _TicketEvent(DomainEvent):
    code: str = ""

    @property
    def aggregate_type(self) -> str:
        return "Ticket"


@dataclass
class TicketCreatedEvent(_TicketEvent):
    """
    Event: ticket was created.

    Typical handlers:
    - Creation metrics
    - Overdue scheduling

    Attributes:
        created_by: Staff member who raised it
        customer_id: Customer the ticket is for
        priority: Priority name
        due_date: ISO formatted due date
    """

    created_by: str = ""
    customer_id: str = ""
    priority: str = ""
    due_date: Optional[str] = None


@dataclass
class TicketAssignedEvent(_TicketEvent):
    """
    Event: ticket was assigned.

    Attributes:
        assigned_to: New assignee
        assigned_by: Who assigned it
        previous_assignee: Assignee before this record, if any
        automatic: True for auto-assignment on creation
    """

    assigned_to: str = ""
    assigned_by: str = ""
    previous_assignee: Optional[str] = None
    automatic: bool = False


@dataclass
class TicketStatusChangedEvent(_TicketEvent):
    """
    Event: ticket status changed.

    ``requested_status`` and ``applied_status`` differ when a resolution
    was routed to PENDING_APPROVAL.
    """

    previous_status: str = ""
    requested_status: str = ""
    applied_status: str = ""
    changed_by: str = ""


@dataclass
class TicketUpdatedEvent(_TicketEvent):
    changed_fields: List[str] = field(default_factory=list)
    updated_by: str = ""


@dataclass
class TicketApprovedEvent(_TicketEvent):
    approved_by: str = ""
    reason: str = ""


@dataclass
class TicketCommentAddedEvent(_TicketEvent):
    comment_id: str = ""
    author_id: str = ""
    is_internal: bool = False
