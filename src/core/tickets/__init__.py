"""
Tickets context - support ticket lifecycle.

Contents:
- Entities (TicketEntity, TicketStatus, TicketPriority, TicketCategory)
- State machine (TicketStateMachine)
- Access policy (role gates and visibility)
- Use cases (create, update, assign, approve, comment, list...)
- Domain events (TicketCreated, TicketAssigned, TicketStatusChanged...)
- DTOs and ports

Domain characteristics:
- Due date computed once from the policy snapshot
- Append-only assignment history
- Resolutions routed through approval unless the policy auto-approves
- Side effects (notifications, audit) are best effort after commit
"""

from .entities import (
    AssignmentRecord,
    StatusChange,
    TicketCategory,
    TicketEntity,
    TicketPriority,
)
from .state_machine import TicketStateMachine, TicketStatus
from .access import TicketAccessPolicy
from .notifications import TicketNotifier
from .events import (
    TicketApprovedEvent,
    TicketAssignedEvent,
    TicketCommentAddedEvent,
    TicketCreatedEvent,
    TicketStatusChangedEvent,
    TicketUpdatedEvent,
)
from .dtos import (
    AddAttachmentsInputDTO,
    AddCommentInputDTO,
    ApproveTicketInputDTO,
    AssignTicketInputDTO,
    AttachmentInputDTO,
    CloseByCustomerInputDTO,
    CreateTicketInputDTO,
    DeleteAttachmentInputDTO,
    TicketFilterDTO,
    TicketListItemDTO,
    TicketOutputDTO,
    UpdateTicketInputDTO,
    UpdateTicketResultDTO,
)
from .ports import TicketRepository, InMemoryTicketRepository
from .use_cases import (
    AddAttachmentsService,
    AddCommentService,
    ApproveTicketService,
    AssignTicketService,
    CheckOverdueTicketsService,
    CloseByCustomerService,
    CreateTicketService,
    DeleteAttachmentService,
    GetAssignmentHistoryService,
    GetTicketService,
    ListTicketsService,
    UpdateTicketService,
)

__all__ = [
    # Entities
    "AssignmentRecord",
    "StatusChange",
    "TicketCategory",
    "TicketEntity",
    "TicketPriority",
    "TicketStateMachine",
    "TicketStatus",
    "TicketAccessPolicy",
    "TicketNotifier",
    # Events
    "TicketApprovedEvent",
    "TicketAssignedEvent",
    "TicketCommentAddedEvent",
    "TicketCreatedEvent",
    "TicketStatusChangedEvent",
    "TicketUpdatedEvent",
    # DTOs
    "AddAttachmentsInputDTO",
    "AddCommentInputDTO",
    "ApproveTicketInputDTO",
    "AssignTicketInputDTO",
    "AttachmentInputDTO",
    "CloseByCustomerInputDTO",
    "CreateTicketInputDTO",
    "DeleteAttachmentInputDTO",
    "TicketFilterDTO",
    "TicketListItemDTO",
    "TicketOutputDTO",
    "UpdateTicketInputDTO",
    "UpdateTicketResultDTO",
    # Ports
    "TicketRepository",
    "InMemoryTicketRepository",
    # Use cases
    "AddAttachmentsService",
    "AddCommentService",
    "ApproveTicketService",
    "AssignTicketService",
    "CheckOverdueTicketsService",
    "CloseByCustomerService",
    "CreateTicketService",
    "DeleteAttachmentService",
    "GetAssignmentHistoryService",
    "GetTicketService",
    "ListTicketsService",
    "UpdateTicketService",
]
