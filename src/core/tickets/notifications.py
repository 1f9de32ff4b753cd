"""
Recipient rules for ticket notifications.

Everything here runs after the unit of work committed and goes through
``best_effort``: a broken notifier is logged and never fails the request.
"""

from typing import Iterable, List, Optional
import logging

from src.core.policy.entities import PolicySnapshot
from src.core.shared.collaborators import (
    NotificationKind,
    Notifier,
    UserDirectory,
    best_effort,
    best_effort_result,
)
from src.core.shared.roles import Role

from .entities import Comment, TicketEntity
from .state_machine import TicketStatus

logger = logging.getLogger(__name__)

COMMENT_PREVIEW_LENGTH = 100


def _unique(recipients: Iterable[Optional[str]], exclude: Optional[str]) -> List[str]:
    seen = []
    for recipient in recipients:
        if recipient and recipient != exclude and recipient not in seen:
            seen.append(recipient)
    return seen


class TicketNotifier:
    """
    Decides who hears about a ticket change and sends it.

    Example:
        TicketNotifier(notifier, users).status_changed(ticket, "mgr-1", policy)
    """

    def __init__(self, notifier: Notifier, user_directory: UserDirectory):
        self.notifier = notifier
        self.user_directory = user_directory

    def _managers(self) -> List[str]:
        managers = best_effort_result(
            self.user_directory.list_active_by_role,
            Role.SUPPORT_MANAGER,
            default=[],
            channel="user directory",
        )
        return [u.user_id for u in managers]

    def _send(self, recipients: List[str], subject: str, message: str, kind: NotificationKind) -> int:
        sent = 0
        for recipient in recipients:
            if best_effort(
                self.notifier.notify,
                recipient,
                subject,
                message,
                kind.value,
                channel="notification",
            ):
                sent += 1
        return sent

    def status_recipients(self, ticket: TicketEntity, actor_id: str) -> List[str]:
        status = ticket.status
        if status in (TicketStatus.IN_PROGRESS, TicketStatus.RESOLVED, TicketStatus.CLOSED_BY_CUSTOMER):
            candidates = [ticket.created_by]
        elif status == TicketStatus.CLOSED:
            candidates = [ticket.created_by, ticket.assigned_to]
        elif status == TicketStatus.ASSIGNED:
            candidates = [ticket.assigned_to]
        elif status == TicketStatus.REOPENED:
            candidates = [ticket.assigned_to] + self._managers()
        elif status == TicketStatus.PENDING_APPROVAL:
            candidates = self._managers()
        else:
            candidates = []
        return _unique(candidates, actor_id)

    def status_changed(self, ticket: TicketEntity, actor_id: str, policy: PolicySnapshot) -> int:
        if not policy.notify_on_status_change:
            return 0
        recipients = self.status_recipients(ticket, actor_id)
        label = ticket.status.value.replace("_", " ").title()
        return self._send(
            recipients,
            f"Ticket {ticket.code} is now {label}",
            f"Ticket {ticket.code} ({ticket.title}) changed status to {label}.",
            NotificationKind.TICKET_STATUS,
        )

    def assigned(self, ticket: TicketEntity, actor_id: str) -> int:
        return self._send(
            _unique([ticket.assigned_to], actor_id),
            f"Ticket {ticket.code} assigned to you",
            f"You have been assigned ticket {ticket.code}: {ticket.title}.",
            NotificationKind.TICKET_ASSIGNED,
        )

    def approved(self, ticket: TicketEntity, actor_id: str) -> int:
        return self._send(
            _unique([ticket.resolved_by, ticket.assigned_to], actor_id),
            f"Ticket {ticket.code} approved",
            f"The resolution of ticket {ticket.code} was approved.",
            NotificationKind.TICKET_APPROVED,
        )

    def comment_recipients(self, ticket: TicketEntity, comment: Comment) -> List[str]:
        if comment.is_internal:
            candidates = [ticket.assigned_to]
            assignee = None
            if ticket.assigned_to:
                assignee = best_effort_result(
                    self.user_directory.get_user, ticket.assigned_to, channel="user directory"
                )
            if assignee is not None and assignee.role == Role.ENGINEER:
                candidates += self._managers()
        else:
            candidates = [ticket.created_by, ticket.assigned_to]
        return _unique(candidates, comment.author_id)

    def comment_added(self, ticket: TicketEntity, comment: Comment) -> int:
        preview = comment.text[:COMMENT_PREVIEW_LENGTH]
        return self._send(
            self.comment_recipients(ticket, comment),
            f"New comment on ticket {ticket.code}",
            preview,
            NotificationKind.TICKET_COMMENT,
        )

    def overdue(self, ticket: TicketEntity) -> int:
        if not ticket.assigned_to:
            logger.warning(f"Overdue ticket {ticket.code} has no assignee to notify")
            return 0
        return self._send(
            [ticket.assigned_to],
            f"Ticket {ticket.code} is overdue",
            f"Ticket {ticket.code} was due on {ticket.due_date.isoformat()}.",
            NotificationKind.TICKET_OVERDUE,
        )
