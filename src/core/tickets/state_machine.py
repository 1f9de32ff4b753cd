"""
Ticket lifecycle state machine.

    OPEN → ASSIGNED → IN_PROGRESS → {PENDING_APPROVAL | RESOLVED}
    PENDING_APPROVAL → RESOLVED (approval only) | IN_PROGRESS (sent back)
    RESOLVED → CLOSED | REOPENED
    CLOSED → REOPENED
    CLOSED_BY_CUSTOMER → REOPENED
    OPEN/ASSIGNED/IN_PROGRESS/REOPENED → CLOSED_BY_CUSTOMER

Only legality lives here. Side conditions (approval policy, reopen
window, who may request what) are checked by the aggregate and the
access policy.
"""

from enum import Enum
from typing import Dict, FrozenSet

from src.core.shared.exceptions import IllegalTransitionError


class TicketStatus(Enum):
    """Lifecycle states of a ticket."""

    OPEN = "OPEN"
    ASSIGNED = "ASSIGNED"
    IN_PROGRESS = "IN_PROGRESS"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"
    REOPENED = "REOPENED"
    CLOSED_BY_CUSTOMER = "CLOSED_BY_CUSTOMER"

    @property
    def is_closed(self) -> bool:
        return self in (TicketStatus.CLOSED, TicketStatus.CLOSED_BY_CUSTOMER)

    @classmethod
    def from_string(cls, value: str) -> "TicketStatus":
        """
        Convert "In Progress", "in_progress" or "IN_PROGRESS".

        Raises:
            ValueError: Unknown status
        """
        if isinstance(value, TicketStatus):
            return value
        try:
            return cls[str(value).strip().upper().replace(" ", "_")]
        except KeyError:
            raise ValueError(f"Invalid status: {value}")


class TicketStateMachine:
    """Validate ticket status transitions."""

    _TRANSITIONS: Dict[TicketStatus, FrozenSet[TicketStatus]] = {
        TicketStatus.OPEN: frozenset({
            TicketStatus.ASSIGNED,
            TicketStatus.IN_PROGRESS,
            TicketStatus.PENDING_APPROVAL,
            TicketStatus.RESOLVED,
            TicketStatus.CLOSED_BY_CUSTOMER,
        }),
        TicketStatus.ASSIGNED: frozenset({
            TicketStatus.IN_PROGRESS,
            TicketStatus.PENDING_APPROVAL,
            TicketStatus.RESOLVED,
            TicketStatus.CLOSED_BY_CUSTOMER,
        }),
        TicketStatus.IN_PROGRESS: frozenset({
            TicketStatus.PENDING_APPROVAL,
            TicketStatus.RESOLVED,
            TicketStatus.CLOSED_BY_CUSTOMER,
        }),
        TicketStatus.PENDING_APPROVAL: frozenset({
            TicketStatus.RESOLVED,
            TicketStatus.IN_PROGRESS,
        }),
        TicketStatus.RESOLVED: frozenset({
            TicketStatus.CLOSED,
            TicketStatus.REOPENED,
        }),
        TicketStatus.CLOSED: frozenset({
            TicketStatus.REOPENED,
        }),
        TicketStatus.CLOSED_BY_CUSTOMER: frozenset({
            TicketStatus.REOPENED,
        }),
        TicketStatus.REOPENED: frozenset({
            TicketStatus.ASSIGNED,
            TicketStatus.IN_PROGRESS,
            TicketStatus.PENDING_APPROVAL,
            TicketStatus.RESOLVED,
            TicketStatus.CLOSED_BY_CUSTOMER,
        }),
    }

    ASSIGNABLE: FrozenSet[TicketStatus] = frozenset({
        TicketStatus.OPEN,
        TicketStatus.ASSIGNED,
        TicketStatus.IN_PROGRESS,
        TicketStatus.REOPENED,
    })

    @classmethod
    def initial_state(cls) -> TicketStatus:
        return TicketStatus.OPEN

    @classmethod
    def can_transition(cls, current: TicketStatus, new: TicketStatus) -> bool:
        if current == new:
            return True
        return new in cls._TRANSITIONS.get(current, frozenset())

    @classmethod
    def assert_transition(cls, current: TicketStatus, new: TicketStatus) -> None:
        if not cls.can_transition(current, new):
            raise IllegalTransitionError(current.value, new.value)

    @classmethod
    def allowed_from(cls, current: TicketStatus) -> FrozenSet[TicketStatus]:
        return cls._TRANSITIONS.get(current, frozenset())
