"""
External collaborators consumed by the core.

The core only needs narrow contracts from the systems around it:
- RoleOracle: permission and hierarchy checks
- UserDirectory: staff lookup (assignment targets, notification recipients)
- CustomerDirectory: active customer lookup
- Notifier: fire-and-forget notifications
- AuditLogger: write-only activity trail

In-memory implementations live next to the protocols, the same way
repository ports ship an InMemory version for tests and prototyping.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol, runtime_checkable
import logging

from .exceptions import TransientError
from .roles import Permission, Role

logger = logging.getLogger(__name__)


# =============================================================================
# Value objects
# =============================================================================

@dataclass(frozen=True)
class Actor:
    """
    The user performing a request.

    Attributes:
        user_id: Staff member id
        role: Role resolved by the request layer
        ip_address: Client address, forwarded to the audit log
    """

    user_id: str
    role: Role
    ip_address: Optional[str] = None


@dataclass(frozen=True)
class UserRef:
    user_id: str
    role: Role
    is_active: bool = True
    name: str = ""
    email: str = ""


@dataclass(frozen=True)
class CustomerRef:
    customer_id: str
    name: str = ""
    is_active: bool = True


class NotificationKind(Enum):
    TICKET_ASSIGNED = "ticket_assigned"
    TICKET_STATUS = "ticket_status"
    TICKET_APPROVED = "ticket_approved"
    TICKET_COMMENT = "ticket_comment"
    TICKET_OVERDUE = "ticket_overdue"
    LOW_STOCK = "low_stock"
    PART_DISPATCH = "part_dispatch"
    PART_RETURN = "part_return"


# =============================================================================
# Protocols
# =============================================================================

@runtime_checkable
class RoleOracle(Protocol):
    def has_permission(self, role: Role, permission: Permission) -> bool:
        ...

    def is_role_at_least(self, actor_role: Role, required_role: Role) -> bool:
        ...


@runtime_checkable
class UserDirectory(Protocol):
    def get_user(self, user_id: str) -> Optional[UserRef]:
        """Staff member by id, active or not. None when unknown."""
        ...

    def list_active_by_role(self, role: Role) -> List[UserRef]:
        ...


@runtime_checkable
class CustomerDirectory(Protocol):
    def get_active_customer(self, customer_id: str) -> Optional[CustomerRef]:
        """Customer by id, or None when it does not exist or is inactive."""
        ...


@runtime_checkable
class Notifier(Protocol):
    def notify(self, recipient_id: str, subject: str, message: str, kind: str) -> None:
        """
        Fire-and-forget notification.

        Raises:
            TransientError: Delivery could not be enqueued
        """
        ...


@runtime_checkable
class AuditLogger(Protocol):
    def record(self, actor_id: str, action: str, details: str, ip: Optional[str] = None) -> None:
        ...


def best_effort_result(action: Callable, *args, default: Any = None, channel: str = "side-channel", **kwargs) -> Any:
    """
    Run a side-channel call and hand back its result.

    Used for lookups that feed a side channel (e.g. resolving notification
    recipients). A failure is logged and ``default`` is returned instead.
    """
    try:
        return action(*args, **kwargs)
    except TransientError as e:
        logger.warning(f"{channel} unavailable: {e}")
    except Exception as e:
        logger.error(f"{channel} failed: {e}", exc_info=True)
    return default


def best_effort(action: Callable, *args, channel: str = "side-channel", **kwargs) -> bool:
    """
    Run a side-channel call and swallow its failure.

    Notifications and audit records must never roll back or fail the
    primary mutation, so errors are logged and the call reports False.

    Returns:
        True if the call completed, False if it failed
    """
    failed = object()
    return best_effort_result(action, *args, default=failed, channel=channel, **kwargs) is not failed


# =============================================================================
# In-memory implementations
# =============================================================================

class InMemoryUserDirectory:
    """
    Staff directory held in a dict.

    Example:
        users = InMemoryUserDirectory()
        users.add("eng-1", Role.ENGINEER)
    """

    def __init__(self):
        self._users: Dict[str, UserRef] = {}

    def add(self, user_id: str, role: Role, is_active: bool = True, name: str = "") -> UserRef:
        user = UserRef(user_id=user_id, role=role, is_active=is_active, name=name or user_id)
        self._users[user_id] = user
        return user

    def get_user(self, user_id: str) -> Optional[UserRef]:
        return self._users.get(user_id)

    def list_active_by_role(self, role: Role) -> List[UserRef]:
        return [u for u in self._users.values() if u.role == role and u.is_active]


class InMemoryCustomerDirectory:
    def __init__(self):
        self._customers: Dict[str, CustomerRef] = {}

    def add(self, customer_id: str, name: str = "", is_active: bool = True) -> CustomerRef:
        customer = CustomerRef(customer_id=customer_id, name=name, is_active=is_active)
        self._customers[customer_id] = customer
        return customer

    def get_active_customer(self, customer_id: str) -> Optional[CustomerRef]:
        customer = self._customers.get(customer_id)
        if customer and customer.is_active:
            return customer
        return None


@dataclass
class SentNotification:
    recipient_id: str
    subject: str
    message: str
    kind: str


class RecordingNotifier:
    """
    Notifier that keeps what it was asked to send.

    Set ``fail_with`` to simulate a broken delivery channel.
    """

    def __init__(self):
        self.sent: List[SentNotification] = []
        self.fail_with: Optional[Exception] = None

    def notify(self, recipient_id: str, subject: str, message: str, kind: str) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(SentNotification(recipient_id, subject, message, kind))

    def recipients(self, kind: str = None) -> List[str]:
        return [n.recipient_id for n in self.sent if kind is None or n.kind == kind]

    def clear(self) -> None:
        self.sent.clear()


@dataclass
class AuditEntry:
    actor_id: str
    action: str
    details: str
    ip: Optional[str] = None


class RecordingAuditLogger:
    def __init__(self):
        self.entries: List[AuditEntry] = []
        self.fail_with: Optional[Exception] = None

    def record(self, actor_id: str, action: str, details: str, ip: Optional[str] = None) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.entries.append(AuditEntry(actor_id, action, details, ip))

    def actions(self) -> List[str]:
        return [e.action for e in self.entries]
