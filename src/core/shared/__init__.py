"""
Shared Domain Components.

Building blocks used by every bounded context:
- Domain exceptions
- Interfaces (Ports) and external collaborator contracts
- Roles and permissions
- Base class for Domain Events
"""

from .exceptions import (
    DomainException,
    ValidationError,
    EntityNotFoundError,
    NotFoundError,
    AuthorizationError,
    ConflictError,
    BusinessRuleViolationError,
    IllegalTransitionError,
    InsufficientStockError,
    ConcurrencyError,
    TransientError,
)
from .events import DomainEvent
from .interfaces import UnitOfWork, EventPublisher, EventStore
from .roles import Role, Permission, StaticRoleOracle
from .collaborators import Actor, NotificationKind, best_effort, best_effort_result

__all__ = [
    "DomainException",
    "ValidationError",
    "EntityNotFoundError",
    "NotFoundError",
    "AuthorizationError",
    "ConflictError",
    "BusinessRuleViolationError",
    "IllegalTransitionError",
    "InsufficientStockError",
    "ConcurrencyError",
    "TransientError",
    "DomainEvent",
    "UnitOfWork",
    "EventPublisher",
    "EventStore",
    "Role",
    "Permission",
    "StaticRoleOracle",
    "Actor",
    "NotificationKind",
    "best_effort",
    "best_effort_result",
]
