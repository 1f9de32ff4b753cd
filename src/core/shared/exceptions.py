"""
Domain exceptions for ServiceDesk Manager.

Typed errors shared by every layer. Use cases raise them before any
persistence write; the API layer maps them to HTTP status codes.

Hierarchy:
    DomainException (base)
    ├── ValidationError (bad or missing input)
    ├── EntityNotFoundError (ticket/item/customer/user absent)
    ├── AuthorizationError (role or ownership gate failed)
    ├── ConflictError (request is valid but the current state forbids it)
    │   ├── IllegalTransitionError
    │   ├── InsufficientStockError
    │   └── ConcurrencyError
    └── TransientError (notification/audit side channel failed)
"""


class DomainException(Exception):
    """
    Base class for every domain error.

    Catching DomainException catches any error the core raises on purpose.

    Example:
        try:
            service.execute(input_dto)
        except DomainException as e:
            logger.warning(f"Request rejected: {e}")
    """

    def __init__(self, message: str, code: str = None):
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict:
        """Serialize the error (used by the JSON API)."""
        return {
            "error": self.code,
            "message": self.message,
        }


class ValidationError(DomainException):
    """
    Input does not meet the minimum requirements.

    Example:
        if not comment.strip():
            raise ValidationError("A comment describing the change is required", field="comment")
    """

    def __init__(self, message: str, field: str = None):
        self.field = field
        code = f"VALIDATION_ERROR_{field.upper()}" if field else "VALIDATION_ERROR"
        super().__init__(message, code)

    def to_dict(self) -> dict:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        return result


class EntityNotFoundError(DomainException):
    """
    Lookup by id returned nothing.

    Example:
        ticket = repo.get_by_id(ticket_id)
        if not ticket:
            raise EntityNotFoundError(f"Ticket {ticket_id} not found", "Ticket", ticket_id)
    """

    def __init__(self, message: str, entity_type: str = None, entity_id: str = None):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(message, "ENTITY_NOT_FOUND")

    def to_dict(self) -> dict:
        result = super().to_dict()
        if self.entity_type:
            result["entity_type"] = self.entity_type
        if self.entity_id:
            result["entity_id"] = self.entity_id
        return result


NotFoundError = EntityNotFoundError


class AuthorizationError(DomainException):
    """
    The acting user's role or ownership does not allow the operation.

    Attributes:
        actor_id: Who attempted the operation
        action: Permission or action code that was refused
    """

    def __init__(self, message: str, actor_id: str = None, action: str = None):
        self.actor_id = actor_id
        self.action = action
        super().__init__(message, "AUTHORIZATION_ERROR")

    def to_dict(self) -> dict:
        result = super().to_dict()
        if self.action:
            result["action"] = self.action
        return result


class ConflictError(DomainException):
    """
    The request is well formed but conflicts with the current state.

    Example:
        if ticket.status != TicketStatus.PENDING_APPROVAL:
            raise ConflictError("Ticket is not pending approval", rule="approve_requires_pending")
    """

    def __init__(self, message: str, rule: str = None, code: str = "CONFLICT"):
        self.rule = rule
        super().__init__(message, code)

    def to_dict(self) -> dict:
        result = super().to_dict()
        if self.rule:
            result["rule"] = self.rule
        return result


BusinessRuleViolationError = ConflictError


class IllegalTransitionError(ConflictError):
    """Requested status is not reachable from the current status."""

    def __init__(self, current: str, requested: str, message: str = None):
        self.current = current
        self.requested = requested
        super().__init__(
            message or f"Transition from {current} to {requested} is not allowed",
            rule="illegal_status_transition",
            code="ILLEGAL_TRANSITION",
        )


class InsufficientStockError(ConflictError):
    """
    Dispatch asks for more than the bucket holds.

    Attributes:
        item_id: Inventory item
        condition: Condition bucket that was short
        requested: Quantity asked for
        available: Quantity on hand in the bucket
    """

    def __init__(self, item_id: str, condition: str, requested: int, available: int):
        self.item_id = item_id
        self.condition = condition
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock: requested {requested} {condition} unit(s), "
            f"{available} on hand",
            rule="insufficient_stock",
            code="INSUFFICIENT_STOCK",
        )

    def to_dict(self) -> dict:
        result = super().to_dict()
        result.update({
            "item_id": self.item_id,
            "condition": self.condition,
            "requested": self.requested,
            "available": self.available,
        })
        return result


class ConcurrencyError(ConflictError):
    """
    Entity was modified by another writer since it was loaded.

    Example:
        if stored.version != entity.version:
            raise ConcurrencyError(f"Ticket {entity.id} was modified concurrently")
    """

    def __init__(self, message: str):
        super().__init__(message, rule="stale_version", code="CONCURRENCY_ERROR")


class TransientError(DomainException):
    """
    A downstream side channel (notification, audit) failed.

    Never propagated out of a use case: callers of the side channel
    wrap it with ``best_effort``.
    """

    def __init__(self, message: str, channel: str = None):
        self.channel = channel
        super().__init__(message, "TRANSIENT_ERROR")
