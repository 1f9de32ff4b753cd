"""
Domain Events - decoupled communication between bounded contexts.

Base infrastructure for domain events. Events are queued on the
Unit of Work and published only after a successful commit; Celery
handlers then take care of metrics, logging and fan-out.

Characteristics:
- Named in the past tense (TicketCreated, StockDispatched)
- Auto-generated id and timestamp
- Serializable for the event store and the broker
- Traceable through aggregate_id
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict
import uuid

from .clock import utcnow


@dataclass
class DomainEvent(ABC):
    """
    Abstract base class for domain events.

    Attributes:
        event_id: Unique event id
        aggregate_id: Id of the aggregate that produced the event
        occurred_at: When the event happened (UTC)
        version: Event schema version

    Example:
        @dataclass
        class TicketCreatedEvent(DomainEvent):
            code: str = ""

            @property
            def aggregate_type(self) -> str:
                return "Ticket"
    """

    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    aggregate_id: str = ""
    occurred_at: datetime = field(default_factory=utcnow)
    version: int = 1

    def __post_init__(self):
        if not self.aggregate_id:
            raise ValueError("aggregate_id is required")

    @property
    @abstractmethod
    def aggregate_type(self) -> str:
        """Name of the aggregate type (e.g. "Ticket", "InventoryItem")."""
        ...

    @property
    def event_type(self) -> str:
        """Event type name (the class name)."""
        return self.__class__.__name__

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize the event.

        Used by the event store, the Celery publisher and structured logs.

        Returns:
            Dictionary with envelope fields and a ``data`` payload
        """
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "aggregate_id": self.aggregate_id,
            "aggregate_type": self.aggregate_type,
            "occurred_at": self.occurred_at.isoformat(),
            "version": self.version,
            "data": self._get_event_data(),
        }

    def _get_event_data(self) -> Dict[str, Any]:
        """Event specific fields (every field not in the envelope)."""
        base_fields = {"event_id", "aggregate_id", "occurred_at", "version"}
        return {
            key: value
            for key, value in self.__dict__.items()
            if key not in base_fields and not key.startswith("_")
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DomainEvent":
        """
        Rebuild an event from its serialized form.

        Args:
            data: Dictionary produced by ``to_dict``

        Returns:
            Event instance
        """
        event_data = data.get("data", {})
        return cls(
            event_id=data.get("event_id", str(uuid.uuid4())),
            aggregate_id=data["aggregate_id"],
            occurred_at=datetime.fromisoformat(data["occurred_at"]),
            version=data.get("version", 1),
            **event_data,
        )

    def __repr__(self) -> str:
        return (
            f"{self.event_type}("
            f"event_id={self.event_id[:8]}..., "
            f"aggregate_id={self.aggregate_id}, "
            f"occurred_at={self.occurred_at.isoformat()}"
            f")"
        )
