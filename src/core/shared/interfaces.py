"""
Interfaces (Ports) - contracts between core and adapters.

Driven ports implemented by the adapters:
- UnitOfWork: atomic persistence boundary, post-commit event publication
- EventPublisher: hands committed events to handlers
- EventStore: append-only persistence of published events

The dependency arrow always points at the core.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from .events import DomainEvent


class UnitOfWork(ABC):
    """
    Unit of Work - coordinates atomic transactions.

    Every repository write issued inside the ``with`` block is committed
    together or not at all. Events queued with ``publish_event`` are
    handed to the publisher only after a successful commit.

    Pattern: Context Manager
        with uow:
            ticket_repo.save(ticket)
            item_repo.save(item)
            uow.publish_event(event)
        # commit on clean exit, rollback on exception
    """

    def __init__(self):
        self._events: List[DomainEvent] = []

    def __enter__(self) -> "UnitOfWork":
        self._begin_transaction()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is not None:
            self.rollback()
        else:
            self.commit()
        return False

    @abstractmethod
    def _begin_transaction(self) -> None:
        """Start a new transaction (Django: ``transaction.set_autocommit(False)``)."""
        raise NotImplementedError

    @abstractmethod
    def commit(self) -> None:
        """
        Persist changes, then publish queued events.

        Note:
            Events are published only after the commit succeeded.
            If the commit fails the events are discarded.
        """
        raise NotImplementedError

    @abstractmethod
    def rollback(self) -> None:
        """Undo every change made in the block and discard queued events."""
        raise NotImplementedError

    def publish_event(self, event: DomainEvent) -> None:
        """
        Queue an event for publication after commit.

        Args:
            event: Domain event to publish
        """
        self._events.append(event)

    def collect_events(self) -> List[DomainEvent]:
        """Pending events (for tests and debugging)."""
        return list(self._events)

    def clear_events(self) -> None:
        self._events.clear()


class EventPublisher(ABC):
    """
    Publishes committed events to consumers.

    Example:
        class CeleryEventPublisher(EventPublisher):
            def publish(self, event):
                dispatch_domain_event.delay(event.event_type, event.to_dict())
    """

    @abstractmethod
    def publish(self, event: DomainEvent) -> None:
        raise NotImplementedError

    @abstractmethod
    def publish_batch(self, events: List[DomainEvent]) -> None:
        raise NotImplementedError


class EventStore(ABC):
    """
    Append-only persistence of domain events, kept for audit and replay.
    """

    @abstractmethod
    def append(self, event: DomainEvent, sequence: int = 0) -> None:
        """
        Persist an event.

        Args:
            event: Event to store
            sequence: Position of the event within its aggregate
        """
        raise NotImplementedError

    @abstractmethod
    def get_events_for_aggregate(
        self,
        aggregate_id: str,
        since_sequence: int = 0,
    ) -> List[Dict[str, Any]]:
        """
        Events of one aggregate ordered by sequence.

        Args:
            aggregate_id: Aggregate id
            since_sequence: First sequence to return
        """
        raise NotImplementedError
