"""
Unit of Work - Django implementation.

Runs the repositories of one use case inside a single database
transaction so a dispatch and the ticket it resolves are written
together or not at all.

Responsibilities:
- Open and close the transaction
- Coordinated commit/rollback
- Store events in the event store inside the transaction
- Publish events only after a successful commit
"""

from typing import Any, Dict, Iterable, List, Optional
import logging

from django.db import transaction

from src.core.shared.events import DomainEvent
from src.core.shared.interfaces import EventPublisher, EventStore, UnitOfWork

logger = logging.getLogger(__name__)


class DjangoUnitOfWork(UnitOfWork):
    """
    Unit of Work over ``django.db.transaction.atomic``.

    Nested use (for example inside a test case transaction) becomes a
    savepoint, so the unit of work composes with outer atomic blocks.

    Example:
        with DjangoUnitOfWork(event_publisher=publisher) as uow:
            item_repo.save(item)
            ticket_repo.save(ticket)
            uow.publish_event(StockDispatchedEvent(...))
        # committed, then events published

    Example with rollback:
        with DjangoUnitOfWork() as uow:
            item_repo.save(item)
            raise InsufficientStockError(...)
        # rolled back, events discarded
    """

    def __init__(
        self,
        event_publisher: Optional[EventPublisher] = None,
        event_store: Optional[EventStore] = None,
        using: Optional[str] = None,
    ):
        super().__init__()
        self._event_publisher = event_publisher
        self._event_store = event_store
        self._using = using
        self._atomic = None
        self._committed = False
        self._rolled_back = False
        self._sequence_counters: Dict[str, int] = {}

    def _begin_transaction(self) -> None:
        self._committed = False
        self._rolled_back = False
        self._atomic = transaction.atomic(using=self._using)
        self._atomic.__enter__()
        logger.debug("Transaction started")

    def commit(self) -> None:
        """
        Commit and publish.

        Order:
        1. Append events to the event store (same transaction)
        2. Commit
        3. Publish events to the handlers

        Raises:
            Exception: Commit failure, after rolling back
        """
        if self._atomic is None:
            logger.warning("Commit called outside of a transaction")
            return

        try:
            if self._event_store and self._events:
                self._persist_events()
        except Exception as e:
            logger.error(f"Event store append failed: {e}")
            self.rollback()
            raise

        atomic, self._atomic = self._atomic, None
        atomic.__exit__(None, None, None)
        self._committed = True
        logger.debug("Transaction committed")

        if self._events:
            self._publish_events()

    def rollback(self) -> None:
        """Undo the transaction and discard queued events."""
        if self._atomic is not None:
            atomic, self._atomic = self._atomic, None
            try:
                transaction.set_rollback(True, using=self._using)
                atomic.__exit__(None, None, None)
                logger.debug("Transaction rolled back")
            except Exception as e:
                logger.error(f"Rollback failed: {e}")
        self._rolled_back = True
        self.clear_events()

    def _persist_events(self) -> None:
        for event in self._events:
            sequence = self._next_sequence(event.aggregate_id)
            self._event_store.append(event=event, sequence=sequence)

    def _publish_events(self) -> None:
        """
        Hand committed events to the publisher.

        A publisher failure is logged: the data is committed and the
        event is still in the event store.
        """
        events, self._events = list(self._events), []
        for event in events:
            logger.info(f"Publishing event: {event.event_type} for aggregate {event.aggregate_id}")
            if self._event_publisher:
                try:
                    self._event_publisher.publish(event)
                except Exception as e:
                    logger.error(f"Failed to publish event: {e}")

    def _next_sequence(self, aggregate_id: str) -> int:
        if aggregate_id not in self._sequence_counters:
            last = 0
            if hasattr(self._event_store, "last_sequence"):
                last = self._event_store.last_sequence(aggregate_id)
            self._sequence_counters[aggregate_id] = last
        self._sequence_counters[aggregate_id] += 1
        return self._sequence_counters[aggregate_id]

    @property
    def is_committed(self) -> bool:
        return self._committed

    @property
    def is_rolled_back(self) -> bool:
        return self._rolled_back


class InMemoryUnitOfWork(UnitOfWork):
    """
    Unit of Work for tests, backed by in-memory repositories.

    Repositories passed in ``repositories`` are snapshotted when the
    block starts and restored on rollback, so a failed dispatch leaves
    both the item and the ticket untouched.

    Example:
        uow = InMemoryUnitOfWork(repositories=[item_repo, ticket_repo])
        with uow:
            item_repo.save(item)
            uow.publish_event(event)

        assert uow.committed
        assert len(uow.published_events) == 1
    """

    def __init__(
        self,
        repositories: Iterable[Any] = (),
        event_publisher: Optional[EventPublisher] = None,
    ):
        super().__init__()
        self._repositories = list(repositories)
        self._event_publisher = event_publisher
        self._snapshots: List[Any] = []
        self._committed = False
        self._rolled_back = False
        self._published_events: List[DomainEvent] = []

    def track(self, repository: Any) -> None:
        self._repositories.append(repository)

    def _begin_transaction(self) -> None:
        self._committed = False
        self._rolled_back = False
        self._snapshots = [repo.snapshot() for repo in self._repositories]

    def commit(self) -> None:
        self._committed = True
        self._snapshots = []
        events = list(self._events)
        self._published_events.extend(events)
        self.clear_events()
        if self._event_publisher:
            self._event_publisher.publish_batch(events)

    def rollback(self) -> None:
        for repo, state in zip(self._repositories, self._snapshots):
            repo.restore(state)
        self._snapshots = []
        self._rolled_back = True
        self.clear_events()

    @property
    def committed(self) -> bool:
        return self._committed

    @property
    def rolled_back(self) -> bool:
        return self._rolled_back

    @property
    def published_events(self) -> List[DomainEvent]:
        return self._published_events

    def reset(self) -> None:
        self._committed = False
        self._rolled_back = False
        self._published_events.clear()
        self.clear_events()
