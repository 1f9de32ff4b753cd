"""
Ports (interfaces) of the Tickets context.

Contracts the infrastructure adapters implement:
- TicketRepository: persistence of the Ticket aggregate
- InMemoryTicketRepository: dict-backed implementation for tests

Principle:
    The core defines interfaces, adapters implement them.

Example:
    class DjangoTicketRepository:
        def save(self, ticket: TicketEntity) -> None:
            ...
"""

from datetime import datetime
from typing import List, Optional, Protocol, runtime_checkable

from src.core.shared.memory import InMemoryVersionedStore

from .entities import TicketEntity
from .dtos import TicketFilterDTO


@runtime_checkable
class TicketRepository(Protocol):
    """
    Persistence of tickets.

    Implementations:
    - DjangoTicketRepository (ORM, JSON embedded collections)
    - InMemoryTicketRepository (tests)

    Methods:
        save: Create or update with compare-and-set on ``version``
        get_by_id / get_by_code: Lookup
        search: Filtered listing, newest first
        list_overdue: Open tickets past their due date
        next_sequence: Next per-day sequence for ticket codes
    """

    def save(self, ticket: TicketEntity) -> None:
        """
        Persist the ticket and bump its version.

        Raises:
            ConcurrencyError: The stored version moved since the ticket was loaded
        """
        ...

    def get_by_id(self, ticket_id: str) -> Optional[TicketEntity]:
        ...

    def get_by_code(self, code: str) -> Optional[TicketEntity]:
        ...

    def search(self, filters: TicketFilterDTO) -> List[TicketEntity]:
        ...

    def list_overdue(self, now: datetime) -> List[TicketEntity]:
        ...

    def next_sequence(self, code_prefix: str) -> int:
        """
        Sequence for the next ticket code with ``code_prefix`` (TKTYYYYMMDD).

        Returns:
            Number of existing codes with that prefix + 1
        """
        ...


def matches_filters(ticket: TicketEntity, filters: TicketFilterDTO) -> bool:
    if filters.status and ticket.status.value != filters.status:
        return False
    if filters.priority and ticket.priority.value != filters.priority:
        return False
    if filters.category and ticket.category.value != filters.category:
        return False
    if filters.assigned_to and ticket.assigned_to != filters.assigned_to:
        return False
    if filters.customer_id and ticket.customer_id != filters.customer_id:
        return False
    if filters.created_by and ticket.created_by != filters.created_by:
        return False
    return True


class InMemoryTicketRepository(InMemoryVersionedStore[TicketEntity]):
    """
    In-memory TicketRepository.

    Useful for unit tests, prototyping and local development.

    Example:
        repo = InMemoryTicketRepository()
        repo.save(ticket)
        found = repo.get_by_id(ticket.id)
    """

    entity_name = "Ticket"

    def save(self, ticket: TicketEntity) -> None:
        self._put(ticket)

    def get_by_id(self, ticket_id: str) -> Optional[TicketEntity]:
        return self._get(ticket_id)

    def get_by_code(self, code: str) -> Optional[TicketEntity]:
        for ticket in self._all():
            if ticket.code == code:
                return ticket
        return None

    def search(self, filters: TicketFilterDTO) -> List[TicketEntity]:
        found = [t for t in self._all() if matches_filters(t, filters)]
        return sorted(found, key=lambda t: t.created_at, reverse=True)

    def list_overdue(self, now: datetime) -> List[TicketEntity]:
        return [t for t in self._all() if t.is_overdue(now)]

    def next_sequence(self, code_prefix: str) -> int:
        return len([t for t in self._rows.values() if t.code.startswith(code_prefix)]) + 1
