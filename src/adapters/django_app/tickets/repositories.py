"""
Django repositories of the Tickets context.

Implement the ports defined in the core. These are DRIVEN ADAPTERS,
called by the use cases through the Unit of Work.

Responsibilities:
- Implement TicketRepository and SettingsRepository
- Map entities to models and back through the mappers
- Optimistic concurrency: every save is a compare-and-set on ``version``

Principles:
- No business logic
- Conversions live in mappers.py
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

from django.db import IntegrityError
from django.db.models import Max

from src.core.policy.entities import SETTINGS_ID, TicketSettings
from src.core.shared.events import DomainEvent
from src.core.shared.exceptions import ConflictError
from src.core.tickets.dtos import TicketFilterDTO
from src.core.tickets.entities import TicketEntity, TicketStatus

from ..shared.repository import compare_and_set
from .mappers import DomainEventMapper, TicketMapper, TicketSettingsMapper
from .models import DomainEventModel, TicketModel, TicketSettingsModel

logger = logging.getLogger(__name__)

OPEN_STATUSES = [
    TicketStatus.OPEN.value,
    TicketStatus.ASSIGNED.value,
    TicketStatus.IN_PROGRESS.value,
    TicketStatus.REOPENED.value,
]


class DjangoTicketRepository:
    """
    Django implementation of TicketRepository.

    Example:
        repo = DjangoTicketRepository()
        repo.save(ticket)
        ticket = repo.get_by_code("TKT202610190001")
    """

    def __init__(self):
        self._mapper = TicketMapper()

    def save(self, ticket: TicketEntity) -> None:
        """
        Persist the ticket (create or update).

        Raises:
            ConcurrencyError: Stale version
            ConflictError: Ticket code already taken
        """
        try:
            compare_and_set(TicketModel, ticket, self._mapper.to_fields(ticket), "Ticket")
        except IntegrityError as e:
            logger.warning(f"Ticket code collision for {ticket.code}: {e}")
            raise ConflictError(
                f"Ticket code {ticket.code} is already in use, retry the request",
                rule="ticket_code_unique",
            )
        logger.debug(f"Ticket saved: {ticket.code} v{ticket.version}")

    def get_by_id(self, ticket_id: str) -> Optional[TicketEntity]:
        try:
            return self._mapper.to_entity(TicketModel.objects.get(id=ticket_id))
        except TicketModel.DoesNotExist:
            return None

    def get_by_code(self, code: str) -> Optional[TicketEntity]:
        try:
            return self._mapper.to_entity(TicketModel.objects.get(code=code))
        except TicketModel.DoesNotExist:
            return None

    def search(self, filters: TicketFilterDTO) -> List[TicketEntity]:
        queryset = TicketModel.objects.all()
        lookups = {
            'status': filters.status,
            'priority': filters.priority,
            'category': filters.category,
            'assigned_to': filters.assigned_to,
            'customer_id': filters.customer_id,
            'created_by': filters.created_by,
        }
        queryset = queryset.filter(**{k: v for k, v in lookups.items() if v})
        return self._mapper.to_entity_list(queryset.order_by('-created_at'))

    def list_overdue(self, now: datetime) -> List[TicketEntity]:
        queryset = TicketModel.objects.filter(
            due_date__lt=now,
            status__in=OPEN_STATUSES,
        ).order_by('due_date')
        return self._mapper.to_entity_list(queryset)

    def next_sequence(self, code_prefix: str) -> int:
        return TicketModel.objects.filter(code__startswith=code_prefix).count() + 1


class DjangoSettingsRepository:
    """Stores the ticket policy singleton in one row keyed by SETTINGS_ID."""

    def get(self) -> Optional[TicketSettings]:
        try:
            return TicketSettingsMapper.to_entity(TicketSettingsModel.objects.get(id=SETTINGS_ID))
        except TicketSettingsModel.DoesNotExist:
            return None

    def save(self, settings: TicketSettings) -> None:
        compare_and_set(
            TicketSettingsModel,
            settings,
            TicketSettingsMapper.to_fields(settings),
            "TicketSettings",
        )


class DjangoEventStore:
    """
    Event store on the Django ORM.

    Keeps domain events for audit, replay and analytics.
    """

    def append(self, event: DomainEvent, sequence: int = 0) -> None:
        DomainEventMapper.to_model(event, sequence=sequence).save()
        logger.debug(f"Event stored: {event.event_type} for {event.aggregate_id}")

    def last_sequence(self, aggregate_id: str) -> int:
        last = (
            DomainEventModel.objects
            .filter(aggregate_id=aggregate_id)
            .aggregate(last=Max('sequence'))['last']
        )
        return last or 0

    def get_events_for_aggregate(
        self,
        aggregate_id: str,
        since_sequence: int = 0,
    ) -> List[Dict[str, Any]]:
        """
        Events of one aggregate.

        Returns:
            Events as dicts, ordered by sequence
        """
        events = (
            DomainEventModel.objects
            .filter(aggregate_id=aggregate_id, sequence__gte=since_sequence)
            .order_by('sequence')
        )
        return [
            {
                'event_id': e.event_id,
                'event_type': e.event_type,
                'aggregate_id': e.aggregate_id,
                'event_data': e.event_data,
                'sequence': e.sequence,
                'occurred_at': e.occurred_at,
            }
            for e in events
        ]
