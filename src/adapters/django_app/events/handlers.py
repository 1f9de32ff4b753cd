"""
Event Handlers - asynchronous processing of committed domain events.

Handlers run on Celery workers after the Unit of Work committed and
the CeleryEventPublisher routed the event through
``dispatch_domain_event``. Notifications and audit entries are already
sent by the use cases; handlers here take care of metrics, operational
logging and scheduled jobs.

Handler signature:
    @shared_task(bind=True, ...)
    def handle_<event>(self, event_data: dict) -> None

``event_data`` is ``DomainEvent.to_dict()``: envelope fields plus the
event specific payload under ``data``.
"""

from datetime import timedelta
from typing import Any, Dict
import logging

from celery import shared_task

logger = logging.getLogger(__name__)


def _payload(event_data: Dict[str, Any]) -> Dict[str, Any]:
    return event_data.get('data', {})


# =============================================================================
# Event Handlers - Tickets
# =============================================================================

@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    acks_late=True,
)
def handle_ticket_created(self, event_data: Dict[str, Any]) -> None:
    data = _payload(event_data)
    logger.info(
        f"[HANDLER] TicketCreated: {data.get('code')} | "
        f"customer={data.get('customer_id')} | priority={data.get('priority')}"
    )
    record_metric.delay(
        metric_name='tickets_created',
        value=1,
        tags={'priority': data.get('priority', '')},
    )


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    acks_late=True,
)
def handle_ticket_assigned(self, event_data: Dict[str, Any]) -> None:
    data = _payload(event_data)
    logger.info(
        f"[HANDLER] TicketAssigned: {data.get('code')} -> {data.get('assigned_to')} "
        f"(by {data.get('assigned_by')}, automatic={data.get('automatic')})"
    )
    record_metric.delay(
        metric_name='tickets_assigned',
        value=1,
        tags={'automatic': str(bool(data.get('automatic'))).lower()},
    )


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    acks_late=True,
)
def handle_ticket_status_changed(self, event_data: Dict[str, Any]) -> None:
    """
    Track status flow.

    A RESOLVED request that landed in PENDING_APPROVAL is counted
    separately so the approval backlog is visible.
    """
    data = _payload(event_data)
    requested = data.get('requested_status')
    applied = data.get('applied_status')
    logger.info(
        f"[HANDLER] TicketStatusChanged: {data.get('code')} "
        f"{data.get('previous_status')} -> {applied} (requested {requested})"
    )
    record_metric.delay(
        metric_name='ticket_status_changes',
        value=1,
        tags={'status': applied or ''},
    )
    if requested != applied:
        record_metric.delay(metric_name='resolutions_awaiting_approval', value=1)


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    acks_late=True,
)
def handle_ticket_approved(self, event_data: Dict[str, Any]) -> None:
    data = _payload(event_data)
    logger.info(f"[HANDLER] TicketApproved: {data.get('code')} by {data.get('approved_by')}")
    record_metric.delay(metric_name='tickets_approved', value=1)


# =============================================================================
# Event Handlers - Inventory
# =============================================================================

@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    acks_late=True,
)
def handle_stock_dispatched(self, event_data: Dict[str, Any]) -> None:
    data = _payload(event_data)
    logger.info(
        f"[HANDLER] StockDispatched: {data.get('quantity')} x {data.get('item_name')} "
        f"({data.get('condition')}) -> {data.get('reference_kind')} {data.get('reference_id')} | "
        f"remaining={data.get('remaining')}"
    )
    record_metric.delay(
        metric_name='parts_dispatched',
        value=data.get('quantity', 0),
        tags={'condition': data.get('condition', ''), 'reference': data.get('reference_kind', '')},
    )


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    acks_late=True,
)
def handle_stock_returned(self, event_data: Dict[str, Any]) -> None:
    data = _payload(event_data)
    logger.info(
        f"[HANDLER] StockReturned: {data.get('quantity')} x {data.get('item_name')} "
        f"({data.get('condition')}) | remaining={data.get('remaining')}"
    )
    record_metric.delay(
        metric_name='parts_returned',
        value=data.get('quantity', 0),
        tags={'condition': data.get('condition', '')},
    )


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    acks_late=True,
)
def handle_low_stock_reached(self, event_data: Dict[str, Any]) -> None:
    data = _payload(event_data)
    logger.warning(
        f"[HANDLER] LowStockReached: {data.get('item_name')} "
        f"quantity={data.get('quantity')} reorder_point={data.get('reorder_point')}"
    )
    record_metric.delay(metric_name='low_stock_alerts', value=1)


# =============================================================================
# Dispatcher
# =============================================================================

EVENT_HANDLERS = {
    'TicketCreatedEvent': handle_ticket_created,
    'TicketAssignedEvent': handle_ticket_assigned,
    'TicketStatusChangedEvent': handle_ticket_status_changed,
    'TicketApprovedEvent': handle_ticket_approved,
    'StockDispatchedEvent': handle_stock_dispatched,
    'StockReturnedEvent': handle_stock_returned,
    'LowStockReachedEvent': handle_low_stock_reached,
}


@shared_task(bind=True, max_retries=5, default_retry_delay=30)
def dispatch_domain_event(self, event_type: str, event_data: Dict[str, Any]) -> None:
    """
    Central dispatcher for domain events.

    Entry point of every event published through CeleryEventPublisher.
    Events without a handler are only logged.

    Args:
        event_type: Event class name (e.g. 'StockDispatchedEvent')
        event_data: Serialized event
    """
    handler = EVENT_HANDLERS.get(event_type)

    if handler:
        logger.info(f"[DISPATCHER] Routing {event_type} to {handler.name}")
        handler.delay(event_data)
    else:
        logger.debug(f"[DISPATCHER] No handler for {event_type}")


# =============================================================================
# Metric Tasks
# =============================================================================

@shared_task(bind=True, ignore_result=True)
def record_metric(
    self,
    metric_name: str,
    value: float,
    tags: Dict[str, str] = None
) -> None:
    """
    Record a metric data point.

    Args:
        metric_name: Metric name
        value: Value
        tags: Dimensions
    """
    logger.info(f"[METRIC] {metric_name}={value} | tags={tags or {}}")


# =============================================================================
# Scheduled Tasks (Beat)
# =============================================================================

@shared_task(bind=True)
def check_overdue_tickets(self) -> int:
    """
    Notify assignees of open tickets past their due date.

    Run periodically by Celery Beat.

    Returns:
        Number of overdue tickets found
    """
    logger.info("[SCHEDULED] Checking overdue tickets...")

    from src.config.container import get_container

    service = get_container().services.check_overdue_tickets_service()
    codes = service.execute()

    if codes:
        logger.warning(f"[SCHEDULED] {len(codes)} overdue ticket(s): {', '.join(codes[:10])}")
        record_metric.delay(metric_name='tickets_overdue', value=len(codes))
    else:
        logger.info("[SCHEDULED] No overdue tickets")

    return len(codes)


@shared_task(bind=True)
def cleanup_old_events(self, days: int = 90) -> int:
    """
    Delete stored domain events older than ``days``.

    Args:
        days: Retention in days

    Returns:
        Number of events removed
    """
    from django.utils import timezone

    from src.adapters.django_app.tickets.models import DomainEventModel

    cutoff = timezone.now() - timedelta(days=days)
    deleted, _ = DomainEventModel.objects.filter(occurred_at__lt=cutoff).delete()

    logger.info(f"[SCHEDULED] Removed {deleted} event(s) older than {days} days")
    return deleted
