"""
Django models of the Tickets context.

These models are ADAPTERS: they persist the entities defined in
src/core/tickets/entities.py and src/core/policy/entities.py.

IMPORTANT:
- Models hold no business logic
- Conversion to and from entities lives in mappers.py
- Embedded collections (assignment history, comments, attachments,
  audit history) belong to the aggregate and are stored as JSON

Tables:
- TicketModel: tickets
- TicketSettingsModel: the policy singleton
- DomainEventModel: event store
"""

from django.db import models
from django.utils import timezone


class TicketStatusChoices(models.TextChoices):
    """Mirrors TicketStatus of the core."""
    OPEN = 'OPEN', 'Open'
    ASSIGNED = 'ASSIGNED', 'Assigned'
    IN_PROGRESS = 'IN_PROGRESS', 'In Progress'
    PENDING_APPROVAL = 'PENDING_APPROVAL', 'Pending Approval'
    RESOLVED = 'RESOLVED', 'Resolved'
    CLOSED = 'CLOSED', 'Closed'
    REOPENED = 'REOPENED', 'Reopened'
    CLOSED_BY_CUSTOMER = 'CLOSED_BY_CUSTOMER', 'Closed by Customer'


class TicketPriorityChoices(models.TextChoices):
    """Mirrors TicketPriority of the core."""
    LOW = 'LOW', 'Low'
    MEDIUM = 'MEDIUM', 'Medium'
    HIGH = 'HIGH', 'High'
    CRITICAL = 'CRITICAL', 'Critical'


class TicketCategoryChoices(models.TextChoices):
    HARDWARE = 'HARDWARE', 'Hardware'
    SOFTWARE = 'SOFTWARE', 'Software'
    NETWORK = 'NETWORK', 'Network'
    ACCOUNT = 'ACCOUNT', 'Account'
    OTHER = 'OTHER', 'Other'


class TicketModel(models.Model):
    """
    Persistence of TicketEntity.

    Fields:
        id: UUID generated by the entity
        code: TKT{YYYYMMDD}{seq:04d}, unique
        status / priority / category: Enum values
        customer_id, created_by, assigned_*: Ids of external records
        due_date: Set once at creation
        assignment_history, comments, attachments, history: JSON lists
        version: Optimistic concurrency counter
    """

    id = models.CharField(
        max_length=36,
        primary_key=True,
        editable=False,
        help_text="Ticket UUID"
    )

    code = models.CharField(
        max_length=20,
        unique=True,
        help_text="Human readable ticket code"
    )

    title = models.CharField(max_length=100, db_index=True)

    description = models.TextField()

    status = models.CharField(
        max_length=30,
        choices=TicketStatusChoices.choices,
        default=TicketStatusChoices.OPEN,
        db_index=True,
    )

    priority = models.CharField(
        max_length=10,
        choices=TicketPriorityChoices.choices,
        default=TicketPriorityChoices.MEDIUM,
        db_index=True,
    )

    category = models.CharField(
        max_length=20,
        choices=TicketCategoryChoices.choices,
        default=TicketCategoryChoices.OTHER,
    )

    customer_id = models.CharField(max_length=100, db_index=True)

    created_by = models.CharField(max_length=100, db_index=True)

    # Linked inventory item
    inventory_item_id = models.CharField(max_length=36, null=True, blank=True)
    serial_number = models.CharField(max_length=100, null=True, blank=True)
    item_metadata = models.JSONField(default=dict, blank=True)

    # Mirror of the newest assignment record
    assigned_to = models.CharField(max_length=100, null=True, blank=True, db_index=True)
    assigned_by = models.CharField(max_length=100, null=True, blank=True)
    assigned_at = models.DateTimeField(null=True, blank=True)

    due_date = models.DateTimeField(null=True, blank=True, db_index=True)

    approved_by = models.CharField(max_length=100, null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    resolved_by = models.CharField(max_length=100, null=True, blank=True)
    resolved_at = models.DateTimeField(null=True, blank=True)
    closed_by = models.CharField(max_length=100, null=True, blank=True)
    closed_at = models.DateTimeField(null=True, blank=True)

    # Owned collections
    assignment_history = models.JSONField(default=list, blank=True)
    comments = models.JSONField(default=list, blank=True)
    attachments = models.JSONField(default=list, blank=True)
    history = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(default=timezone.now)

    version = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = 'tickets'
        verbose_name = 'Ticket'
        verbose_name_plural = 'Tickets'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'created_at'], name='tickets_status_created_idx'),
            models.Index(fields=['assigned_to', 'status'], name='tickets_assignee_status_idx'),
            models.Index(fields=['priority', 'due_date'], name='tickets_priority_due_idx'),
            models.Index(fields=['created_by', 'created_at'], name='tickets_creator_created_idx'),
        ]

    def __str__(self):
        return f"[{self.code}] {self.title}"

    def __repr__(self):
        return f"<TicketModel code={self.code} status={self.status} v{self.version}>"


class TicketSettingsModel(models.Model):
    """
    The ticket policy singleton, one row keyed by SETTINGS_ID.
    """

    id = models.CharField(max_length=36, primary_key=True)

    auto_approval = models.BooleanField(default=False)
    auto_approval_roles = models.JSONField(default=list, blank=True)
    default_assign_to_support_manager = models.BooleanField(default=False)
    default_due_date_days = models.PositiveIntegerField(default=7)
    priority_due_dates = models.JSONField(default=dict, blank=True)
    notify_on_status_change = models.BooleanField(default=True)
    allow_reopen_closed_tickets = models.BooleanField(default=True)
    reopen_window_days = models.PositiveIntegerField(default=30)

    updated_by = models.CharField(max_length=100, null=True, blank=True)
    updated_at = models.DateTimeField(null=True, blank=True)

    version = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = 'ticket_settings'
        verbose_name = 'Ticket settings'
        verbose_name_plural = 'Ticket settings'

    def __str__(self):
        return f"TicketSettings v{self.version}"


class DomainEventModel(models.Model):
    """
    Event store for domain events.

    Keeps every committed event for audit, replay and integration.
    """

    event_id = models.CharField(
        max_length=36,
        primary_key=True,
        help_text="Event UUID"
    )

    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Event type (e.g. TicketCreatedEvent)"
    )

    aggregate_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Aggregate type (e.g. Ticket)"
    )

    aggregate_id = models.CharField(
        max_length=36,
        db_index=True,
        help_text="Id of the aggregate that produced the event"
    )

    event_data = models.JSONField(default=dict)

    version = models.IntegerField(
        default=1,
        help_text="Event schema version"
    )

    sequence = models.BigIntegerField(
        default=0,
        help_text="Position of the event within its aggregate"
    )

    occurred_at = models.DateTimeField()

    recorded_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'domain_events'
        verbose_name = 'Domain event'
        verbose_name_plural = 'Domain events'
        ordering = ['recorded_at']
        indexes = [
            models.Index(fields=['aggregate_id', 'sequence'], name='events_aggregate_seq_idx'),
            models.Index(fields=['aggregate_type', 'recorded_at'], name='events_aggtype_rec_idx'),
            models.Index(fields=['event_type', 'recorded_at'], name='events_type_rec_idx'),
        ]

    def __str__(self):
        return f"{self.event_type} - {self.aggregate_id[:8]} @ {self.occurred_at}"
