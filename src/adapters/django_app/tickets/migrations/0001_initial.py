"""
Initial migration of the Tickets context.

Creates:
- tickets: ticket aggregate with JSON embedded collections
- ticket_settings: policy singleton
- domain_events: event store
"""

from django.db import migrations, models
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        # =================================================================
        # Table: tickets
        # =================================================================
        migrations.CreateModel(
            name='TicketModel',
            fields=[
                ('id', models.CharField(
                    max_length=36,
                    primary_key=True,
                    serialize=False,
                    editable=False,
                    help_text='Ticket UUID'
                )),
                ('code', models.CharField(
                    max_length=20,
                    unique=True,
                    help_text='Human readable ticket code'
                )),
                ('title', models.CharField(max_length=100, db_index=True)),
                ('description', models.TextField()),
                ('status', models.CharField(
                    max_length=30,
                    choices=[
                        ('OPEN', 'Open'),
                        ('ASSIGNED', 'Assigned'),
                        ('IN_PROGRESS', 'In Progress'),
                        ('PENDING_APPROVAL', 'Pending Approval'),
                        ('RESOLVED', 'Resolved'),
                        ('CLOSED', 'Closed'),
                        ('REOPENED', 'Reopened'),
                        ('CLOSED_BY_CUSTOMER', 'Closed by Customer'),
                    ],
                    default='OPEN',
                    db_index=True,
                )),
                ('priority', models.CharField(
                    max_length=10,
                    choices=[
                        ('LOW', 'Low'),
                        ('MEDIUM', 'Medium'),
                        ('HIGH', 'High'),
                        ('CRITICAL', 'Critical'),
                    ],
                    default='MEDIUM',
                    db_index=True,
                )),
                ('category', models.CharField(
                    max_length=20,
                    choices=[
                        ('HARDWARE', 'Hardware'),
                        ('SOFTWARE', 'Software'),
                        ('NETWORK', 'Network'),
                        ('ACCOUNT', 'Account'),
                        ('OTHER', 'Other'),
                    ],
                    default='OTHER',
                )),
                ('customer_id', models.CharField(max_length=100, db_index=True)),
                ('created_by', models.CharField(max_length=100, db_index=True)),
                ('inventory_item_id', models.CharField(max_length=36, null=True, blank=True)),
                ('serial_number', models.CharField(max_length=100, null=True, blank=True)),
                ('item_metadata', models.JSONField(default=dict, blank=True)),
                ('assigned_to', models.CharField(max_length=100, null=True, blank=True, db_index=True)),
                ('assigned_by', models.CharField(max_length=100, null=True, blank=True)),
                ('assigned_at', models.DateTimeField(null=True, blank=True)),
                ('due_date', models.DateTimeField(null=True, blank=True, db_index=True)),
                ('approved_by', models.CharField(max_length=100, null=True, blank=True)),
                ('approved_at', models.DateTimeField(null=True, blank=True)),
                ('resolved_by', models.CharField(max_length=100, null=True, blank=True)),
                ('resolved_at', models.DateTimeField(null=True, blank=True)),
                ('closed_by', models.CharField(max_length=100, null=True, blank=True)),
                ('closed_at', models.DateTimeField(null=True, blank=True)),
                ('assignment_history', models.JSONField(default=list, blank=True)),
                ('comments', models.JSONField(default=list, blank=True)),
                ('attachments', models.JSONField(default=list, blank=True)),
                ('history', models.JSONField(default=list, blank=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, db_index=True)),
                ('updated_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('version', models.PositiveIntegerField(default=0)),
            ],
            options={
                'verbose_name': 'Ticket',
                'verbose_name_plural': 'Tickets',
                'db_table': 'tickets',
                'ordering': ['-created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='ticketmodel',
            index=models.Index(fields=['status', 'created_at'], name='tickets_status_created_idx'),
        ),
        migrations.AddIndex(
            model_name='ticketmodel',
            index=models.Index(fields=['assigned_to', 'status'], name='tickets_assignee_status_idx'),
        ),
        migrations.AddIndex(
            model_name='ticketmodel',
            index=models.Index(fields=['priority', 'due_date'], name='tickets_priority_due_idx'),
        ),
        migrations.AddIndex(
            model_name='ticketmodel',
            index=models.Index(fields=['created_by', 'created_at'], name='tickets_creator_created_idx'),
        ),

        # =================================================================
        # Table: ticket_settings
        # =================================================================
        migrations.CreateModel(
            name='TicketSettingsModel',
            fields=[
                ('id', models.CharField(max_length=36, primary_key=True, serialize=False)),
                ('auto_approval', models.BooleanField(default=False)),
                ('auto_approval_roles', models.JSONField(default=list, blank=True)),
                ('default_assign_to_support_manager', models.BooleanField(default=False)),
                ('default_due_date_days', models.PositiveIntegerField(default=7)),
                ('priority_due_dates', models.JSONField(default=dict, blank=True)),
                ('notify_on_status_change', models.BooleanField(default=True)),
                ('allow_reopen_closed_tickets', models.BooleanField(default=True)),
                ('reopen_window_days', models.PositiveIntegerField(default=30)),
                ('updated_by', models.CharField(max_length=100, null=True, blank=True)),
                ('updated_at', models.DateTimeField(null=True, blank=True)),
                ('version', models.PositiveIntegerField(default=0)),
            ],
            options={
                'verbose_name': 'Ticket settings',
                'verbose_name_plural': 'Ticket settings',
                'db_table': 'ticket_settings',
            },
        ),

        # =================================================================
        # Table: domain_events
        # =================================================================
        migrations.CreateModel(
            name='DomainEventModel',
            fields=[
                ('event_id', models.CharField(
                    max_length=36,
                    primary_key=True,
                    serialize=False,
                    help_text='Event UUID'
                )),
                ('event_type', models.CharField(
                    max_length=100,
                    db_index=True,
                    help_text='Event type (e.g. TicketCreatedEvent)'
                )),
                ('aggregate_type', models.CharField(
                    max_length=100,
                    db_index=True,
                    help_text='Aggregate type (e.g. Ticket)'
                )),
                ('aggregate_id', models.CharField(
                    max_length=36,
                    db_index=True,
                    help_text='Id of the aggregate that produced the event'
                )),
                ('event_data', models.JSONField(default=dict)),
                ('version', models.IntegerField(default=1, help_text='Event schema version')),
                ('sequence', models.BigIntegerField(
                    default=0,
                    help_text='Position of the event within its aggregate'
                )),
                ('occurred_at', models.DateTimeField()),
                ('recorded_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'verbose_name': 'Domain event',
                'verbose_name_plural': 'Domain events',
                'db_table': 'domain_events',
                'ordering': ['recorded_at'],
            },
        ),
        migrations.AddIndex(
            model_name='domaineventmodel',
            index=models.Index(fields=['aggregate_id', 'sequence'], name='events_aggregate_seq_idx'),
        ),
        migrations.AddIndex(
            model_name='domaineventmodel',
            index=models.Index(fields=['aggregate_type', 'recorded_at'], name='events_aggtype_rec_idx'),
        ),
        migrations.AddIndex(
            model_name='domaineventmodel',
            index=models.Index(fields=['event_type', 'recorded_at'], name='events_type_rec_idx'),
        ),
    ]
