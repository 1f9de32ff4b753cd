"""
Celery configuration for asynchronous processing.

Celery runs:
- Domain event handlers (after commit)
- Notification delivery and audit entries
- Scheduled jobs (overdue tickets, event retention)

Usage:
    # Worker
    celery -A src.config.celery worker -l INFO -Q default,events,notifications

    # Beat (scheduled tasks)
    celery -A src.config.celery beat -l INFO
"""

import os
from celery import Celery
from kombu import Queue, Exchange

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'src.config.settings')

app = Celery('servicedesk')

# CELERY_* values from Django settings
app.config_from_object('django.conf:settings', namespace='CELERY')

app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',

    timezone='UTC',
    enable_utc=True,

    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,

    task_default_retry_delay=60,
    task_max_retries=3,

    result_expires=3600,

    worker_send_task_events=True,
    task_send_sent_event=True,
)

app.conf.task_default_queue = 'default'

app.conf.task_queues = (
    Queue('default', Exchange('default'), routing_key='default'),
    Queue('events', Exchange('events'), routing_key='events.#'),
    Queue('notifications', Exchange('notifications'), routing_key='notifications.#'),
)

app.conf.task_routes = {
    'src.adapters.django_app.events.handlers.*': {'queue': 'events'},
    'src.adapters.django_app.activity.tasks.*': {'queue': 'notifications'},
}

app.autodiscover_tasks(['src.adapters.django_app.events'], related_name='handlers')

app.autodiscover_tasks([
    'src.adapters.django_app.activity',
])

app.conf.beat_schedule = {
    'check-overdue-tickets': {
        'task': 'src.adapters.django_app.events.handlers.check_overdue_tickets',
        'schedule': 3600.0,
    },
    'cleanup-old-events': {
        'task': 'src.adapters.django_app.events.handlers.cleanup_old_events',
        'schedule': 604800.0,
        'kwargs': {'days': int(os.environ.get('EVENT_RETENTION_DAYS', 90))},
    },
}
