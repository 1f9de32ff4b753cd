"""
Celery tasks of the notification and audit side channels.

Tasks:
- deliver_notification: persist an in-app notification
- record_audit_entry: append to the audit trail

Both run on the ``notifications`` queue with retries; they are never
part of the transaction that triggered them.
"""

import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=30,
    acks_late=True,
)
def deliver_notification(self, recipient_id: str, subject: str, message: str, kind: str):
    """
    Store a notification for ``recipient_id``.

    Args:
        recipient_id: Staff member id
        subject: Short title
        message: Body text
        kind: NotificationKind value
    """
    try:
        from .models import NotificationModel

        notification = NotificationModel.objects.create(
            recipient_id=recipient_id,
            subject=subject,
            message=message,
            kind=kind,
        )
        logger.info(f"Notification {notification.id} delivered to {recipient_id} ({kind})")
        return {'id': notification.id, 'recipient_id': recipient_id}

    except Exception as e:
        logger.error(f"Error delivering notification to {recipient_id}: {e}")
        raise self.retry(exc=e)


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=30,
    acks_late=True,
)
def record_audit_entry(self, actor_id: str, action: str, details: str, ip_address=None):
    try:
        from .models import AuditLogModel

        entry = AuditLogModel.objects.create(
            actor_id=actor_id,
            action=action,
            details=details,
            ip_address=ip_address,
        )
        logger.debug(f"Audit entry {entry.id}: {actor_id} {action}")
        return {'id': entry.id}

    except Exception as e:
        logger.error(f"Error recording audit entry {action} for {actor_id}: {e}")
        raise self.retry(exc=e)
