"""
Notifier and AuditLogger adapters.

Implementations:
- DjangoNotifier / DjangoAuditLogger: write the row in-process (development, tests)
- CeleryNotifier / CeleryAuditLogger: enqueue the write on Celery (production)

A failure to write or enqueue raises TransientError; the core wraps
every call in ``best_effort`` so the primary operation is unaffected.
"""

from typing import Optional
import logging

from src.core.shared.exceptions import TransientError

logger = logging.getLogger(__name__)


class DjangoNotifier:

    def notify(self, recipient_id: str, subject: str, message: str, kind: str) -> None:
        from .models import NotificationModel

        try:
            NotificationModel.objects.create(
                recipient_id=recipient_id,
                subject=subject,
                message=message,
                kind=kind,
            )
        except Exception as e:
            raise TransientError(f"Could not store notification: {e}", channel="notification")
        logger.debug(f"Notification stored for {recipient_id} ({kind})")


class CeleryNotifier:

    def notify(self, recipient_id: str, subject: str, message: str, kind: str) -> None:
        from .tasks import deliver_notification

        try:
            deliver_notification.delay(recipient_id, subject, message, kind)
        except Exception as e:
            raise TransientError(f"Could not enqueue notification: {e}", channel="notification")


class DjangoAuditLogger:

    def record(self, actor_id: str, action: str, details: str, ip: Optional[str] = None) -> None:
        from .models import AuditLogModel

        try:
            AuditLogModel.objects.create(
                actor_id=actor_id,
                action=action,
                details=details,
                ip_address=ip,
            )
        except Exception as e:
            raise TransientError(f"Could not store audit entry: {e}", channel="audit")


class CeleryAuditLogger:

    def record(self, actor_id: str, action: str, details: str, ip: Optional[str] = None) -> None:
        from .tasks import record_audit_entry

        try:
            record_audit_entry.delay(actor_id, action, details, ip)
        except Exception as e:
            raise TransientError(f"Could not enqueue audit entry: {e}", channel="audit")


def get_notifier(mode: str = "sync"):
    """Notifier for NOTIFIER_MODE ("celery" enqueues, anything else writes directly)."""
    if mode == "celery":
        return CeleryNotifier()
    return DjangoNotifier()


def get_audit_logger(mode: str = "sync"):
    if mode == "celery":
        return CeleryAuditLogger()
    return DjangoAuditLogger()
