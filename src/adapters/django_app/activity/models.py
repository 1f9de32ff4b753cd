"""
In-app notifications and the audit trail.

Both tables are write-mostly side channels: rows are created after the
primary transaction committed, and a failure here never undoes it.
"""

from django.db import models
from django.utils import timezone


class NotificationModel(models.Model):
    """In-app notification delivered to a staff member."""

    recipient_id = models.CharField(max_length=100, db_index=True)

    subject = models.CharField(max_length=200)

    message = models.TextField()

    kind = models.CharField(
        max_length=50,
        db_index=True,
        help_text="NotificationKind value (ticket_assigned, low_stock, ...)"
    )

    is_read = models.BooleanField(default=False)

    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        db_table = 'notifications'
        verbose_name = 'Notification'
        verbose_name_plural = 'Notifications'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['recipient_id', 'is_read'], name='notif_recipient_read_idx'),
        ]

    def __str__(self):
        return f"{self.kind} -> {self.recipient_id}: {self.subject}"


class AuditLogModel(models.Model):
    """Write-only activity trail."""

    actor_id = models.CharField(max_length=100, db_index=True)

    action = models.CharField(max_length=100, db_index=True)

    details = models.TextField(blank=True, default='')

    ip_address = models.GenericIPAddressField(null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        db_table = 'audit_log'
        verbose_name = 'Audit entry'
        verbose_name_plural = 'Audit entries'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.created_at:%Y-%m-%d %H:%M} {self.actor_id} {self.action}"
