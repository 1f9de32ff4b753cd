"""
Initial migration of the Activity app.

Creates:
- notifications
- audit_log
"""

from django.db import migrations, models
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='NotificationModel',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('recipient_id', models.CharField(max_length=100, db_index=True)),
                ('subject', models.CharField(max_length=200)),
                ('message', models.TextField()),
                ('kind', models.CharField(
                    max_length=50,
                    db_index=True,
                    help_text='NotificationKind value (ticket_assigned, low_stock, ...)'
                )),
                ('is_read', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, db_index=True)),
            ],
            options={
                'verbose_name': 'Notification',
                'verbose_name_plural': 'Notifications',
                'db_table': 'notifications',
                'ordering': ['-created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='notificationmodel',
            index=models.Index(fields=['recipient_id', 'is_read'], name='notif_recipient_read_idx'),
        ),
        migrations.CreateModel(
            name='AuditLogModel',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('actor_id', models.CharField(max_length=100, db_index=True)),
                ('action', models.CharField(max_length=100, db_index=True)),
                ('details', models.TextField(blank=True, default='')),
                ('ip_address', models.GenericIPAddressField(null=True, blank=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, db_index=True)),
            ],
            options={
                'verbose_name': 'Audit entry',
                'verbose_name_plural': 'Audit entries',
                'db_table': 'audit_log',
                'ordering': ['-created_at'],
            },
        ),
    ]
