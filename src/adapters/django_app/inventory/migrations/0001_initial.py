"""
Initial migration of the Inventory context.

Creates:
- inventory_items
- inventory_stock_entries
- inventory_movements
- installation_requests
"""

from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


CONDITION_CHOICES = [
    ('NEW', 'New'),
    ('REPAIRED', 'Repaired'),
    ('REPARABLE', 'Reparable'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='InventoryItemModel',
            fields=[
                ('id', models.CharField(max_length=36, primary_key=True, serialize=False, editable=False)),
                ('name', models.CharField(max_length=200, db_index=True)),
                ('item_type', models.CharField(max_length=100, db_index=True)),
                ('reorder_point', models.PositiveIntegerField(default=0)),
                ('quantity', models.PositiveIntegerField(
                    default=0,
                    help_text='Sum of the condition buckets'
                )),
                ('initial_quantity', models.PositiveIntegerField(
                    default=0,
                    help_text='Opening stock, base of the journal balance'
                )),
                ('created_by', models.CharField(max_length=100, null=True, blank=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('version', models.PositiveIntegerField(default=0)),
            ],
            options={
                'verbose_name': 'Inventory item',
                'verbose_name_plural': 'Inventory items',
                'db_table': 'inventory_items',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='StockEntryModel',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('condition', models.CharField(max_length=20, choices=CONDITION_CHOICES)),
                ('quantity', models.PositiveIntegerField(default=0)),
                ('location', models.CharField(max_length=200, null=True, blank=True)),
                ('item', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='entries',
                    to='inventory.inventoryitemmodel',
                )),
            ],
            options={
                'verbose_name': 'Stock entry',
                'verbose_name_plural': 'Stock entries',
                'db_table': 'inventory_stock_entries',
            },
        ),
        migrations.AddConstraint(
            model_name='stockentrymodel',
            constraint=models.UniqueConstraint(fields=['item', 'condition'], name='unique_item_condition'),
        ),
        migrations.CreateModel(
            name='InventoryMovementModel',
            fields=[
                ('id', models.CharField(max_length=36, primary_key=True, serialize=False, editable=False)),
                ('movement_type', models.CharField(
                    max_length=10,
                    choices=[('DISPATCH', 'Dispatch'), ('RETURN', 'Return')],
                )),
                ('quantity', models.PositiveIntegerField()),
                ('condition', models.CharField(max_length=20, choices=CONDITION_CHOICES)),
                ('reference_kind', models.CharField(
                    max_length=30,
                    choices=[('TICKET', 'Ticket'), ('INSTALLATION_REQUEST', 'Installation request')],
                )),
                ('reference_id', models.CharField(max_length=36, db_index=True)),
                ('actor_id', models.CharField(max_length=100)),
                ('occurred_at', models.DateTimeField(db_index=True)),
                ('balance_after', models.IntegerField()),
                ('status', models.CharField(max_length=20, default='COMPLETED')),
                ('docket_number', models.CharField(max_length=100, null=True, blank=True)),
                ('note', models.TextField(blank=True, default='')),
                ('item', models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name='movements',
                    to='inventory.inventoryitemmodel',
                )),
            ],
            options={
                'verbose_name': 'Inventory movement',
                'verbose_name_plural': 'Inventory movements',
                'db_table': 'inventory_movements',
                'ordering': ['occurred_at'],
            },
        ),
        migrations.AddIndex(
            model_name='inventorymovementmodel',
            index=models.Index(fields=['item', 'occurred_at'], name='movements_item_time_idx'),
        ),
        migrations.AddIndex(
            model_name='inventorymovementmodel',
            index=models.Index(fields=['reference_kind', 'reference_id'], name='movements_reference_idx'),
        ),
        migrations.CreateModel(
            name='InstallationRequestModel',
            fields=[
                ('id', models.CharField(max_length=36, primary_key=True, serialize=False, editable=False)),
                ('number', models.CharField(max_length=6, unique=True, help_text='Six digit request number')),
                ('customer_id', models.CharField(max_length=100, db_index=True)),
                ('description', models.TextField(blank=True, default='')),
                ('created_by', models.CharField(max_length=100, null=True, blank=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                'verbose_name': 'Installation request',
                'verbose_name_plural': 'Installation requests',
                'db_table': 'installation_requests',
                'ordering': ['-created_at'],
            },
        ),
    ]
