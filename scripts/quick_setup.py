#!/usr/bin/env python
"""
Quick setup for local development.

This script:
1. Configures Django settings
2. Runs migrations
3. Seeds staff, customers, inventory items and an installation request (optional)

Usage:
    python scripts/quick_setup.py
    python scripts/quick_setup.py --with-sample-data
    python scripts/quick_setup.py --check-only
"""

import os
import sys
import argparse

# Make ``src`` importable when run from the scripts directory
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


SAMPLE_STAFF = [
    ('admin-001', 'Alex Admin', 'admin@example.com', 'SUPER_ADMIN'),
    ('mgr-001', 'Morgan Manager', 'morgan@example.com', 'SUPPORT_MANAGER'),
    ('eng-001', 'Eli Engineer', 'eli@example.com', 'ENGINEER'),
    ('eng-002', 'Sam Engineer', 'sam@example.com', 'ENGINEER'),
    ('inv-001', 'Ira Stock', 'ira@example.com', 'INVENTORY_MANAGER'),
]

SAMPLE_CUSTOMERS = [
    ('cust-001', 'Acme Ltd', 'it@acme.example.com'),
    ('cust-002', 'Globex Corporation', 'helpdesk@globex.example.com'),
]

SAMPLE_ITEMS = [
    {
        'name': 'Fuser unit F10',
        'item_type': 'Spare part',
        'reorder_point': 2,
        'stock': {'NEW': 6, 'REPAIRED': 2},
        'locations': {'NEW': 'Shelf A1', 'REPAIRED': 'Shelf A2'},
    },
    {
        'name': 'Toner X200',
        'item_type': 'Consumable',
        'reorder_point': 5,
        'stock': {'NEW': 20},
        'locations': {'NEW': 'Shelf B1'},
    },
    {
        'name': 'Router R1',
        'item_type': 'Network',
        'reorder_point': 1,
        'stock': {'NEW': 3, 'REPARABLE': 1},
        'locations': {'NEW': 'Cage C', 'REPARABLE': 'Workshop'},
    },
]


def setup_django():
    """Configure Django for standalone use."""
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'src.config.settings')

    import django
    django.setup()


def run_migrations():
    from django.core.management import call_command

    print("Running migrations...")
    call_command('migrate', verbosity=1)
    print("Migrations done.")


def create_sample_data():
    """Seed the directory tables, the stock ledger and one installation request."""
    from src.adapters.django_app.directory.models import CustomerModel, StaffMemberModel
    from src.adapters.django_app.inventory.repositories import (
        DjangoInstallationRequestLookup,
        DjangoInventoryItemRepository,
    )
    from src.core.inventory.entities import InventoryItem

    print("Creating staff members...")
    for user_id, name, email, role in SAMPLE_STAFF:
        StaffMemberModel.objects.update_or_create(
            id=user_id, defaults={'name': name, 'email': email, 'role': role},
        )
        print(f"   + {name} ({role})")

    print("Creating customers...")
    for customer_id, name, email in SAMPLE_CUSTOMERS:
        CustomerModel.objects.update_or_create(id=customer_id, defaults={'name': name, 'email': email})
        print(f"   + {name}")

    print("Creating inventory items...")
    repo = DjangoInventoryItemRepository()
    existing = {item.name for item in repo.list_all()}
    for data in SAMPLE_ITEMS:
        if data['name'] in existing:
            continue
        item = InventoryItem.create(created_by='inv-001', **data)
        repo.save(item)
        print(f"   + {item.name}: {item.quantity} unit(s)")

    lookup = DjangoInstallationRequestLookup()
    if not lookup.exists('ir-001'):
        request = lookup.register('ir-001', 'cust-001', 'Printers for the new branch office', created_by='mgr-001')
        print(f"Installation request {request.number} registered.")

    print("Sample data created.")


def check_connection():
    from django.db import connection

    print("Checking database connection...")

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
        print("Connection OK.")
        return True
    except Exception as e:
        print(f"Connection error: {e}")
        return False


def show_info():
    from django.conf import settings

    print("\n" + "=" * 60)
    print("Setup")
    print("=" * 60)
    print(f"  Database Engine: {settings.DATABASES['default']['ENGINE']}")
    print(f"  Database Name: {settings.DATABASES['default']['NAME']}")
    print(f"  Debug Mode: {settings.DEBUG}")
    print(f"  Event publisher: {settings.EVENT_PUBLISHER_MODE}")
    print(f"  Notifier: {settings.NOTIFIER_MODE}")
    print("=" * 60)
    print("\nNext steps:")
    print("   1. python manage.py runserver")
    print("   2. curl -H 'X-Actor-Id: mgr-001' http://localhost:8000/api/tickets/")
    print("   3. curl -H 'X-Actor-Id: inv-001' http://localhost:8000/api/inventory/items/")
    print("\n")


def main():
    parser = argparse.ArgumentParser(description='Quick setup for local development')
    parser.add_argument(
        '--with-sample-data',
        action='store_true',
        help='Seed staff, customers and stock'
    )
    parser.add_argument(
        '--check-only',
        action='store_true',
        help='Only check the database connection'
    )

    args = parser.parse_args()

    print("\n" + "=" * 60)
    print("Service Desk - Quick Setup")
    print("=" * 60 + "\n")

    setup_django()

    if args.check_only:
        check_connection()
        return

    if not check_connection():
        print("\nMake sure the database is running, or unset DATABASE_URL to use SQLite.")
        return

    run_migrations()

    if args.with_sample_data:
        create_sample_data()

    show_info()


if __name__ == '__main__':
    main()
