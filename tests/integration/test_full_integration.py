"""
End-to-end integration tests.

Full flow through the real stack:
- HTTP request -> URL routing -> View -> Use Case -> Django repositories -> database
- Unit of Work -> event store -> publisher
- Notifications and audit entries written by the sync side channels

Select with ``-m integration``.
"""

import json

import pytest
from django.test import Client

from src.adapters.django_app.activity.models import AuditLogModel, NotificationModel
from src.adapters.django_app.directory.models import CustomerModel, StaffMemberModel
from src.adapters.django_app.inventory.models import InventoryMovementModel
from src.adapters.django_app.inventory.repositories import DjangoInstallationRequestLookup
from src.adapters.django_app.tickets.models import DomainEventModel, TicketModel
from src.config.container import reset_container

pytestmark = [pytest.mark.integration, pytest.mark.django_db]


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def sync_side_channels(settings):
    settings.EVENT_PUBLISHER_MODE = 'sync'
    settings.NOTIFIER_MODE = 'sync'
    reset_container()
    yield
    reset_container()


@pytest.fixture
def directory():
    for user_id, name, role in (
        ("admin-1", "Alex Admin", "SUPER_ADMIN"),
        ("mgr-1", "Morgan Manager", "SUPPORT_MANAGER"),
        ("eng-1", "Eli Engineer", "ENGINEER"),
        ("inv-1", "Ira Stock", "INVENTORY_MANAGER"),
    ):
        StaffMemberModel.objects.create(id=user_id, name=name, role=role)
    CustomerModel.objects.create(id="cust-1", name="Acme Ltd")


@pytest.fixture
def api(directory):
    client = Client()

    def _call(method, path, actor, data=None):
        kwargs = {'HTTP_X_ACTOR_ID': actor}
        if method == 'get':
            response = client.get(path, **kwargs)
        else:
            response = getattr(client, method)(
                path, data=json.dumps(data or {}), content_type='application/json', **kwargs
            )
        return response.status_code, response.json()

    return _call


@pytest.fixture
def ticket(api):
    """Ticket created by mgr-1, assigned to eng-1 and in progress."""
    status, body = api('post', '/api/tickets/', 'mgr-1', {
        "title": "Printer offline",
        "description": "The office printer does not answer to ping",
        "customer_id": "cust-1",
        "priority": "HIGH",
    })
    assert status == 201, body
    ticket_id = body['data']['id']

    status, body = api('post', f'/api/tickets/{ticket_id}/assign/', 'mgr-1', {"assignee_id": "eng-1"})
    assert status == 200, body

    status, body = api('patch', f'/api/tickets/{ticket_id}/', 'eng-1', {
        "status": "IN_PROGRESS", "comment": "On my way",
    })
    assert status == 200, body
    return body['data']['ticket']


@pytest.fixture
def item(api):
    status, body = api('post', '/api/inventory/items/', 'inv-1', {
        "name": "Fuser unit F10",
        "item_type": "Spare part",
        "reorder_point": 3,
        "stock": {"NEW": 4, "REPAIRED": 1},
    })
    assert status == 201, body
    return body['data']


# =============================================================================
# Flows
# =============================================================================

class TestTicketLifecycle:

    def test_dispatch_resolves_ticket_then_manager_approves(self, api, ticket, item):
        status, body = api('post', f"/api/inventory/items/{item['id']}/dispatch/", 'eng-1', {
            "quantity": 1,
            "condition": "NEW",
            "reference_kind": "TICKET",
            "reference_id": ticket['id'],
            "docket_number": "DK-100",
        })

        assert status == 201, body
        assert body['data']['ticket_status'] == 'PENDING_APPROVAL'
        assert body['data']['item']['quantity'] == 4

        status, body = api('post', f"/api/tickets/{ticket['id']}/approve/", 'mgr-1', {"reason": "Printer works"})

        assert status == 200, body
        assert body['data']['status'] == 'RESOLVED'

        _, body = api('get', f"/api/tickets/{ticket['id']}/", 'eng-1')
        texts = [c['text'] for c in body['data']['comments']]
        assert any("DK-100" in text for text in texts)
        assert TicketModel.objects.get(id=ticket['id']).status == 'RESOLVED'

    def test_side_channels_and_event_store(self, api, ticket):
        assert NotificationModel.objects.filter(recipient_id="eng-1", kind="ticket_assigned").exists()
        assert AuditLogModel.objects.filter(actor_id="mgr-1", action="ticket.create").exists()

        stored = list(
            DomainEventModel.objects.filter(aggregate_id=ticket['id'])
            .order_by('sequence')
            .values_list('event_type', 'sequence')
        )
        assert stored[0] == ("TicketCreatedEvent", 1)
        assert [s for _, s in stored] == list(range(1, len(stored) + 1))

    def test_auto_approval(self, api, ticket):
        status, _ = api('post', '/api/settings/auto-approval/', 'admin-1', {"enabled": True, "roles": ["ENGINEER"]})
        assert status == 200

        status, body = api('patch', f"/api/tickets/{ticket['id']}/", 'eng-1', {
            "status": "RESOLVED", "comment": "Replaced the fuser",
        })

        assert status == 200, body
        assert body['data']['applied_status'] == 'RESOLVED'
        assert body['data']['status_overridden'] is False


class TestInventoryFlows:

    def test_low_stock_alert_on_crossing(self, api, item):
        DjangoInstallationRequestLookup().register("ir-1", "cust-1", "New branch office", created_by="mgr-1")
        movement = {"quantity": 1, "condition": "NEW", "reference_kind": "INSTALLATION_REQUEST", "reference_id": "ir-1"}

        _, first = api('post', f"/api/inventory/items/{item['id']}/dispatch/", 'inv-1', movement)
        _, second = api('post', f"/api/inventory/items/{item['id']}/dispatch/", 'inv-1', movement)
        _, third = api('post', f"/api/inventory/items/{item['id']}/dispatch/", 'inv-1', movement)

        assert [first['data']['low_stock_alert'], second['data']['low_stock_alert'], third['data']['low_stock_alert']] == [
            False, True, False,
        ]
        assert NotificationModel.objects.filter(recipient_id="inv-1", kind="low_stock").count() == 1

    def test_insufficient_stock_leaves_ticket_untouched(self, api, ticket, item):
        status, body = api('post', f"/api/inventory/items/{item['id']}/dispatch/", 'eng-1', {
            "quantity": 2,
            "condition": "REPAIRED",
            "reference_kind": "TICKET",
            "reference_id": ticket['id'],
        })

        assert status == 409
        assert body['meta']['available'] == 1
        assert TicketModel.objects.get(id=ticket['id']).status == 'IN_PROGRESS'
        assert not InventoryMovementModel.objects.filter(item_id=item['id']).exists()

    def test_return_and_journal(self, api, ticket, item):
        status, body = api('post', f"/api/inventory/items/{item['id']}/return/", 'eng-1', {
            "quantity": 1,
            "condition": "REPARABLE",
            "reference_kind": "TICKET",
            "reference_id": ticket['id'],
            "note": "Old fuser",
        })

        assert status == 201, body
        assert body['data']['item']['stock']['REPARABLE'] == 1

        _, body = api('get', f"/api/inventory/items/{item['id']}/movements/", 'inv-1')
        assert [(m['movement_type'], m['balance_after']) for m in body['data']] == [('RETURN', 6)]


def test_health(client):
    response = client.get('/health/')

    assert response.status_code == 200
    assert response.json() == {'status': 'ok'}
