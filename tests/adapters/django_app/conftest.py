"""
pytest configuration for the Django adapter tests.

Django itself is configured by pytest-django from
``DJANGO_SETTINGS_MODULE`` (see pyproject.toml).

Provides:
- RequestFactory and an ``api`` helper calling views directly
- TestingContainer seeded with staff, customers and installation requests
- Directory rows for the database backed tests
"""

import json

import pytest
from unittest.mock import patch

from django.test import RequestFactory

from src.adapters.django_app.shared.http import BaseAPIView
from src.config.container import TestingContainer, reset_container
from src.core.shared.roles import Role


@pytest.fixture
def rf():
    """Request Factory for building requests."""
    return RequestFactory()


@pytest.fixture
def container():
    """In-memory container with one user per role."""
    container = TestingContainer()

    users = container.collaborators.user_directory()
    users.add("admin-1", Role.SUPER_ADMIN, name="Alex Admin")
    users.add("mgr-1", Role.SUPPORT_MANAGER, name="Morgan Manager")
    users.add("eng-1", Role.ENGINEER, name="Eli Engineer")
    users.add("eng-2", Role.ENGINEER, name="Sam Engineer")
    users.add("inv-1", Role.INVENTORY_MANAGER, name="Ira Stock")
    users.add("eng-off", Role.ENGINEER, is_active=False)

    container.collaborators.customer_directory().add("cust-1", "Acme Ltd")
    container.repositories.installation_lookup().add("ir-1", "000001")

    yield container
    reset_container()


@pytest.fixture
def api(rf, container):
    """
    Call a view class with a JSON body and an optional actor.

    Example:
        response, body = api(TicketAPIListView, 'post', '/api/tickets/',
                             actor='mgr-1', data={...})
    """
    def _call(view_cls, method, path, actor=None, data=None, query=None, **kwargs):
        extra = {}
        if actor:
            extra['HTTP_X_ACTOR_ID'] = actor

        if method == 'get':
            request = rf.get(path, data=query or {}, **extra)
        else:
            payload = data if isinstance(data, str) else json.dumps(data or {})
            request = rf.generic(
                method.upper(), path, payload, content_type='application/json', **extra
            )

        with patch.object(BaseAPIView, 'get_container', return_value=container):
            response = view_cls.as_view()(request, **kwargs)

        return response, json.loads(response.content)

    return _call


# =============================================================================
# Database fixtures
# =============================================================================

@pytest.fixture
def staff(db):
    """Staff rows for the Django directory."""
    from src.adapters.django_app.directory.models import StaffMemberModel

    rows = [
        ("admin-1", "Alex Admin", "SUPER_ADMIN", True),
        ("mgr-1", "Morgan Manager", "SUPPORT_MANAGER", True),
        ("eng-1", "Eli Engineer", "ENGINEER", True),
        ("inv-1", "Ira Stock", "INVENTORY_MANAGER", True),
        ("eng-off", "Former Engineer", "ENGINEER", False),
    ]
    return [
        StaffMemberModel.objects.create(
            id=user_id, name=name, email=f"{user_id}@example.com", role=role, is_active=active,
        )
        for user_id, name, role, active in rows
    ]


@pytest.fixture
def customer(db):
    from src.adapters.django_app.directory.models import CustomerModel
    return CustomerModel.objects.create(id="cust-1", name="Acme Ltd")
