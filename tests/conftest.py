"""
Global pytest configuration for the Service Desk backend.

Loaded automatically by pytest; provides the in-memory collaborators
and repositories shared by the core test suites.
"""

import pytest

from src.adapters.django_app.shared.unit_of_work import InMemoryUnitOfWork
from src.core.inventory.notifications import StockNotifier
from src.core.inventory.ports import InMemoryInstallationRequestLookup, InMemoryInventoryItemRepository
from src.core.policy.ports import InMemorySettingsRepository
from src.core.policy.use_cases import PolicySnapshotProvider
from src.core.shared.collaborators import (
    Actor,
    InMemoryCustomerDirectory,
    InMemoryUserDirectory,
    RecordingAuditLogger,
    RecordingNotifier,
)
from src.core.shared.roles import Role, StaticRoleOracle
from src.core.tickets.access import TicketAccessPolicy
from src.core.tickets.notifications import TicketNotifier
from src.core.tickets.ports import InMemoryTicketRepository


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: end-to-end tests through the HTTP API (deselect with '-m \"not integration\"')"
    )


# =============================================================================
# Actors
# =============================================================================

@pytest.fixture
def admin():
    return Actor("admin-1", Role.SUPER_ADMIN, "10.0.0.1")


@pytest.fixture
def manager():
    return Actor("mgr-1", Role.SUPPORT_MANAGER)


@pytest.fixture
def other_manager():
    return Actor("mgr-2", Role.SUPPORT_MANAGER)


@pytest.fixture
def engineer():
    return Actor("eng-1", Role.ENGINEER)


@pytest.fixture
def other_engineer():
    return Actor("eng-2", Role.ENGINEER)


@pytest.fixture
def stock_manager():
    return Actor("inv-1", Role.INVENTORY_MANAGER)


# =============================================================================
# Collaborators
# =============================================================================

@pytest.fixture
def role_oracle():
    return StaticRoleOracle()


@pytest.fixture
def users():
    """Directory with one active user per actor fixture."""
    directory = InMemoryUserDirectory()
    directory.add("admin-1", Role.SUPER_ADMIN, name="Alex Admin")
    directory.add("mgr-1", Role.SUPPORT_MANAGER, name="Morgan Manager")
    directory.add("mgr-2", Role.SUPPORT_MANAGER, name="Nico Manager")
    directory.add("eng-1", Role.ENGINEER, name="Eli Engineer")
    directory.add("eng-2", Role.ENGINEER, name="Sam Engineer")
    directory.add("inv-1", Role.INVENTORY_MANAGER, name="Ira Stock")
    directory.add("eng-off", Role.ENGINEER, is_active=False, name="Former Engineer")
    return directory


@pytest.fixture
def customers():
    directory = InMemoryCustomerDirectory()
    directory.add("cust-1", "Acme Ltd")
    directory.add("cust-off", "Gone Inc", is_active=False)
    return directory


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def audit_logger():
    return RecordingAuditLogger()


# =============================================================================
# Repositories and Unit of Work
# =============================================================================

@pytest.fixture
def settings_repo():
    return InMemorySettingsRepository()


@pytest.fixture
def ticket_repo():
    return InMemoryTicketRepository()


@pytest.fixture
def item_repo():
    return InMemoryInventoryItemRepository()


@pytest.fixture
def installation_lookup():
    lookup = InMemoryInstallationRequestLookup()
    lookup.add("ir-1", "000001")
    return lookup


@pytest.fixture
def uow(ticket_repo, settings_repo, item_repo):
    """Unit of Work rolling back every in-memory repository."""
    return InMemoryUnitOfWork(repositories=[ticket_repo, settings_repo, item_repo])


@pytest.fixture
def policy_provider(settings_repo):
    return PolicySnapshotProvider(settings_repo)


@pytest.fixture
def ticket_access(role_oracle, users):
    return TicketAccessPolicy(role_oracle, users)


@pytest.fixture
def ticket_notifications(notifier, users):
    return TicketNotifier(notifier, users)


@pytest.fixture
def stock_notifier(notifier, users):
    return StockNotifier(notifier, users)
