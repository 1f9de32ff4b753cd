"""
Dependency Injection Container.

Wires repositories, side-channel collaborators and use cases with
dependency-injector.

Layout:
- infrastructure: Unit of Work, event publisher, event store
- repositories: persistence per aggregate
- collaborators: role oracle, directories, notifier, audit logger
- services: use cases (Factory - new instance per call)

Django adapters are imported lazily so the container module can be
loaded before the app registry is ready.

Usage:
    from src.config.container import get_container

    service = get_container().services.create_ticket_service()
    result = service.execute(input_dto)
"""

from importlib import import_module
from typing import Optional

from dependency_injector import containers, providers

from src.core.inventory.notifications import StockNotifier
from src.core.inventory.ports import InMemoryInstallationRequestLookup, InMemoryInventoryItemRepository
from src.core.inventory.use_cases import (
    CreateInventoryItemService,
    DispatchPartService,
    GetItemService,
    ListItemsService,
    ListMovementsService,
    ReturnPartService,
    UpdateReorderPointService,
)
from src.core.policy.ports import InMemorySettingsRepository
from src.core.policy.use_cases import (
    GetDueDatesConfigService,
    GetSettingsService,
    PolicySnapshotProvider,
    ResetSettingsService,
    ToggleAutoApprovalService,
    UpdateDueDatesConfigService,
    UpdateSettingsService,
)
from src.core.shared.collaborators import (
    InMemoryCustomerDirectory,
    InMemoryUserDirectory,
    RecordingAuditLogger,
    RecordingNotifier,
)
from src.core.shared.roles import StaticRoleOracle
from src.core.tickets.access import TicketAccessPolicy
from src.core.tickets.notifications import TicketNotifier
from src.core.tickets.ports import InMemoryTicketRepository
from src.core.tickets.use_cases import (
    AddAttachmentsService,
    AddCommentService,
    ApproveTicketService,
    AssignTicketService,
    CheckOverdueTicketsService,
    CloseByCustomerService,
    CreateTicketService,
    DeleteAttachmentService,
    GetAssignmentHistoryService,
    GetTicketService,
    ListTicketsService,
    UpdateTicketService,
)


def _lazy(module: str, name: str):
    """Callable that imports ``module.name`` on first use."""

    def factory(*args, **kwargs):
        return getattr(import_module(module), name)(*args, **kwargs)

    factory.__name__ = name
    return factory


_ADAPTERS = 'src.adapters.django_app'


# =============================================================================
# Infrastructure
# =============================================================================

class InfrastructureContainer(containers.DeclarativeContainer):
    """Transactions and event delivery backed by Django and Celery."""

    config = providers.Configuration()

    event_publisher = providers.Singleton(
        _lazy(f'{_ADAPTERS}.events.publishers', 'get_event_publisher'),
        mode=config.event_publisher_mode,
    )

    event_store = providers.Singleton(
        _lazy(f'{_ADAPTERS}.tickets.repositories', 'DjangoEventStore'),
    )

    unit_of_work = providers.Factory(
        _lazy(f'{_ADAPTERS}.shared.unit_of_work', 'DjangoUnitOfWork'),
        event_publisher=event_publisher,
        event_store=event_store,
    )


class RepositoriesContainer(containers.DeclarativeContainer):

    ticket_repository = providers.Singleton(
        _lazy(f'{_ADAPTERS}.tickets.repositories', 'DjangoTicketRepository'),
    )

    settings_repository = providers.Singleton(
        _lazy(f'{_ADAPTERS}.tickets.repositories', 'DjangoSettingsRepository'),
    )

    item_repository = providers.Singleton(
        _lazy(f'{_ADAPTERS}.inventory.repositories', 'DjangoInventoryItemRepository'),
    )

    installation_lookup = providers.Singleton(
        _lazy(f'{_ADAPTERS}.inventory.repositories', 'DjangoInstallationRequestLookup'),
    )


class CollaboratorsContainer(containers.DeclarativeContainer):
    """Identity lookups and best-effort side channels."""

    config = providers.Configuration()

    role_oracle = providers.Singleton(StaticRoleOracle)

    user_directory = providers.Singleton(
        _lazy(f'{_ADAPTERS}.directory.repositories', 'DjangoUserDirectory'),
    )

    customer_directory = providers.Singleton(
        _lazy(f'{_ADAPTERS}.directory.repositories', 'DjangoCustomerDirectory'),
    )

    notifier = providers.Singleton(
        _lazy(f'{_ADAPTERS}.activity.services', 'get_notifier'),
        mode=config.notifier_mode,
    )

    audit_logger = providers.Singleton(
        _lazy(f'{_ADAPTERS}.activity.services', 'get_audit_logger'),
        mode=config.notifier_mode,
    )


# =============================================================================
# Services / Use Cases
# =============================================================================

class ServicesContainer(containers.DeclarativeContainer):
    """
    Use cases, independent of the backing adapters.

    Both the production and the testing container mount this one with
    their own infrastructure, repositories and collaborators.
    """

    infrastructure = providers.DependenciesContainer()
    repositories = providers.DependenciesContainer()
    collaborators = providers.DependenciesContainer()

    policy_provider = providers.Factory(
        PolicySnapshotProvider,
        settings_repo=repositories.settings_repository,
    )

    ticket_access = providers.Factory(
        TicketAccessPolicy,
        role_oracle=collaborators.role_oracle,
        user_directory=collaborators.user_directory,
    )

    ticket_notifications = providers.Factory(
        TicketNotifier,
        notifier=collaborators.notifier,
        user_directory=collaborators.user_directory,
    )

    stock_notifier = providers.Factory(
        StockNotifier,
        notifier=collaborators.notifier,
        user_directory=collaborators.user_directory,
    )

    # Policy

    get_settings_service = providers.Factory(
        GetSettingsService,
        settings_repo=repositories.settings_repository,
        uow=infrastructure.unit_of_work,
    )

    update_settings_service = providers.Factory(
        UpdateSettingsService,
        settings_repo=repositories.settings_repository,
        uow=infrastructure.unit_of_work,
        role_oracle=collaborators.role_oracle,
        audit_logger=collaborators.audit_logger,
    )

    reset_settings_service = providers.Factory(
        ResetSettingsService,
        settings_repo=repositories.settings_repository,
        uow=infrastructure.unit_of_work,
        role_oracle=collaborators.role_oracle,
        audit_logger=collaborators.audit_logger,
    )

    toggle_auto_approval_service = providers.Factory(
        ToggleAutoApprovalService,
        settings_repo=repositories.settings_repository,
        uow=infrastructure.unit_of_work,
        role_oracle=collaborators.role_oracle,
        audit_logger=collaborators.audit_logger,
    )

    get_due_dates_config_service = providers.Factory(
        GetDueDatesConfigService,
        settings_repo=repositories.settings_repository,
        uow=infrastructure.unit_of_work,
    )

    update_due_dates_config_service = providers.Factory(
        UpdateDueDatesConfigService,
        settings_repo=repositories.settings_repository,
        uow=infrastructure.unit_of_work,
        role_oracle=collaborators.role_oracle,
        audit_logger=collaborators.audit_logger,
    )

    # Tickets

    create_ticket_service = providers.Factory(
        CreateTicketService,
        ticket_repo=repositories.ticket_repository,
        uow=infrastructure.unit_of_work,
        policy_provider=policy_provider,
        access=ticket_access,
        notifications=ticket_notifications,
        customer_directory=collaborators.customer_directory,
        user_directory=collaborators.user_directory,
        audit_logger=collaborators.audit_logger,
    )

    update_ticket_service = providers.Factory(
        UpdateTicketService,
        ticket_repo=repositories.ticket_repository,
        uow=infrastructure.unit_of_work,
        policy_provider=policy_provider,
        access=ticket_access,
        notifications=ticket_notifications,
        audit_logger=collaborators.audit_logger,
    )

    assign_ticket_service = providers.Factory(
        AssignTicketService,
        ticket_repo=repositories.ticket_repository,
        uow=infrastructure.unit_of_work,
        policy_provider=policy_provider,
        access=ticket_access,
        notifications=ticket_notifications,
        audit_logger=collaborators.audit_logger,
    )

    approve_ticket_service = providers.Factory(
        ApproveTicketService,
        ticket_repo=repositories.ticket_repository,
        uow=infrastructure.unit_of_work,
        policy_provider=policy_provider,
        access=ticket_access,
        notifications=ticket_notifications,
        audit_logger=collaborators.audit_logger,
    )

    close_by_customer_service = providers.Factory(
        CloseByCustomerService,
        ticket_repo=repositories.ticket_repository,
        uow=infrastructure.unit_of_work,
        policy_provider=policy_provider,
        access=ticket_access,
        notifications=ticket_notifications,
        audit_logger=collaborators.audit_logger,
    )

    add_comment_service = providers.Factory(
        AddCommentService,
        ticket_repo=repositories.ticket_repository,
        uow=infrastructure.unit_of_work,
        policy_provider=policy_provider,
        access=ticket_access,
        notifications=ticket_notifications,
        audit_logger=collaborators.audit_logger,
    )

    add_attachments_service = providers.Factory(
        AddAttachmentsService,
        ticket_repo=repositories.ticket_repository,
        uow=infrastructure.unit_of_work,
        policy_provider=policy_provider,
        access=ticket_access,
        notifications=ticket_notifications,
        audit_logger=collaborators.audit_logger,
    )

    delete_attachment_service = providers.Factory(
        DeleteAttachmentService,
        ticket_repo=repositories.ticket_repository,
        uow=infrastructure.unit_of_work,
        policy_provider=policy_provider,
        access=ticket_access,
        notifications=ticket_notifications,
        audit_logger=collaborators.audit_logger,
    )

    get_ticket_service = providers.Factory(
        GetTicketService,
        ticket_repo=repositories.ticket_repository,
        access=ticket_access,
    )

    get_assignment_history_service = providers.Factory(
        GetAssignmentHistoryService,
        ticket_repo=repositories.ticket_repository,
        access=ticket_access,
    )

    list_tickets_service = providers.Factory(
        ListTicketsService,
        ticket_repo=repositories.ticket_repository,
        access=ticket_access,
    )

    check_overdue_tickets_service = providers.Factory(
        CheckOverdueTicketsService,
        ticket_repo=repositories.ticket_repository,
        notifications=ticket_notifications,
    )

    # Inventory

    create_inventory_item_service = providers.Factory(
        CreateInventoryItemService,
        item_repo=repositories.item_repository,
        uow=infrastructure.unit_of_work,
        role_oracle=collaborators.role_oracle,
        stock_notifier=stock_notifier,
        audit_logger=collaborators.audit_logger,
    )

    dispatch_part_service = providers.Factory(
        DispatchPartService,
        item_repo=repositories.item_repository,
        uow=infrastructure.unit_of_work,
        role_oracle=collaborators.role_oracle,
        stock_notifier=stock_notifier,
        ticket_repo=repositories.ticket_repository,
        installation_lookup=repositories.installation_lookup,
        policy_provider=policy_provider,
        ticket_access=ticket_access,
        ticket_notifications=ticket_notifications,
        audit_logger=collaborators.audit_logger,
    )

    return_part_service = providers.Factory(
        ReturnPartService,
        item_repo=repositories.item_repository,
        uow=infrastructure.unit_of_work,
        role_oracle=collaborators.role_oracle,
        stock_notifier=stock_notifier,
        ticket_repo=repositories.ticket_repository,
        installation_lookup=repositories.installation_lookup,
        audit_logger=collaborators.audit_logger,
    )

    update_reorder_point_service = providers.Factory(
        UpdateReorderPointService,
        item_repo=repositories.item_repository,
        uow=infrastructure.unit_of_work,
        role_oracle=collaborators.role_oracle,
        stock_notifier=stock_notifier,
        audit_logger=collaborators.audit_logger,
    )

    get_item_service = providers.Factory(
        GetItemService,
        item_repo=repositories.item_repository,
        role_oracle=collaborators.role_oracle,
    )

    list_items_service = providers.Factory(
        ListItemsService,
        item_repo=repositories.item_repository,
        role_oracle=collaborators.role_oracle,
    )

    list_movements_service = providers.Factory(
        ListMovementsService,
        item_repo=repositories.item_repository,
        role_oracle=collaborators.role_oracle,
    )


class Container(containers.DeclarativeContainer):
    """
    Main container.

    Example:
        container = Container()
        container.config.from_dict({'event_publisher_mode': 'celery'})
        service = container.services.dispatch_part_service()
    """

    config = providers.Configuration()

    infrastructure = providers.Container(InfrastructureContainer, config=config)
    repositories = providers.Container(RepositoriesContainer)
    collaborators = providers.Container(CollaboratorsContainer, config=config)

    services = providers.Container(
        ServicesContainer,
        infrastructure=infrastructure,
        repositories=repositories,
        collaborators=collaborators,
    )


# =============================================================================
# Global Container (Singleton)
# =============================================================================

_container: Optional[Container] = None


def get_container() -> Container:
    """
    Return the global container, created on first use.

    Modes are read from Django settings (EVENT_PUBLISHER_MODE, NOTIFIER_MODE).
    """
    global _container

    if _container is None:
        from django.conf import settings

        _container = Container()
        _container.config.from_dict({
            'event_publisher_mode': getattr(settings, 'EVENT_PUBLISHER_MODE', 'sync'),
            'notifier_mode': getattr(settings, 'NOTIFIER_MODE', 'sync'),
        })

    return _container


def reset_container() -> None:
    """Drop the global container (tests)."""
    global _container
    _container = None


# =============================================================================
# Testing Container
# =============================================================================

class InMemoryRepositoriesContainer(containers.DeclarativeContainer):

    ticket_repository = providers.Singleton(InMemoryTicketRepository)
    settings_repository = providers.Singleton(InMemorySettingsRepository)
    item_repository = providers.Singleton(InMemoryInventoryItemRepository)
    installation_lookup = providers.Singleton(InMemoryInstallationRequestLookup)


class InMemoryInfrastructureContainer(containers.DeclarativeContainer):
    """Unit of Work that snapshots the in-memory repositories."""

    repositories = providers.DependenciesContainer()

    event_publisher = providers.Singleton(
        _lazy(f'{_ADAPTERS}.events.publishers', 'InMemoryEventPublisher'),
    )

    unit_of_work = providers.Factory(
        _lazy(f'{_ADAPTERS}.shared.unit_of_work', 'InMemoryUnitOfWork'),
        repositories=providers.List(
            repositories.ticket_repository,
            repositories.settings_repository,
            repositories.item_repository,
        ),
        event_publisher=event_publisher,
    )


class InMemoryCollaboratorsContainer(containers.DeclarativeContainer):

    role_oracle = providers.Singleton(StaticRoleOracle)
    user_directory = providers.Singleton(InMemoryUserDirectory)
    customer_directory = providers.Singleton(InMemoryCustomerDirectory)
    notifier = providers.Singleton(RecordingNotifier)
    audit_logger = providers.Singleton(RecordingAuditLogger)


class TestingContainer(containers.DeclarativeContainer):
    """
    Container for tests, fully in memory.

    Example:
        container = TestingContainer()
        container.collaborators.user_directory().add("admin-1", Role.SUPER_ADMIN)
        service = container.services.create_ticket_service()
    """

    repositories = providers.Container(InMemoryRepositoriesContainer)
    infrastructure = providers.Container(InMemoryInfrastructureContainer, repositories=repositories)
    collaborators = providers.Container(InMemoryCollaboratorsContainer)

    services = providers.Container(
        ServicesContainer,
        infrastructure=infrastructure,
        repositories=repositories,
        collaborators=collaborators,
    )
