"""
Use Cases of the Policy Store.

- GetSettingsService: read (lazily creating and backfilling)
- UpdateSettingsService: role-gated partial update
- ResetSettingsService: restore defaults (Super Admin)
- ToggleAutoApprovalService: switch auto-approval (Super Admin)
- GetDueDatesConfigService / UpdateDueDatesConfigService
- PolicySnapshotProvider: immutable per-request snapshot for other contexts
"""

from typing import Iterable, Optional
import logging

from src.core.shared.collaborators import Actor, AuditLogger, RoleOracle, best_effort
from src.core.shared.exceptions import AuthorizationError
from src.core.shared.interfaces import UnitOfWork
from src.core.shared.roles import Permission, Role
from src.core.shared.validation import clean_mapping

from .dtos import (
    DueDatesConfigDTO,
    SettingsOutputDTO,
    ToggleAutoApprovalInputDTO,
    UpdateDueDatesInputDTO,
    UpdateSettingsInputDTO,
)
from .entities import MANAGER_EDITABLE_FIELDS, PolicySnapshot, TicketSettings
from .events import SettingsUpdatedEvent
from .ports import SettingsRepository

logger = logging.getLogger(__name__)


def load_or_create_settings(settings_repo: SettingsRepository) -> TicketSettings:
    """
    Load the settings singleton, creating or backfilling it as needed.

    Must run inside a unit of work: it may write.
    """
    settings = settings_repo.get()
    if settings is None:
        logger.info("Ticket settings not found, creating defaults")
        settings = TicketSettings.defaults()
        settings_repo.save(settings)
    elif settings.backfill_priorities():
        logger.info("Backfilled missing priority due dates in ticket settings")
        settings_repo.save(settings)
    return settings


class PolicySnapshotProvider:
    """
    Hands out immutable policy snapshots.

    Read-only: if the singleton does not exist yet the defaults are
    used without writing, so ticket and inventory transactions never
    touch the settings row.

    Example:
        policy = provider.snapshot()
        due = policy.due_date_for("HIGH", now)
    """

    def __init__(self, settings_repo: SettingsRepository):
        self.settings_repo = settings_repo

    def snapshot(self) -> PolicySnapshot:
        settings = self.settings_repo.get() or TicketSettings.defaults()
        return settings.snapshot()


class _SettingsCommand:
    """Shared plumbing for settings mutations."""

    def __init__(
        self,
        settings_repo: SettingsRepository,
        uow: UnitOfWork,
        role_oracle: RoleOracle,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self.settings_repo = settings_repo
        self.uow = uow
        self.role_oracle = role_oracle
        self.audit_logger = audit_logger

    def _require_super_admin(self, actor: Actor, action: str) -> None:
        if not self.role_oracle.has_permission(actor.role, Permission.MANAGE_SETTINGS):
            raise AuthorizationError(
                f"Only a Super Admin may {action}",
                actor_id=actor.user_id,
                action=Permission.MANAGE_SETTINGS.value,
            )

    def _authorize_fields(self, actor: Actor, fields: Iterable[str]) -> None:
        if self.role_oracle.has_permission(actor.role, Permission.MANAGE_SETTINGS):
            return
        if not self.role_oracle.is_role_at_least(actor.role, Role.SUPPORT_MANAGER):
            raise AuthorizationError(
                "Only a Super Admin or Support Manager may update ticket settings",
                actor_id=actor.user_id,
                action=Permission.MANAGE_SETTINGS.value,
            )
        forbidden = sorted(set(fields) - MANAGER_EDITABLE_FIELDS)
        if forbidden:
            raise AuthorizationError(
                f"Support Managers may not change: {', '.join(forbidden)}",
                actor_id=actor.user_id,
                action=Permission.MANAGE_SETTINGS.value,
            )

    def _save_and_announce(self, settings: TicketSettings, changed, actor: Actor, operation: str) -> None:
        self.settings_repo.save(settings)
        self.uow.publish_event(
            SettingsUpdatedEvent(
                aggregate_id=settings.id,
                changed_fields=list(changed),
                updated_by=actor.user_id,
                operation=operation,
            )
        )

    def _audit(self, actor: Actor, operation: str, changed) -> None:
        if self.audit_logger is None:
            return
        best_effort(
            self.audit_logger.record,
            actor.user_id,
            f"settings.{operation}",
            f"Ticket settings {operation}: {', '.join(changed) or 'no changes'}",
            actor.ip_address,
            channel="audit",
        )


class GetSettingsService:
    """
    Use Case: read the ticket settings.

    Creates the singleton with defaults on first read and backfills
    missing priority keys.
    """

    def __init__(self, settings_repo: SettingsRepository, uow: UnitOfWork):
        self.settings_repo = settings_repo
        self.uow = uow

    def execute(self) -> SettingsOutputDTO:
        with self.uow:
            settings = load_or_create_settings(self.settings_repo)
        return SettingsOutputDTO.from_entity(settings)


class UpdateSettingsService(_SettingsCommand):
    """
    Use Case: partial settings update.

    Super Admin: every field. Support Manager: due dates and the
    notify-on-status-change flag. Anyone else: refused.

    Example:
        service.execute(UpdateSettingsInputDTO(
            actor=admin,
            changes={"priority_due_dates": {"HIGH": 2}},
        ))
    """

    operation = "update"

    def execute(self, input_dto: UpdateSettingsInputDTO) -> SettingsOutputDTO:
        """
        Raises:
            AuthorizationError: Role may not change one of the fields
            ValidationError: Unknown field or bad value
        """
        changes = clean_mapping(input_dto.changes, "changes")
        self._authorize_fields(input_dto.actor, changes.keys())

        with self.uow:
            settings = load_or_create_settings(self.settings_repo)
            changed = settings.apply_changes(changes, input_dto.actor.user_id)
            self._save_and_announce(settings, changed, input_dto.actor, self.operation)

        logger.info(f"Ticket settings updated by {input_dto.actor.user_id}: {changed}")
        self._audit(input_dto.actor, self.operation, changed)
        return SettingsOutputDTO.from_entity(settings)


class ResetSettingsService(_SettingsCommand):
    """Use Case: restore the default policy (Super Admin only)."""

    def execute(self, actor: Actor) -> SettingsOutputDTO:
        self._require_super_admin(actor, "reset ticket settings")

        with self.uow:
            settings = load_or_create_settings(self.settings_repo)
            settings.reset(actor.user_id)
            self._save_and_announce(settings, ["*"], actor, "reset")

        logger.info(f"Ticket settings reset to defaults by {actor.user_id}")
        self._audit(actor, "reset", ["all fields"])
        return SettingsOutputDTO.from_entity(settings)


class ToggleAutoApprovalService(_SettingsCommand):
    """Use Case: enable or disable auto-approval and set its roles (Super Admin only)."""

    def execute(self, input_dto: ToggleAutoApprovalInputDTO) -> SettingsOutputDTO:
        self._require_super_admin(input_dto.actor, "toggle auto-approval")

        changes = {"auto_approval": bool(input_dto.enabled)}
        if input_dto.roles:
            changes["auto_approval_roles"] = list(input_dto.roles)

        with self.uow:
            settings = load_or_create_settings(self.settings_repo)
            changed = settings.apply_changes(changes, input_dto.actor.user_id)
            self._save_and_announce(settings, changed, input_dto.actor, "toggle_auto_approval")

        self._audit(input_dto.actor, "toggle_auto_approval", changed)
        return SettingsOutputDTO.from_entity(settings)


class GetDueDatesConfigService:
    """Use Case: due-date part of the policy."""

    def __init__(self, settings_repo: SettingsRepository, uow: UnitOfWork):
        self.settings_repo = settings_repo
        self.uow = uow

    def execute(self) -> DueDatesConfigDTO:
        with self.uow:
            settings = load_or_create_settings(self.settings_repo)
        return DueDatesConfigDTO(
            default_due_date_days=settings.default_due_date_days,
            priority_due_dates=dict(settings.priority_due_dates),
        )


class UpdateDueDatesConfigService(_SettingsCommand):
    """Use Case: update due-date defaults (Super Admin or Support Manager)."""

    def execute(self, input_dto: UpdateDueDatesInputDTO) -> DueDatesConfigDTO:
        changes = input_dto.to_changes()
        self._authorize_fields(input_dto.actor, changes.keys())

        with self.uow:
            settings = load_or_create_settings(self.settings_repo)
            changed = settings.apply_changes(changes, input_dto.actor.user_id)
            self._save_and_announce(settings, changed, input_dto.actor, "update_due_dates")

        self._audit(input_dto.actor, "update_due_dates", changed)
        return DueDatesConfigDTO(
            default_due_date_days=settings.default_due_date_days,
            priority_due_dates=dict(settings.priority_due_dates),
        )
