"""
Unit tests for the Policy Store.

Covers:
- Due-date calculator
- TicketSettings validation, merge and backfill
- PolicySnapshot rules (approval, reopen window)
- Settings use cases and their role gates
"""

import pytest
from datetime import datetime, timedelta, timezone

from src.core.policy.due_dates import (
    DEFAULT_PRIORITY_DUE_DAYS,
    calculate_due_date,
    due_days_for,
)
from src.core.policy.dtos import (
    ToggleAutoApprovalInputDTO,
    UpdateDueDatesInputDTO,
    UpdateSettingsInputDTO,
)
from src.core.policy.entities import PolicySnapshot, TicketSettings
from src.core.policy.use_cases import (
    GetDueDatesConfigService,
    GetSettingsService,
    ResetSettingsService,
    ToggleAutoApprovalService,
    UpdateDueDatesConfigService,
    UpdateSettingsService,
)
from src.core.shared.exceptions import AuthorizationError, ValidationError
from src.core.shared.roles import Role
from src.core.tickets.entities import TicketPriority

CREATED = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)


# =============================================================================
# Due-date calculator
# =============================================================================

class TestDueDates:

    @pytest.mark.parametrize("priority,days", [
        ("LOW", 10),
        ("MEDIUM", 7),
        ("HIGH", 3),
        ("CRITICAL", 1),
    ])
    def test_defaults_per_priority(self, priority, days):
        assert calculate_due_date(priority, CREATED) == CREATED + timedelta(days=days)

    def test_accepts_enum_and_mixed_case(self):
        assert due_days_for(TicketPriority.HIGH) == 3
        assert due_days_for("high") == 3

    def test_policy_table_wins(self):
        due = calculate_due_date("HIGH", CREATED, {"HIGH": 2})
        assert due == CREATED + timedelta(days=2)

    def test_missing_key_falls_back_to_compiled_default(self):
        assert due_days_for("CRITICAL", {"HIGH": 2}) == 1

    def test_unknown_priority_uses_default_days(self):
        assert due_days_for("URGENT", {}, default_due_date_days=5) == 5


# =============================================================================
# TicketSettings / PolicySnapshot
# =============================================================================

class TestTicketSettings:

    def test_defaults(self):
        settings = TicketSettings.defaults()

        assert settings.auto_approval is False
        assert settings.auto_approval_roles == []
        assert settings.default_due_date_days == 7
        assert settings.priority_due_dates == DEFAULT_PRIORITY_DUE_DAYS
        assert settings.allow_reopen_closed_tickets is True
        assert settings.reopen_window_days == 30

    def test_priority_table_merges_per_key(self):
        settings = TicketSettings.defaults()

        changed = settings.apply_changes({"priority_due_dates": {"high": 2}}, "admin-1")

        assert changed == ["priority_due_dates"]
        assert settings.priority_due_dates == {"LOW": 10, "MEDIUM": 7, "HIGH": 2, "CRITICAL": 1}
        assert settings.updated_by == "admin-1"
        assert settings.updated_at is not None

    def test_unchanged_value_is_not_reported(self):
        settings = TicketSettings.defaults()

        assert settings.apply_changes({"auto_approval": False}, "admin-1") == []

    @pytest.mark.parametrize("changes,field", [
        ({"default_due_date_days": 0}, "default_due_date_days"),
        ({"reopen_window_days": -3}, "reopen_window_days"),
        ({"priority_due_dates": {"URGENT": 1}}, "priority_due_dates"),
        ({"priority_due_dates": {"HIGH": "two"}}, "priority_due_dates"),
        ({"auto_approval": "yes"}, "auto_approval"),
        ({"auto_approval_roles": ["WIZARD"]}, "auto_approval_roles"),
        ({"colour": "blue"}, "colour"),
    ])
    def test_invalid_changes_are_rejected(self, changes, field):
        settings = TicketSettings.defaults()

        with pytest.raises(ValidationError) as exc:
            settings.apply_changes(changes, "admin-1")

        assert exc.value.field == field

    def test_invalid_change_applies_nothing(self):
        settings = TicketSettings.defaults()

        with pytest.raises(ValidationError):
            settings.apply_changes({"auto_approval": True, "default_due_date_days": 0}, "admin-1")

        assert settings.auto_approval is False

    def test_backfill_restores_missing_priorities(self):
        settings = TicketSettings(priority_due_dates={"HIGH": 2})

        assert settings.backfill_priorities() is True
        assert settings.priority_due_dates == {"LOW": 10, "MEDIUM": 7, "HIGH": 2, "CRITICAL": 1}
        assert settings.backfill_priorities() is False

    def test_reset_restores_defaults(self):
        settings = TicketSettings.defaults()
        settings.apply_changes(
            {"auto_approval": True, "auto_approval_roles": ["ENGINEER"], "reopen_window_days": 5},
            "admin-1",
        )

        settings.reset("admin-2")

        assert settings.auto_approval is False
        assert settings.auto_approval_roles == []
        assert settings.reopen_window_days == 30
        assert settings.updated_by == "admin-2"

    def test_snapshot_is_immutable_copy(self):
        settings = TicketSettings.defaults()
        snapshot = settings.snapshot()

        settings.apply_changes({"priority_due_dates": {"HIGH": 2}}, "admin-1")

        assert snapshot.priority_due_dates["HIGH"] == 3
        with pytest.raises(TypeError):
            snapshot.priority_due_dates["HIGH"] = 1


class TestPolicySnapshot:

    def test_approval_required_by_default(self):
        assert PolicySnapshot().requires_approval(Role.SUPER_ADMIN) is True

    def test_auto_approval_only_for_listed_roles(self):
        policy = PolicySnapshot(auto_approval=True, auto_approval_roles=frozenset({Role.SUPPORT_MANAGER}))

        assert policy.requires_approval(Role.SUPPORT_MANAGER) is False
        assert policy.requires_approval(Role.ENGINEER) is True

    def test_reopen_window(self):
        policy = PolicySnapshot(reopen_window_days=30)
        closed = CREATED

        assert policy.reopen_allowed(closed, closed + timedelta(days=30)) is True
        assert policy.reopen_allowed(closed, closed + timedelta(days=31)) is False

    def test_reopen_disabled(self):
        policy = PolicySnapshot(allow_reopen_closed_tickets=False)

        assert policy.reopen_allowed(CREATED, CREATED) is False


# =============================================================================
# Use cases
# =============================================================================

class TestGetSettingsService:

    def test_creates_defaults_lazily(self, settings_repo, uow):
        output = GetSettingsService(settings_repo, uow).execute()

        assert output.priority_due_dates == DEFAULT_PRIORITY_DUE_DAYS
        assert settings_repo.count() == 1

    def test_backfills_stored_table(self, settings_repo, uow):
        settings_repo.save(TicketSettings(priority_due_dates={"HIGH": 2}))

        output = GetSettingsService(settings_repo, uow).execute()

        assert output.priority_due_dates == {"LOW": 10, "MEDIUM": 7, "HIGH": 2, "CRITICAL": 1}
        assert settings_repo.get().priority_due_dates["LOW"] == 10


class TestUpdateSettingsService:

    @pytest.fixture
    def service(self, settings_repo, uow, role_oracle, audit_logger):
        return UpdateSettingsService(settings_repo, uow, role_oracle, audit_logger)

    def test_super_admin_updates_any_field(self, service, admin, settings_repo, uow):
        output = service.execute(UpdateSettingsInputDTO(
            actor=admin,
            changes={"auto_approval": True, "auto_approval_roles": ["Support Manager"]},
        ))

        assert output.auto_approval is True
        assert output.auto_approval_roles == ["SUPPORT_MANAGER"]
        assert settings_repo.get().auto_approval is True
        assert [e.event_type for e in uow.published_events] == ["SettingsUpdatedEvent"]

    def test_manager_may_change_due_dates(self, service, manager):
        output = service.execute(UpdateSettingsInputDTO(
            actor=manager,
            changes={"priority_due_dates": {"HIGH": 2}, "notify_on_status_change": False},
        ))

        assert output.priority_due_dates["HIGH"] == 2
        assert output.notify_on_status_change is False

    def test_manager_may_not_change_approval(self, service, manager, settings_repo):
        with pytest.raises(AuthorizationError):
            service.execute(UpdateSettingsInputDTO(actor=manager, changes={"auto_approval": True}))

        assert settings_repo.get() is None

    def test_engineer_refused(self, service, engineer):
        with pytest.raises(AuthorizationError):
            service.execute(UpdateSettingsInputDTO(
                actor=engineer, changes={"default_due_date_days": 3}
            ))

    def test_audited_after_commit(self, service, admin, audit_logger):
        service.execute(UpdateSettingsInputDTO(actor=admin, changes={"reopen_window_days": 10}))

        assert audit_logger.actions() == ["settings.update"]
        assert audit_logger.entries[0].ip == "10.0.0.1"

    def test_audit_failure_does_not_fail_update(self, service, admin, audit_logger, settings_repo):
        audit_logger.fail_with = RuntimeError("audit store down")

        service.execute(UpdateSettingsInputDTO(actor=admin, changes={"reopen_window_days": 10}))

        assert settings_repo.get().reopen_window_days == 10


class TestSuperAdminOnlyServices:

    def test_reset(self, settings_repo, uow, role_oracle, admin):
        settings_repo.save(TicketSettings(auto_approval=True, reopen_window_days=3))

        output = ResetSettingsService(settings_repo, uow, role_oracle).execute(admin)

        assert output.auto_approval is False
        assert output.reopen_window_days == 30

    def test_reset_refused_for_manager(self, settings_repo, uow, role_oracle, manager):
        with pytest.raises(AuthorizationError):
            ResetSettingsService(settings_repo, uow, role_oracle).execute(manager)

    def test_toggle_auto_approval(self, settings_repo, uow, role_oracle, admin):
        service = ToggleAutoApprovalService(settings_repo, uow, role_oracle)

        output = service.execute(ToggleAutoApprovalInputDTO(
            actor=admin, enabled=True, roles=("ENGINEER", "SUPPORT_MANAGER")
        ))

        assert output.auto_approval is True
        assert output.auto_approval_roles == ["ENGINEER", "SUPPORT_MANAGER"]

    def test_toggle_refused_for_manager(self, settings_repo, uow, role_oracle, manager):
        with pytest.raises(AuthorizationError):
            ToggleAutoApprovalService(settings_repo, uow, role_oracle).execute(
                ToggleAutoApprovalInputDTO(actor=manager, enabled=True)
            )


class TestDueDatesConfigServices:

    def test_read_defaults(self, settings_repo, uow):
        config = GetDueDatesConfigService(settings_repo, uow).execute()

        assert config.to_dict() == {
            "default_due_date_days": 7,
            "priority_due_dates": DEFAULT_PRIORITY_DUE_DAYS,
        }

    def test_manager_updates_due_dates(self, settings_repo, uow, role_oracle, manager):
        service = UpdateDueDatesConfigService(settings_repo, uow, role_oracle)

        config = service.execute(UpdateDueDatesInputDTO(
            actor=manager, default_due_date_days=5, priority_due_dates={"LOW": 14}
        ))

        assert config.default_due_date_days == 5
        assert config.priority_due_dates["LOW"] == 14
        assert config.priority_due_dates["CRITICAL"] == 1

    def test_engineer_refused(self, settings_repo, uow, role_oracle, engineer):
        service = UpdateDueDatesConfigService(settings_repo, uow, role_oracle)

        with pytest.raises(AuthorizationError):
            service.execute(UpdateDueDatesInputDTO(actor=engineer, default_due_date_days=5))
