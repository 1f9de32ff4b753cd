"""
Policy Store entities.

- TicketSettings: the mutable, persisted settings singleton
- PolicySnapshot: immutable copy taken once per request

Use cases never read TicketSettings while mutating tickets; they take a
snapshot at the start of the request and pass it down.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

from src.core.shared.clock import utcnow
from src.core.shared.exceptions import ValidationError
from src.core.shared.roles import Role

from .due_dates import (
    DEFAULT_DUE_DATE_DAYS,
    DEFAULT_PRIORITY_DUE_DAYS,
    PRIORITY_KEYS,
    calculate_due_date,
    priority_key,
)

SETTINGS_ID = "ticket-settings"

# Fields a Support Manager may change; everything else is Super Admin only.
MANAGER_EDITABLE_FIELDS = frozenset({
    "default_due_date_days",
    "priority_due_dates",
    "notify_on_status_change",
})

EDITABLE_FIELDS = frozenset({
    "auto_approval",
    "auto_approval_roles",
    "default_assign_to_support_manager",
    "default_due_date_days",
    "priority_due_dates",
    "notify_on_status_change",
    "allow_reopen_closed_tickets",
    "reopen_window_days",
})


@dataclass(frozen=True)
class PolicySnapshot:
    """
    Read-only view of the ticket policy for one request.

    Attributes:
        auto_approval: Resolutions skip approval for auto_approval_roles
        auto_approval_roles: Roles exempt from manual approval
        default_assign_to_support_manager: Auto-assign new tickets
        default_due_date_days: Fallback number of days for due dates
        priority_due_dates: Priority name -> days (always all four keys)
        notify_on_status_change: Send status change notifications
        allow_reopen_closed_tickets: Reopening is permitted at all
        reopen_window_days: Days after closure during which reopening is allowed
    """

    auto_approval: bool = False
    auto_approval_roles: FrozenSet[Role] = frozenset()
    default_assign_to_support_manager: bool = False
    default_due_date_days: int = DEFAULT_DUE_DATE_DAYS
    priority_due_dates: Mapping[str, int] = field(
        default_factory=lambda: MappingProxyType(dict(DEFAULT_PRIORITY_DUE_DAYS)),
        hash=False,
    )
    notify_on_status_change: bool = True
    allow_reopen_closed_tickets: bool = True
    reopen_window_days: int = 30

    def requires_approval(self, role: Role) -> bool:
        """True when a resolution by ``role`` must wait for approval."""
        return not self.auto_approval or role not in self.auto_approval_roles

    def due_date_for(self, priority, created_at: datetime) -> datetime:
        return calculate_due_date(
            priority,
            created_at,
            self.priority_due_dates,
            self.default_due_date_days,
        )

    def reopen_allowed(self, closed_at: Optional[datetime], now: datetime) -> bool:
        if not self.allow_reopen_closed_tickets:
            return False
        if closed_at is None:
            return True
        return now - closed_at <= timedelta(days=self.reopen_window_days)


@dataclass
class TicketSettings:
    """
    Process-wide ticket policy (singleton aggregate).

    Lazily created with defaults, mutated only through the settings
    use cases, never deleted.

    Example:
        settings = TicketSettings.defaults()
        settings.apply_changes({"priority_due_dates": {"HIGH": 2}}, "admin-1")
        snapshot = settings.snapshot()
    """

    id: str = SETTINGS_ID
    auto_approval: bool = False
    auto_approval_roles: List[Role] = field(default_factory=list)
    default_assign_to_support_manager: bool = False
    default_due_date_days: int = DEFAULT_DUE_DATE_DAYS
    priority_due_dates: Dict[str, int] = field(
        default_factory=lambda: dict(DEFAULT_PRIORITY_DUE_DAYS)
    )
    notify_on_status_change: bool = True
    allow_reopen_closed_tickets: bool = True
    reopen_window_days: int = 30
    updated_by: Optional[str] = None
    updated_at: Optional[datetime] = None
    version: int = 0

    @classmethod
    def defaults(cls) -> "TicketSettings":
        return cls()

    def backfill_priorities(self) -> bool:
        """
        Add any canonical priority missing from the table.

        Returns:
            True if the table was changed
        """
        missing = [k for k in PRIORITY_KEYS if k not in self.priority_due_dates]
        for key in missing:
            self.priority_due_dates[key] = DEFAULT_PRIORITY_DUE_DAYS[key]
        return bool(missing)

    def apply_changes(
        self,
        changes: Dict[str, Any],
        actor_id: str,
        now: Optional[datetime] = None,
    ) -> List[str]:
        """
        Validate and apply a partial update.

        ``priority_due_dates`` is merged key by key; other fields replace.

        Args:
            changes: Field name -> new value
            actor_id: Who is updating

        Returns:
            Names of the fields that actually changed

        Raises:
            ValidationError: Unknown field or invalid value
        """
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(
                f"Unknown settings field(s): {', '.join(sorted(unknown))}",
                field=sorted(unknown)[0],
            )

        cleaned = {}
        for name, value in changes.items():
            if name == "priority_due_dates":
                merged = dict(self.priority_due_dates)
                merged.update(self._clean_priority_table(value))
                cleaned[name] = merged
            elif name == "auto_approval_roles":
                cleaned[name] = self._clean_roles(value)
            elif name in ("default_due_date_days", "reopen_window_days"):
                cleaned[name] = self._clean_days(value, name)
            else:
                if not isinstance(value, bool):
                    raise ValidationError(f"{name} must be a boolean", field=name)
                cleaned[name] = value

        changed = []
        for name, new_value in cleaned.items():
            if getattr(self, name) != new_value:
                setattr(self, name, new_value)
                changed.append(name)

        self.backfill_priorities()
        self.updated_by = actor_id
        self.updated_at = now or utcnow()
        return changed

    def reset(self, actor_id: str, now: Optional[datetime] = None) -> None:
        """Restore every policy field to its default value."""
        fresh = TicketSettings.defaults()
        for name in EDITABLE_FIELDS:
            setattr(self, name, getattr(fresh, name))
        self.updated_by = actor_id
        self.updated_at = now or utcnow()

    def snapshot(self) -> PolicySnapshot:
        table = dict(DEFAULT_PRIORITY_DUE_DAYS)
        table.update(self.priority_due_dates)
        return PolicySnapshot(
            auto_approval=self.auto_approval,
            auto_approval_roles=frozenset(self.auto_approval_roles),
            default_assign_to_support_manager=self.default_assign_to_support_manager,
            default_due_date_days=self.default_due_date_days,
            priority_due_dates=MappingProxyType(table),
            notify_on_status_change=self.notify_on_status_change,
            allow_reopen_closed_tickets=self.allow_reopen_closed_tickets,
            reopen_window_days=self.reopen_window_days,
        )

    @staticmethod
    def _clean_days(value: Any, name: str) -> int:
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ValidationError(f"{name} must be a positive integer", field=name)
        return value

    @classmethod
    def _clean_priority_table(cls, value: Any) -> Dict[str, int]:
        if not isinstance(value, dict):
            raise ValidationError(
                "priority_due_dates must map priority to days",
                field="priority_due_dates",
            )
        cleaned = {}
        for key, days in value.items():
            name = priority_key(key)
            if name not in PRIORITY_KEYS:
                raise ValidationError(f"Unknown priority: {key}", field="priority_due_dates")
            cleaned[name] = cls._clean_days(days, "priority_due_dates")
        return cleaned

    @staticmethod
    def _clean_roles(value: Any) -> List[Role]:
        if not isinstance(value, (list, tuple, set, frozenset)):
            raise ValidationError(
                "auto_approval_roles must be a list of roles",
                field="auto_approval_roles",
            )
        roles = []
        for raw in value:
            try:
                role = Role.from_string(raw)
            except ValueError as e:
                raise ValidationError(str(e), field="auto_approval_roles")
            if role not in roles:
                roles.append(role)
        return roles
