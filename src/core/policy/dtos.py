"""
DTOs for the Policy Store.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

from src.core.shared.collaborators import Actor

from .entities import TicketSettings


@dataclass(frozen=True)
class UpdateSettingsInputDTO:
    """
    Partial settings update.

    Attributes:
        actor: Who is updating
        changes: Field name -> new value (priority_due_dates merges key-wise)
    """

    actor: Actor
    changes: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToggleAutoApprovalInputDTO:
    actor: Actor
    enabled: bool
    roles: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class UpdateDueDatesInputDTO:
    actor: Actor
    default_due_date_days: Optional[int] = None
    priority_due_dates: Optional[Mapping[str, int]] = None

    def to_changes(self) -> Dict[str, Any]:
        changes = {}
        if self.default_due_date_days is not None:
            changes["default_due_date_days"] = self.default_due_date_days
        if self.priority_due_dates is not None:
            changes["priority_due_dates"] = dict(self.priority_due_dates)
        return changes


@dataclass
class SettingsOutputDTO:
    auto_approval: bool
    auto_approval_roles: List[str]
    default_assign_to_support_manager: bool
    default_due_date_days: int
    priority_due_dates: Dict[str, int]
    notify_on_status_change: bool
    allow_reopen_closed_tickets: bool
    reopen_window_days: int
    updated_by: Optional[str]
    updated_at: Optional[datetime]

    @classmethod
    def from_entity(cls, entity: TicketSettings) -> "SettingsOutputDTO":
        return cls(
            auto_approval=entity.auto_approval,
            auto_approval_roles=[r.value for r in entity.auto_approval_roles],
            default_assign_to_support_manager=entity.default_assign_to_support_manager,
            default_due_date_days=entity.default_due_date_days,
            priority_due_dates=dict(entity.priority_due_dates),
            notify_on_status_change=entity.notify_on_status_change,
            allow_reopen_closed_tickets=entity.allow_reopen_closed_tickets,
            reopen_window_days=entity.reopen_window_days,
            updated_by=entity.updated_by,
            updated_at=entity.updated_at,
        )

    def to_dict(self) -> dict:
        return {
            "auto_approval": self.auto_approval,
            "auto_approval_roles": list(self.auto_approval_roles),
            "default_assign_to_support_manager": self.default_assign_to_support_manager,
            "default_due_date_days": self.default_due_date_days,
            "priority_due_dates": dict(self.priority_due_dates),
            "notify_on_status_change": self.notify_on_status_change,
            "allow_reopen_closed_tickets": self.allow_reopen_closed_tickets,
            "reopen_window_days": self.reopen_window_days,
            "updated_by": self.updated_by,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class DueDatesConfigDTO:
    default_due_date_days: int
    priority_due_dates: Dict[str, int]

    def to_dict(self) -> dict:
        return {
            "default_due_date_days": self.default_due_date_days,
            "priority_due_dates": dict(self.priority_due_dates),
        }
