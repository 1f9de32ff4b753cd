"""
Policy Store - SLA and approval configuration.

Holds the ticket settings singleton (due dates per priority,
auto-approval roles, reopen window, notification flag) and hands out
immutable snapshots that ticket and inventory use cases read from.
"""

from .due_dates import DEFAULT_PRIORITY_DUE_DAYS, calculate_due_date
from .entities import PolicySnapshot, TicketSettings
from .ports import SettingsRepository, InMemorySettingsRepository
from .use_cases import (
    GetSettingsService,
    UpdateSettingsService,
    ResetSettingsService,
    ToggleAutoApprovalService,
    GetDueDatesConfigService,
    UpdateDueDatesConfigService,
    PolicySnapshotProvider,
)

__all__ = [
    "DEFAULT_PRIORITY_DUE_DAYS",
    "calculate_due_date",
    "PolicySnapshot",
    "TicketSettings",
    "SettingsRepository",
    "InMemorySettingsRepository",
    "GetSettingsService",
    "UpdateSettingsService",
    "ResetSettingsService",
    "ToggleAutoApprovalService",
    "GetDueDatesConfigService",
    "UpdateDueDatesConfigService",
    "PolicySnapshotProvider",
]
