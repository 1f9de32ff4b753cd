"""
Due-date calculator.

Pure function of priority, creation time and the policy tables. Invoked
exactly once per ticket, at creation, when no explicit due date is given.
"""

from datetime import datetime, timedelta
from typing import Mapping, Optional

PRIORITY_KEYS = ("LOW", "MEDIUM", "HIGH", "CRITICAL")

DEFAULT_PRIORITY_DUE_DAYS = {
    "LOW": 10,
    "MEDIUM": 7,
    "HIGH": 3,
    "CRITICAL": 1,
}

DEFAULT_DUE_DATE_DAYS = 7


def priority_key(priority) -> str:
    """Normalize an enum member or string to its table key ("HIGH")."""
    value = getattr(priority, "value", priority)
    return str(value).strip().upper()


def due_days_for(
    priority,
    priority_due_dates: Optional[Mapping[str, int]] = None,
    default_due_date_days: int = DEFAULT_DUE_DATE_DAYS,
) -> int:
    """
    Number of days granted to a priority.

    Lookup order: policy table, compiled-in defaults for the four
    canonical priorities, then ``default_due_date_days``.
    """
    key = priority_key(priority)
    days = (priority_due_dates or {}).get(key)
    if days is None:
        days = DEFAULT_PRIORITY_DUE_DAYS.get(key, default_due_date_days)
    return int(days)


def calculate_due_date(
    priority,
    created_at: datetime,
    priority_due_dates: Optional[Mapping[str, int]] = None,
    default_due_date_days: int = DEFAULT_DUE_DATE_DAYS,
) -> datetime:
    """
    Due date for a ticket created at ``created_at``.

    Example:
        calculate_due_date("HIGH", created_at)  # created_at + 3 days
    """
    days = due_days_for(priority, priority_due_dates, default_due_date_days)
    return created_at + timedelta(days=days)
