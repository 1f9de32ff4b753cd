"""
Domain events of the Policy Store.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from src.core.shared.events import DomainEvent


@dataclass
class SettingsUpdatedEvent(DomainEvent):
    """
    Ticket settings changed (update, reset or auto-approval toggle).

    Attributes:
        changed_fields: Names of the fields that changed
        updated_by: Who made the change
        operation: "update", "reset" or "toggle_auto_approval"
    """

    changed_fields: List[str] = field(default_factory=list)
    updated_by: Optional[str] = None
    operation: str = "update"

    @property
    def aggregate_type(self) -> str:
        return "TicketSettings"
