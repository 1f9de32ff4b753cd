"""
Inventory notifications: low stock alerts and movement notices.

Sent after commit through ``best_effort``.
"""

from typing import List
import logging

from src.core.shared.collaborators import (
    NotificationKind,
    Notifier,
    UserDirectory,
    best_effort,
    best_effort_result,
)
from src.core.shared.roles import Role

from .entities import InventoryItem

logger = logging.getLogger(__name__)


class StockNotifier:
    """
    Low stock policy: one alert per threshold crossing.

    The alert goes to every active Inventory Manager when a movement
    takes the item from above its reorder point to at or below it.
    Further dispatches while already low do not alert again.
    """

    def __init__(self, notifier: Notifier, user_directory: UserDirectory):
        self.notifier = notifier
        self.user_directory = user_directory

    def inventory_managers(self) -> List[str]:
        managers = best_effort_result(
            self.user_directory.list_active_by_role,
            Role.INVENTORY_MANAGER,
            default=[],
            channel="user directory",
        )
        return [u.user_id for u in managers]

    def low_stock(self, item: InventoryItem) -> int:
        recipients = self.inventory_managers()
        if not recipients:
            logger.warning(f"Item {item.name} is low on stock but no Inventory Manager is active")
            return 0
        sent = 0
        for recipient in recipients:
            if best_effort(
                self.notifier.notify,
                recipient,
                f"Low stock: {item.name}",
                f"{item.name} is down to {item.quantity} unit(s) "
                f"(reorder point {item.reorder_point}).",
                NotificationKind.LOW_STOCK.value,
                channel="notification",
            ):
                sent += 1
        return sent
