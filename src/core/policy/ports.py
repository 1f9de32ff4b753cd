"""
Ports for the Policy Store.

The settings singleton is persisted through SettingsRepository; the
Django adapter stores it as one row keyed by SETTINGS_ID.
"""

from typing import Optional, Protocol, runtime_checkable

from src.core.shared.memory import InMemoryVersionedStore

from .entities import SETTINGS_ID, TicketSettings


@runtime_checkable
class SettingsRepository(Protocol):
    def get(self) -> Optional[TicketSettings]:
        """The stored settings, or None if never created."""
        ...

    def save(self, settings: TicketSettings) -> None:
        """
        Persist settings with compare-and-set on ``version``.

        Raises:
            ConcurrencyError: Settings were changed by another writer
        """
        ...


class InMemorySettingsRepository(InMemoryVersionedStore[TicketSettings]):
    """In-memory SettingsRepository for tests and local development."""

    entity_name = "TicketSettings"

    def get(self) -> Optional[TicketSettings]:
        return self._get(SETTINGS_ID)

    def save(self, settings: TicketSettings) -> None:
        self._put(settings)
