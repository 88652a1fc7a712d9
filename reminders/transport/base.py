"""Notification transport interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any

from reminders.models import ActionButton, NotificationContent, ScheduledNotification

# Delivered notifications stay answerable this long, then are pruned.
DELIVERED_RETENTION = timedelta(days=7)


class NotificationTransport(ABC):
    """Platform notification service used by the scheduler.

    Implementations only hold not-yet-fired notifications; cancellation never
    reaches a notification that was already delivered.
    """

    @abstractmethod
    async def register_category(self, identifier: str, actions: list[ActionButton]) -> None:
        """Register a named set of action buttons."""

    @abstractmethod
    async def schedule_once(
        self,
        identifier: str,
        content: NotificationContent,
        fire_after_seconds: int,
    ) -> ScheduledNotification:
        """Schedule a one-shot notification, replacing any with the same identifier."""

    @abstractmethod
    async def cancel_all(self) -> None:
        """Cancel every still-scheduled notification except pending alerts (``ALERT_TYPES``)."""

    @abstractmethod
    async def list_scheduled(self) -> list[ScheduledNotification]:
        """Return pending notifications ordered by fire time."""

    @abstractmethod
    async def pop_due(self) -> list[ScheduledNotification]:
        """Hand over notifications whose fire time has passed, marking them delivered.

        Delivered notifications older than ``DELIVERED_RETENTION`` are dropped.
        """

    @abstractmethod
    def action_buttons(self, category: str) -> list[ActionButton]:
        """Buttons registered for ``category``, empty when unknown."""

    @abstractmethod
    def stored_payload(self, identifier: str) -> dict[str, Any] | None:
        """Raw data payload of a scheduled or delivered notification."""
