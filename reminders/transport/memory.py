"""Process-lifetime transport."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from reminders.dates import Clock, local_now
from reminders.models import ALERT_TYPES, ActionButton, NotificationContent, ScheduledNotification
from reminders.transport.base import DELIVERED_RETENTION, NotificationTransport

LOGGER = logging.getLogger(__name__)


class MemoryTransport(NotificationTransport):
    """Keeps scheduled notifications in memory; nothing survives a restart."""

    def __init__(self, clock: Clock = local_now) -> None:
        self._clock = clock
        self._scheduled: dict[str, ScheduledNotification] = {}
        self._delivered: dict[str, ScheduledNotification] = {}
        self.categories: dict[str, list[ActionButton]] = {}

    async def register_category(self, identifier: str, actions: list[ActionButton]) -> None:
        self.categories[identifier] = list(actions)

    async def schedule_once(
        self,
        identifier: str,
        content: NotificationContent,
        fire_after_seconds: int,
    ) -> ScheduledNotification:
        scheduled = ScheduledNotification(
            identifier=identifier,
            content=content,
            fire_at=self._clock() + timedelta(seconds=fire_after_seconds),
        )
        self._scheduled[identifier] = scheduled
        LOGGER.debug("Scheduled %s at %s", identifier, scheduled.fire_at)
        return scheduled

    async def cancel_all(self) -> None:
        self._scheduled = {
            identifier: n for identifier, n in self._scheduled.items() if n.content.data.type in ALERT_TYPES
        }

    async def list_scheduled(self) -> list[ScheduledNotification]:
        return sorted(self._scheduled.values(), key=lambda n: (n.fire_at, n.identifier))

    async def pop_due(self) -> list[ScheduledNotification]:
        now = self._clock()
        due = [n for n in self._scheduled.values() if n.fire_at <= now]
        for notification in due:
            del self._scheduled[notification.identifier]
            self._delivered[notification.identifier] = notification
        cutoff = now - DELIVERED_RETENTION
        self._delivered = {identifier: n for identifier, n in self._delivered.items() if n.fire_at >= cutoff}
        return sorted(due, key=lambda n: (n.fire_at, n.identifier))

    def action_buttons(self, category: str) -> list[ActionButton]:
        return list(self.categories.get(category, []))

    def stored_payload(self, identifier: str) -> dict[str, Any] | None:
        notification = self._scheduled.get(identifier) or self._delivered.get(identifier)
        return notification.content.data.to_payload() if notification else None
