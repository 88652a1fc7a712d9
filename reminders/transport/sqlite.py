"""Persisted device-local transport backed by SQLite."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from reminders.dates import Clock, local_now
from reminders.db import Database
from reminders.models import (
    ALERT_TYPES,
    ActionButton,
    NotificationContent,
    NotificationMeta,
    ScheduledNotification,
)
from reminders.transport.base import DELIVERED_RETENTION, NotificationTransport

LOGGER = logging.getLogger(__name__)


class SqliteTransport(NotificationTransport):
    """Stores scheduled notifications in the local database.

    Delivered rows are kept so a later response can be resolved from the
    stored payload alone, even in a freshly started process.
    """

    def __init__(self, db: Database, clock: Clock = local_now) -> None:
        self._db = db
        self._clock = clock

    async def register_category(self, identifier: str, actions: list[ActionButton]) -> None:
        self._db.save_category(
            identifier,
            [{"identifier": a.identifier, "title": a.title, "destructive": a.destructive} for a in actions],
        )

    async def schedule_once(
        self,
        identifier: str,
        content: NotificationContent,
        fire_after_seconds: int,
    ) -> ScheduledNotification:
        fire_at = self._clock() + timedelta(seconds=fire_after_seconds)
        self._db.upsert_scheduled_notification(
            identifier=identifier,
            title=content.title,
            body=content.body,
            data=content.data.to_payload(),
            sound=content.sound,
            category=content.category,
            fire_at=fire_at,
        )
        return ScheduledNotification(identifier=identifier, content=content, fire_at=fire_at)

    async def cancel_all(self) -> None:
        removed = self._db.delete_pending_notifications(keep_types=ALERT_TYPES)
        LOGGER.debug("Cancelled %d pending notifications", removed)

    async def list_scheduled(self) -> list[ScheduledNotification]:
        return [_to_scheduled(row) for row in self._db.list_pending_notifications()]

    async def pop_due(self) -> list[ScheduledNotification]:
        now = self._clock()
        due = []
        for row in self._db.get_due_notifications(now):
            self._db.mark_notification_status(row["identifier"], "delivered")
            due.append(_to_scheduled(row))
        pruned = self._db.delete_delivered_notifications(before=now - DELIVERED_RETENTION)
        if pruned:
            LOGGER.debug("Pruned %d delivered notifications", pruned)
        return due

    def action_buttons(self, category: str) -> list[ActionButton]:
        stored = self._db.get_category(category) or []
        return [
            ActionButton(identifier=a["identifier"], title=a["title"], destructive=bool(a.get("destructive")))
            for a in stored
        ]

    def stored_payload(self, identifier: str) -> dict[str, Any] | None:
        """Return the raw data payload of a scheduled or delivered notification."""

        row = self._db.get_notification(identifier)
        return row["data"] if row else None


def _to_scheduled(row: dict[str, Any]) -> ScheduledNotification:
    meta = NotificationMeta.from_payload(row["data"])
    if meta is None:
        # Rows are written from NotificationMeta, so this only covers hand-edited data.
        meta = NotificationMeta(type=str(row["data"].get("type", "")))
    return ScheduledNotification(
        identifier=row["identifier"],
        content=NotificationContent(
            title=row["title"],
            body=row["body"],
            data=meta,
            sound=row["sound"],
            category=row["category"],
        ),
        fire_at=row["fire_at"],
    )
