"""Local delivery loop for on-device transports."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from reminders.models import ActionButton, ScheduledNotification
from reminders.transport.base import NotificationTransport

LOGGER = logging.getLogger(__name__)

DeliveryHandler = Callable[[ScheduledNotification, list[ActionButton]], Awaitable[None]]


class DeliveryLoop:
    """Polls due notifications and hands them to a presenter callback."""

    def __init__(
        self,
        transport: NotificationTransport,
        handler: DeliveryHandler,
        poll_interval_seconds: float = 5.0,
    ) -> None:
        self._transport = transport
        self._handler = handler
        self._poll_interval_seconds = poll_interval_seconds
        self._stop_event = asyncio.Event()

    async def deliver_due(self) -> int:
        """Deliver every due notification once; returns how many were presented."""

        delivered = 0
        for notification in await self._transport.pop_due():
            buttons = self._transport.action_buttons(notification.content.category or "")
            try:
                await self._handler(notification, buttons)
                delivered += 1
            except Exception:  # noqa: BLE001
                LOGGER.exception("Failed to present notification %s", notification.identifier)
        return delivered

    async def run_forever(self) -> None:
        """Run delivery loop until stop() is called."""

        while not self._stop_event.is_set():
            await self.deliver_due()
            await asyncio.sleep(self._poll_interval_seconds)

    def stop(self) -> None:
        """Signal the loop to stop."""

        self._stop_event.set()
