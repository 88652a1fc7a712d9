"""Application entrypoint."""

from __future__ import annotations

import asyncio
import logging
import sys
from functools import partial

from reminders.actions import ActionHandler
from reminders.backend.base import BackendError
from reminders.backend.http import (
    BackendClient,
    HttpProfileStore,
    HttpQuoteProvider,
    HttpTaskStore,
    HttpWeatherProvider,
)
from reminders.commands import CommandDispatcher
from reminders.config import load_settings, local_zone, trigger_times
from reminders.context import ContextLoader
from reminders.dates import local_now
from reminders.db import Database
from reminders.delivery import DeliveryLoop
from reminders.models import ActionButton, ScheduledNotification
from reminders.preferences import PreferencesStore
from reminders.scheduler import NotificationScheduler
from reminders.transport.factory import create_transport

logging.basicConfig(level=logging.INFO)
LOGGER = logging.getLogger(__name__)


async def present_notification(notification: ScheduledNotification, buttons: list[ActionButton]) -> None:
    """Print a delivered notification with its action buttons."""

    lines = [f"[{notification.identifier}] {notification.content.title}", notification.content.body]
    if buttons:
        lines.append("Actions: " + ", ".join(f"{b.title} ({b.identifier})" for b in buttons))
    print("\n".join(lines), flush=True)


async def reschedule_periodically(
    scheduler: NotificationScheduler,
    loader: ContextLoader,
    interval_seconds: float,
) -> None:
    while True:
        try:
            await scheduler.reschedule_from(loader)
        except BackendError as exc:
            LOGGER.error("Reschedule aborted, keeping previous schedule: %s", exc)
        await asyncio.sleep(interval_seconds)


async def run() -> None:
    """Initialize app layers and start processing loops."""

    settings = load_settings()
    clock = partial(local_now, local_zone(settings))

    db = Database(settings.database_path)
    db.initialize()

    client = BackendClient(settings.backend_url, settings.request_timeout_seconds, tz=local_zone(settings))
    task_store = HttpTaskStore(client)
    loader = ContextLoader(
        task_store=task_store,
        profile_store=HttpProfileStore(client),
        weather_provider=HttpWeatherProvider(client),
        quote_provider=HttpQuoteProvider(client),
        city=settings.profile_city or None,
    )

    transport = create_transport(settings.notification_transport, db, clock=clock)
    preferences = PreferencesStore(db)
    scheduler = NotificationScheduler(transport, preferences, clock=clock, triggers=trigger_times(settings))
    await scheduler.register_categories()

    action_handler = ActionHandler(task_store, alert=scheduler.notify_action_error, clock=clock)
    dispatcher = CommandDispatcher(
        scheduler=scheduler,
        loader=loader,
        transport=transport,
        preferences=preferences,
        task_store=task_store,
        action_handler=action_handler,
    )

    delivery = DeliveryLoop(
        transport,
        handler=present_notification,
        poll_interval_seconds=settings.delivery_poll_interval_seconds,
    )
    delivery_task = asyncio.create_task(delivery.run_forever(), name="notification-delivery")
    reschedule_task = asyncio.create_task(
        reschedule_periodically(scheduler, loader, settings.reschedule_interval_seconds),
        name="notification-reschedule",
    )

    try:
        while True:
            line = await asyncio.to_thread(sys.stdin.readline)
            if not line:
                break
            reply = await dispatcher.dispatch(line)
            if reply is None and line.strip():
                reply = "Unknown command. Try @reschedule, @scheduled, @prefs or @respond."
            if reply:
                print(reply, flush=True)
    except asyncio.CancelledError:
        raise
    finally:
        delivery.stop()
        delivery_task.cancel()
        reschedule_task.cancel()
        LOGGER.info("Reminders shutdown complete")


def main() -> None:
    """Synchronous wrapper for asyncio entrypoint."""

    asyncio.run(run())


if __name__ == "__main__":
    main()
