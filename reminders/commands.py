"""Command dispatcher for @-prefixed debug commands.

Commands drive the scheduler by hand: reschedule, inspect or cancel the
queue, flip toggles, fire the immediate notifications and answer a
delivered notification as if a button had been pressed.
An unrecognised @command returns None.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from reminders.actions import DEFAULT_ACTION_IDENTIFIER
from reminders.backend.base import BackendError
from reminders.models import NotificationResponse, ScheduledNotification
from reminders.preferences import PREFERENCE_KEYS

if TYPE_CHECKING:
    from reminders.actions import ActionHandler
    from reminders.backend.base import TaskStore
    from reminders.context import ContextLoader
    from reminders.models import Task
    from reminders.preferences import PreferencesStore
    from reminders.scheduler import NotificationScheduler
    from reminders.transport.base import NotificationTransport

LOGGER = logging.getLogger(__name__)

_TOGGLE_USAGE = f"Usage: @toggle <{'|'.join(PREFERENCE_KEYS)}> <on|off>"
_RESPOND_USAGE = "Usage: @respond <notification-id> [action-id]"
_TRIGGER_USAGE = "Usage: @{command} <task-id>"


def parse_command(text: str) -> tuple[str, list[str]] | None:
    """Split an @-prefixed line into (command, args).

    Returns:
        A (command, args) tuple where command is lowercased, or None if text
        is not a valid @command.
    """
    text = text.strip()
    if not text.startswith("@"):
        return None
    parts = text[1:].split()
    if not parts:
        return None
    return parts[0].lower(), parts[1:]


def format_scheduled(notifications: list[ScheduledNotification]) -> str:
    if not notifications:
        return "No notification scheduled."
    lines = [f"{len(notifications)} notification(s) scheduled:"]
    for notification in notifications:
        lines.append(
            f"- {notification.identifier} at {notification.fire_at:%Y-%m-%d %H:%M} · {notification.content.title}"
        )
    return "\n".join(lines)


class CommandDispatcher:
    """Routes @-prefixed lines to scheduler operations."""

    def __init__(
        self,
        scheduler: NotificationScheduler,
        loader: ContextLoader,
        transport: NotificationTransport,
        preferences: PreferencesStore,
        task_store: TaskStore,
        action_handler: ActionHandler,
    ) -> None:
        self._scheduler = scheduler
        self._loader = loader
        self._transport = transport
        self._preferences = preferences
        self._task_store = task_store
        self._action_handler = action_handler

    async def dispatch(self, text: str) -> str | None:
        """Dispatch a line to a command handler.

        Returns:
            A reply string for recognised commands, or None for unknown ones.
        """
        parsed = parse_command(text)
        if parsed is None:
            return None
        command, args = parsed
        LOGGER.info("Command dispatch: command=%r args=%r", command, args)
        if command == "reschedule":
            return await self._handle_reschedule()
        if command == "scheduled":
            return format_scheduled(await self._transport.list_scheduled())
        if command == "cancel":
            await self._transport.cancel_all()
            return "Scheduled notifications cancelled; pending alerts kept."
        if command == "prefs":
            return self._handle_prefs()
        if command == "toggle":
            return self._handle_toggle(args)
        if command in ("urgent", "neardeadline", "docready"):
            return await self._handle_trigger(command, args)
        if command == "respond":
            return await self._handle_respond(args)
        return None

    async def _handle_reschedule(self) -> str:
        try:
            scheduled = await self._scheduler.reschedule_from(self._loader)
        except BackendError as exc:
            LOGGER.error("Reschedule aborted: %s", exc)
            return f"Reschedule failed: {exc}"
        return format_scheduled(scheduled)

    def _handle_prefs(self) -> str:
        prefs = self._preferences.load()
        return "\n".join(f"{key}: {'on' if getattr(prefs, key) else 'off'}" for key in PREFERENCE_KEYS)

    def _handle_toggle(self, args: list[str]) -> str:
        if len(args) != 2 or args[0] not in PREFERENCE_KEYS or args[1].lower() not in ("on", "off"):
            return _TOGGLE_USAGE
        self._preferences.set(args[0], args[1].lower() == "on")
        return f"{args[0]} notifications {args[1].lower()}."

    async def _find_task(self, task_id: str) -> Task | None:
        tasks = await self._task_store.list()
        return next((task for task in tasks if task.id == task_id), None)

    async def _handle_trigger(self, command: str, args: list[str]) -> str:
        if len(args) != 1:
            return _TRIGGER_USAGE.format(command=command)
        try:
            task = await self._find_task(args[0])
        except BackendError as exc:
            return f"Could not load tasks: {exc}"
        if task is None:
            return f"Unknown task '{args[0]}'."

        if command == "urgent":
            scheduled = await self._scheduler.trigger_urgent_task(task)
        elif command == "neardeadline":
            scheduled = await self._scheduler.trigger_near_deadline_task(task)
        else:
            scheduled = await self._scheduler.trigger_document_ready(task)
        if scheduled is None:
            return f"No {command} notification for '{task.title}' (disabled or not eligible)."
        return f"Scheduled {scheduled.identifier}."

    async def _handle_respond(self, args: list[str]) -> str:
        if not args or len(args) > 2:
            return _RESPOND_USAGE
        payload = self._transport.stored_payload(args[0])
        if payload is None:
            return f"Unknown notification '{args[0]}'."

        action_identifier = args[1] if len(args) == 2 else DEFAULT_ACTION_IDENTIFIER
        result = await self._action_handler.handle(
            NotificationResponse(action_identifier=action_identifier, data=payload)
        )
        if result.error:
            return f"Action failed: {result.error}"
        if not result.handled:
            return "Nothing to do for this notification."
        if result.action is None:
            route = result.deep_link.route if result.deep_link else "home"
            return f"Opening {route}."

        reply = f"Done: {result.action} on task {result.task_id}."
        try:
            await self._scheduler.reschedule_from(self._loader)
        except BackendError as exc:
            LOGGER.error("Reschedule after action failed: %s", exc)
            reply += f"\nReschedule failed: {exc}"
        return reply
