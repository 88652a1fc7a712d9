"""Task mutations triggered from notification action buttons.

The handler may run in a freshly started process, before any task list was
loaded, so every mutation works from the notification payload alone.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from reminders.backend.base import BackendError, TaskStore
from reminders.dates import Clock, add_days, local_now, start_of_day
from reminders.models import ActionButton, DeepLink, NotificationMeta, NotificationResponse

LOGGER = logging.getLogger(__name__)

# Sentinel sent by the platform for a plain tap on the notification body.
DEFAULT_ACTION_IDENTIFIER = "DEFAULT"

ACTION_DELETE = "DELETE_TASK"
ACTION_DELAY_1 = "DELAY_1"
ACTION_DELAY_3 = "DELAY_3"
OVERDUE_CATEGORY = "overdue-actions"

# Buttons are non-destructive at the platform level so the app is woken for delete too.
ACTION_BUTTONS = [
    ActionButton(ACTION_DELAY_1, "+1 jour"),
    ActionButton(ACTION_DELAY_3, "+3 jours"),
    ActionButton(ACTION_DELETE, "Supprimer"),
]

_DELAY_DAYS = {ACTION_DELAY_1: 1, ACTION_DELAY_3: 3}
_FALLBACK_MARKERS = (
    ("DELETE", ACTION_DELETE),
    ("DELAY_3", ACTION_DELAY_3),
    ("DELAY_1", ACTION_DELAY_1),
)


def resolve_action(action_identifier: str) -> str | None:
    """Map a platform action identifier to a known action.

    Exact match first, then a substring match to tolerate identifiers the
    platform decorated with a prefix or suffix.
    """
    if action_identifier in (ACTION_DELETE, ACTION_DELAY_1, ACTION_DELAY_3):
        return action_identifier
    upper = action_identifier.upper()
    for marker, action in _FALLBACK_MARKERS:
        if marker in upper:
            return action
    return None


def parse_response(event: dict[str, Any]) -> NotificationResponse:
    """Normalise a raw response event.

    Accepts both ``notification.data`` and the nested
    ``notification.request.content.data`` shape.
    """
    action_identifier = event.get("actionIdentifier")
    notification = event.get("notification")
    data: object = None
    if isinstance(notification, dict):
        data = notification.get("data")
        request = notification.get("request")
        if data is None and isinstance(request, dict) and isinstance(request.get("content"), dict):
            data = request["content"].get("data")
    return NotificationResponse(
        action_identifier=action_identifier if isinstance(action_identifier, str) else "",
        data=data if isinstance(data, dict) else {},
    )


@dataclass(slots=True)
class ActionResult:
    handled: bool
    action: str | None = None
    task_id: str | None = None
    deep_link: DeepLink | None = None
    error: str | None = None


class ActionHandler:
    """Interprets a notification response into task store calls."""

    def __init__(
        self,
        task_store: TaskStore,
        alert: Callable[[str, str | None], Awaitable[Any]],
        clock: Clock = local_now,
    ) -> None:
        self._task_store = task_store
        self._alert = alert
        self._clock = clock

    async def handle(self, response: NotificationResponse) -> ActionResult:
        meta = NotificationMeta.from_payload(response.data)
        if meta is None:
            LOGGER.info("Ignoring notification response without a known type")
            return ActionResult(handled=False)

        if response.action_identifier == DEFAULT_ACTION_IDENTIFIER:
            # Navigation is up to the caller.
            return ActionResult(handled=True, task_id=meta.task_id, deep_link=meta.deep_link)

        action = resolve_action(response.action_identifier)
        if action is None:
            LOGGER.warning(
                "Unknown notification action %r for %s notification", response.action_identifier, meta.type
            )
            return ActionResult(handled=False, task_id=meta.task_id)
        if not meta.task_id:
            LOGGER.warning("Action %s on %s notification without task id", action, meta.type)
            return ActionResult(handled=False, action=action)

        LOGGER.info("Notification action: action=%s task_id=%s", action, meta.task_id)
        try:
            if action == ACTION_DELETE:
                await self._task_store.delete(meta.task_id)
            else:
                new_deadline = add_days(start_of_day(self._clock()), _DELAY_DAYS[action])
                await self._task_store.update(meta.task_id, {"deadline": new_deadline})
        except BackendError as exc:
            LOGGER.error("Notification action %s failed for task %s: %s", action, meta.task_id, exc)
            verb = "supprimer" if action == ACTION_DELETE else "décaler"
            await self._alert(f"Impossible de {verb} la tâche : {exc}", meta.task_id)
            return ActionResult(handled=False, action=action, task_id=meta.task_id, error=str(exc))

        return ActionResult(handled=True, action=action, task_id=meta.task_id, deep_link=meta.deep_link)
