"""Cancel-and-rebuild scheduling of local notifications."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from reminders.actions import ACTION_BUTTONS, OVERDUE_CATEGORY
from reminders.composer import (
    ComposedMessage,
    compose_action_error,
    compose_document_ready,
    compose_evening,
    compose_j1,
    compose_morning,
    compose_near_deadline,
    compose_overdue,
    compose_rain_children,
    compose_urgent,
    compose_weekend,
)
from reminders.context import ContextLoader
from reminders.dates import Clock, local_now
from reminders.models import (
    DeepLink,
    NotificationContent,
    NotificationMeta,
    SchedulerContext,
    ScheduledNotification,
    Task,
)
from reminders.preferences import PreferencesStore
from reminders.rules import (
    get_overdue_tasks,
    get_tasks_due_today,
    get_tasks_due_tomorrow,
    get_weekend_simple_tasks,
    has_school_age_child,
    is_near_deadline_task,
    is_rainy,
    is_urgent_task,
    open_tasks,
)
from reminders.transport.base import NotificationTransport
from reminders.triggers import (
    DEFAULT_TRIGGERS,
    MIN_DELAY_SECONDS,
    TriggerTime,
    build_identifier,
    delay_seconds,
    next_fire_at,
)

LOGGER = logging.getLogger(__name__)


class NotificationScheduler:
    """Rebuilds every scheduled notification from a fresh context.

    Each kind has its own trigger clock, so a single ``now`` can fall before
    one kind's trigger and after another's; content is always computed for
    the date the notification will actually fire.
    """

    def __init__(
        self,
        transport: NotificationTransport,
        preferences: PreferencesStore,
        clock: Clock = local_now,
        triggers: dict[str, TriggerTime] | None = None,
    ) -> None:
        self._transport = transport
        self._preferences = preferences
        self._clock = clock
        self._triggers = {**DEFAULT_TRIGGERS, **(triggers or {})}

    async def register_categories(self) -> None:
        """Register action buttons; called once at process start."""

        await self._transport.register_category(OVERDUE_CATEGORY, ACTION_BUTTONS)

    async def reschedule_from(
        self,
        loader: ContextLoader,
        pdf_ready_task_ids: frozenset[str] = frozenset(),
    ) -> list[ScheduledNotification]:
        """Load a context, then reschedule; a failed load leaves the schedule untouched."""

        ctx = await loader.load(now=self._clock(), pdf_ready_task_ids=pdf_ready_task_ids)
        return await self.reschedule_all(ctx)

    async def reschedule_all(self, ctx: SchedulerContext) -> list[ScheduledNotification]:
        now = ctx.now or self._clock()
        prefs = self._preferences.load()
        tasks = open_tasks(ctx.tasks)

        await self._transport.cancel_all()
        scheduled: list[ScheduledNotification] = []

        if prefs.morning:
            fire_at = self._fire_at("morning", now)
            message = compose_morning(
                ctx.profile,
                ctx.weather,
                get_tasks_due_today(tasks, fire_at),
                get_overdue_tasks(tasks, fire_at),
            )
            scheduled.append(
                await self._schedule("morning", message, now, fire_at, DeepLink("tasks", {"filter": "today"}))
            )

        if prefs.j1:
            fire_at = self._fire_at("j1", now)
            message = compose_j1(get_tasks_due_tomorrow(tasks, fire_at))
            if message is not None:
                scheduled.append(
                    await self._schedule("j1", message, now, fire_at, DeepLink("tasks", {"filter": "tomorrow"}))
                )

        if prefs.evening:
            fire_at = self._fire_at("evening", now)
            scheduled.append(await self._schedule("evening", compose_evening(ctx.quote_evening), now, fire_at))

        if prefs.overdue:
            fire_at = self._fire_at("overdue", now)
            for message in compose_overdue(get_overdue_tasks(tasks, fire_at), fire_at.date()):
                if message.task_id is None:
                    scheduled.append(
                        await self._schedule(
                            "overdue_summary", message, now, fire_at, DeepLink("tasks", {"filter": "overdue"})
                        )
                    )
                    continue
                scheduled.append(
                    await self._schedule(
                        "overdue",
                        message,
                        now,
                        fire_at,
                        DeepLink("taskDetail", {"taskId": message.task_id}),
                        category=OVERDUE_CATEGORY,
                    )
                )

        if prefs.smart:
            scheduled.extend(await self._schedule_smart(ctx, tasks, now, morning_enabled=prefs.morning))

        LOGGER.info("Rescheduled %d notifications", len(scheduled))
        return scheduled

    async def _schedule_smart(
        self,
        ctx: SchedulerContext,
        tasks: list[Task],
        now: datetime,
        morning_enabled: bool,
    ) -> list[ScheduledNotification]:
        scheduled = []
        # The morning notification already carries the weather.
        rainy = ctx.weather is not None and is_rainy(ctx.weather)
        if rainy and has_school_age_child(ctx.profile) and not morning_enabled:
            fire_at = self._fire_at("rain_children", now)
            scheduled.append(
                await self._schedule(
                    "rain_children", compose_rain_children(), now, fire_at, DeepLink("tasks", {"filter": "today"})
                )
            )

        fire_at = self._fire_at("weekend_simple", now)
        selection = get_weekend_simple_tasks(tasks, fire_at, ctx.pdf_ready_task_ids)
        message = compose_weekend(selection)
        if message is not None:
            scheduled.append(
                await self._schedule(
                    "weekend_simple",
                    message,
                    now,
                    fire_at,
                    DeepLink("tasks", {"filter": "weekend", "taskIds": [task.id for task in selection]}),
                )
            )
        return scheduled

    async def trigger_urgent_task(self, task: Task) -> ScheduledNotification | None:
        now = self._clock()
        if not is_urgent_task(task, now):
            return None
        return await self._schedule_immediate("urgent", compose_urgent(task), now)

    async def trigger_near_deadline_task(self, task: Task) -> ScheduledNotification | None:
        now = self._clock()
        if not is_near_deadline_task(task, now):
            return None
        return await self._schedule_immediate("near_deadline", compose_near_deadline(task, now), now)

    async def trigger_document_ready(self, task: Task) -> ScheduledNotification | None:
        return await self._schedule_immediate("document_ready", compose_document_ready(task), self._clock())

    async def notify_action_error(self, message: str, task_id: str | None = None) -> ScheduledNotification:
        """Surface a failed notification action to the user, regardless of toggles.

        An alert still waiting for delivery is never replaced: a clashing
        identifier gets a numeric suffix instead.
        """
        now = self._clock()
        fire_at = now + timedelta(seconds=MIN_DELAY_SECONDS)
        composed = compose_action_error(message, task_id)

        pending = {n.identifier for n in await self._transport.list_scheduled()}
        base = build_identifier("action_error", fire_at, task_id)
        identifier, suffix = base, 2
        while identifier in pending:
            identifier = f"{base}-{suffix}"
            suffix += 1

        deep_link = DeepLink("taskDetail", {"taskId": task_id}) if task_id else DeepLink("tasks")
        return await self._schedule("action_error", composed, now, fire_at, deep_link, identifier=identifier)

    async def _schedule_immediate(
        self,
        kind: str,
        message: ComposedMessage,
        now: datetime,
    ) -> ScheduledNotification | None:
        if not self._preferences.load().smart:
            LOGGER.debug("Smart notifications disabled, skipping %s", kind)
            return None
        return await self._schedule(
            kind,
            message,
            now,
            now + timedelta(seconds=MIN_DELAY_SECONDS),
            DeepLink("taskDetail", {"taskId": message.task_id}),
        )

    def _fire_at(self, kind: str, now: datetime) -> datetime:
        return next_fire_at(now, self._triggers[kind])

    async def _schedule(
        self,
        kind: str,
        message: ComposedMessage,
        now: datetime,
        fire_at: datetime,
        deep_link: DeepLink | None = None,
        category: str | None = None,
        identifier: str | None = None,
    ) -> ScheduledNotification:
        identifier = identifier or build_identifier(kind, fire_at, message.task_id)
        content = NotificationContent(
            title=message.title,
            body=message.body,
            data=NotificationMeta(type=kind, deep_link=deep_link, task_id=message.task_id),
            sound=True,
            category=category,
        )
        return await self._transport.schedule_once(identifier, content, delay_seconds(now, fire_at))
