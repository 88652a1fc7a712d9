from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from reminders.actions import OVERDUE_CATEGORY, ActionHandler
from reminders.backend.base import BackendError
from reminders.context import ContextLoader
from reminders.db import Database
from reminders.models import Child, NotificationResponse, Profile, SchedulerContext, Task, WeatherSummary
from reminders.preferences import PreferencesStore
from reminders.scheduler import NotificationScheduler
from reminders.transport.factory import create_transport
from reminders.transport.memory import MemoryTransport

MONDAY_EVENING = datetime(2025, 3, 3, 20, 0)


def _setup(tmp_path, now: datetime) -> tuple[NotificationScheduler, MemoryTransport, PreferencesStore]:
    db = Database(tmp_path / "reminders.db")
    db.initialize()
    preferences = PreferencesStore(db)
    transport = MemoryTransport(clock=lambda: now)
    scheduler = NotificationScheduler(transport, preferences, clock=lambda: now)
    return scheduler, transport, preferences


def _ctx(tasks: list[Task], now: datetime, **kwargs) -> SchedulerContext:
    return SchedulerContext(tasks=tasks, profile=kwargs.pop("profile", Profile()), now=now, **kwargs)


def _ids(scheduled) -> list[str]:
    return [n.identifier for n in scheduled]


@pytest.mark.asyncio
async def test_morning_identifier_rolls_over_at_trigger_minute(tmp_path):
    before = datetime(2025, 3, 3, 7, 29)
    after = datetime(2025, 3, 3, 7, 31)
    scheduler, _, _ = _setup(tmp_path, before)

    early = await scheduler.reschedule_all(_ctx([], before))
    late = await scheduler.reschedule_all(_ctx([], after))

    assert "morning-2025-03-03" in _ids(early)
    assert "morning-2025-03-04" in _ids(late)


@pytest.mark.asyncio
async def test_reschedule_is_deterministic(tmp_path):
    scheduler, transport, _ = _setup(tmp_path, MONDAY_EVENING)
    tasks = [
        Task(id="t1", title="Payer la cantine", deadline=datetime(2025, 2, 25)),
        Task(id="t2", title="Appeler la crèche", deadline=datetime(2025, 3, 5)),
    ]

    first = _ids(await scheduler.reschedule_all(_ctx(tasks, MONDAY_EVENING)))
    second = _ids(await scheduler.reschedule_all(_ctx(tasks, MONDAY_EVENING)))

    assert first == second
    assert sorted(first) == sorted(n.identifier for n in await transport.list_scheduled())


@pytest.mark.asyncio
async def test_content_is_computed_for_effective_date(tmp_path):
    scheduler, _, _ = _setup(tmp_path, MONDAY_EVENING)
    tasks = [
        Task(id="t1", title="Rendre le livre", deadline=datetime(2025, 3, 4)),
        Task(id="t2", title="Vaccin", deadline=datetime(2025, 3, 5)),
    ]

    scheduled = {n.identifier: n for n in await scheduler.reschedule_all(_ctx(tasks, MONDAY_EVENING))}

    morning = scheduled["morning-2025-03-04"]
    assert morning.fire_at == datetime(2025, 3, 4, 7, 30)
    assert "• Rendre le livre" in morning.content.body
    # 18:00 has passed: the J-1 fires Tuesday and announces Wednesday's tasks.
    assert scheduled["j1-2025-03-04"].content.body == "La tâche « Vaccin » arrive à échéance demain."


@pytest.mark.asyncio
async def test_seven_overdue_tasks_give_five_plus_summary(tmp_path):
    scheduler, _, _ = _setup(tmp_path, MONDAY_EVENING)
    tasks = [Task(id=f"t{i}", title=f"Retard {i}", deadline=datetime(2025, 2, 20 + i)) for i in range(7)]

    scheduled = await scheduler.reschedule_all(_ctx(tasks, MONDAY_EVENING))

    overdue = [n for n in scheduled if n.content.data.type == "overdue"]
    summary = [n for n in scheduled if n.content.data.type == "overdue_summary"]
    assert [n.identifier for n in overdue] == [f"overdue-2025-03-04-t{i}" for i in range(5)]
    assert all(n.content.category == OVERDUE_CATEGORY for n in overdue)
    assert overdue[0].content.data.task_id == "t0"
    assert overdue[0].content.data.to_payload()["taskId"] == "t0"
    assert len(summary) == 1
    assert summary[0].identifier == "overdue_summary-2025-03-04"
    assert summary[0].content.body == "2 autres tâches en retard."


@pytest.mark.asyncio
async def test_done_tasks_are_ignored(tmp_path):
    scheduler, _, _ = _setup(tmp_path, MONDAY_EVENING)
    tasks = [Task(id="t1", title="Fini", deadline=datetime(2025, 2, 1), status="done")]

    scheduled = await scheduler.reschedule_all(_ctx(tasks, MONDAY_EVENING))

    assert not [n for n in scheduled if n.content.data.type.startswith("overdue")]


@pytest.mark.asyncio
async def test_disabled_kinds_are_skipped(tmp_path):
    scheduler, transport, preferences = _setup(tmp_path, MONDAY_EVENING)
    for key in ("morning", "evening", "smart"):
        preferences.set(key, False)

    scheduled = await scheduler.reschedule_all(_ctx([], MONDAY_EVENING))

    assert scheduled == []
    assert await transport.list_scheduled() == []


@pytest.mark.asyncio
async def test_evening_does_not_need_tasks_or_quote(tmp_path):
    scheduler, _, _ = _setup(tmp_path, MONDAY_EVENING)

    scheduled = {n.identifier: n for n in await scheduler.reschedule_all(_ctx([], MONDAY_EVENING))}

    assert scheduled["evening-2025-03-04"].content.body.startswith("Bonne soirée")


@pytest.mark.asyncio
async def test_rain_notice_only_when_morning_disabled(tmp_path):
    now = datetime(2025, 3, 3, 6, 0)
    scheduler, _, preferences = _setup(tmp_path, now)
    ctx = _ctx(
        [],
        now,
        profile=Profile(children=[Child(id="c1", first_name="Léa")]),
        weather=WeatherSummary(temperature_c=9, is_raining=True),
    )

    with_morning = _ids(await scheduler.reschedule_all(ctx))
    preferences.set("morning", False)
    without_morning = _ids(await scheduler.reschedule_all(ctx))

    assert "rain_children-2025-03-03" not in with_morning
    assert "rain_children-2025-03-03" in without_morning


@pytest.mark.asyncio
async def test_weekend_digest_on_saturday(tmp_path):
    now = datetime(2025, 3, 1, 8, 0)
    scheduler, _, _ = _setup(tmp_path, now)
    tasks = [
        Task(id="caf", title="Envoyer formulaire CAF", deadline=datetime(2025, 3, 10)),
        Task(id="ecole", title="Relancer l'école", deadline=datetime(2025, 3, 9)),
    ]

    scheduled = {n.identifier: n for n in await scheduler.reschedule_all(_ctx(tasks, now))}

    digest = scheduled["weekend_simple-2025-03-01"]
    assert digest.content.body == "• Relancer l'école"
    assert digest.fire_at == datetime(2025, 3, 1, 9, 30)
    assert digest.content.data.deep_link.params == {"filter": "weekend", "taskIds": ["ecole"]}


@pytest.mark.asyncio
async def test_weekend_digest_omitted_when_empty(tmp_path):
    now = datetime(2025, 3, 1, 8, 0)
    scheduler, _, _ = _setup(tmp_path, now)

    scheduled = await scheduler.reschedule_all(_ctx([], now))

    assert not [n for n in scheduled if n.content.data.type == "weekend_simple"]


@pytest.mark.asyncio
async def test_reschedule_cancels_previous_schedule(tmp_path):
    scheduler, transport, _ = _setup(tmp_path, MONDAY_EVENING)
    tasks = [Task(id="t1", title="Retard", deadline=datetime(2025, 2, 1))]
    await scheduler.reschedule_all(_ctx(tasks, MONDAY_EVENING))

    await scheduler.reschedule_all(_ctx([], MONDAY_EVENING))

    assert "overdue-2025-03-04-t1" not in [n.identifier for n in await transport.list_scheduled()]


@pytest.mark.asyncio
async def test_failed_task_load_keeps_existing_schedule(tmp_path):
    scheduler, transport, _ = _setup(tmp_path, MONDAY_EVENING)
    await scheduler.reschedule_all(_ctx([], MONDAY_EVENING))
    before = [n.identifier for n in await transport.list_scheduled()]

    task_store = MagicMock()
    task_store.list = AsyncMock(side_effect=BackendError("API error: 500", status_code=500))
    profile_store = MagicMock()
    profile_store.get = AsyncMock(return_value=Profile())
    loader = ContextLoader(task_store=task_store, profile_store=profile_store)

    with pytest.raises(BackendError):
        await scheduler.reschedule_from(loader)

    assert [n.identifier for n in await transport.list_scheduled()] == before


class TestImmediateTriggers:
    NOW = datetime(2025, 3, 3, 14, 0)

    @pytest.mark.asyncio
    async def test_urgent_email_task_fires_after_one_second(self, tmp_path):
        scheduler, _, _ = _setup(tmp_path, self.NOW)
        task = Task(id="t9", title="Attestation", deadline=datetime(2025, 3, 4), source="email")

        scheduled = await scheduler.trigger_urgent_task(task)

        assert scheduled.identifier == "urgent-2025-03-03-t9"
        assert scheduled.fire_at == self.NOW + timedelta(seconds=1)
        assert scheduled.content.data.deep_link.route == "taskDetail"

    @pytest.mark.asyncio
    async def test_manual_task_is_never_urgent(self, tmp_path):
        scheduler, _, _ = _setup(tmp_path, self.NOW)
        task = Task(id="t9", title="Attestation", deadline=datetime(2025, 3, 4), source="manual")

        assert await scheduler.trigger_urgent_task(task) is None

    @pytest.mark.asyncio
    async def test_smart_toggle_gates_immediate_triggers(self, tmp_path):
        scheduler, transport, preferences = _setup(tmp_path, self.NOW)
        preferences.set("smart", False)
        task = Task(id="t9", title="Attestation", deadline=datetime(2025, 3, 4), source="photo")

        assert await scheduler.trigger_urgent_task(task) is None
        assert await scheduler.trigger_near_deadline_task(task) is None
        assert await scheduler.trigger_document_ready(task) is None
        assert await transport.list_scheduled() == []

    @pytest.mark.asyncio
    async def test_near_deadline_and_document_ready(self, tmp_path):
        scheduler, _, _ = _setup(tmp_path, self.NOW)
        task = Task(id="t9", title="Photo de classe", deadline=datetime(2025, 3, 6), source="photo")

        near = await scheduler.trigger_near_deadline_task(task)
        ready = await scheduler.trigger_document_ready(task)

        assert near.identifier == "near_deadline-2025-03-03-t9"
        assert ready.identifier == "document_ready-2025-03-03-t9"


@pytest.mark.asyncio
async def test_register_categories(tmp_path):
    scheduler, transport, _ = _setup(tmp_path, MONDAY_EVENING)

    await scheduler.register_categories()

    buttons = transport.action_buttons(OVERDUE_CATEGORY)
    assert [b.identifier for b in buttons] == ["DELAY_1", "DELAY_3", "DELETE_TASK"]
    assert not any(b.destructive for b in buttons)


class TestActionErrorAlerts:
    NOW = datetime(2025, 3, 3, 14, 0)

    @pytest.fixture(params=["memory", "sqlite"])
    def scheduler_and_transport(self, request, tmp_path):
        db = Database(tmp_path / "reminders.db")
        db.initialize()
        transport = create_transport(request.param, db, clock=lambda: self.NOW)
        scheduler = NotificationScheduler(transport, PreferencesStore(db), clock=lambda: self.NOW)
        return scheduler, transport

    @pytest.mark.asyncio
    async def test_failed_action_alert_survives_reschedule(self, scheduler_and_transport):
        scheduler, transport = scheduler_and_transport
        task_store = MagicMock()
        task_store.delete = AsyncMock(side_effect=BackendError("API error: 500", status_code=500))
        handler = ActionHandler(task_store, alert=scheduler.notify_action_error, clock=lambda: self.NOW)

        await handler.handle(NotificationResponse("DELETE_TASK", {"type": "overdue", "taskId": "t1"}))
        await scheduler.reschedule_all(_ctx([], self.NOW))

        pending = {n.identifier: n for n in await transport.list_scheduled()}
        assert "action_error-2025-03-03-t1" in pending
        assert pending["action_error-2025-03-03-t1"].content.body.startswith("Impossible de supprimer")

    @pytest.mark.asyncio
    async def test_consecutive_alerts_are_all_kept(self, scheduler_and_transport):
        scheduler, transport = scheduler_and_transport

        await scheduler.notify_action_error("Impossible de décaler la tâche : a")
        await scheduler.notify_action_error("Impossible de décaler la tâche : b")
        await scheduler.notify_action_error("Impossible de supprimer la tâche : c", "t1")
        await scheduler.notify_action_error("Impossible de décaler la tâche : d", "t1")

        pending = {n.identifier: n.content.body for n in await transport.list_scheduled()}
        assert pending == {
            "action_error-2025-03-03": "Impossible de décaler la tâche : a",
            "action_error-2025-03-03-2": "Impossible de décaler la tâche : b",
            "action_error-2025-03-03-t1": "Impossible de supprimer la tâche : c",
            "action_error-2025-03-03-t1-2": "Impossible de décaler la tâche : d",
        }

    @pytest.mark.asyncio
    async def test_alert_links_to_failing_task(self, scheduler_and_transport):
        scheduler, _ = scheduler_and_transport

        alert = await scheduler.notify_action_error("Impossible de supprimer la tâche : boom", "t1")

        assert alert.content.data.task_id == "t1"
        assert alert.content.data.deep_link.route == "taskDetail"
