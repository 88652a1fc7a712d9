"""Pure task classification rules.

Every function takes its reference time explicitly and never reads the clock.
Status filtering is left to callers (see ``open_tasks``).
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable

from reminders.dates import add_days, calendar_date, start_of_day
from reminders.models import Profile, Task, WeatherSummary

INGESTED_SOURCES = frozenset({"email", "photo"})
URGENT_WINDOW_DAYS = 2
NEAR_DEADLINE_WINDOW_DAYS = 3
WEEKEND_MIN_LEAD_DAYS = 3
WEEKEND_MAX_TASKS = 3

SHORT_ACTION_KEYWORDS = (
    "envoyer",
    "répondre",
    "repondre",
    "appeler",
    "prévenir",
    "prevenir",
    "confirmer",
    "demander",
    "relancer",
)
LONG_ACTION_KEYWORDS = (
    "impôts",
    "impots",
    "caf",
    "dossier",
    "inscription",
    "renouvellement",
    "déclaration",
    "declaration",
    "rendez-vous",
    "rdv",
    "validation",
)

SIMPLE_SNOW = "snow"
SIMPLE_RAIN = "rain"
SIMPLE_CLOUDY = "cloudy"
SIMPLE_SUNNY = "sunny"


def _deadline_date(task: Task) -> date | None:
    return calendar_date(task.deadline) if task.deadline is not None else None


def _offset_date(ref: datetime, days: int) -> date:
    return add_days(start_of_day(ref), days).date()


def open_tasks(tasks: Iterable[Task]) -> list[Task]:
    return [task for task in tasks if task.status != "done"]


def get_tasks_due_today(tasks: Iterable[Task], ref: datetime) -> list[Task]:
    today = _offset_date(ref, 0)
    return [task for task in tasks if _deadline_date(task) == today]


def get_tasks_due_tomorrow(tasks: Iterable[Task], ref: datetime) -> list[Task]:
    tomorrow = _offset_date(ref, 1)
    return [task for task in tasks if _deadline_date(task) == tomorrow]


def get_overdue_tasks(tasks: Iterable[Task], ref: datetime) -> list[Task]:
    today = _offset_date(ref, 0)
    overdue = []
    for task in tasks:
        deadline = _deadline_date(task)
        if deadline is not None and deadline < today:
            overdue.append(task)
    return overdue


def is_urgent_task(task: Task, now: datetime) -> bool:
    """Ingested (email/photo) task due within the next two days, or already late."""

    deadline = _deadline_date(task)
    if task.source not in INGESTED_SOURCES or deadline is None:
        return False
    return deadline <= _offset_date(now, URGENT_WINDOW_DAYS)


def is_near_deadline_task(task: Task, now: datetime) -> bool:
    deadline = _deadline_date(task)
    if task.source not in INGESTED_SOURCES or task.status == "done" or deadline is None:
        return False
    return _offset_date(now, 0) <= deadline <= _offset_date(now, NEAR_DEADLINE_WINDOW_DAYS)


def has_school_age_child(profile: Profile) -> bool:
    # Any child qualifies; birth dates are not checked.
    return len(profile.children) > 0


def map_weather_to_simple(weather: WeatherSummary) -> str:
    if weather.is_snowing:
        return SIMPLE_SNOW
    if weather.is_raining:
        return SIMPLE_RAIN
    if "nuage" in (weather.outfit or "").lower():
        return SIMPLE_CLOUDY
    return SIMPLE_SUNNY


def is_rainy(weather: WeatherSummary) -> bool:
    return map_weather_to_simple(weather) == SIMPLE_RAIN


def _haystack(task: Task) -> str:
    return f"{task.title} {task.description or ''}".lower()


def contains_short_action(task: Task) -> bool:
    haystack = _haystack(task)
    return any(keyword in haystack for keyword in SHORT_ACTION_KEYWORDS)


def contains_long_action(task: Task) -> bool:
    haystack = _haystack(task)
    return any(keyword in haystack for keyword in LONG_ACTION_KEYWORDS)


def get_weekend_simple_tasks(
    tasks: Iterable[Task],
    now: datetime,
    pdf_ready_ids: frozenset[str] | set[str] = frozenset(),
) -> list[Task]:
    """Select up to three low-effort tasks for the Saturday digest.

    A task qualifies when it has no deadline or a deadline strictly after
    J+3 (which also rules out today, the past and the next 48 hours), and
    when it is either PDF-ready, a short action, or not a long multi-step
    chore. Urgent tasks and long chores are always vetoed.

    Ordering: PDF-ready undone tasks first, then tasks without deadline,
    then the oldest ``created_at``.
    """
    after_j3 = _offset_date(now, WEEKEND_MIN_LEAD_DAYS)

    def pdf_ready(task: Task) -> bool:
        return task.id in pdf_ready_ids and task.status != "done"

    eligible = []
    for task in tasks:
        deadline = _deadline_date(task)
        if deadline is not None and deadline <= after_j3:
            continue
        if not (pdf_ready(task) or contains_short_action(task) or not contains_long_action(task)):
            continue
        if is_urgent_task(task, now) or contains_long_action(task):
            continue
        eligible.append(task)

    eligible.sort(
        key=lambda task: (
            not pdf_ready(task),
            task.deadline is not None,
            task.created_at or datetime.max,
        )
    )
    return eligible[:WEEKEND_MAX_TASKS]
