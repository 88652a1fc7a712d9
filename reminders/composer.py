"""Notification wording.

Composers are pure: they receive already-classified tasks and return the
title and body of a notification, or None when the notification should not
exist.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from reminders.dates import days_between, format_date_fr, format_temperature
from reminders.models import Profile, Task, WeatherSummary

MAX_LISTED_TASKS = 3
MAX_OVERDUE_NOTIFICATIONS = 5

EVENING_FALLBACK = "Bonne soirée. Profitez de ce moment pour vous reposer."


@dataclass(slots=True)
class ComposedMessage:
    title: str
    body: str
    task_id: str | None = None


def _bullets(tasks: list[Task]) -> str:
    return "\n".join(f"• {task.title}" for task in tasks)


def _plural(count: int, singular: str, plural: str) -> str:
    return singular if count == 1 else plural


def compose_morning(
    profile: Profile,
    weather: WeatherSummary | None,
    due: list[Task],
    overdue: list[Task],
) -> ComposedMessage:
    greeting = f"Bonjour {profile.first_name}," if profile.first_name else "Bonjour,"
    parts = [greeting]

    if weather is not None:
        parts.append(f"Météo : {format_temperature(weather.temperature_c)} · {weather.outfit or ''}".strip(" ·"))

    if due:
        section = f"Vos démarches du jour :\n{_bullets(due[:MAX_LISTED_TASKS])}"
        if overdue:
            section += f"\n\n⚠️ {len(overdue)} tâche(s) en retard"
    elif overdue:
        section = f"⚠️ Vous avez {len(overdue)} tâche(s) en retard :\n{_bullets(overdue[:MAX_LISTED_TASKS])}"
    else:
        section = "Vous n'avez aucune démarche prévue aujourd'hui."
    parts.append(section)
    parts.append("Bonne journée.")
    return ComposedMessage(title="Matin", body="\n".join(parts))


def compose_j1(due_tomorrow: list[Task]) -> ComposedMessage | None:
    count = len(due_tomorrow)
    if count == 0:
        return None
    if count == 1:
        body = f"La tâche « {due_tomorrow[0].title} » arrive à échéance demain."
    elif count <= MAX_LISTED_TASKS:
        body = f"{count} tâches arrivent à échéance demain :\n{_bullets(due_tomorrow)}"
    else:
        body = f"{count} tâches arrivent à échéance demain, dont « {due_tomorrow[0].title} »."
    return ComposedMessage(title="Pour demain", body=body)


def compose_evening(quote: str | None) -> ComposedMessage:
    return ComposedMessage(title="Phrase du soir", body=quote or EVENING_FALLBACK)


def compose_overdue(overdue: list[Task], effective_date: date) -> list[ComposedMessage]:
    """One message per overdue task (at most five), plus a summary for the rest."""

    messages = []
    for task in overdue[:MAX_OVERDUE_NOTIFICATIONS]:
        if task.deadline is None:
            continue
        days = days_between(task.deadline, effective_date)
        messages.append(
            ComposedMessage(
                title="Tâche en retard",
                body=f"« {task.title} » est en retard de {days} {_plural(days, 'jour', 'jours')}.",
                task_id=task.id,
            )
        )

    remaining = len(overdue) - MAX_OVERDUE_NOTIFICATIONS
    if remaining > 0:
        messages.append(
            ComposedMessage(
                title="Tâches en retard",
                body=(
                    f"{remaining} {_plural(remaining, 'autre tâche', 'autres tâches')} en retard."
                ),
            )
        )
    return messages


def compose_rain_children() -> ComposedMessage:
    return ComposedMessage(
        title="Pluie annoncée",
        body="Prévoyez les affaires adaptées pour vos enfants.",
    )


def compose_weekend(tasks: list[Task]) -> ComposedMessage | None:
    if not tasks:
        return None
    return ComposedMessage(title="Check-list week-end", body=_bullets(tasks))


def compose_urgent(task: Task) -> ComposedMessage:
    body = task.title
    if task.deadline is not None:
        body += f" · Deadline {format_date_fr(task.deadline)}"
    return ComposedMessage(title="Tâche urgente", body=body, task_id=task.id)


def compose_near_deadline(task: Task, now: datetime) -> ComposedMessage:
    days = days_between(now, task.deadline) if task.deadline is not None else 0
    if days <= 0:
        when = "aujourd'hui"
    elif days == 1:
        when = "demain"
    else:
        when = f"dans {days} jours"
    return ComposedMessage(
        title="Échéance proche",
        body=f"« {task.title} » arrive à échéance {when}.",
        task_id=task.id,
    )


def compose_document_ready(task: Task) -> ComposedMessage:
    return ComposedMessage(title="Document prêt", body=task.title, task_id=task.id)


def compose_action_error(message: str, task_id: str | None = None) -> ComposedMessage:
    return ComposedMessage(title="Action impossible", body=message, task_id=task_id)
