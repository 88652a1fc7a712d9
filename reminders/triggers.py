"""Wall-clock triggers and their next one-shot occurrence."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, time, timedelta

from reminders.dates import date_key, start_of_day

MIN_DELAY_SECONDS = 1
SATURDAY = 5


@dataclass(frozen=True, slots=True)
class TriggerTime:
    """Local clock time at which a notification kind fires.

    ``weekday`` follows ``date.weekday()`` (Monday is 0); None means daily.
    """

    hour: int
    minute: int
    weekday: int | None = None

    @classmethod
    def parse(cls, raw: str, weekday: int | None = None) -> TriggerTime:
        try:
            hour_text, minute_text = raw.strip().split(":")
            hour, minute = int(hour_text), int(minute_text)
        except ValueError as exc:
            raise ValueError(f"Invalid trigger time {raw!r}, expected HH:MM") from exc
        if not (0 <= hour < 24 and 0 <= minute < 60):
            raise ValueError(f"Invalid trigger time {raw!r}, expected HH:MM")
        return cls(hour=hour, minute=minute, weekday=weekday)

    def at(self, day: datetime) -> datetime:
        return datetime.combine(day.date(), time(self.hour, self.minute))


MORNING_TIME = TriggerTime(7, 30)
J1_TIME = TriggerTime(18, 0)
EVENING_TIME = TriggerTime(19, 0)
OVERDUE_TIME = TriggerTime(9, 0)
RAIN_TIME = TriggerTime(7, 45)
WEEKEND_TIME = TriggerTime(9, 30, weekday=SATURDAY)


def next_fire_at(now: datetime, trigger: TriggerTime) -> datetime:
    """Next occurrence of ``trigger`` strictly after ``now``.

    Once the trigger minute is reached for today the notification belongs to
    the following day, so content must be computed for that day instead.
    """
    candidate = trigger.at(start_of_day(now))
    if trigger.weekday is not None:
        candidate += timedelta(days=(trigger.weekday - candidate.weekday()) % 7)
        if candidate <= now:
            candidate += timedelta(days=7)
        return candidate
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


def delay_seconds(now: datetime, fire_at: datetime) -> int:
    """Seconds until ``fire_at``, never less than one second."""

    return max(MIN_DELAY_SECONDS, math.ceil((fire_at - now).total_seconds()))


def build_identifier(kind: str, effective: datetime, task_id: str | None = None) -> str:
    identifier = f"{kind}-{date_key(effective)}"
    if task_id:
        identifier += f"-{task_id}"
    return identifier


DEFAULT_TRIGGERS: dict[str, TriggerTime] = {
    "morning": MORNING_TIME,
    "j1": J1_TIME,
    "evening": EVENING_TIME,
    "overdue": OVERDUE_TIME,
    "rain_children": RAIN_TIME,
    "weekend_simple": WEEKEND_TIME,
}
