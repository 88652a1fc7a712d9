"""Core domain models used across layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Literal

TaskCategory = Literal["administratif", "enfants-école", "santé", "finances", "personnel"]
TaskStatus = Literal["todo", "in_progress", "done"]
TaskSource = Literal["manual", "email", "profile", "photo"]
QuoteType = Literal["morning", "evening"]
DeepLinkRoute = Literal["tasks", "taskDetail"]

NOTIFICATION_TYPES = frozenset(
    {
        "morning",
        "j1",
        "evening",
        "overdue",
        "overdue_summary",
        "urgent",
        "near_deadline",
        "rain_children",
        "weekend_simple",
        "document_ready",
        "action_error",
    }
)
# Alerts survive cancel_all; only delivery removes them.
ALERT_TYPES = frozenset({"action_error"})
DEEP_LINK_ROUTES = frozenset({"tasks", "taskDetail"})


@dataclass(slots=True)
class Task:
    """Task as served by the family backend."""

    id: str
    title: str
    category: str = "personnel"
    deadline: datetime | None = None
    description: str | None = None
    status: str = "todo"
    created_at: datetime | None = None
    source: str = "manual"
    email_id: str | None = None
    is_recurring: bool = False
    contact_name: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None


@dataclass(slots=True)
class Child:
    id: str
    first_name: str
    birth_date: date | None = None


@dataclass(slots=True)
class Spouse:
    first_name: str
    birth_date: date | None = None


@dataclass(slots=True)
class Profile:
    """Family profile, read-only for the scheduling core."""

    children: list[Child] = field(default_factory=list)
    spouse: Spouse | None = None
    marriage_date: date | None = None
    first_name: str | None = None


@dataclass(slots=True)
class WeatherSummary:
    temperature_c: float
    is_raining: bool = False
    is_snowing: bool = False
    outfit: str = ""
    wind_speed_kmh: float | None = None
    city: str | None = None


@dataclass(slots=True)
class Quote:
    type: str
    text: str


@dataclass(slots=True)
class SchedulerContext:
    """Point-in-time snapshot handed to the scheduler at each reschedule."""

    tasks: list[Task]
    profile: Profile
    weather: WeatherSummary | None = None
    quote_evening: str | None = None
    now: datetime | None = None
    pdf_ready_task_ids: frozenset[str] = frozenset()


@dataclass(slots=True)
class DeepLink:
    route: str
    params: dict[str, Any] | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"route": self.route}
        if self.params is not None:
            payload["params"] = self.params
        return payload


@dataclass(slots=True)
class NotificationMeta:
    """The only state carried inside a scheduled notification."""

    type: str
    deep_link: DeepLink | None = None
    task_id: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"type": self.type}
        if self.deep_link is not None:
            payload["deepLink"] = self.deep_link.to_payload()
        if self.task_id is not None:
            payload["taskId"] = self.task_id
        return payload

    @classmethod
    def from_payload(cls, payload: object) -> NotificationMeta | None:
        """Read metadata back from a notification payload.

        Returns None when the payload carries no recognisable type, so callers
        can treat garbled data as a no-op.
        """
        if not isinstance(payload, dict):
            return None
        notification_type = payload.get("type")
        if not isinstance(notification_type, str) or notification_type not in NOTIFICATION_TYPES:
            return None

        deep_link = None
        raw_link = payload.get("deepLink")
        if isinstance(raw_link, dict) and raw_link.get("route") in DEEP_LINK_ROUTES:
            params = raw_link.get("params")
            deep_link = DeepLink(route=raw_link["route"], params=params if isinstance(params, dict) else None)

        task_id = payload.get("taskId")
        return cls(
            type=notification_type,
            deep_link=deep_link,
            task_id=str(task_id) if isinstance(task_id, (str, int)) and task_id != "" else None,
        )


@dataclass(slots=True)
class NotificationContent:
    title: str
    body: str
    data: NotificationMeta
    sound: bool = True
    category: str | None = None


@dataclass(slots=True)
class ScheduledNotification:
    """A notification accepted by a transport and not yet delivered."""

    identifier: str
    content: NotificationContent
    fire_at: datetime


@dataclass(slots=True)
class ActionButton:
    identifier: str
    title: str
    destructive: bool = False


@dataclass(slots=True)
class NotificationResponse:
    """Response event emitted when the user interacts with a notification."""

    action_identifier: str
    data: dict[str, Any] = field(default_factory=dict)
