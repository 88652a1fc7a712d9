"""Per-device notification toggles."""

from __future__ import annotations

from dataclasses import dataclass, fields

from reminders.db import Database


@dataclass(slots=True)
class NotificationPreferences:
    """Independent enable flags, one per notification kind.

    ``smart`` covers the urgent, near-deadline, document-ready, rain and
    weekend notifications.
    """

    morning: bool = True
    j1: bool = True
    evening: bool = True
    overdue: bool = True
    smart: bool = True


PREFERENCE_KEYS = tuple(f.name for f in fields(NotificationPreferences))


class PreferencesStore:
    """Reads and writes toggles; unset toggles default to enabled."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def load(self) -> NotificationPreferences:
        stored = self._db.get_preferences()
        return NotificationPreferences(**{key: stored[key] for key in PREFERENCE_KEYS if key in stored})

    def set(self, key: str, enabled: bool) -> None:
        if key not in PREFERENCE_KEYS:
            raise KeyError(f"Unknown notification preference: {key}")
        self._db.set_preference(key, enabled)
