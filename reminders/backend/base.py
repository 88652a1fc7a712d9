"""Collaborator contracts consumed by the scheduling core."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from reminders.models import Profile, Quote, Task, WeatherSummary


class BackendError(RuntimeError):
    """Raised when a collaborator call fails or returns an error envelope."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TaskStore(ABC):
    """Task CRUD; every call works with nothing but a task id."""

    @abstractmethod
    async def list(self) -> list[Task]:
        """Return all tasks."""

    @abstractmethod
    async def update(self, task_id: str, changes: dict[str, Any]) -> Task:
        """Apply a partial update and return the stored task."""

    @abstractmethod
    async def delete(self, task_id: str) -> None:
        """Delete a task."""


class ProfileStore(ABC):
    @abstractmethod
    async def get(self) -> Profile:
        """Return the family profile."""


class WeatherProvider(ABC):
    @abstractmethod
    async def get(self, city: str) -> WeatherSummary:
        """Return current weather for ``city``."""


class QuoteProvider(ABC):
    @abstractmethod
    async def get(self) -> Quote:
        """Return the quote of the current period."""
