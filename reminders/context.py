"""Assemble the scheduler context from backend collaborators."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from reminders.backend.base import ProfileStore, QuoteProvider, TaskStore, WeatherProvider
from reminders.models import Quote, SchedulerContext, WeatherSummary

LOGGER = logging.getLogger(__name__)


class ContextLoader:
    """Fans out the reads behind one reschedule.

    Tasks and profile are required: their failure propagates. Weather and
    quote are optional: their failure only removes that section.
    """

    def __init__(
        self,
        task_store: TaskStore,
        profile_store: ProfileStore,
        weather_provider: WeatherProvider | None = None,
        quote_provider: QuoteProvider | None = None,
        city: str | None = None,
    ) -> None:
        self._task_store = task_store
        self._profile_store = profile_store
        self._weather_provider = weather_provider
        self._quote_provider = quote_provider
        self._city = city

    async def load(
        self,
        now: datetime | None = None,
        pdf_ready_task_ids: frozenset[str] = frozenset(),
    ) -> SchedulerContext:
        tasks, profile, weather, quote = await asyncio.gather(
            self._task_store.list(),
            self._profile_store.get(),
            self._load_weather(),
            self._load_quote(),
            return_exceptions=True,
        )
        if isinstance(tasks, BaseException):
            raise tasks
        if isinstance(profile, BaseException):
            raise profile
        if isinstance(weather, BaseException):
            LOGGER.warning("Weather unavailable, omitting weather line: %s", weather)
            weather = None
        if isinstance(quote, BaseException):
            LOGGER.warning("Quote unavailable, using evening fallback: %s", quote)
            quote = None

        return SchedulerContext(
            tasks=tasks,
            profile=profile,
            weather=weather,
            quote_evening=quote.text if quote is not None and quote.type == "evening" else None,
            now=now,
            pdf_ready_task_ids=pdf_ready_task_ids,
        )

    async def _load_weather(self) -> WeatherSummary | None:
        if self._weather_provider is None or not self._city:
            return None
        return await self._weather_provider.get(self._city)

    async def _load_quote(self) -> Quote | None:
        if self._quote_provider is None:
            return None
        return await self._quote_provider.get()
