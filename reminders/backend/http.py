"""HTTP implementations of the backend collaborators."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, tzinfo
from typing import Any

import httpx

from reminders.backend.base import BackendError, ProfileStore, QuoteProvider, TaskStore, WeatherProvider
from reminders.dates import parse_date, parse_deadline
from reminders.models import Child, Profile, Quote, Spouse, Task, WeatherSummary

LOGGER = logging.getLogger(__name__)

_MAX_RETRIES = 2
_RETRY_BACKOFF_SECONDS = [1, 3]
_RETRYABLE_STATUS = frozenset({429, 503})


class BackendClient:
    """Thin wrapper around the family backend's ``{success, data, error}`` envelope."""

    def __init__(self, base_url: str, timeout_seconds: float, tz: tzinfo | None = None) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self.tz = tz

    async def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        expect_data: bool = True,
    ) -> Any:
        timeout = httpx.Timeout(self._timeout_seconds)
        try:
            async with httpx.AsyncClient(base_url=self._base_url, timeout=timeout) as client:
                for attempt in range(_MAX_RETRIES + 1):
                    response = await client.request(method, path, params=params, json=json)
                    if response.status_code in _RETRYABLE_STATUS and attempt < _MAX_RETRIES:
                        wait = _RETRY_BACKOFF_SECONDS[attempt]
                        LOGGER.warning(
                            "Backend %s %s returned %d, retrying in %ds (attempt %d/%d)",
                            method,
                            path,
                            response.status_code,
                            wait,
                            attempt + 1,
                            _MAX_RETRIES,
                        )
                        await asyncio.sleep(wait)
                        continue
                    break
        except httpx.HTTPError as exc:
            raise BackendError(f"{method} {path} failed: {exc}") from exc

        if response.status_code >= 400:
            raise BackendError(f"API error: {response.status_code}", status_code=response.status_code)
        if not expect_data:
            return None

        try:
            envelope = response.json()
        except ValueError as exc:
            raise BackendError(f"{method} {path} returned invalid JSON") from exc
        if not isinstance(envelope, dict) or not envelope.get("success") or envelope.get("data") is None:
            error = envelope.get("error") if isinstance(envelope, dict) else None
            raise BackendError(str(error or "Unknown API error"), status_code=response.status_code)
        return envelope["data"]

    def serialize(self, value: Any) -> Any:
        if isinstance(value, datetime):
            if value.tzinfo is None and self.tz is not None:
                value = value.replace(tzinfo=self.tz)
            return value.isoformat()
        return value


class HttpTaskStore(TaskStore):
    def __init__(self, client: BackendClient) -> None:
        self._client = client

    async def list(self) -> list[Task]:
        data = await self._client.request("GET", "/tasks")
        raw_tasks = data.get("tasks", []) if isinstance(data, dict) else []
        tasks = []
        for item in raw_tasks:
            task = _to_task(item, self._client.tz)
            if task is None:
                LOGGER.warning("Skipping malformed task payload: %r", item)
                continue
            tasks.append(task)
        return tasks

    async def update(self, task_id: str, changes: dict[str, Any]) -> Task:
        payload = {key: self._client.serialize(value) for key, value in changes.items()}
        data = await self._client.request("PATCH", f"/tasks/{task_id}", json=payload)
        task = _to_task(data, self._client.tz)
        if task is None:
            raise BackendError(f"Malformed task returned for {task_id}")
        return task

    async def delete(self, task_id: str) -> None:
        await self._client.request("DELETE", f"/tasks/{task_id}", expect_data=False)


class HttpProfileStore(ProfileStore):
    def __init__(self, client: BackendClient) -> None:
        self._client = client

    async def get(self) -> Profile:
        data = await self._client.request("GET", "/profile")
        if not isinstance(data, dict):
            raise BackendError("Malformed profile payload")
        return _to_profile(data)


class HttpWeatherProvider(WeatherProvider):
    def __init__(self, client: BackendClient) -> None:
        self._client = client

    async def get(self, city: str) -> WeatherSummary:
        data = await self._client.request("GET", "/weather", params={"city": city})
        try:
            return WeatherSummary(
                city=data.get("city"),
                temperature_c=float(data["temperatureC"]),
                is_raining=bool(data.get("isRaining")),
                is_snowing=bool(data.get("isSnowing")),
                outfit=str(data.get("outfit") or ""),
                wind_speed_kmh=_optional_float(data.get("windSpeedKmh")),
            )
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise BackendError(f"Malformed weather payload: {exc}") from exc


class HttpQuoteProvider(QuoteProvider):
    def __init__(self, client: BackendClient) -> None:
        self._client = client

    async def get(self) -> Quote:
        data = await self._client.request("GET", "/quote")
        if not isinstance(data, dict) or not isinstance(data.get("text"), str):
            raise BackendError("Malformed quote payload")
        return Quote(type=str(data.get("type") or "morning"), text=data["text"])


def _optional_float(value: object) -> float | None:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _to_task(payload: object, tz: tzinfo | None) -> Task | None:
    if not isinstance(payload, dict):
        return None
    task_id = payload.get("id")
    title = payload.get("title")
    if task_id is None or not isinstance(title, str):
        return None
    return Task(
        id=str(task_id),
        title=title,
        category=str(payload.get("category") or "personnel"),
        deadline=parse_deadline(payload.get("deadline"), tz),
        description=payload.get("description"),
        status=str(payload.get("status") or "todo"),
        created_at=parse_deadline(payload.get("createdAt"), tz),
        source=str(payload.get("source") or "manual"),
        email_id=payload.get("emailId"),
        is_recurring=bool(payload.get("isRecurring")),
        contact_name=payload.get("contactName"),
        contact_email=payload.get("contactEmail"),
        contact_phone=payload.get("contactPhone"),
    )


def _to_profile(payload: dict[str, Any]) -> Profile:
    children = []
    for item in payload.get("children") or []:
        if not isinstance(item, dict):
            continue
        children.append(
            Child(
                id=str(item.get("id") or ""),
                first_name=str(item.get("firstName") or ""),
                birth_date=parse_date(item.get("birthDate")),
            )
        )

    spouse = None
    raw_spouse = payload.get("spouse")
    if isinstance(raw_spouse, dict) and raw_spouse.get("firstName"):
        spouse = Spouse(first_name=str(raw_spouse["firstName"]), birth_date=parse_date(raw_spouse.get("birthDate")))

    return Profile(
        children=children,
        spouse=spouse,
        marriage_date=parse_date(payload.get("marriageDate")),
        first_name=payload.get("firstName") or None,
    )
