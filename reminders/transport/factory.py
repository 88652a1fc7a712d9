"""Transport selection at process start."""

from __future__ import annotations

from reminders.dates import Clock, local_now
from reminders.db import Database
from reminders.transport.base import NotificationTransport
from reminders.transport.memory import MemoryTransport
from reminders.transport.sqlite import SqliteTransport


def create_transport(name: str, db: Database, clock: Clock = local_now) -> NotificationTransport:
    if name == "sqlite":
        return SqliteTransport(db, clock=clock)
    if name == "memory":
        return MemoryTransport(clock=clock)
    raise ValueError(f"Unknown notification transport: {name}")
