"""SQLite persistence layer for device-local state."""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Iterator

SCHEMA_VERSION = 1


class Database:
    """Small SQLite wrapper with explicit schema management."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create or migrate schema."""

        with self._connect() as conn:
            conn.execute("CREATE TABLE IF NOT EXISTS schema_version (version INTEGER NOT NULL)")
            row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
            if row is None:
                self._create_schema(conn)
                conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
            elif row["version"] != SCHEMA_VERSION:
                raise RuntimeError(
                    f"Unsupported schema version {row['version']} (expected {SCHEMA_VERSION})"
                )

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS preferences (
                key TEXT PRIMARY KEY,
                enabled INTEGER NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS notification_categories (
                identifier TEXT PRIMARY KEY,
                actions_json TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS scheduled_notifications (
                identifier TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                body TEXT NOT NULL,
                data_json TEXT NOT NULL,
                sound INTEGER NOT NULL,
                category TEXT,
                fire_at TEXT NOT NULL,
                status TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
            """
        )

    def set_preference(self, key: str, enabled: bool) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO preferences(key, enabled, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    enabled=excluded.enabled,
                    updated_at=excluded.updated_at
                """,
                (key, int(enabled), _utc_now_iso()),
            )

    def get_preferences(self) -> dict[str, bool]:
        with self._connect() as conn:
            rows = conn.execute("SELECT key, enabled FROM preferences").fetchall()
        return {row["key"]: bool(row["enabled"]) for row in rows}

    def save_category(self, identifier: str, actions: list[dict[str, Any]]) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO notification_categories(identifier, actions_json, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(identifier) DO UPDATE SET
                    actions_json=excluded.actions_json,
                    updated_at=excluded.updated_at
                """,
                (identifier, json.dumps(actions), _utc_now_iso()),
            )

    def get_category(self, identifier: str) -> list[dict[str, Any]] | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT actions_json FROM notification_categories WHERE identifier = ?", (identifier,)
            ).fetchone()
        return json.loads(row["actions_json"]) if row else None

    def upsert_scheduled_notification(
        self,
        identifier: str,
        title: str,
        body: str,
        data: dict[str, Any],
        sound: bool,
        category: str | None,
        fire_at: datetime,
    ) -> None:
        now = _utc_now_iso()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO scheduled_notifications(
                    identifier, title, body, data_json, sound, category, fire_at, status, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, 'pending', ?, ?)
                ON CONFLICT(identifier) DO UPDATE SET
                    title=excluded.title,
                    body=excluded.body,
                    data_json=excluded.data_json,
                    sound=excluded.sound,
                    category=excluded.category,
                    fire_at=excluded.fire_at,
                    status='pending',
                    updated_at=excluded.updated_at
                """,
                (
                    identifier,
                    title,
                    body,
                    json.dumps(data),
                    int(sound),
                    category,
                    _local_iso(fire_at),
                    now,
                    now,
                ),
            )

    def delete_pending_notifications(self, keep_types: Iterable[str] = ()) -> int:
        """Delete pending rows, except those whose payload type is in ``keep_types``."""

        keep = set(keep_types)
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT identifier, data_json FROM scheduled_notifications WHERE status = 'pending'"
            ).fetchall()
            doomed = [(row["identifier"],) for row in rows if json.loads(row["data_json"]).get("type") not in keep]
            conn.executemany("DELETE FROM scheduled_notifications WHERE identifier = ?", doomed)
        return len(doomed)

    def delete_delivered_notifications(self, before: datetime) -> int:
        with self._connect() as conn:
            cur = conn.execute(
                "DELETE FROM scheduled_notifications WHERE status = 'delivered' AND fire_at < ?",
                (_local_iso(before),),
            )
            return int(cur.rowcount)

    def list_pending_notifications(self) -> list[dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM scheduled_notifications WHERE status = 'pending' ORDER BY fire_at ASC, identifier ASC"
            ).fetchall()
        return [_notification_row(row) for row in rows]

    def get_due_notifications(self, now: datetime) -> list[dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT *
                FROM scheduled_notifications
                WHERE status = 'pending' AND fire_at <= ?
                ORDER BY fire_at ASC, identifier ASC
                """,
                (_local_iso(now),),
            ).fetchall()
        return [_notification_row(row) for row in rows]

    def get_notification(self, identifier: str) -> dict[str, Any] | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM scheduled_notifications WHERE identifier = ?", (identifier,)
            ).fetchone()
        return _notification_row(row) if row else None

    def mark_notification_status(self, identifier: str, status: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE scheduled_notifications SET status = ?, updated_at = ? WHERE identifier = ?",
                (status, _utc_now_iso(), identifier),
            )


def _notification_row(row: sqlite3.Row) -> dict[str, Any]:
    record = dict(row)
    record["data"] = json.loads(record.pop("data_json"))
    record["sound"] = bool(record["sound"])
    record["fire_at"] = datetime.fromisoformat(record["fire_at"])
    return record


def _local_iso(value: datetime) -> str:
    # Local wall-clock, second precision, so stored values sort as text.
    return value.replace(microsecond=0, tzinfo=None).isoformat()


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
