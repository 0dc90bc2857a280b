"""SQLite-backed token store used for local development."""

from __future__ import annotations

import sqlite3
from contextlib import closing, contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from magento_gateway.core.errors import StoreUnavailable
from magento_gateway.models import CredentialRecord


def _to_text(value: datetime) -> str:
    # Fixed-width UTC text keeps lexical and chronological order aligned.
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


class SQLiteTokenStore:
    """Token table keyed by service name, one connection per operation."""

    _COLUMNS = "service_name, access_token, expires_at, is_active, created_at, updated_at"

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            with closing(
                sqlite3.connect(self._db_path, check_same_thread=False)
            ) as conn:
                conn.row_factory = sqlite3.Row
                with conn:
                    yield conn
        except sqlite3.Error as exc:
            raise StoreUnavailable(f"SQLite token store failed: {exc}") from exc

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS magento_tokens (
                    service_name TEXT PRIMARY KEY,
                    access_token TEXT NOT NULL,
                    expires_at TEXT NOT NULL,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )

    @staticmethod
    def _to_record(row: sqlite3.Row) -> CredentialRecord:
        return CredentialRecord(
            service_name=row["service_name"],
            access_token=row["access_token"],
            expires_at=datetime.fromisoformat(row["expires_at"]),
            is_active=bool(row["is_active"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def find_current(
        self, service_name: str, now: datetime
    ) -> Optional[CredentialRecord]:
        with self._connect() as conn:
            row = conn.execute(
                f"""
                SELECT {self._COLUMNS} FROM magento_tokens
                WHERE service_name = ? AND is_active = 1 AND expires_at > ?
                ORDER BY updated_at DESC
                LIMIT 1
                """,
                (service_name, _to_text(now)),
            ).fetchone()
        return self._to_record(row) if row else None

    def find_latest(self, service_name: str) -> Optional[CredentialRecord]:
        with self._connect() as conn:
            row = conn.execute(
                f"""
                SELECT {self._COLUMNS} FROM magento_tokens
                WHERE service_name = ?
                ORDER BY updated_at DESC
                LIMIT 1
                """,
                (service_name,),
            ).fetchone()
        return self._to_record(row) if row else None

    def upsert(self, record: CredentialRecord) -> None:
        with self._connect() as conn:
            conn.execute(
                f"""
                INSERT INTO magento_tokens ({self._COLUMNS})
                VALUES (?, ?, ?, 1, ?, ?)
                ON CONFLICT(service_name) DO UPDATE SET
                    access_token = excluded.access_token,
                    expires_at = excluded.expires_at,
                    updated_at = excluded.updated_at,
                    is_active = 1
                """,
                (
                    record.service_name,
                    record.access_token,
                    _to_text(record.expires_at),
                    _to_text(record.created_at),
                    _to_text(record.updated_at),
                ),
            )

    def close(self) -> None:
        """Connections are opened per call; nothing is pooled."""


__all__ = ["SQLiteTokenStore"]
