"""
Pooled SQLAlchemy token store, used for PostgreSQL deployments.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Generator, Optional

from sqlalchemy import create_engine, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from magento_gateway.core.errors import StoreUnavailable
from magento_gateway.models import CredentialRecord
from magento_gateway.models.tables import Base, MagentoToken

_UPSERT_DIALECTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def create_db_engine(
    database_url: str, *, pool_size: int = 5, max_overflow: int = 10
) -> Engine:
    """Create SQLAlchemy engine with connection pooling."""
    if database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True)
    return create_engine(
        database_url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=True,  # Verify connections before using
    )


class SQLAlchemyTokenStore:
    """Token store over a shared engine; each call checks a connection out and back in."""

    def __init__(self, engine: Engine, *, create_schema: bool = True) -> None:
        self._engine = engine
        self._sessions = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        # The table is created on first use; the engine connects lazily.
        self._schema_ready = not create_schema
        self._schema_lock = threading.Lock()

    def _ensure_schema(self) -> None:
        if self._schema_ready:
            return
        with self._schema_lock:
            if self._schema_ready:
                return
            try:
                Base.metadata.create_all(self._engine)
            except SQLAlchemyError as exc:
                raise StoreUnavailable(f"Unable to prepare token table: {exc}") from exc
            self._schema_ready = True

    @classmethod
    def from_url(
        cls, database_url: str, *, pool_size: int = 5, max_overflow: int = 10
    ) -> "SQLAlchemyTokenStore":
        engine = create_db_engine(
            database_url, pool_size=pool_size, max_overflow=max_overflow
        )
        return cls(engine)

    @contextmanager
    def _session(self) -> Generator[Session, None, None]:
        self._ensure_schema()
        db = self._sessions()
        try:
            yield db
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise StoreUnavailable(f"Token store query failed: {exc}") from exc
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    @staticmethod
    def _to_record(row: MagentoToken) -> CredentialRecord:
        return CredentialRecord(
            service_name=row.service_name,
            access_token=row.access_token,
            expires_at=_utc(row.expires_at),
            is_active=row.is_active,
            created_at=_utc(row.created_at),
            updated_at=_utc(row.updated_at),
        )

    def find_current(
        self, service_name: str, now: datetime
    ) -> Optional[CredentialRecord]:
        query = (
            select(MagentoToken)
            .where(
                MagentoToken.service_name == service_name,
                MagentoToken.is_active.is_(True),
                MagentoToken.expires_at > _utc(now),
            )
            .order_by(MagentoToken.updated_at.desc())
            .limit(1)
        )
        with self._session() as db:
            row = db.execute(query).scalars().first()
            return self._to_record(row) if row else None

    def find_latest(self, service_name: str) -> Optional[CredentialRecord]:
        query = (
            select(MagentoToken)
            .where(MagentoToken.service_name == service_name)
            .order_by(MagentoToken.updated_at.desc())
            .limit(1)
        )
        with self._session() as db:
            row = db.execute(query).scalars().first()
            return self._to_record(row) if row else None

    def upsert(self, record: CredentialRecord) -> None:
        values = {
            "service_name": record.service_name,
            "access_token": record.access_token,
            "expires_at": _utc(record.expires_at),
            "is_active": True,
            "created_at": _utc(record.created_at),
            "updated_at": _utc(record.updated_at),
        }
        insert = _UPSERT_DIALECTS.get(self._engine.dialect.name)
        with self._session() as db:
            if insert is None:
                self._merge(db, values)
                return
            statement = insert(MagentoToken).values(**values)
            statement = statement.on_conflict_do_update(
                index_elements=[MagentoToken.service_name],
                set_={
                    "access_token": statement.excluded.access_token,
                    "expires_at": statement.excluded.expires_at,
                    "updated_at": statement.excluded.updated_at,
                    "is_active": True,
                },
            )
            db.execute(statement)

    @staticmethod
    def _merge(db: Session, values: dict) -> None:
        """Select-then-write fallback for dialects without ON CONFLICT support."""
        row = db.execute(
            select(MagentoToken)
            .where(MagentoToken.service_name == values["service_name"])
            .with_for_update()
        ).scalars().first()
        if row is None:
            db.add(MagentoToken(**values))
            return
        row.access_token = values["access_token"]
        row.expires_at = values["expires_at"]
        row.updated_at = values["updated_at"]
        row.is_active = True

    def close(self) -> None:
        """Dispose of the engine and all pooled connections."""
        self._engine.dispose()


__all__ = ["SQLAlchemyTokenStore", "create_db_engine"]
