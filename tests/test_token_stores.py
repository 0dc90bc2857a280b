from __future__ import annotations

import sqlite3
from datetime import timedelta
from pathlib import Path

import pytest

from conftest import NOW
from magento_gateway.clients import (
    InMemoryTokenStore,
    SQLAlchemyTokenStore,
    SQLiteTokenStore,
    build_token_store,
)
from magento_gateway.core.config import DatabaseSettings
from magento_gateway.core.errors import StoreUnavailable
from magento_gateway.models import CredentialRecord


def _record(token: str, *, issued_at=NOW, ttl=timedelta(minutes=50)) -> CredentialRecord:
    return CredentialRecord(
        service_name="magento_api",
        access_token=token,
        expires_at=issued_at + ttl,
        is_active=True,
        created_at=issued_at,
        updated_at=issued_at,
    )


@pytest.fixture(params=["memory", "sqlite", "sqlalchemy"])
def store(request, tmp_path: Path):
    if request.param == "memory":
        instance = InMemoryTokenStore()
    elif request.param == "sqlite":
        instance = SQLiteTokenStore(str(tmp_path / "tokens.db"))
    else:
        instance = SQLAlchemyTokenStore.from_url(f"sqlite:///{tmp_path / 'pooled.db'}")
    yield instance
    instance.close()


def test_empty_store_has_no_records(store) -> None:
    assert store.find_current("magento_api", NOW) is None
    assert store.find_latest("magento_api") is None


def test_upsert_replaces_token_and_keeps_created_at(store) -> None:
    store.upsert(_record("first"))
    later = NOW + timedelta(minutes=20)
    store.upsert(_record("second", issued_at=later))

    current = store.find_current("magento_api", later)
    assert current is not None
    assert current.access_token == "second"
    assert current.expires_at == later + timedelta(minutes=50)
    assert current.updated_at == later
    assert current.created_at == NOW
    assert current.is_active is True


def test_find_current_ignores_expired_record(store) -> None:
    store.upsert(_record("short-lived", ttl=timedelta(minutes=1)))

    assert store.find_current("magento_api", NOW + timedelta(minutes=2)) is None
    latest = store.find_latest("magento_api")
    assert latest is not None
    assert latest.access_token == "short-lived"


def test_records_are_keyed_by_service_name(store) -> None:
    store.upsert(_record("magento"))
    other = _record("other").model_copy(update={"service_name": "magento_b2b"})
    store.upsert(other)

    assert store.find_current("magento_api", NOW).access_token == "magento"
    assert store.find_current("magento_b2b", NOW).access_token == "other"


def test_sqlite_store_skips_inactive_rows(tmp_path: Path) -> None:
    db_path = tmp_path / "tokens.db"
    store = SQLiteTokenStore(str(db_path))
    store.upsert(_record("revoked"))
    with sqlite3.connect(db_path) as conn:
        conn.execute("UPDATE magento_tokens SET is_active = 0")
    conn.close()

    assert store.find_current("magento_api", NOW) is None
    assert store.find_latest("magento_api").is_active is False

    store.upsert(_record("reissued"))
    assert store.find_current("magento_api", NOW).access_token == "reissued"


def test_sqlite_store_wraps_engine_errors(tmp_path: Path) -> None:
    with pytest.raises(StoreUnavailable):
        SQLiteTokenStore(str(tmp_path))


def test_build_token_store_selects_backend(tmp_path: Path) -> None:
    memory = build_token_store(DatabaseSettings(DATABASE_URL="memory://"))
    sqlite = build_token_store(
        DatabaseSettings(DATABASE_URL=f"sqlite:///{tmp_path / 'local.db'}")
    )

    assert isinstance(memory, InMemoryTokenStore)
    assert isinstance(sqlite, SQLiteTokenStore)
    assert (tmp_path / "local.db").exists()


@pytest.mark.parametrize(
    "url",
    [
        "postgres://u:p@db:5432/shop",
        "postgresql://u:p@db:5432/shop",
        "postgresql+psycopg2://u:p@db:5432/shop",
    ],
)
def test_database_url_pins_psycopg2_driver(url: str) -> None:
    settings = DatabaseSettings(DATABASE_URL=url)
    assert settings.database_url == "postgresql+psycopg2://u:p@db:5432/shop"


def test_sqlalchemy_store_builds_without_reaching_database() -> None:
    store = build_token_store(
        DatabaseSettings(DATABASE_URL="postgresql://u:p@127.0.0.1:1/shop")
    )

    assert isinstance(store, SQLAlchemyTokenStore)
    with pytest.raises(StoreUnavailable):
        store.find_current("magento_api", NOW)
    with pytest.raises(StoreUnavailable):
        store.upsert(_record("unsaved"))
    store.close()


def test_sqlalchemy_store_creates_table_after_failed_first_attempt(tmp_path: Path) -> None:
    blocker = tmp_path / "not-yet"
    blocker.mkdir()
    store = SQLAlchemyTokenStore.from_url(f"sqlite:///{blocker}")

    with pytest.raises(StoreUnavailable):
        store.find_latest("magento_api")

    blocker.rmdir()
    store.upsert(_record("late"))
    assert store.find_current("magento_api", NOW).access_token == "late"
    store.close()
