"""Expose constructed client wrappers and token store factories."""

from magento_gateway.core.config import DatabaseSettings

from .magento import MagentoClient
from .memory_store import InMemoryTokenStore
from .sqlalchemy_store import SQLAlchemyTokenStore
from .sqlite_store import SQLiteTokenStore
from .token_store import TokenStore


def build_token_store(settings: DatabaseSettings) -> TokenStore:
    """Pick a token store implementation from the configured database URL."""
    url = settings.database_url
    if url.startswith("memory://"):
        return InMemoryTokenStore()
    if url.startswith("sqlite:///"):
        return SQLiteTokenStore(url[len("sqlite:///"):])
    return SQLAlchemyTokenStore.from_url(
        url,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
    )


__all__ = [
    "InMemoryTokenStore",
    "MagentoClient",
    "SQLAlchemyTokenStore",
    "SQLiteTokenStore",
    "TokenStore",
    "build_token_store",
]
