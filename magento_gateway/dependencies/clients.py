"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache

from magento_gateway.clients import MagentoClient, TokenStore, build_token_store
from magento_gateway.core.config import AppSettings, get_settings
from magento_gateway.services import CredentialManager, TokenCipherService


@lru_cache()
def _settings() -> AppSettings:
    """Internal helper to cache settings for client factories."""
    return get_settings()


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning application settings."""
    return _settings()


@lru_cache()
def get_token_store() -> TokenStore:
    """Provide the process-wide token store (owns the connection pool)."""
    return build_token_store(_settings().database)


@lru_cache()
def get_magento_client() -> MagentoClient:
    """Provide a singleton Magento HTTP client."""
    return MagentoClient(_settings().magento)


@lru_cache()
def get_token_cipher_service() -> TokenCipherService | None:
    """Provide the at-rest token cipher when a secret is configured."""
    return TokenCipherService.from_secret(_settings().security.token_encryption_secret)


@lru_cache()
def get_credential_manager() -> CredentialManager:
    """Provide the credential manager shared by every route."""
    return CredentialManager(
        store=get_token_store(),
        client=get_magento_client(),
        settings=_settings().magento,
        token_cipher=get_token_cipher_service(),
    )


def reset_clients() -> None:
    """Forget cached instances so the next call rebuilds them."""
    for factory in (
        get_credential_manager,
        get_token_cipher_service,
        get_magento_client,
        get_token_store,
        _settings,
    ):
        factory.cache_clear()


__all__ = [
    "get_app_settings",
    "get_credential_manager",
    "get_magento_client",
    "get_token_cipher_service",
    "get_token_store",
    "reset_clients",
]
