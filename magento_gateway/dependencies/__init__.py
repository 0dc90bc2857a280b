"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_app_settings,
    get_credential_manager,
    get_magento_client,
    get_token_cipher_service,
    get_token_store,
    reset_clients,
)

__all__ = [
    "get_app_settings",
    "get_credential_manager",
    "get_magento_client",
    "get_token_cipher_service",
    "get_token_store",
    "reset_clients",
]
