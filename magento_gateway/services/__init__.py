"""Service layer exports."""

from .credentials import CredentialManager, clean_token
from .token_cipher import TokenCipherService

__all__ = [
    "CredentialManager",
    "TokenCipherService",
    "clean_token",
]
