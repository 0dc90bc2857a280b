"""Domain model exports."""

from .credentials import CredentialRecord, TokenStatus

__all__ = ["CredentialRecord", "TokenStatus"]
