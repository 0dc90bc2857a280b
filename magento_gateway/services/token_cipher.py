"""Symmetric encryption of Magento tokens held in the store."""

from __future__ import annotations

import base64
import hashlib
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken


def _derive_key(secret: str) -> bytes:
    digest = hashlib.sha256(secret.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest)


class TokenCipherService:
    """Encrypt and decrypt bearer tokens using a Fernet key derived from a secret."""

    def __init__(self, *, secret: str) -> None:
        if not secret:
            raise ValueError("Token encryption secret must be provided.")
        self._fernet = Fernet(_derive_key(secret))

    @classmethod
    def from_secret(cls, secret: Optional[str]) -> Optional["TokenCipherService"]:
        """Build a cipher when a secret is configured; tokens stay plain otherwise."""
        if not secret:
            return None
        return cls(secret=secret)

    def encrypt(self, token: str) -> str:
        return self._fernet.encrypt(token.encode("utf-8")).decode("utf-8")

    def decrypt(self, ciphertext: str) -> str:
        """Return the plain token; raises ``ValueError`` for foreign ciphertext."""
        try:
            token = self._fernet.decrypt(ciphertext.encode("utf-8"))
        except InvalidToken as exc:
            raise ValueError(
                "Failed to decrypt token; invalid ciphertext provided."
            ) from exc
        return token.decode("utf-8")


__all__ = ["TokenCipherService"]
