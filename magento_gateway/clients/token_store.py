"""Persistence contract for cached Magento credentials."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from magento_gateway.models import CredentialRecord


class TokenStore(Protocol):
    """Capability interface every token store implements.

    Implementations raise ``StoreUnavailable`` when the backing engine fails.
    """

    def find_current(
        self, service_name: str, now: datetime
    ) -> Optional[CredentialRecord]:
        """Return the newest active record expiring after ``now``."""
        ...

    def find_latest(self, service_name: str) -> Optional[CredentialRecord]:
        """Return the newest record regardless of expiry or active flag."""
        ...

    def upsert(self, record: CredentialRecord) -> None:
        """Insert the record or replace token, expiry, timestamps and flag in place."""
        ...

    def close(self) -> None:
        """Release pooled connections."""
        ...


__all__ = ["TokenStore"]
