"""Dict-backed token store for tests and throwaway runs."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional

from magento_gateway.models import CredentialRecord


class InMemoryTokenStore:
    """Keeps one record per service name in process memory."""

    def __init__(self) -> None:
        self._records: Dict[str, CredentialRecord] = {}

    def find_current(
        self, service_name: str, now: datetime
    ) -> Optional[CredentialRecord]:
        record = self._records.get(service_name)
        if record is None or not record.is_current(now):
            return None
        return record.model_copy()

    def find_latest(self, service_name: str) -> Optional[CredentialRecord]:
        record = self._records.get(service_name)
        return record.model_copy() if record else None

    def upsert(self, record: CredentialRecord) -> None:
        existing = self._records.get(record.service_name)
        created_at = existing.created_at if existing else record.created_at
        self._records[record.service_name] = record.model_copy(
            update={"created_at": created_at, "is_active": True}
        )

    def close(self) -> None:
        self._records.clear()


__all__ = ["InMemoryTokenStore"]
