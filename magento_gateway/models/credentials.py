"""
Domain models for Magento credential persistence.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive timestamps read back from a store as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CredentialRecord(BaseModel):
    """Represents the token row stored for a service identity."""

    service_name: str = Field(..., description="Unique key of the API identity.")
    access_token: str
    expires_at: datetime
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def is_current(self, now: datetime) -> bool:
        return self.is_active and ensure_utc(self.expires_at) > now


class TokenStatus(BaseModel):
    """Diagnostic view over the latest stored credential."""

    model_config = ConfigDict(populate_by_name=True)

    has_token: bool = Field(False, alias="hasToken")
    is_active: bool = Field(False, alias="isActive")
    is_expired: bool = Field(True, alias="isExpired")
    expires_at: Optional[datetime] = Field(None, alias="expiresAt")
    minutes_until_expiry: int = Field(0, alias="minutesUntilExpiry")
    last_updated: Optional[datetime] = Field(None, alias="lastUpdated")

    @classmethod
    def absent(cls) -> "TokenStatus":
        return cls()

    @classmethod
    def from_record(cls, record: CredentialRecord, now: datetime) -> "TokenStatus":
        expires_at = ensure_utc(record.expires_at)
        is_expired = expires_at <= now
        remaining = int((expires_at - now).total_seconds() // 60)
        return cls(
            has_token=True,
            is_active=record.is_active,
            is_expired=is_expired,
            expires_at=expires_at,
            minutes_until_expiry=0 if is_expired else remaining,
            last_updated=ensure_utc(record.updated_at),
        )


__all__ = ["CredentialRecord", "TokenStatus", "ensure_utc", "utcnow"]
