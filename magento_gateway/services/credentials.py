"""
Cache-and-refresh management of the Magento admin bearer token.

Tokens are read from the persistent store while they are active and
unexpired, issued again from Magento when they are not, and reissued once
when the resource API rejects them.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

import httpx

from magento_gateway.clients import MagentoClient, TokenStore
from magento_gateway.core.config import MagentoSettings
from magento_gateway.core.errors import AuthorizationFailure, RequestError, StoreUnavailable
from magento_gateway.models import CredentialRecord, TokenStatus
from magento_gateway.models.credentials import utcnow
from magento_gateway.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)


class _Attempt(enum.Enum):
    INITIAL = "initial"
    RETRIED_ONCE = "retried_once"


def clean_token(raw: str) -> str:
    """Magento returns the token as a JSON string; drop the quote characters."""
    return raw.replace('"', "").strip()


class CredentialManager:
    """Resolves, issues and applies the bearer token for one Magento identity."""

    def __init__(
        self,
        store: TokenStore,
        client: MagentoClient,
        settings: MagentoSettings,
        *,
        token_cipher: Optional[TokenCipherService] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._client = client
        self._settings = settings
        self._cipher = token_cipher
        self._clock = clock
        self._ttl = timedelta(minutes=settings.token_ttl_minutes)

    @property
    def service_name(self) -> str:
        return self._settings.service_name

    async def resolve_token(self, service_name: Optional[str] = None) -> str:
        """Return a cached token when one is current, otherwise issue a new one."""
        service = service_name or self.service_name
        try:
            record = await asyncio.to_thread(
                self._store.find_current, service, self._clock()
            )
        except StoreUnavailable as exc:
            logger.error("Error reading token for %s from store: %s", service, exc)
            logger.info("Attempting to generate new token as fallback")
            return await self.issue_token(service)

        if record is None:
            logger.info("No valid token found for %s, generating fresh token", service)
            return await self.issue_token(service)

        token = self._reveal(record)
        if token is None:
            return await self.issue_token(service)

        logger.debug("Using stored token for %s (expires %s)", service, record.expires_at)
        return token

    async def issue_token(self, service_name: Optional[str] = None) -> str:
        """Exchange the configured credentials for a new token and persist it."""
        service = service_name or self.service_name
        logger.info("Generating new Magento API token for %s", service)

        raw = await self._client.request_token(
            self._settings.username, self._settings.password
        )
        token = clean_token(raw)

        issued_at = self._clock()
        record = CredentialRecord(
            service_name=service,
            access_token=self._cipher.encrypt(token) if self._cipher else token,
            expires_at=issued_at + self._ttl,
            is_active=True,
            created_at=issued_at,
            updated_at=issued_at,
        )
        try:
            await asyncio.to_thread(self._store.upsert, record)
        except StoreUnavailable as exc:
            logger.error(
                "Issued token for %s could not be cached; continuing uncached: %s",
                service,
                exc,
            )
        else:
            logger.info("Fresh token for %s stored (expires %s)", service, record.expires_at)
        return token

    async def authenticated_request(
        self,
        endpoint: str,
        method: str = "GET",
        body: Any = None,
    ) -> Any:
        """Call the resource API, reissuing the token once if it is rejected."""
        attempt = _Attempt.INITIAL
        token = await self.resolve_token()

        while True:
            try:
                response = await self._client.send(method, endpoint, token, body)
            except AuthorizationFailure:
                if attempt is _Attempt.RETRIED_ONCE:
                    logger.error("Request to %s failed even after token refresh", endpoint)
                    raise
                logger.info("Got 401 from %s, generating new token", endpoint)
                attempt = _Attempt.RETRIED_ONCE
                token = await self.issue_token()
                continue
            except RequestError as exc:
                logger.error("Magento API error for %s: %s", endpoint, exc.body or exc)
                raise

            if attempt is _Attempt.RETRIED_ONCE:
                logger.info("Request to %s succeeded after token refresh", endpoint)
            return _decode(response)

    async def get_status(self, service_name: Optional[str] = None) -> TokenStatus:
        """Describe the newest stored record, whatever its expiry or flag."""
        record = await asyncio.to_thread(
            self._store.find_latest, service_name or self.service_name
        )
        if record is None:
            return TokenStatus.absent()
        return TokenStatus.from_record(record, self._clock())

    async def close(self) -> None:
        await self._client.aclose()
        await asyncio.to_thread(self._store.close)
        logger.info("Token store and HTTP client closed")

    def _reveal(self, record: CredentialRecord) -> Optional[str]:
        if self._cipher is None:
            return record.access_token
        try:
            return self._cipher.decrypt(record.access_token)
        except ValueError:
            logger.warning(
                "Stored token for %s could not be decrypted; treating as missing",
                record.service_name,
            )
            return None


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


__all__ = ["CredentialManager", "clean_token"]
