"""
Magento REST utilities.

One ``httpx.AsyncClient`` serves both the admin token endpoint and the
resource API so connections are pooled across calls.
"""

from __future__ import annotations

import json
import logging
from http import HTTPStatus
from typing import Any, Optional

import httpx

from magento_gateway.core.config import MagentoSettings
from magento_gateway.core.errors import AuthorizationFailure, IssuanceError, RequestError

logger = logging.getLogger(__name__)


class MagentoClient:
    """Exchange admin credentials for tokens and send authenticated calls."""

    def __init__(
        self,
        settings: MagentoSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._base_url = str(settings.base_url).rstrip("/")
        self._token_url = str(settings.token_url)
        if not settings.verify_tls:
            logger.warning(
                "TLS certificate verification is disabled for Magento requests"
            )
        self._http = httpx.AsyncClient(
            verify=settings.verify_tls,
            timeout=settings.timeout_seconds,
            transport=transport,
        )

    def build_url(self, endpoint: str) -> str:
        return f"{self._base_url}/{endpoint.lstrip('/')}"

    async def request_token(self, username: str, password: str) -> str:
        """
        Exchange the admin username/password for a bearer token.

        Returns the raw response body; Magento wraps the token in JSON quotes.
        """
        try:
            response = await self._http.post(
                self._token_url,
                json={"username": username, "password": password},
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as exc:
            raise IssuanceError(
                f"Magento token endpoint unreachable: {exc}", body=str(exc)
            ) from exc

        if response.status_code != HTTPStatus.OK:
            raise IssuanceError(
                f"Magento token request failed with status: {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )
        return response.text

    async def send(
        self,
        method: str,
        endpoint: str,
        token: str,
        body: Any = None,
    ) -> httpx.Response:
        """Send one request to the resource API with the given bearer token."""
        url = self.build_url(endpoint)
        try:
            response = await self._http.request(
                method.upper(),
                url,
                headers={
                    "Authorization": f"Bearer {token}",
                    "Content-Type": "application/json",
                },
                content=json.dumps(body) if body is not None else None,
            )
        except httpx.HTTPError as exc:
            raise RequestError(
                f"Magento request {method.upper()} {endpoint} failed: {exc}",
                body=str(exc),
            ) from exc

        if response.status_code == HTTPStatus.UNAUTHORIZED:
            raise AuthorizationFailure(
                f"Magento rejected the bearer token for {endpoint}",
                body=response.text,
            )
        if response.is_error:
            raise RequestError(
                f"Magento request {method.upper()} {endpoint} failed with status: "
                f"{response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )
        return response

    async def aclose(self) -> None:
        await self._http.aclose()


__all__ = ["MagentoClient"]
