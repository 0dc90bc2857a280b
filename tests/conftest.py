"""Pytest configuration shared across the suite."""

from __future__ import annotations

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for rootdir-relative imports
    import _bootstrap  # type: ignore # noqa: F401

import json
from datetime import datetime, timezone
from typing import Any

import httpx
import pytest

from magento_gateway.core.config import MagentoSettings

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
TOKEN_PATH = "/rest/all/V1/integration/admin/token"


class FakeMagento:
    """Scripted Magento host for ``httpx.MockTransport``.

    Each queue entry is consumed per call; the last one repeats once the queue
    is down to a single entry.
    """

    def __init__(
        self,
        *,
        tokens: list[Any] | None = None,
        resource: list[tuple[int, Any]] | None = None,
    ) -> None:
        self.tokens: list[Any] = list(tokens or ['"issued-token"'])
        self.resource: list[tuple[int, Any]] = list(resource or [(200, {"ok": True})])
        self.token_calls: list[dict] = []
        self.resource_calls: list[httpx.Request] = []

    @staticmethod
    def _next(queue: list[Any]) -> Any:
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == TOKEN_PATH:
            self.token_calls.append(json.loads(request.content))
            entry = self._next(self.tokens)
            if isinstance(entry, Exception):
                raise entry
            if isinstance(entry, tuple):
                status, text = entry
                return httpx.Response(status, text=text)
            return httpx.Response(200, text=entry)

        self.resource_calls.append(request)
        status, payload = self._next(self.resource)
        return httpx.Response(status, json=payload)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def bearer_tokens(self) -> list[str]:
        return [call.headers["Authorization"] for call in self.resource_calls]


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def magento_settings() -> MagentoSettings:
    return MagentoSettings(MAGENTO_USERNAME="admin", MAGENTO_PASSWORD="secret")


@pytest.fixture
def fake_magento() -> FakeMagento:
    return FakeMagento()
