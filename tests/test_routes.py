from __future__ import annotations

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

from datetime import timedelta

import httpx
import pytest

from conftest import NOW, FakeMagento
from magento_gateway.clients import InMemoryTokenStore, MagentoClient
from magento_gateway.core.errors import StoreUnavailable
from magento_gateway.main import app
from magento_gateway.models import CredentialRecord
from magento_gateway.services import CredentialManager


class BrokenStore(InMemoryTokenStore):
    def find_latest(self, service_name):
        raise StoreUnavailable("database is down")


@pytest.fixture()
async def gateway(anyio_backend, magento_settings):
    """Install one manager per test as the app's credential manager."""
    from magento_gateway import dependencies

    managers: list[CredentialManager] = []

    def install(
        fake: FakeMagento | None = None, store: InMemoryTokenStore | None = None
    ) -> tuple[FakeMagento, InMemoryTokenStore]:
        fake = FakeMagento() if fake is None else fake
        store = InMemoryTokenStore() if store is None else store
        client = MagentoClient(magento_settings, transport=fake.transport)
        manager = CredentialManager(store, client, magento_settings, clock=lambda: NOW)
        managers.append(manager)
        app.dependency_overrides[dependencies.get_credential_manager] = lambda: manager
        return fake, store

    yield install

    app.dependency_overrides.clear()
    for manager in managers:
        await manager.close()


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    )


@pytest.mark.anyio
async def test_health_reports_ok() -> None:
    async with _client() as client:
        response = await client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.anyio
async def test_token_status_without_record(gateway) -> None:
    gateway()

    async with _client() as client:
        response = await client.get("/api/token/status")

    assert response.status_code == 200
    assert response.json() == {
        "hasToken": False,
        "isActive": False,
        "isExpired": True,
        "expiresAt": None,
        "minutesUntilExpiry": 0,
        "lastUpdated": None,
    }


@pytest.mark.anyio
async def test_token_status_maps_store_failure_to_503(gateway) -> None:
    gateway(store=BrokenStore())

    async with _client() as client:
        response = await client.get("/api/token/status")

    assert response.status_code == 503


@pytest.mark.anyio
async def test_refresh_issues_and_reports_new_token(gateway) -> None:
    _, store = gateway(fake=FakeMagento(tokens=['"forced"']))

    async with _client() as client:
        response = await client.post("/api/token/refresh")

    body = response.json()
    assert response.status_code == 200
    assert body["hasToken"] is True
    assert body["minutesUntilExpiry"] == 50
    assert store.find_latest("magento_api").access_token == "forced"


@pytest.mark.anyio
async def test_refresh_reports_issuer_failure_as_bad_gateway(gateway) -> None:
    gateway(fake=FakeMagento(tokens=[(401, "invalid login")]))

    async with _client() as client:
        response = await client.post("/api/token/refresh")

    assert response.status_code == 502
    assert response.json()["upstream_body"] == "invalid login"


@pytest.mark.anyio
async def test_proxy_forwards_path_query_and_bearer(gateway) -> None:
    fake, _ = gateway(
        fake=FakeMagento(tokens=['"proxy-token"'], resource=[(200, {"total_count": 3})])
    )

    async with _client() as client:
        response = await client.get(
            "/api/magento/orders", params={"searchCriteria[pageSize]": "3"}
        )

    assert response.status_code == 200
    assert response.json() == {"total_count": 3}
    upstream = fake.resource_calls[0]
    assert upstream.url.path == "/rest/V1/orders"
    assert upstream.url.params["searchCriteria[pageSize]"] == "3"
    assert upstream.headers["Authorization"] == "Bearer proxy-token"


@pytest.mark.anyio
async def test_proxy_reuses_one_manager_across_requests(gateway) -> None:
    fake, _ = gateway(fake=FakeMagento(tokens=['"shared"']))

    async with _client() as client:
        first = await client.get("/api/magento/store/storeConfigs")
        second = await client.get("/api/magento/store/storeConfigs")

    assert first.status_code == second.status_code == 200
    assert len(fake.token_calls) == 1
    assert fake.bearer_tokens() == ["Bearer shared", "Bearer shared"]


@pytest.mark.anyio
async def test_proxy_posts_json_body(gateway) -> None:
    fake, _ = gateway(fake=FakeMagento(resource=[(200, {"id": 11})]))

    async with _client() as client:
        response = await client.post(
            "/api/magento/customers", json={"customer": {"email": "a@b.c"}}
        )

    assert response.status_code == 200
    upstream = fake.resource_calls[0]
    assert upstream.method == "POST"
    assert upstream.content == b'{"customer": {"email": "a@b.c"}}'


@pytest.mark.anyio
async def test_proxy_passes_upstream_errors_through(gateway) -> None:
    store = InMemoryTokenStore()
    store.upsert(
        CredentialRecord(
            service_name="magento_api",
            access_token="cached",
            expires_at=NOW + timedelta(minutes=30),
        )
    )
    fake, _ = gateway(
        fake=FakeMagento(resource=[(404, {"message": "No such entity."})]), store=store
    )

    async with _client() as client:
        response = await client.get("/api/magento/products/UNKNOWN")

    assert response.status_code == 404
    assert "No such entity." in response.json()["upstream_body"]
    assert fake.token_calls == []
