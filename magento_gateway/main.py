"""
FastAPI application entrypoint for the Magento credential gateway.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from magento_gateway.api.routes import router as api_router
from magento_gateway.core.config import get_settings
from magento_gateway.core.logging import configure_logging
from magento_gateway.dependencies import get_credential_manager, reset_clients


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Release the store pool and HTTP connections before the process exits.
    if get_credential_manager.cache_info().currsize:
        await get_credential_manager().close()
    reset_clients()


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Magento Credential Gateway",
        version="0.1.0",
        description="Cached Magento admin token with transparent refresh.",
        lifespan=lifespan,
    )
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
