"""
FastAPI routes for the Magento credential gateway.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from magento_gateway.core.errors import IssuanceError, StoreUnavailable, UpstreamError
from magento_gateway.dependencies import get_app_settings, get_credential_manager

router = APIRouter()
logger = logging.getLogger(__name__)

_PROXY_METHODS = ["GET", "POST", "PUT", "DELETE"]


def _upstream_response(exc: UpstreamError) -> JSONResponse:
    # Issuer failures are a gateway problem, not the caller's.
    if isinstance(exc, IssuanceError) or exc.status_code is None:
        status_code = HTTPStatus.BAD_GATEWAY
    else:
        status_code = exc.status_code
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "upstream_body": exc.body},
    )


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck(
    settings: Annotated[Any, Depends(get_app_settings)],
) -> dict:
    """Simple health endpoint for monitoring."""
    return {
        "status": "ok",
        "environment": settings.environment,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/token/status", status_code=HTTPStatus.OK)
async def token_status(
    manager: Annotated[Any, Depends(get_credential_manager)],
) -> dict:
    """Report the state of the newest stored token without touching Magento."""
    try:
        status = await manager.get_status()
    except StoreUnavailable as exc:
        raise HTTPException(
            status_code=HTTPStatus.SERVICE_UNAVAILABLE, detail=str(exc)
        ) from exc
    return status.model_dump(mode="json", by_alias=True)


@router.post("/token/refresh", status_code=HTTPStatus.OK)
async def refresh_token(
    manager: Annotated[Any, Depends(get_credential_manager)],
) -> Any:
    """Force a new token from Magento regardless of the cached one."""
    try:
        await manager.issue_token()
    except IssuanceError as exc:
        logger.error("Forced token refresh failed: %s", exc)
        return _upstream_response(exc)

    try:
        status = await manager.get_status()
    except StoreUnavailable as exc:
        raise HTTPException(
            status_code=HTTPStatus.SERVICE_UNAVAILABLE, detail=str(exc)
        ) from exc
    return status.model_dump(mode="json", by_alias=True)


@router.api_route("/magento/{endpoint:path}", methods=_PROXY_METHODS)
async def proxy_magento(
    endpoint: str,
    request: Request,
    manager: Annotated[Any, Depends(get_credential_manager)],
    payload: Any = Body(default=None),
) -> Any:
    """Forward a call to the Magento REST API with the managed bearer token."""
    target = f"/{endpoint}"
    if request.url.query:
        target = f"{target}?{request.url.query}"

    try:
        return await manager.authenticated_request(
            target, method=request.method, body=payload
        )
    except UpstreamError as exc:
        return _upstream_response(exc)
