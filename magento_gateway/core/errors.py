"""
Exception hierarchy shared by the token stores, the Magento client and the
credential manager.
"""

from __future__ import annotations

from typing import Optional


class MagentoGatewayError(Exception):
    """Base class for all gateway failures."""


class StoreUnavailable(MagentoGatewayError):
    """Raised when the persistent token store cannot be read or written."""


class UpstreamError(MagentoGatewayError):
    """An HTTP exchange with Magento failed; carries status and body when known."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class IssuanceError(UpstreamError):
    """The token endpoint rejected the credential exchange or was unreachable."""


class AuthorizationFailure(UpstreamError):
    """The resource API answered 401 for the presented bearer token."""

    def __init__(self, message: str, *, body: Optional[str] = None) -> None:
        super().__init__(message, status_code=401, body=body)


class RequestError(UpstreamError):
    """Any other resource API failure."""


__all__ = [
    "AuthorizationFailure",
    "IssuanceError",
    "MagentoGatewayError",
    "RequestError",
    "StoreUnavailable",
    "UpstreamError",
]
