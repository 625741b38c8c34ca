"""
Error taxonomy for the relay.

Every error carries the HTTP status the handler boundary answers with, so
routers can let them propagate and the exception handlers in ``app.main``
turn them into ``{"success": false, "error": ...}``.
"""
from typing import Any, Optional


class RelayError(Exception):
    status_code: int = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidInput(RelayError):
    """Client-supplied data failed validation."""
    status_code = 400


class Unconfigured(RelayError):
    """A credential required for the request is missing."""
    status_code = 500


class GatewayRejected(RelayError):
    """MyFatoorah answered with IsSuccess=false."""
    status_code = 400


class GatewayProtocolError(RelayError):
    """MyFatoorah could not be reached or answered with an unexpected body."""
    status_code = 500


class BackendRejected(RelayError):
    """Shopify reported validation errors."""
    status_code = 400


class BackendUnavailable(RelayError):
    """Shopify could not be reached or answered with an unreadable body."""
    status_code = 502


class InternalError(RelayError):
    """Unexpected failure answered as a generic 500."""
    status_code = 500
