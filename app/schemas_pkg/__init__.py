# app/schemas_pkg/__init__.py

from .payments import (
    DraftOrderCreateRequest,
    DraftOrderCreateResponse,
    PaymentCreateRequest,
    PaymentCreateResponse,
    WebhookAck,
    ErrorResponse,
)

__all__ = [
    # Draft orders
    "DraftOrderCreateRequest",
    "DraftOrderCreateResponse",

    # Payments
    "PaymentCreateRequest",
    "PaymentCreateResponse",

    # Webhooks / errors
    "WebhookAck",
    "ErrorResponse",
]
