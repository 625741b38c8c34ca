from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )


class DraftOrderCreateRequest(_CamelModel):
    variant_id: str
    quantity: Optional[int] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None


class DraftOrderCreateResponse(_CamelModel):
    success: bool = True
    draft_order_id: str
    draft_order_name: Optional[str] = None


class PaymentCreateRequest(_CamelModel):
    product_id: Optional[str] = None
    variant_id: Optional[str] = None
    product_title: Optional[str] = None
    quantity: Optional[int] = None
    price: Optional[Decimal] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    draft_order_id: Optional[str] = None


class PaymentCreateResponse(_CamelModel):
    success: bool = True
    payment_url: str
    invoice_id: str
    payment_id: str


class WebhookAck(BaseModel):
    success: bool = True
    message: str = "Webhook received"


class ErrorResponse(BaseModel):
    success: bool = False
    error: Any
    details: Optional[Any] = None
