"""
Purchase context carried through MyFatoorah's UserDefinedField.

The gateway stores the string untouched and hands it back on GetPaymentStatus
and on webhooks, which is how the relay recovers what was bought without
keeping any state of its own.
"""
from __future__ import annotations

import json
import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from app.errors import InvalidInput
from app.logging_config import get_logger

logger = get_logger(__name__)

MAX_CONTEXT_LENGTH = 2000
MAX_PHONE_DIGITS = 11
EXPRESS_CHECKOUT_SOURCE = "express_checkout"

_NON_DIGITS = re.compile(r"[^0-9]")


def normalize_phone(phone: Any) -> Optional[str]:
    """Keep digits only, cap at 11 characters; None when nothing is left."""
    if phone is None:
        return None
    digits = _NON_DIGITS.sub("", str(phone))[:MAX_PHONE_DIGITS]
    return digits or None


class PurchaseContext(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

    product_id: Optional[str] = None
    variant_id: Optional[str] = None
    product_title: Optional[str] = None
    quantity: Optional[int] = Field(default=None, ge=1)
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = Field(default=None, max_length=MAX_PHONE_DIGITS)
    source: Optional[str] = None
    draft_order_id: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return all(value is None for value in self.__dict__.values())


def encode(context: PurchaseContext) -> str:
    blob = context.model_dump_json(by_alias=True)
    if len(blob) <= MAX_CONTEXT_LENGTH:
        return blob

    # Title is the only free-form field worth sacrificing.
    if context.product_title:
        overflow = len(blob) - MAX_CONTEXT_LENGTH
        title = context.product_title[: max(len(context.product_title) - overflow, 0)]
        blob = context.model_copy(update={"product_title": title or None}).model_dump_json(by_alias=True)
        if len(blob) <= MAX_CONTEXT_LENGTH:
            return blob

    raise InvalidInput("Purchase context too large for the payment gateway")


def decode(raw: Optional[str]) -> PurchaseContext:
    """Parse a context blob; anything unreadable becomes the empty context."""
    if not raw:
        return PurchaseContext()
    try:
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("context is not a JSON object")
        return PurchaseContext.model_validate(data)
    except (TypeError, ValueError, ValidationError) as e:
        logger.warning("purchase_context_decode_failed", error=str(e))
        return PurchaseContext()
