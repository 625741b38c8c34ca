"""
PSP Adapter Base Class and Interface.
Provides the interface the relay expects from a hosted-payment gateway.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

from .context import PurchaseContext


class InvoiceStatus(str, Enum):
    """Invoice states as observed by the relay."""
    PAID = "Paid"
    PENDING = "Pending"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: Optional[str]) -> "InvoiceStatus":
        if value == cls.PAID.value:
            return cls.PAID
        if value == cls.PENDING.value:
            return cls.PENDING
        return cls.OTHER


@dataclass(frozen=True)
class PaymentLink:
    payment_url: str
    invoice_id: str
    payment_id: str


@dataclass(frozen=True)
class PaymentRecord:
    invoice_id: str
    status: InvoiceStatus
    raw_status: Optional[str] = None
    invoice_value: Optional[Decimal] = None
    currency: Optional[str] = None
    user_defined_field: Optional[str] = None
    customer_email: Optional[str] = None
    transaction_id: Optional[str] = None
    payment_id: Optional[str] = None


class PaymentGateway(ABC):
    """
    Base adapter for hosted-payment gateways.
    """

    @abstractmethod
    async def create_payment(
        self,
        amount: Decimal,
        currency_code: str,
        item_description: str,
        quantity: int,
        customer_email: str,
        customer_phone: Optional[str],
        return_url: str,
        context: PurchaseContext,
    ) -> PaymentLink:
        """
        Request a hosted payment link.

        Args:
            amount: Invoice total, must be positive
            currency_code: ISO currency shown to the customer
            item_description: Line item name
            quantity: Units bought, must be positive
            customer_email: Customer's email address
            customer_phone: Raw phone number, normalized before sending
            return_url: Page the gateway redirects to after payment
            context: Round-tripped back on status lookups and webhooks

        Raises:
            InvalidInput: amount or quantity not positive
            Unconfigured: gateway token missing
            GatewayRejected: gateway refused the request
            GatewayProtocolError: gateway unreachable or body unreadable
        """

    @abstractmethod
    async def get_payment_status(self, key: str, key_type: str = "PaymentId") -> PaymentRecord:
        """
        Look up the invoice behind a payment or invoice id.

        Raises:
            Unconfigured: gateway token missing
            GatewayRejected: gateway refused the lookup
            GatewayProtocolError: expected fields missing
        """

    def __repr__(self):
        return f"<{self.__class__.__name__}(provider={getattr(self, 'provider', 'unknown')})>"
