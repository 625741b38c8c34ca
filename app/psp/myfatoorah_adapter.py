"""MyFatoorah PSP Adapter Implementation (v2 REST API)."""
from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

import httpx

from app.config import Settings
from app.errors import GatewayProtocolError, GatewayRejected, InvalidInput, Unconfigured
from app.logging_config import get_logger
from . import context as context_codec
from .adapter import InvoiceStatus, PaymentGateway, PaymentLink, PaymentRecord
from .context import PurchaseContext

logger = get_logger(__name__)


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def _to_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def _rejection_message(data: Dict[str, Any], fallback: str) -> str:
    message = data.get("Message") or fallback
    errors = data.get("ValidationErrors") or []
    details = [f"{e.get('Name')}: {e.get('Error')}" for e in errors if isinstance(e, dict)]
    if details:
        message = f"{message} ({'; '.join(details)})"
    return message


def payment_record_from_payload(data: Dict[str, Any]) -> PaymentRecord:
    """
    Build a PaymentRecord from a MyFatoorah invoice object.

    Accepts both the ``Data`` object of GetPaymentStatus and the ``Data``
    object pushed on TransactionStatusChanged webhooks.
    """
    if not isinstance(data, dict):
        raise GatewayProtocolError("MyFatoorah returned invalid response")
    invoice_id = _to_str(data.get("InvoiceId"))
    raw_status = data.get("InvoiceStatus")
    if invoice_id is None or not raw_status:
        raise GatewayProtocolError("MyFatoorah response is missing InvoiceId or InvoiceStatus")

    transactions = data.get("InvoiceTransactions")
    if not isinstance(transactions, list):
        transactions = []
    first_txn = transactions[0] if transactions and isinstance(transactions[0], dict) else {}
    currency = data.get("Currency") or first_txn.get("PaidCurrency") or first_txn.get("Currency")

    return PaymentRecord(
        invoice_id=invoice_id,
        status=InvoiceStatus.parse(raw_status),
        raw_status=raw_status,
        invoice_value=_to_decimal(data.get("InvoiceValue")),
        currency=currency,
        user_defined_field=data.get("UserDefinedField"),
        customer_email=data.get("CustomerEmail"),
        transaction_id=_to_str(first_txn.get("TransactionId") or data.get("TransactionId")),
        payment_id=_to_str(data.get("PaymentId") or first_txn.get("PaymentId")),
    )


class MyFatoorahAdapter(PaymentGateway):
    """MyFatoorah hosted payment links: SendPayment and GetPaymentStatus."""

    provider = "myfatoorah"

    def __init__(self, settings: Settings, http: httpx.AsyncClient):
        self.settings = settings
        self._http = http
        self._base = settings.MYFATOORAH_API_BASE

    def _headers(self) -> Dict[str, str]:
        if not self.settings.gateway_configured:
            raise Unconfigured("MyFatoorah API token not configured")
        return {
            "Authorization": f"Bearer {self.settings.MYFATOORAH_API_TOKEN}",
            "Content-Type": "application/json",
        }

    async def _post(self, path: str, json: Dict[str, Any]) -> Dict[str, Any]:
        headers = self._headers()
        try:
            r = await self._http.post(f"{self._base}{path}", json=json, headers=headers)
        except httpx.HTTPError as e:
            logger.error("myfatoorah_request_failed", path=path, error=str(e))
            raise GatewayProtocolError("MyFatoorah could not be reached") from e
        try:
            data = r.json()
        except ValueError as e:
            logger.error("myfatoorah_invalid_json", path=path, status_code=r.status_code)
            raise GatewayProtocolError("MyFatoorah returned invalid response") from e
        if not isinstance(data, dict):
            raise GatewayProtocolError("MyFatoorah returned invalid response")
        return data

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
        if amount is None or amount <= 0:
            raise InvalidInput("Invalid price")
        if quantity is None or quantity <= 0:
            raise InvalidInput("Invalid quantity")

        # Unrounded so UnitPrice * Quantity stays equal to InvoiceValue.
        unit_price = amount / quantity
        phone = context_codec.normalize_phone(customer_phone)

        payload: Dict[str, Any] = {
            "InvoiceValue": float(amount),
            "CustomerName": "Guest Customer",
            "DisplayCurrencyIso": currency_code,
            "Language": self.settings.MYFATOORAH_LANGUAGE,
            "CustomerEmail": customer_email,
            "NotificationOption": "LNK",
            "CallBackUrl": return_url,
            "ErrorUrl": return_url,
            "InvoiceItems": [
                {
                    "ItemName": item_description,
                    "Quantity": quantity,
                    "UnitPrice": float(unit_price),
                }
            ],
            "UserDefinedField": context_codec.encode(context),
        }
        if phone:
            payload["CustomerMobile"] = phone

        data = await self._post("/v2/SendPayment", payload)
        invoice = data.get("Data") or {}
        if not data.get("IsSuccess") or not isinstance(invoice, dict) or not invoice.get("InvoiceURL"):
            message = _rejection_message(data, "Failed to create payment")
            logger.warning("myfatoorah_payment_rejected", message=message)
            raise GatewayRejected(message, details=data.get("ValidationErrors"))

        invoice_id = _to_str(invoice.get("InvoiceId"))
        if invoice_id is None:
            raise GatewayProtocolError("MyFatoorah response is missing InvoiceId")
        link = PaymentLink(
            payment_url=invoice["InvoiceURL"],
            invoice_id=invoice_id,
            payment_id=_to_str(invoice.get("PaymentId")) or invoice_id,
        )
        logger.info(
            "payment_created",
            invoice_id=link.invoice_id,
            amount=str(amount),
            currency=currency_code,
            quantity=quantity,
        )
        return link

    async def get_payment_status(self, key: str, key_type: str = "PaymentId") -> PaymentRecord:
        data = await self._post("/v2/GetPaymentStatus", {"Key": key, "KeyType": key_type})
        if not data.get("IsSuccess"):
            message = _rejection_message(data, "Payment verification failed")
            logger.warning("myfatoorah_status_rejected", key=key, key_type=key_type, message=message)
            raise GatewayRejected(message, details=data.get("ValidationErrors"))
        record = payment_record_from_payload(data.get("Data"))
        logger.info(
            "payment_status_fetched",
            key=key,
            key_type=key_type,
            invoice_id=record.invoice_id,
            status=record.raw_status,
        )
        return record
