"""
Shopify Admin REST client for the checkout relay.
Handles draft orders, customer lookup and paid order creation.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

import httpx

from app.config import Settings
from app.errors import BackendRejected, BackendUnavailable, InvalidInput, RelayError, Unconfigured
from app.logging_config import get_logger
from app.services.result import Result

logger = get_logger(__name__)

GATEWAY_NAME = "MyFatoorah"
DRAFT_ORDER_TAGS = "myfatoorah-draft, express-checkout-initiated"
ORDER_TAGS = "myfatoorah, express-checkout"


@dataclass(frozen=True)
class DraftOrderRef:
    id: str
    name: Optional[str] = None


@dataclass(frozen=True)
class OrderResult:
    id: str
    order_number: Optional[int] = None
    order_status_url: Optional[str] = None


def _variant_id(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidInput("Invalid variantId")


def _quantity(value: Optional[int]) -> int:
    if value is None:
        return 1
    if value < 1:
        raise InvalidInput("Invalid quantity")
    return value


class ShopifyService:
    """Service for the Shopify Admin API."""

    def __init__(self, settings: Settings, http: httpx.AsyncClient):
        self.settings = settings
        self._http = http

    @property
    def configured(self) -> bool:
        return self.settings.backend_configured

    def _url(self, path: str) -> str:
        s = self.settings
        return f"https://{s.SHOPIFY_STORE}/admin/api/{s.SHOPIFY_API_VERSION}/{path}"

    def _headers(self) -> Dict[str, str]:
        if not self.configured:
            raise Unconfigured("Shopify access token not configured")
        return {
            "X-Shopify-Access-Token": self.settings.SHOPIFY_ACCESS_TOKEN,
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Tuple[int, Dict[str, Any]]:
        headers = self._headers()
        try:
            r = await self._http.request(method, self._url(path), json=json, params=params, headers=headers)
        except httpx.HTTPError as e:
            logger.error("shopify_request_failed", method=method, path=path, error=str(e))
            raise BackendUnavailable("Shopify could not be reached") from e
        if not r.content:
            return r.status_code, {}
        try:
            data = r.json()
        except ValueError as e:
            logger.error("shopify_invalid_json", method=method, path=path, status_code=r.status_code)
            raise BackendUnavailable("Shopify returned invalid response") from e
        return r.status_code, data if isinstance(data, dict) else {}

    async def create_draft_order(
        self,
        variant_id: Any,
        quantity: Optional[int],
        customer_email: Optional[str],
        customer_phone: Optional[str] = None,
    ) -> DraftOrderRef:
        """
        Create a draft order to track checkout initiation.

        Raises:
            Unconfigured: no access token
            InvalidInput: variant id not numeric or quantity below 1
            BackendRejected: Shopify returned validation errors
            BackendUnavailable: Shopify unreachable
        """
        if not self.configured:
            raise Unconfigured("Shopify access token not configured")

        customer: Dict[str, Any] = {"email": customer_email}
        if customer_phone:
            customer["phone"] = customer_phone

        payload = {
            "draft_order": {
                "line_items": [
                    {"variant_id": _variant_id(variant_id), "quantity": _quantity(quantity)}
                ],
                "customer": customer,
                "email": customer_email,
                "note": f"MyFatoorah Express Checkout - Initiated at {datetime.now(timezone.utc).isoformat()}",
                "tags": DRAFT_ORDER_TAGS,
                "use_customer_default_address": False,
            }
        }

        status_code, data = await self._request("POST", "draft_orders.json", json=payload)
        draft = data.get("draft_order")
        if not draft:
            errors = data.get("errors") or "Failed to create draft order"
            logger.warning("draft_order_rejected", status_code=status_code, errors=errors)
            raise BackendRejected(
                errors if isinstance(errors, str) else "Failed to create draft order",
                details=errors,
            )

        ref = DraftOrderRef(id=str(draft["id"]), name=draft.get("name"))
        logger.info("draft_order_created", draft_order_id=ref.id, draft_order_name=ref.name)
        return ref

    async def delete_draft_order(self, draft_order_id: str) -> bool:
        """Best-effort delete; a failure only leaves an orphaned draft behind."""
        try:
            status_code, data = await self._request("DELETE", f"draft_orders/{draft_order_id}.json")
        except RelayError as e:
            logger.error("draft_order_delete_failed", draft_order_id=draft_order_id, error=e.message)
            return False
        if status_code >= 400:
            logger.error(
                "draft_order_delete_failed",
                draft_order_id=draft_order_id,
                status_code=status_code,
                errors=data.get("errors"),
            )
            return False
        logger.info("draft_order_deleted", draft_order_id=draft_order_id)
        return True

    async def find_customer_by_email(self, email: Optional[str]) -> Optional[str]:
        if not email:
            return None
        try:
            _, data = await self._request(
                "GET", "customers/search.json", params={"query": f"email:{email}"}
            )
        except RelayError as e:
            logger.warning("customer_search_failed", error=e.message)
            return None
        customers = data.get("customers")
        if not isinstance(customers, list) or not customers:
            return None
        first = customers[0]
        if not isinstance(first, dict) or first.get("id") is None:
            logger.warning("customer_search_unexpected_shape", email=email)
            return None
        customer_id = str(first["id"])
        logger.info("customer_found", customer_id=customer_id)
        return customer_id

    async def create_order(
        self,
        variant_id: Any,
        quantity: Optional[int],
        customer_email: Optional[str],
        payment_invoice_id: str,
        payment_amount: Optional[Decimal],
    ) -> Result[OrderResult]:
        """
        Create an already-paid order for a confirmed MyFatoorah invoice.

        The gateway invoice id is stored as the transaction authorization so
        the order can be traced back to the payment. Failures come back as
        ``Result.err`` rather than raising.
        """
        try:
            if not self.configured:
                raise Unconfigured("Shopify access token not configured")
            line_item = {"variant_id": _variant_id(variant_id), "quantity": _quantity(quantity)}

            customer_id = await self.find_customer_by_email(customer_email)
            customer = {"id": int(customer_id)} if customer_id else {"email": customer_email}

            payload = {
                "order": {
                    "email": customer_email,
                    "financial_status": "paid",
                    "send_receipt": True,
                    "send_fulfillment_receipt": True,
                    "line_items": [line_item],
                    "transactions": [
                        {
                            "kind": "sale",
                            "status": "success",
                            "amount": str(payment_amount) if payment_amount is not None else None,
                            "gateway": GATEWAY_NAME,
                            "authorization": payment_invoice_id,
                        }
                    ],
                    "customer": customer,
                    "note": f"Paid via MyFatoorah - Invoice ID: {payment_invoice_id}",
                    "tags": ORDER_TAGS,
                }
            }

            status_code, data = await self._request("POST", "orders.json", json=payload)
            order = data.get("order")
            if not order:
                errors = data.get("errors") or "Failed to create order"
                logger.error(
                    "order_rejected",
                    invoice_id=payment_invoice_id,
                    status_code=status_code,
                    errors=errors,
                )
                raise BackendRejected(
                    errors if isinstance(errors, str) else "Failed to create order",
                    details=errors,
                )
        except RelayError as e:
            return Result.err(e)

        result = OrderResult(
            id=str(order["id"]),
            order_number=order.get("order_number"),
            order_status_url=order.get("order_status_url"),
        )
        logger.info(
            "order_created",
            invoice_id=payment_invoice_id,
            order_id=result.id,
            order_number=result.order_number,
        )
        return Result.ok(result)
