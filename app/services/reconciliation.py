"""
Payment-to-order reconciliation.

Given a MyFatoorah invoice as observed by either the verification endpoint or
the webhook, decide whether a Shopify order has to be created and whether the
draft order opened at checkout can be cleaned up. Both call sites go through
``Reconciler.reconcile`` so they produce the same side effects and the same
result shape.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from app.logging_config import get_logger
from app.psp import context as context_codec
from app.psp.adapter import InvoiceStatus, PaymentRecord
from app.psp.context import PurchaseContext
from app.services.order_guard import OrderGuard, PassthroughOrderGuard
from app.services.shopify_service import OrderResult, ShopifyService

logger = get_logger(__name__)

PENDING_MESSAGE = "Payment is still pending"
FAILED_MESSAGE = "Payment was not completed"


@dataclass(frozen=True)
class ReconciliationResult:
    success: bool
    status: str
    message: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    order: Optional[OrderResult] = None
    invoice_id: Optional[str] = None
    transaction_id: Optional[str] = None
    duplicate: bool = False

    def to_response(self) -> Dict[str, Any]:
        if not self.success:
            return {"success": False, "status": self.status, "message": self.message}
        return {
            "success": True,
            "status": self.status,
            "amount": float(self.amount) if self.amount is not None else None,
            "currency": self.currency,
            "orderId": self.order.id if self.order else None,
            "orderNumber": self.order.order_number if self.order else None,
            "orderUrl": self.order.order_status_url if self.order else None,
            "invoiceId": self.invoice_id,
            "transactionId": self.transaction_id,
        }


class Reconciler:
    def __init__(self, shopify: ShopifyService, guard: Optional[OrderGuard] = None):
        self.shopify = shopify
        self.guard = guard or PassthroughOrderGuard()

    async def reconcile(self, record: PaymentRecord, trigger: str = "verify") -> ReconciliationResult:
        log = logger.bind(invoice_id=record.invoice_id, trigger=trigger)

        if record.status is InvoiceStatus.PENDING:
            log.info("payment_pending")
            return ReconciliationResult(success=False, status="pending", message=PENDING_MESSAGE)
        if record.status is not InvoiceStatus.PAID:
            log.info("payment_not_completed", invoice_status=record.raw_status)
            return ReconciliationResult(success=False, status="failed", message=FAILED_MESSAGE)

        ctx = context_codec.decode(record.user_defined_field)
        log.info("payment_confirmed", has_variant=bool(ctx.variant_id), has_draft=bool(ctx.draft_order_id))

        order, duplicate = await self._create_order(record, ctx, log)

        if ctx.draft_order_id and self.shopify.configured and not duplicate:
            await self.shopify.delete_draft_order(ctx.draft_order_id)

        return ReconciliationResult(
            success=True,
            status="paid",
            amount=record.invoice_value,
            currency=record.currency,
            order=order,
            invoice_id=record.invoice_id,
            transaction_id=record.transaction_id,
            duplicate=duplicate,
        )

    async def _create_order(self, record: PaymentRecord, ctx: PurchaseContext, log):
        if not ctx.variant_id or not self.shopify.configured:
            log.warning(
                "order_creation_skipped",
                has_access_token=self.shopify.configured,
                has_variant_id=bool(ctx.variant_id),
            )
            return None, False

        async def factory():
            return await self.shopify.create_order(
                variant_id=ctx.variant_id,
                quantity=ctx.quantity or 1,
                customer_email=ctx.customer_email or record.customer_email,
                payment_invoice_id=record.invoice_id,
                payment_amount=record.invoice_value,
            )

        try:
            result, duplicate = await self.guard.run_once(record.invoice_id, factory)
        except Exception:
            # A confirmed payment is reported as paid whatever happens here.
            log.exception("order_create_crashed")
            return None, False

        if not result.is_ok:
            log.error("order_create_failed", error=result.error.message)
            return None, False
        return result.value, duplicate
