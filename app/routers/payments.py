"""
Payment endpoints:
- POST /api/create-payment: request a MyFatoorah hosted payment link
- GET /api/verify-payment: poll an invoice and reconcile it into a Shopify order
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.config import Settings
from app.deps import get_app_settings, get_gateway, get_reconciler
from app.errors import GatewayRejected, InvalidInput
from app.logging_config import get_logger
from app.psp.adapter import PaymentGateway
from app.psp.context import EXPRESS_CHECKOUT_SOURCE, PurchaseContext, normalize_phone
from app.schemas_pkg import ErrorResponse, PaymentCreateRequest, PaymentCreateResponse
from app.services.reconciliation import Reconciler

logger = get_logger(__name__)
router = APIRouter(
    tags=["Payments"],
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)

DEFAULT_ITEM_NAME = "Product Purchase"


@router.post("/create-payment", response_model=PaymentCreateResponse)
async def create_payment(
    body: PaymentCreateRequest,
    settings: Settings = Depends(get_app_settings),
    gateway: PaymentGateway = Depends(get_gateway),
):
    if body.price is None or body.price <= 0:
        raise InvalidInput("Invalid price")
    quantity = body.quantity if body.quantity is not None else 1
    if quantity <= 0:
        raise InvalidInput("Invalid quantity")

    email = body.customer_email or settings.DEFAULT_GUEST_EMAIL
    phone = normalize_phone(body.customer_phone)
    logger.info(
        "payment_requested",
        product_id=body.product_id,
        variant_id=body.variant_id,
        quantity=quantity,
        price=str(body.price),
        draft_order_id=body.draft_order_id,
    )

    ctx = PurchaseContext(
        product_id=body.product_id,
        variant_id=body.variant_id,
        product_title=body.product_title,
        quantity=quantity,
        customer_email=email,
        customer_phone=phone,
        source=EXPRESS_CHECKOUT_SOURCE,
        draft_order_id=body.draft_order_id,
    )
    link = await gateway.create_payment(
        amount=body.price,
        currency_code=settings.MYFATOORAH_DISPLAY_CURRENCY,
        item_description=body.product_title or DEFAULT_ITEM_NAME,
        quantity=quantity,
        customer_email=email,
        customer_phone=phone,
        return_url=settings.verification_page_url,
        context=ctx,
    )
    return PaymentCreateResponse(
        payment_url=link.payment_url,
        invoice_id=link.invoice_id,
        payment_id=link.payment_id,
    )


@router.get("/verify-payment")
async def verify_payment(
    payment_id: Optional[str] = Query(default=None, alias="paymentId"),
    gateway: PaymentGateway = Depends(get_gateway),
    reconciler: Reconciler = Depends(get_reconciler),
):
    if not payment_id:
        raise InvalidInput("Payment ID is required")

    logger.info("payment_verification_requested", payment_id=payment_id)
    try:
        record = await gateway.get_payment_status(payment_id)
    except GatewayRejected as e:
        return {"success": False, "status": "failed", "message": e.message}

    result = await reconciler.reconcile(record, trigger="verify")
    return result.to_response()
