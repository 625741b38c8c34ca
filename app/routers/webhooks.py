"""
MyFatoorah webhooks: POST /api/webhook (and legacy POST /api/myfatoorah-webhook)
- Acknowledges immediately with 200, whatever the payload
- On TransactionStatusChanged with InvoiceStatus=Paid, reconciles the invoice
  in a background task that runs after the response has been sent
- Background failures end in the log; there is no channel left to report them
"""
from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Depends, Request

from app.config import Settings
from app.deps import get_app_settings, get_gateway, get_reconciler
from app.logging_config import get_logger
from app.psp.adapter import PaymentGateway
from app.psp.myfatoorah_adapter import payment_record_from_payload
from app.schemas_pkg import WebhookAck
from app.services.reconciliation import Reconciler

logger = get_logger(__name__)
router = APIRouter(tags=["MyFatoorah Webhooks"])

STATUS_CHANGED_EVENT = "TransactionStatusChanged"


def should_process(event: Dict[str, Any]) -> bool:
    data = event.get("Data")
    return (
        isinstance(data, dict)
        and event.get("EventType") == STATUS_CHANGED_EVENT
        and data.get("InvoiceStatus") == "Paid"
    )


async def process_paid_invoice(
    data: Dict[str, Any],
    gateway: PaymentGateway,
    reconciler: Reconciler,
    refetch: bool,
) -> None:
    invoice_id = data.get("InvoiceId")
    try:
        if refetch:
            record = await gateway.get_payment_status(str(invoice_id), key_type="InvoiceId")
        else:
            record = payment_record_from_payload(data)
        result = await reconciler.reconcile(record, trigger="webhook")
        logger.info(
            "webhook_reconciled",
            invoice_id=invoice_id,
            status=result.status,
            order_id=result.order.id if result.order else None,
            order_number=result.order.order_number if result.order else None,
            duplicate=result.duplicate,
        )
    except Exception:
        logger.exception("webhook_processing_failed", invoice_id=invoice_id)


async def _read_event(request: Request) -> Dict[str, Any]:
    try:
        event = await request.json()
    except ValueError:
        logger.warning("webhook_invalid_json")
        return {}
    return event if isinstance(event, dict) else {}


async def _handle(
    request: Request,
    background_tasks: BackgroundTasks,
    settings: Settings,
    gateway: PaymentGateway,
    reconciler: Reconciler,
) -> WebhookAck:
    event = await _read_event(request)
    data = event.get("Data")
    logger.info(
        "webhook_received",
        event_type=event.get("EventType"),
        invoice_id=data.get("InvoiceId") if isinstance(data, dict) else None,
        invoice_status=data.get("InvoiceStatus") if isinstance(data, dict) else None,
    )

    if should_process(event):
        background_tasks.add_task(
            process_paid_invoice,
            data,
            gateway,
            reconciler,
            settings.WEBHOOK_REFETCH_STATUS,
        )
    else:
        logger.info("webhook_ignored", event_type=event.get("EventType"))
    return WebhookAck()


@router.post("/webhook", response_model=WebhookAck)
async def myfatoorah_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    settings: Settings = Depends(get_app_settings),
    gateway: PaymentGateway = Depends(get_gateway),
    reconciler: Reconciler = Depends(get_reconciler),
):
    return await _handle(request, background_tasks, settings, gateway, reconciler)


@router.post("/myfatoorah-webhook", response_model=WebhookAck, include_in_schema=False)
async def myfatoorah_webhook_legacy(
    request: Request,
    background_tasks: BackgroundTasks,
    settings: Settings = Depends(get_app_settings),
    gateway: PaymentGateway = Depends(get_gateway),
    reconciler: Reconciler = Depends(get_reconciler),
):
    return await _handle(request, background_tasks, settings, gateway, reconciler)
