"""
Draft orders: POST /api/create-draft-order
Opens a Shopify draft order when the customer starts the express checkout.
"""
from fastapi import APIRouter, Depends

from app.deps import get_shopify
from app.logging_config import get_logger
from app.schemas_pkg import DraftOrderCreateRequest, DraftOrderCreateResponse, ErrorResponse
from app.services.shopify_service import ShopifyService

logger = get_logger(__name__)
router = APIRouter(
    tags=["Draft Orders"],
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)


@router.post("/create-draft-order", response_model=DraftOrderCreateResponse)
async def create_draft_order(body: DraftOrderCreateRequest, shopify: ShopifyService = Depends(get_shopify)):
    logger.info("draft_order_requested", variant_id=body.variant_id, quantity=body.quantity)
    draft = await shopify.create_draft_order(
        variant_id=body.variant_id,
        quantity=body.quantity,
        customer_email=body.customer_email,
        customer_phone=body.customer_phone,
    )
    return DraftOrderCreateResponse(draft_order_id=draft.id, draft_order_name=draft.name)
