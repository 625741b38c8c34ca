from fastapi import APIRouter, Depends

from app.config import Settings
from app.deps import get_app_settings

router = APIRouter(tags=["Health"])


@router.get("/")
def root(settings: Settings = Depends(get_app_settings)):
    return {
        "status": "online",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": "TEST" if settings.is_test_gateway else "PRODUCTION",
        "endpoints": {
            "createPayment": "POST /api/create-payment",
            "createDraftOrder": "POST /api/create-draft-order",
            "verifyPayment": "GET /api/verify-payment",
            "webhook": "POST /api/webhook",
        },
    }
