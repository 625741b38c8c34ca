# app/main.py

from contextlib import asynccontextmanager
from typing import Optional

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# ---------------------------------------------
# LOAD ENVIRONMENT VARIABLES
# ---------------------------------------------
load_dotenv()

from app.config import Settings, get_settings
from app.errors import InternalError, InvalidInput, RelayError
from app.logging_config import configure_logging, get_logger
from app.middleware import request_id_middleware
from app.psp.myfatoorah_adapter import MyFatoorahAdapter
from app.routers import draft_orders, health, payments, webhooks
from app.schemas_pkg import ErrorResponse
from app.services.order_guard import InMemoryOrderGuard, PassthroughOrderGuard
from app.services.reconciliation import Reconciler
from app.services.shopify_service import ShopifyService

logger = get_logger(__name__)


def _error_response(exc: RelayError) -> JSONResponse:
    content = ErrorResponse(error=exc.message, details=exc.details).model_dump()
    if exc.details is None:
        del content["details"]
    return JSONResponse(status_code=exc.status_code, content=content)


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the relay application.

    ``settings`` is read once here and handed to every client; ``transport``
    lets tests replace the outbound HTTP layer.
    """
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL, settings.ENVIRONMENT)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS, transport=transport) as http:
            shopify = ShopifyService(settings, http)
            guard = (
                InMemoryOrderGuard(settings.ORDER_DEDUP_CAPACITY)
                if settings.ORDER_DEDUP_ENABLED
                else PassthroughOrderGuard()
            )
            app.state.gateway = MyFatoorahAdapter(settings, http)
            app.state.shopify = shopify
            app.state.reconciler = Reconciler(shopify, guard)

            logger.info(
                "relay_started",
                port=settings.PORT,
                gateway_environment="TEST" if settings.is_test_gateway else "PRODUCTION",
                gateway_configured=settings.gateway_configured,
                backend_configured=settings.backend_configured,
                order_dedup=settings.ORDER_DEDUP_ENABLED,
            )
            yield

    # ---------------------------------------------
    # APP INIT
    # ---------------------------------------------
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # ---------------------------------------------
    # CORS
    # ---------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.middleware("http")(request_id_middleware)

    # ---------------------------------------------
    # ERROR HANDLERS
    # ---------------------------------------------
    @app.exception_handler(RelayError)
    async def relay_error_handler(request: Request, exc: RelayError):
        logger.warning(
            "request_rejected",
            error_type=type(exc).__name__,
            error=exc.message,
            status_code=exc.status_code,
        )
        return _error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        details = [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in exc.errors()]
        return _error_response(InvalidInput("Invalid request", details=details))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error("unhandled_error", exc_info=exc)
        return _error_response(InternalError("Internal server error"))

    # ---------------------------------------------
    # ROUTERS
    # ---------------------------------------------
    app.include_router(health.router)
    app.include_router(draft_orders.router, prefix="/api")
    app.include_router(payments.router, prefix="/api")
    app.include_router(webhooks.router, prefix="/api")

    return app


app = create_app()
