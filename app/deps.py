from fastapi import Request

from .config import Settings
from .psp.adapter import PaymentGateway
from .services.reconciliation import Reconciler
from .services.shopify_service import ShopifyService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_gateway(request: Request) -> PaymentGateway:
    return request.app.state.gateway


def get_shopify(request: Request) -> ShopifyService:
    return request.app.state.shopify


def get_reconciler(request: Request) -> Reconciler:
    """
    Single Reconciler shared by the verification endpoint and the webhook so
    both go through the same order guard.
    """
    return request.app.state.reconciler
