"""
Configuration settings for the MyFatoorah relay
Handles environment variables and application settings
"""
from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings


LIVE_GATEWAY_BASE = "https://api.myfatoorah.com"


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "MyFatoorah Payment Proxy"
    APP_VERSION: str = "8.0-DRAFT-ORDERS-TRACKING"
    ENVIRONMENT: str = "production"
    PORT: int = 8080
    LOG_LEVEL: str = "INFO"

    # MyFatoorah
    MYFATOORAH_API_TOKEN: str = ""
    MYFATOORAH_API_BASE: str = LIVE_GATEWAY_BASE
    MYFATOORAH_DISPLAY_CURRENCY: str = "AED"
    MYFATOORAH_LANGUAGE: str = "ar"

    # Shopify
    SHOPIFY_ACCESS_TOKEN: str = ""
    SHOPIFY_STORE: str = "techgamingworlds.myshopify.com"
    SHOPIFY_API_VERSION: str = "2024-01"

    # Checkout
    VERIFICATION_PAGE_URL: Optional[str] = None
    DEFAULT_GUEST_EMAIL: str = "guest@techgamingworlds.com"

    # Outbound HTTP
    HTTP_TIMEOUT_SECONDS: float = 15.0

    # Reconciliation
    ORDER_DEDUP_ENABLED: bool = True
    ORDER_DEDUP_CAPACITY: int = 1024
    WEBHOOK_REFETCH_STATUS: bool = False

    @field_validator("MYFATOORAH_API_BASE")
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")

    @property
    def verification_page_url(self) -> str:
        return self.VERIFICATION_PAGE_URL or f"https://{self.SHOPIFY_STORE}/pages/payment-verification"

    @property
    def gateway_configured(self) -> bool:
        return bool(self.MYFATOORAH_API_TOKEN)

    @property
    def backend_configured(self) -> bool:
        return bool(self.SHOPIFY_ACCESS_TOKEN)

    @property
    def is_test_gateway(self) -> bool:
        return "apitest" in self.MYFATOORAH_API_BASE

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields from .env file


@lru_cache
def get_settings() -> Settings:
    """Build the settings object once per process."""
    return Settings()
