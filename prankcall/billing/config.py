"""
Configuration for Stripe checkout.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from prankcall.utils.logger import logger


class StripeSettings(BaseSettings):
    """Stripe configuration."""

    model_config = SettingsConfigDict(
        case_sensitive=False, extra="ignore", env_prefix="STRIPE_"
    )

    secret_key: str | None = Field(default=None, description="Stripe secret API key")
    webhook_secret: str | None = Field(
        default=None, description="Signing secret of the webhook endpoint"
    )
    webhook_tolerance_seconds: int = Field(
        default=300, gt=0, description="Maximum age of a signed webhook"
    )
    currency: str = Field(default="eur")
    product_suffix: str = Field(
        default="PrankCall.nl", description="Appended to checkout line item names"
    )

    @property
    def mode(self) -> str:
        key = self.secret_key or ""
        if key.startswith("sk_test"):
            return "test"
        if key.startswith("sk_live"):
            return "live"
        return "unknown"


_stripe_settings: StripeSettings | None = None


def get_stripe_settings() -> StripeSettings:
    """
    Get the global Stripe settings instance.

    Returns:
        StripeSettings: The global settings instance
    """
    global _stripe_settings
    if _stripe_settings is None:
        _stripe_settings = StripeSettings()
        logger.info("StripeSettings loaded", mode=_stripe_settings.mode)
    return _stripe_settings


def set_stripe_settings(settings: StripeSettings | None) -> None:
    global _stripe_settings
    _stripe_settings = settings
