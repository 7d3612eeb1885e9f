"""
Stripe checkout client.

Requests go through the stripe SDK's async methods on the event loop.
Sessions are converted into plain dataclasses so the rest of the code never
touches SDK objects.
"""

import json
from dataclasses import dataclass, field
from typing import Any

import stripe

from prankcall.billing.config import StripeSettings, get_stripe_settings
from prankcall.billing.constants import CreditPackage
from prankcall.billing.exceptions import (
    PaymentGatewayError,
    PaymentNotConfiguredError,
    WebhookSignatureError,
)
from prankcall.utils.logger import logger


@dataclass
class CheckoutSession:
    id: str
    url: str | None = None
    payment_status: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)

    @property
    def user_id(self) -> str | None:
        return self.metadata.get("user_id")

    @property
    def package_id(self) -> str | None:
        return self.metadata.get("package_id")

    @property
    def credits(self) -> int:
        try:
            return max(int(self.metadata.get("credits", "0")), 0)
        except ValueError:
            return 0

    @classmethod
    def from_stripe(cls, session: Any) -> "CheckoutSession":
        metadata = getattr(session, "metadata", None) or {}
        return cls(
            id=session.id,
            url=getattr(session, "url", None),
            payment_status=getattr(session, "payment_status", None),
            metadata={key: str(metadata[key]) for key in metadata.keys()},
        )

    @classmethod
    def from_event_object(cls, data: dict[str, Any]) -> "CheckoutSession":
        metadata = data.get("metadata") or {}
        return cls(
            id=data.get("id", ""),
            url=data.get("url"),
            payment_status=data.get("payment_status"),
            metadata={key: str(value) for key, value in metadata.items()},
        )


class StripeClient:
    """Thin async wrapper over the Stripe checkout API."""

    def __init__(self, settings: StripeSettings | None = None):
        self.settings = settings or get_stripe_settings()

    def _require_secret_key(self) -> str:
        if not self.settings.secret_key:
            raise PaymentNotConfiguredError("Missing Stripe secret key")
        return self.settings.secret_key

    async def create_checkout_session(
        self,
        package: CreditPackage,
        user_id: str,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        """
        Create a hosted checkout page for a credit package.

        Raises:
            PaymentNotConfiguredError: If no secret key is configured
            PaymentGatewayError: If Stripe rejects the request
        """
        api_key = self._require_secret_key()
        try:
            session = await stripe.checkout.Session.create_async(
                api_key=api_key,
                mode="payment",
                success_url=success_url,
                cancel_url=cancel_url,
                line_items=[
                    {
                        "price_data": {
                            "currency": self.settings.currency,
                            "unit_amount": package.price_cents,
                            "product_data": {
                                "name": f"{package.name} – {self.settings.product_suffix}"
                            },
                        },
                        "quantity": 1,
                    }
                ],
                metadata={
                    "user_id": user_id,
                    "credits": str(package.credits),
                    "package_id": package.id,
                },
            )
        except stripe.StripeError as e:
            logger.error(
                "[Billing] Checkout session creation failed",
                package_id=package.id,
                user_id=user_id,
                error=str(e),
            )
            raise PaymentGatewayError(
                f"Stripe API error: {e.user_message or e}",
                status_code=e.http_status,
            ) from e

        return CheckoutSession.from_stripe(session)

    async def retrieve_checkout_session(self, session_id: str) -> CheckoutSession:
        """
        Fetch a checkout session.

        Raises:
            PaymentNotConfiguredError: If no secret key is configured
            PaymentGatewayError: If the session is unknown (404) or Stripe fails
        """
        api_key = self._require_secret_key()
        try:
            session = await stripe.checkout.Session.retrieve_async(
                session_id, api_key=api_key
            )
        except stripe.StripeError as e:
            logger.warning(
                "[Billing] Could not retrieve checkout session",
                session_id=session_id,
                error=str(e),
            )
            raise PaymentGatewayError(
                "Checkout session not found", status_code=e.http_status or 404
            ) from e

        return CheckoutSession.from_stripe(session)

    def parse_webhook_event(self, payload: bytes, signature_header: str | None) -> dict[str, Any]:
        """
        Verify a webhook signature and decode the event.

        The ``Stripe-Signature`` header carries ``t=<timestamp>,v1=<hmac>``;
        the HMAC-SHA256 over ``{t}.{payload}`` must match and the timestamp
        must fall within the configured tolerance.

        Raises:
            PaymentNotConfiguredError: If no webhook secret is configured
            WebhookSignatureError: If the signature or payload is invalid
        """
        if not self.settings.webhook_secret:
            raise PaymentNotConfiguredError("Missing Stripe webhook secret")
        if not signature_header:
            raise WebhookSignatureError("Missing Stripe-Signature header")

        try:
            body = payload.decode("utf-8")
            stripe.WebhookSignature.verify_header(
                body,
                signature_header,
                self.settings.webhook_secret,
                tolerance=self.settings.webhook_tolerance_seconds,
            )
        except (UnicodeDecodeError, stripe.SignatureVerificationError) as e:
            raise WebhookSignatureError("Signature verification failed") from e

        try:
            event = json.loads(body)
        except json.JSONDecodeError as e:
            raise WebhookSignatureError("Webhook payload is not valid JSON") from e
        if not isinstance(event, dict):
            raise WebhookSignatureError("Webhook payload is not an event object")
        return event
