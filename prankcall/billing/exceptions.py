"""
Exceptions raised by the payment gateway client.
"""


class PaymentGatewayError(Exception):
    """A call to Stripe failed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class PaymentNotConfiguredError(PaymentGatewayError):
    """Stripe credentials are missing."""


class WebhookSignatureError(Exception):
    """A webhook payload did not carry a valid Stripe signature."""
