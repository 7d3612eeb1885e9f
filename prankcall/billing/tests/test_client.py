"""Tests for the Stripe checkout client."""

import hashlib
import hmac
import json
import time
from types import SimpleNamespace

import pytest
import stripe

from prankcall.billing.client import CheckoutSession, StripeClient
from prankcall.billing.config import StripeSettings
from prankcall.billing.constants import get_package
from prankcall.billing.exceptions import (
    PaymentGatewayError,
    PaymentNotConfiguredError,
    WebhookSignatureError,
)

WEBHOOK_SECRET = "whsec_test_secret"


def _sign(payload: str, timestamp: int | None = None, secret: str = WEBHOOK_SECRET) -> str:
    timestamp = int(time.time()) if timestamp is None else timestamp
    signature = hmac.new(
        secret.encode("utf-8"),
        f"{timestamp}.{payload}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return f"t={timestamp},v1={signature}"


@pytest.fixture
def client():
    return StripeClient(
        StripeSettings(
            secret_key="sk_test_123",
            webhook_secret=WEBHOOK_SECRET,
            webhook_tolerance_seconds=300,
        )
    )


@pytest.fixture
def event_payload():
    return json.dumps(
        {
            "id": "evt_1",
            "type": "checkout.session.completed",
            "data": {
                "object": {
                    "id": "cs_test_1",
                    "payment_status": "paid",
                    "metadata": {"user_id": "user-1", "credits": "10"},
                }
            },
        }
    )


class TestParseWebhookEvent:
    def test_valid_signature(self, client, event_payload):
        event = client.parse_webhook_event(
            event_payload.encode("utf-8"), _sign(event_payload)
        )

        assert event["type"] == "checkout.session.completed"
        assert event["data"]["object"]["id"] == "cs_test_1"

    def test_wrong_secret(self, client, event_payload):
        header = _sign(event_payload, secret="whsec_other")

        with pytest.raises(WebhookSignatureError):
            client.parse_webhook_event(event_payload.encode("utf-8"), header)

    def test_tampered_payload(self, client, event_payload):
        header = _sign(event_payload)
        tampered = event_payload.replace('"10"', '"1000"')

        with pytest.raises(WebhookSignatureError):
            client.parse_webhook_event(tampered.encode("utf-8"), header)

    def test_stale_timestamp(self, client, event_payload):
        header = _sign(event_payload, timestamp=int(time.time()) - 3600)

        with pytest.raises(WebhookSignatureError):
            client.parse_webhook_event(event_payload.encode("utf-8"), header)

    def test_missing_header(self, client, event_payload):
        with pytest.raises(WebhookSignatureError):
            client.parse_webhook_event(event_payload.encode("utf-8"), None)

    def test_missing_secret(self, event_payload):
        unconfigured = StripeClient(StripeSettings(secret_key="sk_test_123"))

        with pytest.raises(PaymentNotConfiguredError):
            unconfigured.parse_webhook_event(
                event_payload.encode("utf-8"), _sign(event_payload)
            )


class TestCheckoutSessions:
    @pytest.mark.asyncio
    async def test_create_checkout_session(self, client, monkeypatch):
        captured = {}

        async def fake_create(**kwargs):
            captured.update(kwargs)
            return SimpleNamespace(
                id="cs_test_1",
                url="https://checkout.stripe.com/c/pay/cs_test_1",
                payment_status="unpaid",
                metadata=kwargs["metadata"],
            )

        monkeypatch.setattr(stripe.checkout.Session, "create_async", fake_create)

        session = await client.create_checkout_session(
            package=get_package("medium"),
            user_id="user-1",
            success_url="https://prankcall.nl/ok",
            cancel_url="https://prankcall.nl/cancel",
        )

        assert session.id == "cs_test_1"
        assert session.credits == 10
        assert session.package_id == "medium"
        assert captured["api_key"] == "sk_test_123"
        assert captured["mode"] == "payment"
        line_item = captured["line_items"][0]
        assert line_item["price_data"]["unit_amount"] == 1000
        assert line_item["price_data"]["currency"] == "eur"
        assert line_item["price_data"]["product_data"]["name"].endswith("PrankCall.nl")

    @pytest.mark.asyncio
    async def test_create_without_secret_key(self):
        unconfigured = StripeClient(StripeSettings())

        with pytest.raises(PaymentNotConfiguredError):
            await unconfigured.create_checkout_session(
                package=get_package("small"),
                user_id="user-1",
                success_url="https://prankcall.nl/ok",
                cancel_url="https://prankcall.nl/cancel",
            )

    @pytest.mark.asyncio
    async def test_unknown_session_is_not_found(self, client, monkeypatch):
        async def fake_retrieve(session_id, **kwargs):
            raise stripe.InvalidRequestError("No such checkout.session", "id")

        monkeypatch.setattr(stripe.checkout.Session, "retrieve_async", fake_retrieve)

        with pytest.raises(PaymentGatewayError) as exc_info:
            await client.retrieve_checkout_session("cs_missing")

        assert exc_info.value.status_code == 404


def test_session_credits_tolerate_bad_metadata():
    assert CheckoutSession(id="cs_1", metadata={"credits": "abc"}).credits == 0
    assert CheckoutSession(id="cs_1", metadata={"credits": "-5"}).credits == 0
    assert CheckoutSession(id="cs_1").credits == 0
