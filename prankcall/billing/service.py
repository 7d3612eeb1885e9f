"""
Billing service.

Sells credit packages through Stripe checkout. A paid checkout session is
settled by whichever arrives first of the verify call (the browser returning
from Stripe) and the webhook; the processed-session ledger guarantees the
credits are granted exactly once.
"""

from typing import Any

from prankcall.billing.client import CheckoutSession, StripeClient
from prankcall.billing.config import get_stripe_settings
from prankcall.billing.constants import (
    CHECKOUT_COMPLETED_EVENT,
    CREDIT_PACKAGES,
    PAID_STATUS,
    BillingErrorCode,
    PaymentSource,
    get_package,
)
from prankcall.billing.exceptions import PaymentGatewayError, PaymentNotConfiguredError
from prankcall.billing.schemas import (
    BillingErrorResponse,
    CheckoutRequest,
    CheckoutResponse,
    CreditPackageResponse,
    VerifyPaymentResponse,
)
from prankcall.config import get_client_base_url
from prankcall.db.payments.repository import PaymentRepository
from prankcall.db.users.model import User
from prankcall.db.users.repository import UserRepository
from prankcall.referrals.service import ReferralService
from prankcall.utils.logger import logger


class BillingService:
    """Credit purchases."""

    def __init__(
        self,
        stripe_client: StripeClient,
        user_repository: UserRepository,
        payment_repository: PaymentRepository,
        referral_service: ReferralService,
    ):
        self.stripe_client = stripe_client
        self.user_repository = user_repository
        self.payment_repository = payment_repository
        self.referral_service = referral_service

    def list_packages(self) -> list[CreditPackageResponse]:
        currency = get_stripe_settings().currency
        return [CreditPackageResponse.from_package(p, currency) for p in CREDIT_PACKAGES]

    async def create_checkout_session(
        self, user: User, request: CheckoutRequest
    ) -> CheckoutResponse | BillingErrorResponse:
        """
        Start a Stripe checkout for one of the credit packages.

        Args:
            user: The buyer
            request: Package and optional return URLs

        Returns:
            CheckoutResponse | BillingErrorResponse: Checkout URL, or the error
        """
        package = get_package(request.package_id)
        if package is None:
            return BillingErrorResponse(
                error="Invalid package",
                error_code=BillingErrorCode.INVALID_PACKAGE,
            )

        client_base_url = get_client_base_url().rstrip("/")
        success_url = request.success_url or (
            f"{client_base_url}/dashboard?payment=success"
            "&session_id={CHECKOUT_SESSION_ID}"
        )
        cancel_url = request.cancel_url or (
            f"{client_base_url}/pricing?payment=cancelled"
        )

        try:
            session = await self.stripe_client.create_checkout_session(
                package=package,
                user_id=user.id,
                success_url=success_url,
                cancel_url=cancel_url,
            )
        except PaymentNotConfiguredError as e:
            return BillingErrorResponse(
                error=e.message, error_code=BillingErrorCode.NOT_CONFIGURED
            )
        except PaymentGatewayError as e:
            return BillingErrorResponse(
                error=e.message, error_code=BillingErrorCode.GATEWAY_ERROR
            )

        logger.info(
            "[Billing] Checkout session created",
            session_id=session.id,
            user_id=user.id,
            package_id=package.id,
        )
        return CheckoutResponse(session_id=session.id, url=session.url)

    async def verify_payment(
        self, session_id: str
    ) -> VerifyPaymentResponse | BillingErrorResponse:
        """
        Check a checkout session and credit the buyer if it is paid.

        Returns:
            VerifyPaymentResponse | BillingErrorResponse: Outcome of the check
        """
        try:
            session = await self.stripe_client.retrieve_checkout_session(session_id)
        except PaymentNotConfiguredError as e:
            return BillingErrorResponse(
                error=e.message, error_code=BillingErrorCode.NOT_CONFIGURED
            )
        except PaymentGatewayError as e:
            return BillingErrorResponse(
                error=e.message, error_code=BillingErrorCode.NOT_FOUND
            )

        if session.payment_status != PAID_STATUS:
            return VerifyPaymentResponse(
                verified=False,
                message=f"Payment status: {session.payment_status}",
            )

        credits_added, balance = await self.settle_checkout_session(
            session, PaymentSource.VERIFY
        )
        if credits_added:
            message = f"Added {credits_added} credits"
        else:
            message = "Already processed"
        return VerifyPaymentResponse(
            verified=True,
            credits_added=credits_added,
            message=message,
            credits=balance,
        )

    async def handle_webhook(self, event: dict[str, Any]) -> bool:
        """
        Process a verified webhook event.

        Returns:
            bool: True if the event credited a user
        """
        event_type = event.get("type")
        if event_type != CHECKOUT_COMPLETED_EVENT:
            logger.debug("[Billing] Ignoring webhook event", event_type=event_type)
            return False

        data = (event.get("data") or {}).get("object") or {}
        session = CheckoutSession.from_event_object(data)
        if not session.id or session.payment_status != PAID_STATUS:
            logger.info(
                "[Billing] Checkout completed without payment",
                session_id=session.id,
                payment_status=session.payment_status,
            )
            return False

        credits_added, _ = await self.settle_checkout_session(
            session, PaymentSource.WEBHOOK
        )
        return credits_added > 0

    async def settle_checkout_session(
        self, session: CheckoutSession, source: PaymentSource
    ) -> tuple[int, int | None]:
        """
        Credit the buyer of a paid checkout session, once.

        Args:
            session: A paid checkout session
            source: Code path doing the settling

        Returns:
            tuple[int, int | None]: Credits added by this call and the buyer's
                balance (None if the buyer is unknown)
        """
        user_id = session.user_id
        user = await self.user_repository.get_user(user_id) if user_id else None
        if user is None:
            logger.error(
                "[Billing] Paid session has no known user",
                session_id=session.id,
                user_id=user_id,
                source=source.value,
            )
            return 0, None

        credits = session.credits
        claimed = await self.payment_repository.claim_session(
            session_id=session.id,
            user_id=user.id,
            credits=credits,
            package_id=session.package_id,
            source=source.value,
        )
        if not claimed or credits <= 0:
            refreshed = await self.user_repository.get_user(user.id)
            return 0, refreshed.credits if refreshed else user.credits

        balance = await self.user_repository.add_credits(user.id, credits)
        logger.info(
            "[Billing] Credited purchase",
            session_id=session.id,
            user_id=user.id,
            credits=credits,
            balance=balance,
            source=source.value,
        )

        if await self.user_repository.mark_purchased(user.id):
            await self._reward_referrals(user.id)

        return credits, balance

    async def _reward_referrals(self, user_id: str) -> None:
        try:
            async with self.user_repository.session.begin_nested():
                awarded = await self.referral_service.handle_first_purchase(user_id)
        except Exception as e:
            logger.error(
                "[Billing] Referral rewards failed",
                user_id=user_id,
                error=str(e),
            )
            return
        if awarded:
            logger.info(
                "[Billing] Referral rewards granted",
                user_id=user_id,
                credits_awarded=awarded,
            )
