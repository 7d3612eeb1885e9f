"""
FastAPI dependencies for billing.
"""

from fastapi import Depends

from prankcall.billing.client import StripeClient
from prankcall.billing.service import BillingService
from prankcall.db.dependencies import get_payment_repository, get_user_repository
from prankcall.db.payments.repository import PaymentRepository
from prankcall.db.users.repository import UserRepository
from prankcall.referrals.dependencies import get_referral_service
from prankcall.referrals.service import ReferralService


def get_stripe_client() -> StripeClient:
    return StripeClient()


def get_billing_service(
    stripe_client: StripeClient = Depends(get_stripe_client),
    user_repository: UserRepository = Depends(get_user_repository),
    payment_repository: PaymentRepository = Depends(get_payment_repository),
    referral_service: ReferralService = Depends(get_referral_service),
) -> BillingService:
    """
    FastAPI dependency for getting the billing service.

    Returns:
        BillingService: The service instance
    """
    return BillingService(
        stripe_client=stripe_client,
        user_repository=user_repository,
        payment_repository=payment_repository,
        referral_service=referral_service,
    )
