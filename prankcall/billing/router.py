"""
Billing router.

Credit packages, Stripe checkout, payment verification and the Stripe
webhook.
"""

from http import HTTPStatus

from fastapi import APIRouter, Depends, Header, HTTPException, Request

from prankcall.auth.dependencies import get_current_user
from prankcall.billing.constants import BillingErrorCode
from prankcall.billing.dependencies import get_billing_service
from prankcall.billing.exceptions import PaymentNotConfiguredError, WebhookSignatureError
from prankcall.billing.schemas import (
    BillingErrorResponse,
    CheckoutRequest,
    CheckoutResponse,
    PackageListResponse,
    VerifyPaymentResponse,
    WebhookResponse,
)
from prankcall.billing.service import BillingService
from prankcall.db.users.model import User
from prankcall.utils.logger import logger

router = APIRouter(prefix="/billing", tags=["Billing"])

_ERROR_STATUS = {
    BillingErrorCode.INVALID_PACKAGE: HTTPStatus.BAD_REQUEST,
    BillingErrorCode.NOT_CONFIGURED: HTTPStatus.INTERNAL_SERVER_ERROR,
    BillingErrorCode.NOT_FOUND: HTTPStatus.NOT_FOUND,
    BillingErrorCode.GATEWAY_ERROR: HTTPStatus.BAD_GATEWAY,
    BillingErrorCode.INVALID_SIGNATURE: HTTPStatus.BAD_REQUEST,
}


def _raise_for_error(result: BillingErrorResponse) -> None:
    raise HTTPException(
        status_code=_ERROR_STATUS.get(
            result.error_code, HTTPStatus.INTERNAL_SERVER_ERROR
        ),
        detail=result.error,
    )


@router.get("/packages", response_model=PackageListResponse)
async def list_packages(
    _current_user: User = Depends(get_current_user),
    billing_service: BillingService = Depends(get_billing_service),
) -> PackageListResponse:
    """List the credit packages on sale."""
    return PackageListResponse(packages=billing_service.list_packages())


@router.post("/create-checkout-session", response_model=CheckoutResponse)
async def create_checkout_session(
    request: CheckoutRequest,
    current_user: User = Depends(get_current_user),
    billing_service: BillingService = Depends(get_billing_service),
) -> CheckoutResponse:
    """
    Start a Stripe checkout for a credit package.

    Args:
        request: Package id and optional return URLs
        current_user: The buyer
        billing_service: The billing service from dependency injection

    Returns:
        CheckoutResponse: Session id and hosted checkout URL

    Raises:
        HTTPException: 400 for an unknown package, 5xx if Stripe fails
    """
    result = await billing_service.create_checkout_session(current_user, request)
    if isinstance(result, BillingErrorResponse):
        _raise_for_error(result)
    return result


@router.get("/verify-payment/{session_id}", response_model=VerifyPaymentResponse)
async def verify_payment(
    session_id: str,
    _current_user: User = Depends(get_current_user),
    billing_service: BillingService = Depends(get_billing_service),
) -> VerifyPaymentResponse:
    """
    Confirm a checkout session and credit the buyer if it is paid.

    Calling this again for the same session adds nothing.
    """
    result = await billing_service.verify_payment(session_id)
    if isinstance(result, BillingErrorResponse):
        _raise_for_error(result)
    return result


@router.post("/webhook", response_model=WebhookResponse)
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(None, alias="Stripe-Signature"),
    billing_service: BillingService = Depends(get_billing_service),
) -> WebhookResponse:
    """
    Receive Stripe events.

    The raw request body is needed for signature verification, so it is read
    directly instead of being parsed into a model.

    Raises:
        HTTPException: 400 if the signature is invalid, 500 if the webhook
            secret is not configured
    """
    payload = await request.body()
    try:
        event = billing_service.stripe_client.parse_webhook_event(
            payload, stripe_signature
        )
    except PaymentNotConfiguredError as e:
        logger.error("[Billing] Webhook received but not configured")
        raise HTTPException(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR, detail=e.message
        ) from e
    except WebhookSignatureError as e:
        logger.warning("[Billing] Rejected webhook", reason=str(e))
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(e)) from e

    await billing_service.handle_webhook(event)
    return WebhookResponse()
