"""
Referral router.

Endpoints for a user's referral stats, linking a code to an existing account,
collecting pending referral rewards and validating codes on the signup page.
"""

from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException

from prankcall.auth.dependencies import get_current_user
from prankcall.db.users.model import User
from prankcall.referrals.constants import ReferralErrorCode
from prankcall.referrals.dependencies import get_referral_service
from prankcall.referrals.schemas import (
    ProcessSignupRequest,
    ReferralCodeResponse,
    ReferralErrorResponse,
    ReferralRewardResponse,
    ReferralStatsResponse,
)
from prankcall.referrals.service import ReferralService

router = APIRouter(prefix="/referrals", tags=["Referrals"])

_ERROR_STATUS = {
    ReferralErrorCode.INVALID_CODE: HTTPStatus.NOT_FOUND,
    ReferralErrorCode.USER_NOT_FOUND: HTTPStatus.NOT_FOUND,
    ReferralErrorCode.ALREADY_REFERRED: HTTPStatus.BAD_REQUEST,
    ReferralErrorCode.SELF_REFERRAL: HTTPStatus.BAD_REQUEST,
    ReferralErrorCode.NOT_PURCHASED: HTTPStatus.BAD_REQUEST,
}


def _raise_for_error(result: ReferralErrorResponse) -> None:
    raise HTTPException(
        status_code=_ERROR_STATUS.get(result.error_code, HTTPStatus.BAD_REQUEST),
        detail=result.error,
    )


@router.get("/stats", response_model=ReferralStatsResponse)
async def get_referral_stats(
    current_user: User = Depends(get_current_user),
    referral_service: ReferralService = Depends(get_referral_service),
) -> ReferralStatsResponse:
    """
    Get the current user's referral code, invites and milestone progress.
    """
    return await referral_service.get_stats(current_user)


@router.post("/process-signup", response_model=ReferralRewardResponse)
async def process_signup(
    request: ProcessSignupRequest,
    current_user: User = Depends(get_current_user),
    referral_service: ReferralService = Depends(get_referral_service),
) -> ReferralRewardResponse:
    """
    Link a referral code to the current account.

    Args:
        request: The referral code
        current_user: The authenticated user
        referral_service: The referral service from dependency injection

    Returns:
        ReferralRewardResponse: Credits paid to the referrer right away

    Raises:
        HTTPException: If the code is unknown, the user's own, or the user
            already has a referrer
    """
    result = await referral_service.process_signup(current_user, request.referral_code)
    if isinstance(result, ReferralErrorResponse):
        _raise_for_error(result)
    return result


@router.post("/process-reward", response_model=ReferralRewardResponse)
async def process_reward(
    current_user: User = Depends(get_current_user),
    referral_service: ReferralService = Depends(get_referral_service),
) -> ReferralRewardResponse:
    """
    Pay out the current user's pending invites.

    Raises:
        HTTPException: 400 if the user never bought credits
    """
    result = await referral_service.process_reward(current_user)
    if isinstance(result, ReferralErrorResponse):
        _raise_for_error(result)
    return result


@router.get("/validate/{code}", response_model=ReferralCodeResponse)
async def validate_referral_code(
    code: str,
    referral_service: ReferralService = Depends(get_referral_service),
) -> ReferralCodeResponse:
    result = await referral_service.validate_code(code)
    if isinstance(result, ReferralErrorResponse):
        _raise_for_error(result)
    return result
