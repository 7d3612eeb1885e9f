"""
FastAPI dependencies for the referral program.
"""

from fastapi import Depends

from prankcall.db.dependencies import get_referral_repository, get_user_repository
from prankcall.db.referrals.repository import ReferralRepository
from prankcall.db.users.repository import UserRepository
from prankcall.referrals.service import ReferralService


def get_referral_service(
    user_repository: UserRepository = Depends(get_user_repository),
    referral_repository: ReferralRepository = Depends(get_referral_repository),
) -> ReferralService:
    return ReferralService(
        user_repository=user_repository,
        referral_repository=referral_repository,
    )
