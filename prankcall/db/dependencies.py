"""
FastAPI dependencies for database repositories.

All repositories resolved within one request share the request's session,
so their writes commit or roll back together.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from prankcall.db.calls.repository import CallRepository
from prankcall.db.database import get_db
from prankcall.db.payments.repository import PaymentRepository
from prankcall.db.referrals.repository import ReferralRepository
from prankcall.db.scenarios.repository import ScenarioRepository
from prankcall.db.users.repository import UserRepository


def get_call_repository(
    session: AsyncSession = Depends(get_db),
) -> CallRepository:
    """
    FastAPI dependency for getting the call repository.

    Args:
        session: Database session from get_db dependency

    Returns:
        CallRepository: Repository instance with injected session
    """
    return CallRepository(session)


def get_user_repository(
    session: AsyncSession = Depends(get_db),
) -> UserRepository:
    return UserRepository(session)


def get_scenario_repository(
    session: AsyncSession = Depends(get_db),
) -> ScenarioRepository:
    return ScenarioRepository(session)


def get_referral_repository(
    session: AsyncSession = Depends(get_db),
) -> ReferralRepository:
    return ReferralRepository(session)


def get_payment_repository(
    session: AsyncSession = Depends(get_db),
) -> PaymentRepository:
    return PaymentRepository(session)
