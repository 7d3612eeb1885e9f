"""
Repository for user database operations.

Credit and statistics changes are single UPDATE statements so concurrent
request handlers and background monitors cannot overwrite each other.
"""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from prankcall.db.users.model import DEFAULT_SIGNUP_CREDITS, User, UserPlan
from prankcall.utils.logger import logger


class UserRepository:
    """Repository for managing users and their credit balance."""

    def __init__(self, session: AsyncSession):
        """
        Initialize the repository with a database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def create_user(
        self,
        name: str,
        email: str,
        password_hash: str,
        referral_code: str,
        credits: int = DEFAULT_SIGNUP_CREDITS,
        referred_by_id: str | None = None,
    ) -> User:
        """
        Create a new user.

        Args:
            name: Display name
            email: Lower-cased email address
            password_hash: Hashed password
            referral_code: The user's own referral code
            credits: Starting balance
            referred_by_id: ID of the referrer, if any

        Returns:
            User: Created user
        """
        user = User(
            name=name,
            email=email,
            password_hash=password_hash,
            credits=credits,
            plan=UserPlan.FREE.value,
            is_active=True,
            has_ever_purchased=False,
            total_calls=0,
            successful_calls=0,
            total_call_seconds=0,
            referral_code=referral_code,
            referred_by_id=referred_by_id,
            referral_credits_earned=0,
        )
        self.session.add(user)
        await self.session.flush()
        await self.session.refresh(user)

        logger.info(
            "[UserRepository] Created user",
            user_id=user.id,
            credits=credits,
            referred_by_id=referred_by_id,
        )
        return user

    async def get_user(self, user_id: str) -> User | None:
        stmt = select(User).where(User.id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> User | None:
        stmt = select(User).where(User.email == email.lower())
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_user_by_referral_code(self, referral_code: str) -> User | None:
        stmt = select(User).where(User.referral_code == referral_code.upper())
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def referral_code_exists(self, referral_code: str) -> bool:
        stmt = select(func.count()).select_from(User).where(
            User.referral_code == referral_code
        )
        result = await self.session.execute(stmt)
        return (result.scalar() or 0) > 0

    async def _update_returning_credits(self, stmt) -> int | None:
        result = await self.session.execute(stmt.returning(User.credits))
        return result.scalar_one_or_none()

    async def deduct_credits(self, user_id: str, amount: int) -> int | None:
        """
        Take credits from a user if the balance allows it.

        Args:
            user_id: User to charge
            amount: Credits to take

        Returns:
            int | None: New balance, or None if the balance was too low or the
                user does not exist
        """
        stmt = (
            update(User)
            .where(User.id == user_id, User.credits >= amount)
            .values(credits=User.credits - amount, updated_at=datetime.now(UTC))
        )
        balance = await self._update_returning_credits(stmt)
        if balance is None:
            logger.warning(
                "[UserRepository] Credit deduction refused",
                user_id=user_id,
                amount=amount,
            )
        else:
            logger.info(
                "[UserRepository] Deducted credits",
                user_id=user_id,
                amount=amount,
                balance=balance,
            )
        return balance

    async def add_credits(self, user_id: str, amount: int) -> int | None:
        """
        Add credits to a user.

        Returns:
            int | None: New balance, or None if the user does not exist
        """
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(credits=User.credits + amount, updated_at=datetime.now(UTC))
        )
        balance = await self._update_returning_credits(stmt)
        logger.info(
            "[UserRepository] Added credits",
            user_id=user_id,
            amount=amount,
            balance=balance,
        )
        return balance

    async def add_referral_credits(self, user_id: str, amount: int) -> int | None:
        """Add referral reward credits and count them as referral earnings."""
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(
                credits=User.credits + amount,
                referral_credits_earned=User.referral_credits_earned + amount,
                updated_at=datetime.now(UTC),
            )
        )
        return await self._update_returning_credits(stmt)

    async def increment_stats(
        self,
        user_id: str,
        total_calls: int = 0,
        successful_calls: int = 0,
        total_call_seconds: int = 0,
    ) -> bool:
        """
        Adjust lifetime statistics by the given deltas.

        Counters never drop below zero.

        Returns:
            bool: True if the user exists
        """
        values: dict[str, Any] = {"updated_at": datetime.now(UTC)}
        if total_calls:
            values["total_calls"] = func.greatest(User.total_calls + total_calls, 0)
        if successful_calls:
            values["successful_calls"] = func.greatest(
                User.successful_calls + successful_calls, 0
            )
        if total_call_seconds:
            values["total_call_seconds"] = func.greatest(
                User.total_call_seconds + total_call_seconds, 0
            )

        stmt = update(User).where(User.id == user_id).values(**values)
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def mark_purchased(self, user_id: str) -> bool:
        """
        Flag the user as a paying customer.

        Returns:
            bool: True only for the call that flipped the flag, i.e. the
                user's first purchase
        """
        stmt = (
            update(User)
            .where(User.id == user_id, User.has_ever_purchased.is_(False))
            .values(has_ever_purchased=True, updated_at=datetime.now(UTC))
        )
        result = await self.session.execute(stmt)
        first_purchase = result.rowcount == 1
        if first_purchase:
            logger.info("[UserRepository] First purchase recorded", user_id=user_id)
        return first_purchase

    async def set_referrer(self, user_id: str, referrer_id: str) -> bool:
        """
        Link a user to the account that referred them.

        Returns:
            bool: False if the user already had a referrer
        """
        stmt = (
            update(User)
            .where(User.id == user_id, User.referred_by_id.is_(None))
            .values(referred_by_id=referrer_id, updated_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def update_last_login(self, user_id: str) -> None:
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(last_login_at=datetime.now(UTC))
        )
        await self.session.execute(stmt)

    async def get_system_stats(self) -> dict[str, int]:
        """Aggregate user counts for the admin dashboard."""
        stmt = select(
            func.count(User.id),
            func.coalesce(func.sum(User.credits), 0),
            func.count(User.id).filter(User.has_ever_purchased.is_(True)),
            func.count(User.id).filter(User.referred_by_id.is_not(None)),
        )
        result = await self.session.execute(stmt)
        total, credits, purchasers, referred = result.one()
        return {
            "total_users": total or 0,
            "outstanding_credits": int(credits or 0),
            "paying_users": purchasers or 0,
            "referred_users": referred or 0,
        }
