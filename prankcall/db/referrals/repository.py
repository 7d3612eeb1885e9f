"""
Repository for referral invites and milestones.
"""

from datetime import UTC, datetime

from sqlalchemy import desc, func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from prankcall.db.referrals.model import ReferralInvite, ReferralMilestone
from prankcall.utils.logger import logger


class ReferralRepository:
    """Repository for the referral graph."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_invite(
        self,
        referrer_id: str,
        referred_user_id: str,
        email: str,
        name: str,
        credits_earned: int = 0,
    ) -> ReferralInvite:
        now = datetime.now(UTC)
        invite = ReferralInvite(
            referrer_id=referrer_id,
            referred_user_id=referred_user_id,
            email=email,
            name=name,
            invited_at=now,
            credits_earned=credits_earned,
            is_active=True,
            rewarded_at=now if credits_earned else None,
        )
        self.session.add(invite)
        await self.session.flush()
        await self.session.refresh(invite)

        logger.info(
            "[ReferralRepository] Created invite",
            referrer_id=referrer_id,
            referred_user_id=referred_user_id,
            credits_earned=credits_earned,
        )
        return invite

    async def get_invite_for_referred_user(
        self, referred_user_id: str
    ) -> ReferralInvite | None:
        stmt = select(ReferralInvite).where(
            ReferralInvite.referred_user_id == referred_user_id
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_invites(
        self, referrer_id: str, limit: int | None = None
    ) -> list[ReferralInvite]:
        stmt = (
            select(ReferralInvite)
            .where(ReferralInvite.referrer_id == referrer_id)
            .order_by(desc(ReferralInvite.invited_at))
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_pending_invites(self, referrer_id: str) -> list[ReferralInvite]:
        """Invites the referrer has not been paid for yet."""
        stmt = select(ReferralInvite).where(
            ReferralInvite.referrer_id == referrer_id,
            ReferralInvite.credits_earned == 0,
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_invites(self, referrer_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(ReferralInvite)
            .where(ReferralInvite.referrer_id == referrer_id)
        )
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def count_active_invites(self, referrer_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(ReferralInvite)
            .where(
                ReferralInvite.referrer_id == referrer_id,
                ReferralInvite.is_active.is_(True),
            )
        )
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def claim_invite_reward(self, invite_id: int) -> bool:
        """
        Mark an invite as paid out.

        Returns:
            bool: True only for the caller that moved credits_earned from 0 to 1
        """
        stmt = (
            update(ReferralInvite)
            .where(ReferralInvite.id == invite_id, ReferralInvite.credits_earned == 0)
            .values(credits_earned=1, rewarded_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def list_milestones(self, user_id: str) -> list[ReferralMilestone]:
        stmt = (
            select(ReferralMilestone)
            .where(ReferralMilestone.user_id == user_id)
            .order_by(ReferralMilestone.achieved_at)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def add_milestone(
        self, user_id: str, milestone_type: str, reward: str, credits: int
    ) -> bool:
        """
        Record a milestone unless the user already has it.

        Returns:
            bool: True if this call recorded it
        """
        stmt = (
            insert(ReferralMilestone)
            .values(
                user_id=user_id,
                milestone_type=milestone_type,
                reward=reward,
                credits=credits,
                achieved_at=datetime.now(UTC),
            )
            .on_conflict_do_nothing(index_elements=["user_id", "milestone_type"])
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1
