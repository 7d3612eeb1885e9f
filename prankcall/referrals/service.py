"""
Referral program service.

Links new users to their referrer, pays referrers once per referred user and
awards invite-count milestones. Every payout goes through an atomic claim in
the repository so concurrent purchases cannot pay twice.
"""

import secrets

from prankcall.config import get_public_base_url
from prankcall.db.referrals.model import ReferralInvite
from prankcall.db.referrals.repository import ReferralRepository
from prankcall.db.users.model import User
from prankcall.db.users.repository import UserRepository
from prankcall.referrals.constants import (
    MAX_REFERRAL_CODE_ATTEMPTS,
    MILESTONES,
    RECENT_INVITES_LIMIT,
    REFERRAL_CODE_ALPHABET,
    REFERRAL_CODE_LENGTH,
    REFERRER_REWARD_CREDITS,
    Milestone,
    ReferralErrorCode,
)
from prankcall.referrals.schemas import (
    NextMilestone,
    ReferralCodeResponse,
    ReferralErrorResponse,
    ReferralRewardResponse,
    ReferralStatsResponse,
)
from prankcall.utils.logger import logger


def build_share_url(referral_code: str | None) -> str | None:
    if not referral_code:
        return None
    return f"{get_public_base_url()}/ref/{referral_code}"


def next_milestone(total_invites: int, achieved: set[str]) -> NextMilestone | None:
    """The lowest milestone not reached yet, with the invites still needed."""
    for milestone in MILESTONES:
        if milestone.type in achieved or total_invites >= milestone.threshold:
            continue
        return NextMilestone(
            type=milestone.type,
            threshold=milestone.threshold,
            remaining=milestone.threshold - total_invites,
            credits=milestone.credits,
        )
    return None


class ReferralService:
    """Service for the referral graph and its rewards."""

    def __init__(
        self,
        user_repository: UserRepository,
        referral_repository: ReferralRepository,
    ):
        self.user_repository = user_repository
        self.referral_repository = referral_repository

    async def generate_referral_code(self) -> str:
        """
        Generate a referral code no other user holds.

        Raises:
            RuntimeError: If no free code was found
        """
        for _ in range(MAX_REFERRAL_CODE_ATTEMPTS):
            code = "".join(
                secrets.choice(REFERRAL_CODE_ALPHABET)
                for _ in range(REFERRAL_CODE_LENGTH)
            )
            if not await self.user_repository.referral_code_exists(code):
                return code
        raise RuntimeError("Could not generate a unique referral code")

    async def find_referrer(self, referral_code: str | None) -> User | None:
        if not referral_code or not referral_code.strip():
            return None
        return await self.user_repository.get_user_by_referral_code(
            referral_code.strip()
        )

    async def validate_code(
        self, referral_code: str
    ) -> ReferralCodeResponse | ReferralErrorResponse:
        referrer = await self.find_referrer(referral_code)
        if referrer is None:
            return ReferralErrorResponse(
                error="Invalid referral code",
                error_code=ReferralErrorCode.INVALID_CODE,
            )
        return ReferralCodeResponse(valid=True, referrer_name=referrer.name)

    async def register_referral(self, referrer: User, new_user: User) -> ReferralInvite:
        """
        Record an invite for a freshly referred user.

        A referrer who has bought credits before is paid right away. Otherwise
        the invite stays pending until the referrer's first purchase.

        Args:
            referrer: The user whose code was used
            new_user: The referred user, already linked to the referrer

        Returns:
            ReferralInvite: The created invite
        """
        credits_earned = REFERRER_REWARD_CREDITS if referrer.has_ever_purchased else 0
        invite = await self.referral_repository.create_invite(
            referrer_id=referrer.id,
            referred_user_id=new_user.id,
            email=new_user.email,
            name=new_user.name,
            credits_earned=credits_earned,
        )
        if credits_earned:
            await self.user_repository.add_referral_credits(referrer.id, credits_earned)

        logger.info(
            "[Referrals] Registered referral",
            referrer_id=referrer.id,
            referred_user_id=new_user.id,
            credits_earned=credits_earned,
        )
        await self.check_milestones(referrer.id)
        return invite

    async def process_signup(
        self, user: User, referral_code: str
    ) -> ReferralRewardResponse | ReferralErrorResponse:
        """
        Attach a referral code to an existing account.

        Args:
            user: The authenticated user
            referral_code: Code of the referring user

        Returns:
            ReferralRewardResponse | ReferralErrorResponse: Outcome
        """
        referrer = await self.find_referrer(referral_code)
        if referrer is None:
            return ReferralErrorResponse(
                error="Invalid referral code",
                error_code=ReferralErrorCode.INVALID_CODE,
            )
        if referrer.id == user.id:
            return ReferralErrorResponse(
                error="You cannot use your own referral code",
                error_code=ReferralErrorCode.SELF_REFERRAL,
            )
        if not await self.user_repository.set_referrer(user.id, referrer.id):
            return ReferralErrorResponse(
                error="User already has a referrer",
                error_code=ReferralErrorCode.ALREADY_REFERRED,
            )

        invite = await self.register_referral(referrer, user)
        return ReferralRewardResponse(
            message="Referral processed successfully",
            credits_awarded=invite.credits_earned or 0,
        )

    async def reward_pending_invites(self, referrer_id: str) -> int:
        """
        Pay the referrer for every invite that is still unpaid.

        Returns:
            int: Credits awarded
        """
        awarded = 0
        for invite in await self.referral_repository.list_pending_invites(referrer_id):
            if not invite.is_active:
                continue
            if not await self.referral_repository.claim_invite_reward(invite.id):
                continue
            await self.user_repository.add_referral_credits(
                referrer_id, REFERRER_REWARD_CREDITS
            )
            awarded += REFERRER_REWARD_CREDITS

        if awarded:
            logger.info(
                "[Referrals] Rewarded pending invites",
                referrer_id=referrer_id,
                credits_awarded=awarded,
            )
        return awarded

    async def handle_first_purchase(self, user_id: str) -> int:
        """
        Settle referral rewards triggered by a user's first purchase.

        The user's own referrer is paid for this user (once), and the user is
        paid for any invites of theirs that were waiting on this purchase.

        Returns:
            int: Total referral credits awarded
        """
        awarded = 0

        invite = await self.referral_repository.get_invite_for_referred_user(user_id)
        if invite is not None and invite.is_active:
            if await self.referral_repository.claim_invite_reward(invite.id):
                await self.user_repository.add_referral_credits(
                    invite.referrer_id, REFERRER_REWARD_CREDITS
                )
                awarded += REFERRER_REWARD_CREDITS
                logger.info(
                    "[Referrals] Paid referrer for first purchase",
                    referrer_id=invite.referrer_id,
                    referred_user_id=user_id,
                )
                await self.check_milestones(invite.referrer_id)

        own_awarded = await self.reward_pending_invites(user_id)
        if own_awarded:
            await self.check_milestones(user_id)
        return awarded + own_awarded

    async def process_reward(
        self, user: User
    ) -> ReferralRewardResponse | ReferralErrorResponse:
        if not user.has_ever_purchased:
            return ReferralErrorResponse(
                error="User must purchase credits first",
                error_code=ReferralErrorCode.NOT_PURCHASED,
            )

        awarded = await self.reward_pending_invites(user.id)
        new_milestones = await self.check_milestones(user.id) if awarded else []
        message = (
            f"{awarded} referral rewards processed"
            if awarded
            else "No pending referral rewards"
        )
        return ReferralRewardResponse(
            message=message,
            credits_awarded=awarded,
            new_milestones=[
                {
                    "type": m.type,
                    "threshold": m.threshold,
                    "reward": m.reward,
                    "credits": m.credits,
                }
                for m in new_milestones
            ],
        )

    async def check_milestones(self, user_id: str) -> list[Milestone]:
        """
        Award every milestone the user's invite count has reached.

        Returns:
            list[Milestone]: Milestones awarded by this call
        """
        total_invites = await self.referral_repository.count_invites(user_id)
        achieved = {
            m.milestone_type
            for m in await self.referral_repository.list_milestones(user_id)
        }

        awarded: list[Milestone] = []
        for milestone in MILESTONES:
            if milestone.type in achieved or total_invites < milestone.threshold:
                continue
            recorded = await self.referral_repository.add_milestone(
                user_id=user_id,
                milestone_type=milestone.type,
                reward=milestone.reward,
                credits=milestone.credits,
            )
            if not recorded:
                continue
            await self.user_repository.add_credits(user_id, milestone.credits)
            awarded.append(milestone)
            logger.info(
                "[Referrals] Milestone reached",
                user_id=user_id,
                milestone=milestone.type,
                credits=milestone.credits,
            )
        return awarded

    async def get_stats(self, user: User) -> ReferralStatsResponse:
        total_invites = await self.referral_repository.count_invites(user.id)
        active_invites = await self.referral_repository.count_active_invites(user.id)
        milestones = await self.referral_repository.list_milestones(user.id)
        invites = await self.referral_repository.list_invites(user.id)
        recent = [invite for invite in invites if invite.is_active][
            :RECENT_INVITES_LIMIT
        ]

        return ReferralStatsResponse(
            code=user.referral_code,
            share_url=build_share_url(user.referral_code),
            total_invites=total_invites,
            active_invites=active_invites,
            credits_earned=user.referral_credits_earned or 0,
            milestones=[m.to_dict() for m in milestones],
            next_milestone=next_milestone(
                total_invites, {m.milestone_type for m in milestones}
            ),
            recent_invites=[invite.to_dict(mask_email=True) for invite in recent],
        )
