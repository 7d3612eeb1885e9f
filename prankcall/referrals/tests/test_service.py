"""Tests for ReferralService."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from prankcall.config import AppSettings, set_app_settings
from prankcall.db.referrals.model import ReferralInvite, ReferralMilestone
from prankcall.referrals.constants import (
    REFERRAL_CODE_ALPHABET,
    REFERRAL_CODE_LENGTH,
    ReferralErrorCode,
)
from prankcall.referrals.schemas import (
    ReferralCodeResponse,
    ReferralErrorResponse,
    ReferralRewardResponse,
)
from prankcall.referrals.service import ReferralService, next_milestone

INVITED_AT = datetime(2025, 2, 1, 9, 30, 0, tzinfo=timezone.utc)


def _invite(invite_id: int, **overrides) -> ReferralInvite:
    fields = {
        "id": invite_id,
        "referrer_id": "referrer-1",
        "referred_user_id": f"user-{invite_id}",
        "email": f"friend{invite_id}@example.nl",
        "name": f"Friend {invite_id}",
        "invited_at": INVITED_AT,
        "credits_earned": 0,
        "is_active": True,
    }
    fields.update(overrides)
    return ReferralInvite(**fields)


@pytest.fixture(autouse=True)
def app_settings():
    set_app_settings(AppSettings(public_base_url="https://prankcall.nl/"))
    yield
    set_app_settings(AppSettings())


@pytest.fixture
def referrer(user_factory):
    return user_factory(
        id="referrer-1", name="Kees", email="kees@example.nl", referral_code="KEES42"
    )


@pytest.fixture
def user_repository(referrer):
    repository = MagicMock()
    repository.get_user_by_referral_code = AsyncMock(return_value=referrer)
    repository.referral_code_exists = AsyncMock(return_value=False)
    repository.set_referrer = AsyncMock(return_value=True)
    repository.add_referral_credits = AsyncMock(return_value=5)
    repository.add_credits = AsyncMock(return_value=10)
    return repository


@pytest.fixture
def referral_repository():
    repository = MagicMock()
    repository.create_invite = AsyncMock(
        side_effect=lambda **kwargs: _invite(1, **kwargs)
    )
    repository.get_invite_for_referred_user = AsyncMock(return_value=None)
    repository.list_pending_invites = AsyncMock(return_value=[])
    repository.list_invites = AsyncMock(return_value=[])
    repository.claim_invite_reward = AsyncMock(return_value=True)
    repository.count_invites = AsyncMock(return_value=1)
    repository.count_active_invites = AsyncMock(return_value=1)
    repository.list_milestones = AsyncMock(return_value=[])
    repository.add_milestone = AsyncMock(return_value=True)
    return repository


@pytest.fixture
def service(user_repository, referral_repository):
    return ReferralService(
        user_repository=user_repository, referral_repository=referral_repository
    )


@pytest.mark.asyncio
async def test_generate_referral_code_skips_taken_codes(service, user_repository):
    user_repository.referral_code_exists.side_effect = [True, True, False]

    code = await service.generate_referral_code()

    assert len(code) == REFERRAL_CODE_LENGTH
    assert all(char in REFERRAL_CODE_ALPHABET for char in code)
    assert user_repository.referral_code_exists.await_count == 3


@pytest.mark.asyncio
async def test_generate_referral_code_gives_up(service, user_repository):
    user_repository.referral_code_exists.return_value = True

    with pytest.raises(RuntimeError):
        await service.generate_referral_code()


@pytest.mark.asyncio
async def test_validate_code(service):
    result = await service.validate_code(" KEES42 ")

    assert isinstance(result, ReferralCodeResponse)
    assert result.valid is True
    assert result.referrer_name == "Kees"


@pytest.mark.asyncio
async def test_validate_unknown_code(service, user_repository):
    user_repository.get_user_by_referral_code.return_value = None

    result = await service.validate_code("NOPE00")

    assert isinstance(result, ReferralErrorResponse)
    assert result.error_code == ReferralErrorCode.INVALID_CODE


class TestProcessSignup:
    @pytest.mark.asyncio
    async def test_pending_until_referrer_purchases(
        self, service, user, user_repository, referral_repository
    ):
        result = await service.process_signup(user, "KEES42")

        assert isinstance(result, ReferralRewardResponse)
        assert result.credits_awarded == 0
        user_repository.set_referrer.assert_awaited_once_with("user-1", "referrer-1")
        referral_repository.create_invite.assert_awaited_once_with(
            referrer_id="referrer-1",
            referred_user_id="user-1",
            email="jan@example.nl",
            name="Jan",
            credits_earned=0,
        )
        user_repository.add_referral_credits.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_purchasing_referrer_is_paid_immediately(
        self, service, user, referrer, user_repository
    ):
        referrer.has_ever_purchased = True

        result = await service.process_signup(user, "KEES42")

        assert result.credits_awarded == 1
        user_repository.add_referral_credits.assert_awaited_once_with("referrer-1", 1)

    @pytest.mark.asyncio
    async def test_invalid_code(self, service, user, user_repository):
        user_repository.get_user_by_referral_code.return_value = None

        result = await service.process_signup(user, "NOPE00")

        assert result.error_code == ReferralErrorCode.INVALID_CODE
        user_repository.set_referrer.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_own_code(self, service, referrer):
        result = await service.process_signup(referrer, "KEES42")

        assert result.error_code == ReferralErrorCode.SELF_REFERRAL

    @pytest.mark.asyncio
    async def test_already_referred(
        self, service, user, user_repository, referral_repository
    ):
        user_repository.set_referrer.return_value = False

        result = await service.process_signup(user, "KEES42")

        assert result.error_code == ReferralErrorCode.ALREADY_REFERRED
        referral_repository.create_invite.assert_not_awaited()


class TestFirstPurchase:
    @pytest.mark.asyncio
    async def test_pays_own_referrer_once(
        self, service, user_repository, referral_repository
    ):
        referral_repository.get_invite_for_referred_user.return_value = _invite(
            7, referred_user_id="user-1"
        )

        awarded = await service.handle_first_purchase("user-1")

        assert awarded == 1
        referral_repository.claim_invite_reward.assert_awaited_once_with(7)
        user_repository.add_referral_credits.assert_awaited_once_with("referrer-1", 1)

    @pytest.mark.asyncio
    async def test_already_claimed_invite_is_not_paid_again(
        self, service, user_repository, referral_repository
    ):
        referral_repository.get_invite_for_referred_user.return_value = _invite(7)
        referral_repository.claim_invite_reward.return_value = False

        assert await service.handle_first_purchase("user-1") == 0
        user_repository.add_referral_credits.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_pays_pending_invites_of_the_buyer(
        self, service, user_repository, referral_repository
    ):
        referral_repository.list_pending_invites.return_value = [
            _invite(1, referrer_id="user-1"),
            _invite(2, referrer_id="user-1", is_active=False),
            _invite(3, referrer_id="user-1"),
        ]

        awarded = await service.handle_first_purchase("user-1")

        assert awarded == 2
        assert referral_repository.claim_invite_reward.await_count == 2
        user_repository.add_referral_credits.assert_awaited_with("user-1", 1)


class TestProcessReward:
    @pytest.mark.asyncio
    async def test_requires_a_purchase(self, service, user):
        result = await service.process_reward(user)

        assert result.error_code == ReferralErrorCode.NOT_PURCHASED

    @pytest.mark.asyncio
    async def test_rewards_and_awards_milestone(
        self, service, user_factory, user_repository, referral_repository
    ):
        buyer = user_factory(has_ever_purchased=True)
        referral_repository.list_pending_invites.return_value = [
            _invite(1, referrer_id="user-1"),
            _invite(2, referrer_id="user-1"),
            _invite(3, referrer_id="user-1"),
        ]
        referral_repository.count_invites.return_value = 3

        result = await service.process_reward(buyer)

        assert result.success is True
        assert result.credits_awarded == 3
        assert [m["type"] for m in result.new_milestones] == ["invite_3"]
        user_repository.add_credits.assert_awaited_once_with("user-1", 5)

    @pytest.mark.asyncio
    async def test_nothing_pending(self, service, user_factory):
        result = await service.process_reward(user_factory(has_ever_purchased=True))

        assert result.credits_awarded == 0
        assert result.new_milestones == []


class TestMilestones:
    @pytest.mark.asyncio
    async def test_awards_every_reached_milestone(
        self, service, user_repository, referral_repository
    ):
        referral_repository.count_invites.return_value = 6

        awarded = await service.check_milestones("referrer-1")

        assert [m.type for m in awarded] == ["invite_3", "invite_5"]
        user_repository.add_credits.assert_any_await("referrer-1", 5)
        user_repository.add_credits.assert_any_await("referrer-1", 10)
        user_repository.add_referral_credits.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_achieved_milestones_are_skipped(
        self, service, user_repository, referral_repository
    ):
        referral_repository.count_invites.return_value = 5
        referral_repository.list_milestones.return_value = [
            ReferralMilestone(
                user_id="referrer-1",
                milestone_type="invite_3",
                reward="5_free_calls",
                credits=5,
                achieved_at=INVITED_AT,
            )
        ]

        awarded = await service.check_milestones("referrer-1")

        assert [m.type for m in awarded] == ["invite_5"]
        user_repository.add_credits.assert_awaited_once_with("referrer-1", 10)

    @pytest.mark.asyncio
    async def test_concurrent_award_is_not_paid_twice(
        self, service, user_repository, referral_repository
    ):
        referral_repository.count_invites.return_value = 3
        referral_repository.add_milestone.return_value = False

        assert await service.check_milestones("referrer-1") == []
        user_repository.add_credits.assert_not_awaited()


def test_next_milestone():
    upcoming = next_milestone(4, {"invite_3"})

    assert upcoming.type == "invite_5"
    assert upcoming.remaining == 1
    assert upcoming.credits == 10
    assert next_milestone(30, set()) is None


@pytest.mark.asyncio
async def test_stats(service, referrer, referral_repository):
    referrer.referral_credits_earned = 2
    referral_repository.count_invites.return_value = 2
    referral_repository.count_active_invites.return_value = 1
    referral_repository.list_invites.return_value = [
        _invite(1, email="annemieke@example.nl"),
        _invite(2, is_active=False),
    ]

    stats = await service.get_stats(referrer)

    assert stats.code == "KEES42"
    assert stats.share_url == "https://prankcall.nl/ref/KEES42"
    assert stats.total_invites == 2
    assert stats.credits_earned == 2
    assert stats.next_milestone.type == "invite_3"
    assert stats.next_milestone.remaining == 1
    assert len(stats.recent_invites) == 1
    assert stats.recent_invites[0]["email"] == "an***@example.nl"
