"""Tests for CallSettlementService."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from prankcall.ai.voice_ai.constants import CallStatus
from prankcall.ai.voice_ai.schemas import ProviderCallData
from prankcall.calls.constants import RefundReason
from prankcall.calls.settlement import CallSettlementService

START = datetime(2025, 1, 15, 10, 0, 0, tzinfo=timezone.utc)


def _provider_data(seconds: int, **overrides) -> ProviderCallData:
    fields = {
        "started_at": START,
        "ended_at": START + timedelta(seconds=seconds),
        "end_reason": "customer-ended-call",
    }
    fields.update(overrides)
    return ProviderCallData(**fields)


@pytest.fixture
def call_repository(fake_session):
    repository = MagicMock()
    repository.session = fake_session
    repository.claim_settlement = AsyncMock(return_value=True)
    repository.claim_refund = AsyncMock(return_value=True)
    repository.save = AsyncMock(side_effect=lambda call: call)
    return repository


@pytest.fixture
def user_repository():
    repository = MagicMock()
    repository.add_credits = AsyncMock(return_value=4)
    repository.increment_stats = AsyncMock()
    return repository


@pytest.fixture
def scenario_repository():
    repository = MagicMock()
    repository.record_usage = AsyncMock()
    return repository


@pytest.fixture
def service(call_repository, user_repository, scenario_repository):
    return CallSettlementService(
        call_repository=call_repository,
        user_repository=user_repository,
        scenario_repository=scenario_repository,
    )


@pytest.mark.asyncio
async def test_short_call_is_refunded(service, call, user_repository):
    data = _provider_data(3, recording_url="https://storage.vapi.ai/rec.wav")

    result = await service.settle(call, data)

    assert result.settled is True
    assert result.refunded is True
    assert result.refund_reason == RefundReason.TOO_SHORT.value
    assert call.status == CallStatus.ENDED.value
    assert call.duration == 3
    assert call.credits_refunded == 1
    assert call.refunded_at is not None
    assert call.recording_available is True
    assert call.recording_format == "wav"
    assert call.provider_data["refund_rules_matched"] == ["too_short"]
    user_repository.add_credits.assert_awaited_once_with("user-1", 1)
    user_repository.increment_stats.assert_any_await("user-1", total_calls=-1)


@pytest.mark.asyncio
async def test_good_call_is_charged(
    service, call, user_repository, scenario_repository
):
    data = _provider_data(60, success_evaluation="true")

    result = await service.settle(call, data)

    assert result.settled is True
    assert result.refunded is False
    assert result.was_successful is True
    assert call.refund_reason == RefundReason.NONE.value
    assert call.credits_refunded == 0
    assert call.ended_at == START + timedelta(seconds=60)
    user_repository.add_credits.assert_not_awaited()
    user_repository.increment_stats.assert_awaited_once_with(
        "user-1", successful_calls=1, total_call_seconds=60
    )
    scenario_repository.record_usage.assert_awaited_once_with("pizza-bezorger")


@pytest.mark.asyncio
async def test_second_settlement_does_nothing(service, call, call_repository):
    call_repository.claim_settlement.return_value = False

    result = await service.settle(call, _provider_data(60))

    assert result.settled is False
    call_repository.save.assert_not_awaited()


@pytest.mark.asyncio
async def test_cancelled_call_does_not_count_as_scenario_usage(
    service, call, scenario_repository
):
    result = await service.settle(call, None, CallStatus.CANCELLED)

    assert result.settled is True
    assert call.status == CallStatus.CANCELLED.value
    assert call.ended_at is not None
    scenario_repository.record_usage.assert_not_awaited()


@pytest.mark.asyncio
async def test_scenario_bookkeeping_failure_is_contained(
    service, call, scenario_repository
):
    scenario_repository.record_usage.side_effect = RuntimeError("db down")

    result = await service.settle(call, _provider_data(60))

    assert result.settled is True


@pytest.mark.asyncio
async def test_free_call_is_never_refunded(service, call_factory, user_repository):
    call = call_factory(should_refund=True, was_free=True)

    assert await service.apply_pending_refund(call) is False
    user_repository.add_credits.assert_not_awaited()


@pytest.mark.asyncio
async def test_refund_claimed_elsewhere(
    service, call_factory, call_repository, user_repository
):
    call = call_factory(should_refund=True)
    call_repository.claim_refund.return_value = False

    assert await service.apply_pending_refund(call) is False
    assert call.credits_refunded == 0
    user_repository.add_credits.assert_not_awaited()


@pytest.mark.asyncio
async def test_refund_for_missing_user_is_left_pending(
    service, call_factory, user_repository, fake_session
):
    call = call_factory(should_refund=True)
    user_repository.add_credits.return_value = None

    assert await service.apply_pending_refund(call) is False
    assert call.credits_refunded == 0
    assert fake_session.savepoints == 1


@pytest.mark.asyncio
async def test_already_refunded_call(service, call_factory, call_repository):
    call = call_factory(should_refund=True, credits_refunded=1)

    assert await service.apply_pending_refund(call) is False
    call_repository.claim_refund.assert_not_awaited()
