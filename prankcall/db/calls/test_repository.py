"""
Unit tests for CallRepository.

Tests the repository operations using mocked async sessions.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.ext.asyncio import AsyncSession

from prankcall.ai.voice_ai.constants import CallStatus, VoiceAIProvider
from prankcall.calls.constants import CREDITS_PER_CALL, RefundReason
from prankcall.db.calls.repository import CallRepository


@pytest.fixture
def mock_session():
    """Create a mock async session."""
    session = AsyncMock(spec=AsyncSession)
    session.add = MagicMock()
    return session


@pytest.fixture
def repository(mock_session):
    """Create a CallRepository with mocked session."""
    return CallRepository(mock_session)


def _rowcount(value: int) -> MagicMock:
    result = MagicMock()
    result.rowcount = value
    return result


@pytest.mark.asyncio
async def test_create_call(repository, mock_session):
    """Test creating a queued call record."""
    call = await repository.create_call(
        user_id="user-1",
        user_email="jan@example.nl",
        call_id="vapi-call-1",
        provider=VoiceAIProvider.VAPI,
        target_phone="06 12345678",
        formatted_phone="+31612345678",
        scenario_id="pizza-bezorger",
        scenario_name="Pizza bezorger",
        agent_id="assistant-1",
    )

    assert call.status == CallStatus.QUEUED.value
    assert call.provider == "vapi"
    assert call.credits_used == CREDITS_PER_CALL
    assert call.credits_refunded == 0
    assert call.refund_reason == RefundReason.NONE.value
    assert call.is_active is True
    mock_session.add.assert_called_once_with(call)
    mock_session.flush.assert_awaited_once()
    mock_session.refresh.assert_awaited_once_with(call)


@pytest.mark.asyncio
async def test_get_call_for_user(repository, mock_session, call):
    """Test fetching a call scoped to its owner."""
    mock_result = MagicMock()
    mock_result.scalar_one_or_none.return_value = call
    mock_session.execute = AsyncMock(return_value=mock_result)

    result = await repository.get_call_for_user("vapi-call-1", "user-1")

    assert result is call
    mock_session.execute.assert_awaited_once()


@pytest.mark.asyncio
async def test_update_call_status_stamps_answered_at(repository, mock_session, call):
    """Test that the first in-progress status records when the call was answered."""
    await repository.update_call_status(call, CallStatus.RINGING.value)
    assert call.answered_at is None

    await repository.update_call_status(call, CallStatus.IN_PROGRESS.value)
    answered_at = call.answered_at
    assert answered_at is not None

    await repository.update_call_status(call, CallStatus.FORWARDING.value)
    assert call.answered_at == answered_at
    assert call.status == CallStatus.FORWARDING.value


@pytest.mark.asyncio
async def test_update_call_status_ignores_terminal_calls(
    repository, mock_session, call_factory
):
    """Test that a terminal call never moves back to an active status."""
    call = call_factory(status=CallStatus.ENDED.value)

    await repository.update_call_status(call, CallStatus.IN_PROGRESS.value)

    assert call.status == CallStatus.ENDED.value
    mock_session.flush.assert_not_awaited()


@pytest.mark.asyncio
async def test_mark_ended(repository, mock_session, call):
    """Test ending a call without settling it."""
    result = await repository.mark_ended(call)

    assert result.status == CallStatus.ENDED.value
    assert result.ended_at is not None
    assert result.settled_at is None
    mock_session.flush.assert_awaited_once()


@pytest.mark.asyncio
async def test_mark_failed(repository, call):
    """Test recording a provider failure."""
    result = await repository.mark_failed(call, error_code="pipeline-error")

    assert result.status == CallStatus.FAILED.value
    assert result.error_message == "Call failed"
    assert result.error_code == "pipeline-error"
    assert result.error_at is not None


@pytest.mark.asyncio
@pytest.mark.parametrize("rowcount,expected", [(1, True), (0, False)])
async def test_claim_settlement(repository, mock_session, rowcount, expected):
    """Test that only the caller that updated the row owns the settlement."""
    mock_session.execute = AsyncMock(return_value=_rowcount(rowcount))

    assert await repository.claim_settlement("call-record-1") is expected


@pytest.mark.asyncio
@pytest.mark.parametrize("rowcount,expected", [(1, True), (0, False)])
async def test_claim_refund(repository, mock_session, rowcount, expected):
    """Test that a refund can be claimed at most once."""
    mock_session.execute = AsyncMock(return_value=_rowcount(rowcount))

    assert await repository.claim_refund("call-record-1") is expected


@pytest.mark.asyncio
async def test_share_call_reuses_share_id(repository, call):
    """Test that sharing twice keeps the same link and logs both shares."""
    await repository.share_call(call, "whatsapp")
    share_id = call.share_id

    await repository.share_call(call, "link")

    assert call.share_id == share_id
    assert len(share_id) == 16
    assert call.is_public is True
    assert call.share_count == 2
    assert [entry["platform"] for entry in call.share_platforms] == [
        "whatsapp",
        "link",
    ]


@pytest.mark.asyncio
async def test_record_download(repository, call):
    """Test counting recording downloads."""
    await repository.record_download(call)

    assert call.download_count == 1
    assert call.last_downloaded_at is not None


@pytest.mark.asyncio
async def test_list_calls_missing_recording_filters_in_sql(
    repository, mock_session, call
):
    """The recording URL filter runs in the query, before the limit."""
    result = MagicMock()
    result.scalars.return_value.all.return_value = [call]
    mock_session.execute.return_value = result

    calls = await repository.list_calls_missing_recording(limit=10)

    assert calls == [call]
    stmt = mock_session.execute.await_args.args[0]
    sql = str(
        stmt.compile(
            dialect=postgresql.dialect(), compile_kwargs={"literal_binds": True}
        )
    )
    _, _, filters = sql.partition("WHERE")
    where, _, tail = filters.partition("ORDER BY")
    assert "provider_data ->> 'recording_url'" in where
    assert "IS NOT NULL" in where
    assert "!= ''" in where
    assert "recording_available IS false" in where
    assert "calls.status" not in where
    assert "LIMIT 10" in tail
