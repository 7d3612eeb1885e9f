"""Shared fixtures for unit tests."""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from prankcall.ai.voice_ai.constants import VoiceAIProvider
from prankcall.db.calls.model import Call
from prankcall.db.users.model import User


class FakeSession:
    """Stands in for an AsyncSession where only transaction control matters."""

    def __init__(self):
        self.commit = AsyncMock()
        self.rollback = AsyncMock()
        self.flush = AsyncMock()
        self.expire_all = MagicMock()
        self.savepoints = 0

    @asynccontextmanager
    async def _nested(self):
        self.savepoints += 1
        yield self

    def begin_nested(self):
        return self._nested()


def make_user(**overrides) -> User:
    fields = {
        "id": "user-1",
        "name": "Jan",
        "email": "jan@example.nl",
        "password_hash": "salt$hash",
        "credits": 3,
        "plan": "free",
        "is_active": True,
        "has_ever_purchased": False,
        "total_calls": 0,
        "successful_calls": 0,
        "total_call_seconds": 0,
        "referral_code": "ABC123",
        "referred_by_id": None,
        "referral_credits_earned": 0,
        "created_at": datetime(2025, 1, 15, 10, 0, 0, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return User(**fields)


def make_call(**overrides) -> Call:
    call = Call.from_started_call(
        user_id="user-1",
        user_email="jan@example.nl",
        call_id="vapi-call-1",
        provider=VoiceAIProvider.VAPI,
        target_phone="06 12345678",
        formatted_phone="+31612345678",
        scenario_id="pizza-bezorger",
        scenario_name="Pizza bezorger",
        agent_id="assistant-1",
        started_at=datetime(2025, 1, 15, 10, 0, 0, tzinfo=timezone.utc),
    )
    call.id = "call-record-1"
    for key, value in overrides.items():
        setattr(call, key, value)
    return call


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def user():
    return make_user()


@pytest.fixture
def call():
    return make_call()


@pytest.fixture
def user_factory():
    return make_user


@pytest.fixture
def call_factory():
    return make_call
