"""
Unit tests for application startup and shutdown.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from prankcall import main
from prankcall.workflows.config import CallLifecycleSettings


@pytest.mark.asyncio
async def test_shutdown_stops_monitors_before_closing_database(monkeypatch):
    order = []

    def record(name):
        return AsyncMock(side_effect=lambda: order.append(name))

    monkeypatch.setattr(
        main,
        "get_call_lifecycle_settings",
        lambda: CallLifecycleSettings(resume_on_startup=False),
    )
    monkeypatch.setattr(main, "stop_call_monitoring", record("monitors"))
    monkeypatch.setattr(main, "close_voice_ai_provider", record("provider"))
    monkeypatch.setattr(main, "close_db", record("database"))

    async with main.lifespan(MagicMock()):
        assert order == []

    assert order == ["monitors", "provider", "database"]
