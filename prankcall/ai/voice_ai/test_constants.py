"""
Unit tests for voice AI status and audio reference helpers.
"""

import pytest

from prankcall.ai.voice_ai.constants import is_provider_audio_id, normalize_call_status


@pytest.mark.parametrize(
    "value",
    [
        "3f2b9c1e-8d4a-4f7b-9a61-2c5e8b7d1f30",
        "file_abc123",
        "  recording-42  ",
    ],
)
def test_bare_tokens_are_provider_ids(value):
    assert is_provider_audio_id(value) is True


@pytest.mark.parametrize(
    "value",
    [
        None,
        "",
        "https://storage.vapi.ai/file-1.mp3",
        "httpfile",
        "/static/audio/pizza.mp3",
        "file 1",
    ],
)
def test_urls_and_paths_are_not_provider_ids(value):
    assert is_provider_audio_id(value) is False


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("completed", "ended"),
        ("inProgress", "in-progress"),
        ("forwarding", "forwarding"),
        ("ringing", "ringing"),
    ],
)
def test_normalize_call_status(raw, expected):
    assert normalize_call_status(raw) == expected
