"""Tests for the Vapi provider against a mocked SDK client."""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from vapi.core.api_error import ApiError

from prankcall.ai.voice_ai.base import VoiceAIError
from prankcall.ai.voice_ai.config import VapiSettings
from prankcall.ai.voice_ai.constants import VoiceAIErrorCode, VoiceAIProvider
from prankcall.ai.voice_ai.providers.vapi import VapiProvider
from prankcall.ai.voice_ai.schemas import CallRequest

CONTROL_URL = "https://phone-call-websocket.vapi.ai/call-1/control"

ENDED_CALL = {
    "id": "call-1",
    "status": "ended",
    "createdAt": "2025-01-15T10:00:00Z",
    "startedAt": "2025-01-15T10:00:05Z",
    "endedAt": "2025-01-15T10:01:05Z",
    "endedReason": "customer-ended-call",
    "cost": 0.14,
    "artifact": {
        "transcript": "AI: Goedemiddag, met de pizzeria.",
        "recordingUrl": "https://storage.vapi.ai/call-1.wav",
    },
    "analysis": {"summary": "Pizza prank", "successEvaluation": True},
    "wasAnswered": True,
    "monitor": {"controlUrl": CONTROL_URL},
}


class SdkModel:
    """Stands in for an SDK response model."""

    def __init__(self, payload: dict):
        self._payload = payload

    def dict(self) -> dict:
        return dict(self._payload)


@pytest.fixture
def sdk_client():
    client = MagicMock()
    client.calls.create = AsyncMock(
        return_value=SdkModel({"id": "call-1", "status": "queued"})
    )
    client.calls.get = AsyncMock(return_value=SdkModel(ENDED_CALL))
    client.assistants.list = AsyncMock(return_value=[])
    client.files.get = AsyncMock()
    return client


def _provider(sdk_client, handler=None) -> VapiProvider:
    handler = handler or (lambda request: httpx.Response(200))
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    settings = VapiSettings(api_key="vapi-key", phone_number_id="phone-1")
    return VapiProvider(settings=settings, client=sdk_client, http_client=http_client)


@pytest.mark.asyncio
async def test_create_outbound_call(sdk_client):
    provider = _provider(sdk_client)

    result = await provider.create_outbound_call(
        CallRequest(
            phone_number="+31612345678",
            assistant_id="assistant-1",
            target_name="Piet",
            customer_id="user-1",
        )
    )

    assert result.call_id == "call-1"
    assert result.status == "queued"
    assert result.provider == VoiceAIProvider.VAPI

    kwargs = sdk_client.calls.create.await_args.kwargs
    assert kwargs["assistant_id"] == "assistant-1"
    assert kwargs["phone_number_id"] == "phone-1"
    assert kwargs["customer"].number == "+31612345678"
    assert kwargs["customer"].external_id == "user-1"
    assert kwargs["assistant_overrides"].variable_values == {"name": "Piet"}


@pytest.mark.asyncio
async def test_national_number_is_sent_in_e164(sdk_client):
    provider = _provider(sdk_client)

    await provider.create_outbound_call(
        CallRequest(phone_number="0612345678", assistant_id="assistant-1")
    )

    kwargs = sdk_client.calls.create.await_args.kwargs
    assert kwargs["customer"].number == "+31612345678"
    assert kwargs["assistant_overrides"] is None


@pytest.mark.asyncio
async def test_missing_call_id_is_an_error(sdk_client):
    sdk_client.calls.create.return_value = SdkModel({"status": "queued"})
    provider = _provider(sdk_client)

    with pytest.raises(VoiceAIError) as exc_info:
        await provider.create_outbound_call(
            CallRequest(phone_number="+31612345678", assistant_id="assistant-1")
        )

    assert exc_info.value.error_code == VoiceAIErrorCode.INVALID_JSON


@pytest.mark.asyncio
async def test_get_call_status_parses_quality_data(sdk_client):
    provider = _provider(sdk_client)

    result = await provider.get_call_status("call-1")

    sdk_client.calls.get.assert_awaited_once_with(id="call-1")
    data = result.provider_data
    assert result.status == "ended"
    assert data.duration is None
    assert (data.ended_at - data.started_at).total_seconds() == 60
    assert data.end_reason == "customer-ended-call"
    assert data.recording_url == "https://storage.vapi.ai/call-1.wav"
    assert data.transcript.startswith("AI: Goedemiddag")
    assert data.summary == "Pizza prank"
    assert data.success_evaluation == "true"
    assert data.was_answered is True
    assert data.cost == 0.14


@pytest.mark.asyncio
async def test_unknown_call_raises_not_found(sdk_client):
    sdk_client.calls.get.side_effect = ApiError(
        status_code=404, body={"message": "nope"}
    )
    provider = _provider(sdk_client)

    with pytest.raises(VoiceAIError) as exc_info:
        await provider.get_call_status("missing")

    assert exc_info.value.error_code == VoiceAIErrorCode.NOT_FOUND


@pytest.mark.asyncio
async def test_server_error_raises_http_error(sdk_client):
    sdk_client.calls.get.side_effect = ApiError(status_code=500, body="boom")
    provider = _provider(sdk_client)

    with pytest.raises(VoiceAIError) as exc_info:
        await provider.get_call_status("call-1")

    assert exc_info.value.error_code == VoiceAIErrorCode.HTTP_ERROR


@pytest.mark.asyncio
async def test_transport_failure_raises_http_error(sdk_client):
    sdk_client.calls.get.side_effect = httpx.ConnectError("connection refused")
    provider = _provider(sdk_client)

    with pytest.raises(VoiceAIError) as exc_info:
        await provider.get_call_status("call-1")

    assert exc_info.value.error_code == VoiceAIErrorCode.HTTP_ERROR


@pytest.mark.asyncio
async def test_end_call_posts_to_control_url(sdk_client):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200)

    provider = _provider(sdk_client, handler)

    assert await provider.end_call("call-1") is True
    assert seen == {
        "method": "POST",
        "url": CONTROL_URL,
        "body": {"type": "end-call"},
    }


@pytest.mark.asyncio
async def test_end_call_without_control_url_is_not_found(sdk_client):
    sdk_client.calls.get.return_value = SdkModel({"id": "call-1", "status": "ended"})
    provider = _provider(sdk_client)

    with pytest.raises(VoiceAIError) as exc_info:
        await provider.end_call("call-1")

    assert exc_info.value.error_code == VoiceAIErrorCode.NOT_FOUND


@pytest.mark.asyncio
async def test_end_call_rejected_by_control_url(sdk_client):
    provider = _provider(sdk_client, lambda request: httpx.Response(410, text="gone"))

    with pytest.raises(VoiceAIError) as exc_info:
        await provider.end_call("call-1")

    assert exc_info.value.error_code == VoiceAIErrorCode.HTTP_ERROR


@pytest.mark.asyncio
async def test_list_assistants(sdk_client):
    sdk_client.assistants.list.return_value = [
        SdkModel({"id": "assistant-1", "name": "Pizza bezorger"})
    ]
    provider = _provider(sdk_client)

    assistants = await provider.list_assistants()

    assert [a.id for a in assistants] == ["assistant-1"]
    assert assistants[0].name == "Pizza bezorger"


@pytest.mark.asyncio
async def test_get_audio_file_url(sdk_client):
    sdk_client.files.get.return_value = SdkModel(
        {"id": "file-1", "url": "https://storage.vapi.ai/file-1.mp3"}
    )
    provider = _provider(sdk_client)

    assert (
        await provider.get_audio_file_url("file-1")
        == "https://storage.vapi.ai/file-1.mp3"
    )
    sdk_client.files.get.assert_awaited_once_with(id="file-1")


@pytest.mark.asyncio
async def test_download_recording(sdk_client):
    def handler(request: httpx.Request) -> httpx.Response:
        assert "authorization" not in request.headers
        return httpx.Response(
            200, content=b"RIFF", headers={"content-type": "audio/wav"}
        )

    provider = _provider(sdk_client, handler)

    content, content_type = await provider.download_recording(
        "https://storage.vapi.ai/call-1.wav"
    )

    assert content == b"RIFF"
    assert content_type == "audio/wav"


@pytest.mark.asyncio
async def test_missing_recording_is_not_found(sdk_client):
    provider = _provider(sdk_client, lambda request: httpx.Response(404))

    with pytest.raises(VoiceAIError) as exc_info:
        await provider.download_recording("https://storage.vapi.ai/gone.wav")

    assert exc_info.value.error_code == VoiceAIErrorCode.NOT_FOUND


@pytest.mark.asyncio
async def test_close_closes_http_client(sdk_client):
    provider = _provider(sdk_client)

    await provider.close()

    assert provider._http_client.is_closed
