"""
Vapi provider implementation for Voice AI operations.

Calls, assistants and files go through the Vapi SDK. SDK models are dumped
to their camelCase JSON form before parsing, so the quality heuristics Vapi
attaches to a call survive even when the typed model does not declare them.
"""

from http import HTTPStatus
from typing import Any

import httpx
import phonenumbers
from vapi import AsyncVapi
from vapi.core.api_error import ApiError
from vapi.types import AssistantOverrides, CreateCustomerDto

from prankcall.ai.voice_ai.base import VoiceAIError, VoiceAIProvider
from prankcall.ai.voice_ai.config import (
    VapiSettings,
    get_vapi_settings,
    get_voice_ai_settings,
)
from prankcall.ai.voice_ai.constants import VoiceAIErrorCode
from prankcall.ai.voice_ai.constants import VoiceAIProvider as VoiceAIProviderEnum
from prankcall.ai.voice_ai.schemas import (
    AssistantSummary,
    CallRequest,
    CallResponse,
    ProviderCallData,
)
from prankcall.utils.logger import logger


def _to_payload(model: Any) -> dict[str, Any]:
    """Dump an SDK model to the JSON shape of the Vapi API."""
    if model is None:
        return {}
    if isinstance(model, dict):
        return model
    return model.dict()


class VapiProvider(VoiceAIProvider):
    """Vapi-specific implementation of Voice AI provider."""

    provider_name = VoiceAIProviderEnum.VAPI

    def __init__(
        self,
        settings: VapiSettings | None = None,
        client: AsyncVapi | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the Vapi provider.

        Args:
            settings: Vapi settings, loaded from the environment when omitted
            client: Preconfigured SDK client, mainly for tests
            http_client: Client for control URLs and recording downloads
        """
        self._settings = settings or get_vapi_settings()
        self._timeout = get_voice_ai_settings().request_timeout

        if not self._settings.api_key:
            raise ValueError("VAPI_API_KEY environment variable is required")

        self._client = client or AsyncVapi(
            token=self._settings.api_key,
            base_url=self._settings.base_url,
            timeout=self._timeout,
        )
        self._http_client = http_client or httpx.AsyncClient(timeout=self._timeout)

    async def close(self) -> None:
        """Close the HTTP client used outside the SDK."""
        await self._http_client.aclose()

    def _to_voice_ai_error(self, action: str, error: Exception) -> VoiceAIError:
        if isinstance(error, ApiError) and error.status_code == HTTPStatus.NOT_FOUND:
            return VoiceAIError(
                f"Not found while {action}", error_code=VoiceAIErrorCode.NOT_FOUND
            )

        logger.error(
            f"[Vapi Provider] Error {action}",
            status_code=getattr(error, "status_code", None),
            error=str(error),
        )
        return VoiceAIError(
            f"Error {action}: {error}", error_code=VoiceAIErrorCode.HTTP_ERROR
        )

    async def create_outbound_call(self, request: CallRequest) -> CallResponse:
        """
        Create an outbound phone call with the requested assistant.

        Args:
            request: The call request with destination and agent

        Returns:
            CallResponse: Provider call id and initial status

        Raises:
            VoiceAIError: If Vapi rejects the call
        """
        logger.info(
            "[Vapi Provider] Creating outbound call",
            assistant_id=request.assistant_id,
        )

        customer = CreateCustomerDto(
            number=self._format_phone_number(request.phone_number),
            external_id=request.customer_id,
        )
        assistant_overrides = (
            AssistantOverrides(variable_values={"name": request.target_name})
            if request.target_name
            else None
        )

        try:
            call = await self._client.calls.create(
                assistant_id=request.assistant_id,
                phone_number_id=self._settings.phone_number_id,
                customer=customer,
                assistant_overrides=assistant_overrides,
            )
        except Exception as e:
            raise self._to_voice_ai_error("creating call", e) from e

        data = _to_payload(call)
        if not data.get("id"):
            raise VoiceAIError(
                "Vapi response did not include a call id",
                error_code=VoiceAIErrorCode.INVALID_JSON,
            )
        return self._parse_call_response(data)

    async def get_call_status(self, call_id: str) -> CallResponse:
        try:
            call = await self._client.calls.get(id=call_id)
        except Exception as e:
            raise self._to_voice_ai_error("getting call status", e) from e
        return self._parse_call_response(_to_payload(call))

    async def end_call(self, call_id: str) -> bool:
        """
        Hang up a call through its live control URL.

        Raises:
            VoiceAIError: If the call has no control URL or the hangup fails
        """
        logger.info("[Vapi Provider] Ending call", call_id=call_id)

        try:
            call = await self._client.calls.get(id=call_id)
        except Exception as e:
            raise self._to_voice_ai_error("ending call", e) from e

        control_url = (_to_payload(call).get("monitor") or {}).get("controlUrl")
        if not control_url:
            raise VoiceAIError(
                f"No control URL found for call {call_id}",
                error_code=VoiceAIErrorCode.NOT_FOUND,
            )

        try:
            response = await self._http_client.post(
                control_url, json={"type": "end-call"}
            )
        except httpx.HTTPError as e:
            logger.error("[Vapi Provider] HTTP error ending call", error=str(e))
            raise VoiceAIError(
                f"HTTP error ending call: {e}", error_code=VoiceAIErrorCode.HTTP_ERROR
            ) from e

        if response.status_code not in (HTTPStatus.OK, HTTPStatus.ACCEPTED):
            logger.error(
                "[Vapi Provider] Failed to end call",
                status_code=response.status_code,
                response_text=response.text,
            )
            raise VoiceAIError(
                f"Failed to end call: {response.status_code} - {response.text}",
                error_code=VoiceAIErrorCode.HTTP_ERROR,
            )

        logger.info("[Vapi Provider] Successfully ended call", call_id=call_id)
        return True

    async def list_assistants(self) -> list[AssistantSummary]:
        try:
            assistants = await self._client.assistants.list()
        except Exception as e:
            raise self._to_voice_ai_error("listing assistants", e) from e
        return [AssistantSummary.from_vapi(_to_payload(item)) for item in assistants]

    async def get_audio_file_url(self, file_id: str) -> str | None:
        try:
            file = await self._client.files.get(id=file_id)
        except Exception as e:
            raise self._to_voice_ai_error("getting audio file", e) from e
        data = _to_payload(file)
        return data.get("url") or data.get("downloadUrl")

    async def download_recording(self, recording_url: str) -> tuple[bytes, str]:
        """
        Download a recording from Vapi's storage.

        Recording URLs are pre-signed, so no API key is sent along.

        Args:
            recording_url: URL to the call recording

        Returns:
            tuple[bytes, str]: File bytes and content type

        Raises:
            VoiceAIError: If the recording cannot be downloaded
        """
        try:
            response = await self._http_client.get(
                recording_url, follow_redirects=True
            )
        except httpx.HTTPError as e:
            logger.error("[Vapi Provider] Recording download failed", error=str(e))
            raise VoiceAIError(
                f"HTTP error downloading recording: {e}",
                error_code=VoiceAIErrorCode.HTTP_ERROR,
            ) from e

        if response.is_error:
            raise VoiceAIError(
                f"Failed to download recording: {response.status_code}",
                error_code=(
                    VoiceAIErrorCode.NOT_FOUND
                    if response.status_code == HTTPStatus.NOT_FOUND
                    else VoiceAIErrorCode.HTTP_ERROR
                ),
            )

        content_type = response.headers.get("content-type", "audio/mpeg")
        return response.content, content_type

    def _format_phone_number(self, phone_number: str) -> str:
        """
        Format a phone number to E.164.

        National numbers are read in the configured default region.
        """
        try:
            parsed = phonenumbers.parse(phone_number, self._settings.default_region)
            if phonenumbers.is_valid_number(parsed):
                return phonenumbers.format_number(
                    parsed, phonenumbers.PhoneNumberFormat.E164
                )
        except phonenumbers.NumberParseException:
            logger.warning(
                "[Vapi Provider] Could not parse phone number",
                phone_number=phone_number,
            )

        # Fallback: return as-is if parsing fails
        return phone_number

    def _parse_call_response(self, data: dict[str, Any]) -> CallResponse:
        return CallResponse(
            call_id=data["id"],
            status=data.get("status") or "queued",
            provider=VoiceAIProviderEnum.VAPI,
            created_at=data.get("createdAt"),
            provider_data=ProviderCallData.from_vapi(data),
        )
