"""
Voice AI service layer.

Sits between callers and the Voice AI provider and turns provider
exceptions into error responses. It holds no business logic.
"""

from prankcall.ai.voice_ai.base import VoiceAIError, VoiceAIProvider
from prankcall.ai.voice_ai.constants import VoiceAIErrorCode
from prankcall.ai.voice_ai.schemas import (
    AssistantSummary,
    CallRequest,
    CallResponse,
    VoiceAIErrorResponse,
)
from prankcall.utils.logger import logger


class VoiceAIService:
    """Service class for Voice AI operations."""

    def __init__(self, voice_ai_provider: VoiceAIProvider):
        """
        Initialize the Voice AI service.

        Args:
            voice_ai_provider: The Voice AI provider to use
        """
        self.voice_ai_provider = voice_ai_provider

    def _error_response(self, error: Exception) -> VoiceAIErrorResponse:
        provider = getattr(self.voice_ai_provider, "provider_name", None)
        if isinstance(error, VoiceAIError):
            return VoiceAIErrorResponse(
                error=error.message, error_code=error.error_code, provider=provider
            )
        return VoiceAIErrorResponse(
            error=f"Unexpected error: {str(error)}",
            error_code=VoiceAIErrorCode.UNKNOWN_ERROR,
            provider=provider,
        )

    async def create_outbound_call(
        self, request: CallRequest
    ) -> CallResponse | VoiceAIErrorResponse:
        """
        Create an outbound call.

        Call monitoring and settlement are handled by the call lifecycle
        workflow, not here.

        Args:
            request: The call request with destination and agent

        Returns:
            CallResponse or VoiceAIErrorResponse: The result of the operation
        """
        try:
            logger.info("Creating outbound call", assistant_id=request.assistant_id)
            result = await self.voice_ai_provider.create_outbound_call(request)
            logger.info(
                "Successfully created call",
                call_id=result.call_id,
                status=result.status,
            )
            return result
        except Exception as e:
            logger.error("Error creating call", error=str(e))
            return self._error_response(e)

    async def get_call_status(
        self, call_id: str
    ) -> CallResponse | VoiceAIErrorResponse:
        """
        Get the status of a specific call.

        Args:
            call_id: The provider call identifier

        Returns:
            CallResponse or VoiceAIErrorResponse: The result of the operation
        """
        try:
            result = await self.voice_ai_provider.get_call_status(call_id)
            logger.debug(
                "Retrieved status for call", call_id=call_id, status=result.status
            )
            return result
        except Exception as e:
            logger.warning("Error getting call status", call_id=call_id, error=str(e))
            return self._error_response(e)

    async def end_call(self, call_id: str) -> bool | VoiceAIErrorResponse:
        """
        Hang up an ongoing call.

        Args:
            call_id: The provider call identifier

        Returns:
            bool (True if successful) or VoiceAIErrorResponse on error
        """
        try:
            logger.info("Ending call", call_id=call_id)
            return await self.voice_ai_provider.end_call(call_id)
        except Exception as e:
            logger.error("Error ending call", call_id=call_id, error=str(e))
            return self._error_response(e)

    async def list_assistants(
        self,
    ) -> list[AssistantSummary] | VoiceAIErrorResponse:
        try:
            return await self.voice_ai_provider.list_assistants()
        except Exception as e:
            logger.error("Error listing assistants", error=str(e))
            return self._error_response(e)

    async def get_audio_file_url(self, file_id: str) -> str | None | VoiceAIErrorResponse:
        try:
            return await self.voice_ai_provider.get_audio_file_url(file_id)
        except Exception as e:
            logger.error("Error fetching audio file", file_id=file_id, error=str(e))
            return self._error_response(e)

    async def download_recording(self, recording_url: str) -> tuple[bytes, str]:
        """
        Download a call recording from the voice AI provider.

        Args:
            recording_url: URL to the call recording

        Returns:
            tuple[bytes, str]: Tuple of (file_bytes, content_type)

        Raises:
            VoiceAIError: If the recording cannot be downloaded
        """
        logger.info("Downloading call recording", url=recording_url)
        result = await self.voice_ai_provider.download_recording(recording_url)
        logger.info(
            "Successfully downloaded recording",
            size_bytes=len(result[0]),
            content_type=result[1],
        )
        return result
