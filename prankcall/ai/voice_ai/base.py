"""
Abstract base classes for Voice AI providers.

This module defines the interface every Voice AI provider implements so the
call lifecycle never depends on a specific vendor.
"""

from abc import ABC, abstractmethod

from prankcall.ai.voice_ai.schemas import AssistantSummary, CallRequest, CallResponse


class VoiceAIProvider(ABC):
    """Abstract interface for Voice AI providers."""

    @abstractmethod
    async def create_outbound_call(self, request: CallRequest) -> CallResponse:
        """
        Create an outbound call.

        Args:
            request: The call request with destination and agent

        Returns:
            CallResponse: The call response with call_id and status

        Raises:
            VoiceAIError: If the call creation fails
        """
        pass

    @abstractmethod
    async def get_call_status(self, call_id: str) -> CallResponse:
        """
        Get the status of a specific call by ID.

        Args:
            call_id: The unique identifier for the call

        Returns:
            CallResponse: The call status information

        Raises:
            VoiceAIError: If the call is not found or an error occurs
        """
        pass

    @abstractmethod
    async def end_call(self, call_id: str) -> bool:
        """
        Hang up an ongoing call.

        Args:
            call_id: The unique identifier for the call

        Returns:
            bool: True if the provider accepted the hangup

        Raises:
            VoiceAIError: If the call cannot be ended
        """
        pass

    @abstractmethod
    async def list_assistants(self) -> list[AssistantSummary]:
        """List the agents configured at the provider."""
        pass

    @abstractmethod
    async def get_audio_file_url(self, file_id: str) -> str | None:
        """Resolve a stored provider file to a downloadable URL."""
        pass

    @abstractmethod
    async def download_recording(self, recording_url: str) -> tuple[bytes, str]:
        """
        Download a call recording.

        Returns:
            tuple[bytes, str]: File bytes and content type

        Raises:
            VoiceAIError: If the recording cannot be downloaded
        """
        pass

    async def close(self) -> None:
        """Release network resources held by the provider."""
        return None


class VoiceAIError(Exception):
    """Base exception for Voice AI-related errors."""

    def __init__(self, message: str, error_code: str | None = None):
        """
        Initialize Voice AI error.

        Args:
            message: Error message
            error_code: Optional provider-specific error code
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
