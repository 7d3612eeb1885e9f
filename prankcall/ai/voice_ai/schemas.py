"""
Voice AI-specific Pydantic schemas for request and response models.

This module contains the provider-agnostic models exchanged between the
voice AI gateway and the call lifecycle.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from prankcall.ai.voice_ai.constants import VoiceAIErrorCode
from prankcall.ai.voice_ai.constants import VoiceAIProvider as VoiceAIProviderEnum


class CallRequest(BaseModel):
    """Request model for creating an outbound call."""

    phone_number: str = Field(..., description="Destination phone number")
    assistant_id: str = Field(..., description="Provider agent to run the call")
    target_name: str | None = Field(
        None, description="Name substituted into the agent script"
    )
    customer_id: str | None = Field(
        None, description="User id sent as the customer external id"
    )


class VoiceAIErrorResponse(BaseModel):
    """Error response from Voice AI operations."""

    success: bool = Field(default=False, description="Operation success status")
    error: str = Field(..., description="Error message")
    error_code: VoiceAIErrorCode | None = Field(None, description="Error code")
    provider: VoiceAIProviderEnum | None = Field(None, description="Voice AI provider")


class ProviderCallData(BaseModel):
    """Provider-agnostic snapshot of a call as reported upstream."""

    id: str | None = Field(None, description="Provider call ID")
    status: str | None = Field(None, description="Raw upstream status")
    started_at: datetime | None = Field(None, description="Upstream start time")
    ended_at: datetime | None = Field(None, description="Upstream end time")
    duration: float | None = Field(None, description="Upstream duration in seconds")
    cost: float | None = Field(None, description="Call cost in USD")
    transcript: str | None = Field(None, description="Plain-text transcript")
    recording_url: str | None = Field(None, description="Recording location")
    summary: str | None = Field(None, description="Call summary")
    end_reason: str | None = Field(None, description="Why the call ended")
    was_answered: bool | None = Field(None, description="Upstream answered flag")
    hit_voicemail: bool | None = Field(None, description="Upstream voicemail flag")
    call_quality: str | None = Field(None, description="Upstream quality class")
    human_interaction: bool | None = Field(
        None, description="Whether a human took part in the conversation"
    )
    conversation_flow: float | None = Field(
        None, description="Conversation flow score (0-100)"
    )
    success_evaluation: str | None = Field(
        None, description="Analysis success evaluation as reported"
    )

    @classmethod
    def from_vapi(cls, payload: dict[str, Any]) -> "ProviderCallData":
        """Create from a Vapi call object."""
        artifact = payload.get("artifact") or {}
        analysis = payload.get("analysis") or {}

        success_evaluation = analysis.get("successEvaluation")
        if success_evaluation is not None:
            success_evaluation = str(success_evaluation).lower()

        return cls(
            id=payload.get("id"),
            status=payload.get("status"),
            started_at=payload.get("startedAt"),
            ended_at=payload.get("endedAt"),
            duration=payload.get("duration"),
            cost=payload.get("cost"),
            transcript=payload.get("transcript") or artifact.get("transcript"),
            recording_url=payload.get("recordingUrl")
            or artifact.get("recordingUrl"),
            summary=payload.get("summary") or analysis.get("summary"),
            end_reason=payload.get("endReason") or payload.get("endedReason"),
            was_answered=payload.get("wasAnswered"),
            hit_voicemail=payload.get("hitVoicemail"),
            call_quality=payload.get("callQuality"),
            human_interaction=payload.get("humanInteraction"),
            conversation_flow=payload.get("conversationFlow"),
            success_evaluation=success_evaluation,
        )


class CallResponse(BaseModel):
    """Response model for call operations."""

    call_id: str = Field(..., description="Provider call ID")
    status: str = Field(..., description="Raw upstream call status")
    provider: VoiceAIProviderEnum = Field(..., description="Voice AI provider")
    created_at: datetime | None = Field(None, description="Creation timestamp")
    provider_data: ProviderCallData | None = Field(
        None, description="Parsed provider call data"
    )


class AssistantSummary(BaseModel):
    """Agent configured at the provider."""

    id: str
    name: str | None = None
    created_at: datetime | None = None
    voice: dict[str, Any] | None = None
    first_message: str | None = None

    @classmethod
    def from_vapi(cls, payload: dict[str, Any]) -> "AssistantSummary":
        return cls(
            id=payload["id"],
            name=payload.get("name"),
            created_at=payload.get("createdAt"),
            voice=payload.get("voice"),
            first_message=payload.get("firstMessage"),
        )
