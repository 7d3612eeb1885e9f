"""
Pydantic schemas for the admin API.
"""

from typing import Any

from pydantic import BaseModel, Field

from prankcall.ai.voice_ai.schemas import AssistantSummary


class AgentListResponse(BaseModel):
    success: bool = True
    agents: list[AssistantSummary]


class AudioFileResponse(BaseModel):
    success: bool = True
    audio_id: str
    audio_url: str


class SystemStatsResponse(BaseModel):
    success: bool = True
    users: dict[str, int]
    calls: dict[str, int]
    scenarios: list[dict[str, Any]]


class BackfillRequest(BaseModel):
    dry_run: bool = Field(default=False, description="Only report what would change")
    limit: int = Field(default=100, ge=1, le=1000)


class BackfillResponse(BaseModel):
    success: bool = True
    matched: int
    updated: int
    dry_run: bool
    sample: list[dict[str, Any]] = Field(default_factory=list)
