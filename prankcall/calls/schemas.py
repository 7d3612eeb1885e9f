"""
Pydantic schemas for the calls API.
"""

from typing import Any

from pydantic import BaseModel, Field

from prankcall.calls.constants import CallErrorCode, SharePlatform


class StartCallRequest(BaseModel):
    """Request model for starting a prank call."""

    scenario_id: str = Field(..., min_length=1, description="Scenario slug")
    phone_number: str = Field(..., min_length=1, description="Number to call")
    target_name: str | None = Field(
        None, max_length=100, description="Name of the person being called"
    )
    scenario_name: str | None = Field(
        None, description="Display name, used when the scenario is not in the catalog"
    )
    scenario_icon: str | None = Field(None, description="Scenario icon")
    agent_id: str | None = Field(
        None, description="Provider assistant ID, overrides the scenario's"
    )


class CallErrorResponse(BaseModel):
    """Error response from call lifecycle operations."""

    success: bool = Field(default=False)
    error: str = Field(..., description="Error message")
    error_code: CallErrorCode = Field(..., description="Error code")


class StartCallResponse(BaseModel):
    success: bool = True
    call: dict[str, Any]
    credits: int = Field(..., description="Credit balance after the charge")


class CallDetailResponse(BaseModel):
    success: bool = True
    call: dict[str, Any]


class CallListResponse(BaseModel):
    calls: list[dict[str, Any]]
    total: int
    page: int
    limit: int
    pages: int


class CallStatsResponse(BaseModel):
    total_calls: int
    successful_calls: int
    total_seconds: int
    average_duration: float
    favorite_scenario: dict[str, Any] | None = None
    credits: int


class ShareCallRequest(BaseModel):
    platform: SharePlatform = Field(default=SharePlatform.LINK)


class ShareCallResponse(BaseModel):
    success: bool = True
    share_id: str
    share_url: str
    share_count: int


class PublicCallResponse(BaseModel):
    """What anyone with a share link may see."""

    share_id: str
    scenario_name: str
    scenario_icon: str | None = None
    duration: int
    formatted_duration: str
    created_at: str | None = None
    stream_url: str
