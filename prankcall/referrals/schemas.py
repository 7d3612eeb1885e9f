"""
Pydantic schemas for the referral API.
"""

from typing import Any

from pydantic import BaseModel, Field

from prankcall.referrals.constants import ReferralErrorCode


class NextMilestone(BaseModel):
    type: str
    threshold: int
    remaining: int
    credits: int


class ReferralStatsResponse(BaseModel):
    code: str | None
    share_url: str | None
    total_invites: int
    active_invites: int
    credits_earned: int
    milestones: list[dict[str, Any]]
    next_milestone: NextMilestone | None = None
    recent_invites: list[dict[str, Any]] = Field(default_factory=list)


class ProcessSignupRequest(BaseModel):
    referral_code: str = Field(..., min_length=1, max_length=20)


class ReferralRewardResponse(BaseModel):
    success: bool = True
    message: str
    credits_awarded: int
    new_milestones: list[dict[str, Any]] = Field(default_factory=list)


class ReferralCodeResponse(BaseModel):
    valid: bool
    referrer_name: str | None = None


class ReferralErrorResponse(BaseModel):
    success: bool = False
    error: str
    error_code: ReferralErrorCode
