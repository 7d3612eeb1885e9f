"""
SQLAlchemy model for call records.

One row per outbound call attempt: its lifecycle status, the provider's
quality data, credit accounting and recording/share metadata.
"""

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from prankcall.ai.voice_ai.constants import (
    ACTIVE_CALL_STATUSES,
    TERMINAL_CALL_STATUSES,
    CallStatus,
    VoiceAIProvider,
)
from prankcall.calls.constants import CREDITS_PER_CALL, RefundReason
from prankcall.db.database import Base


class Call(Base):
    """Call record model for tracking prank calls."""

    __tablename__ = "calls"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )

    # Owner (email is denormalized for support lookups)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False
    )
    user_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Call identification
    call_id: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, index=True, comment="Provider call ID"
    )
    provider: Mapped[str] = mapped_column(
        String(50), nullable=False, comment="Voice AI provider (vapi, etc.)"
    )

    # Target
    target_phone: Mapped[str] = mapped_column(
        String(32), nullable=False, comment="Phone number as entered"
    )
    formatted_phone: Mapped[str] = mapped_column(
        String(32), nullable=False, comment="Phone number in +31 form"
    )
    target_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Scenario snapshot
    scenario_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    scenario_name: Mapped[str] = mapped_column(String(200), nullable=False)
    scenario_icon: Mapped[str | None] = mapped_column(String(20), nullable=True)
    agent_id: Mapped[str] = mapped_column(
        String(255), nullable=False, comment="Provider assistant ID"
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=CallStatus.QUEUED.value,
        index=True,
        comment="Current call status",
    )

    # Timing
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        index=True,
    )
    answered_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="First time the call was seen in-progress or forwarding",
    )
    ended_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    duration: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, comment="Duration in seconds"
    )

    provider_data: Mapped[dict[str, Any] | None] = mapped_column(
        JSON,
        nullable=True,
        comment="Cost, transcript, end reason and quality flags from the provider",
    )

    # Recording and sharing
    recording_available: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    recording_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    recording_format: Mapped[str | None] = mapped_column(String(10), nullable=True)
    recording_duration: Mapped[float | None] = mapped_column(Float, nullable=True)
    share_id: Mapped[str | None] = mapped_column(
        String(32), nullable=True, unique=True, index=True
    )
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    allow_sharing: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    share_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    share_platforms: Mapped[list[dict[str, Any]] | None] = mapped_column(
        JSON, nullable=True, comment="One entry per share action"
    )
    download_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_downloaded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Outcome and credit accounting
    was_successful: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    credits_used: Mapped[int] = mapped_column(
        Integer, nullable=False, default=CREDITS_PER_CALL
    )
    credits_refunded: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, comment="Either 0 or credits_used"
    )
    was_free: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    should_refund: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    refund_reason: Mapped[str] = mapped_column(
        String(20), nullable=False, default=RefundReason.NONE.value
    )
    refunded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    settled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Claimed atomically by the single settlement run",
    )

    # Error details
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    error_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    __table_args__ = (
        Index("idx_calls_user_created", "user_id", "created_at"),
        Index("idx_calls_email_created", "user_email", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Call(id={self.id}, call_id={self.call_id}, "
            f"user_id={self.user_id}, status={self.status})>"
        )

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_CALL_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_CALL_STATUSES

    @property
    def formatted_duration(self) -> str:
        """Duration as m:ss."""
        seconds = self.duration or 0
        return f"{seconds // 60}:{seconds % 60:02d}"

    def to_dict(self) -> dict[str, Any]:
        """
        Convert model to dictionary representation.

        Returns:
            dict: Dictionary with all call data
        """
        return {
            "id": self.id,
            "user_id": self.user_id,
            "call_id": self.call_id,
            "provider": self.provider,
            "target_phone": self.target_phone,
            "formatted_phone": self.formatted_phone,
            "target_name": self.target_name,
            "scenario_id": self.scenario_id,
            "scenario_name": self.scenario_name,
            "scenario_icon": self.scenario_icon,
            "agent_id": self.agent_id,
            "status": self.status,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "answered_at": self.answered_at.isoformat() if self.answered_at else None,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "duration": self.duration or 0,
            "formatted_duration": self.formatted_duration,
            "provider_data": self.provider_data,
            "recording": {
                "is_available": bool(self.recording_available),
                "url": self.recording_url,
                "format": self.recording_format,
                "duration": self.recording_duration,
                "share_id": self.share_id,
                "is_public": bool(self.is_public),
                "share_count": self.share_count or 0,
                "download_count": self.download_count or 0,
            },
            "was_successful": bool(self.was_successful),
            "credits_used": self.credits_used,
            "credits_refunded": self.credits_refunded or 0,
            "refund_reason": self.refund_reason,
            "refunded_at": self.refunded_at.isoformat() if self.refunded_at else None,
            "error": {
                "message": self.error_message,
                "code": self.error_code,
                "timestamp": self.error_at.isoformat() if self.error_at else None,
            }
            if self.error_message
            else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @staticmethod
    def from_started_call(
        user_id: str,
        user_email: str | None,
        call_id: str,
        provider: VoiceAIProvider,
        target_phone: str,
        formatted_phone: str,
        scenario_id: str,
        scenario_name: str,
        agent_id: str,
        scenario_icon: str | None = None,
        target_name: str | None = None,
        started_at: datetime | None = None,
    ) -> "Call":
        """
        Create a queued Call for a call the provider has accepted.

        Column defaults only apply on insert, so every counter is set here
        to keep the in-memory object usable before the first flush.
        """
        return Call(
            user_id=user_id,
            user_email=user_email,
            call_id=call_id,
            provider=provider.value,
            target_phone=target_phone,
            formatted_phone=formatted_phone,
            target_name=target_name,
            scenario_id=scenario_id,
            scenario_name=scenario_name,
            scenario_icon=scenario_icon,
            agent_id=agent_id,
            status=CallStatus.QUEUED.value,
            started_at=started_at or datetime.now(UTC),
            duration=0,
            recording_available=False,
            is_public=False,
            allow_sharing=True,
            share_count=0,
            download_count=0,
            was_successful=False,
            credits_used=CREDITS_PER_CALL,
            credits_refunded=0,
            was_free=False,
            should_refund=False,
            refund_reason=RefundReason.NONE.value,
        )
