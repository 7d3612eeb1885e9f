"""
SQLAlchemy models for the referral graph.

Invites are stored once, keyed by the referred user, instead of being copied
onto both accounts.
"""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from prankcall.db.database import Base


class ReferralInvite(Base):
    """A user who signed up with someone else's referral code."""

    __tablename__ = "referral_invites"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    referrer_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )
    referred_user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, unique=True
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    invited_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )
    credits_earned: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Credits paid to the referrer for this invite (0 or 1)",
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    rewarded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return (
            f"<ReferralInvite(referrer_id={self.referrer_id}, "
            f"referred_user_id={self.referred_user_id}, "
            f"credits_earned={self.credits_earned})>"
        )

    def to_dict(self, mask_email: bool = False) -> dict[str, Any]:
        email = self.email
        if mask_email and "@" in email:
            local, domain = email.split("@", 1)
            email = f"{local[:2]}***@{domain}"
        return {
            "name": self.name,
            "email": email,
            "invited_at": self.invited_at.isoformat() if self.invited_at else None,
            "credits_earned": self.credits_earned or 0,
            "is_active": self.is_active,
        }


class ReferralMilestone(Base):
    """An invite-count milestone a user has reached."""

    __tablename__ = "referral_milestones"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )
    milestone_type: Mapped[str] = mapped_column(String(20), nullable=False)
    reward: Mapped[str] = mapped_column(String(50), nullable=False)
    credits: Mapped[int] = mapped_column(Integer, nullable=False)
    achieved_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    __table_args__ = (
        UniqueConstraint("user_id", "milestone_type", name="uq_milestone_per_user"),
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.milestone_type,
            "reward": self.reward,
            "credits": self.credits,
            "achieved_at": self.achieved_at.isoformat() if self.achieved_at else None,
        }
