"""
SQLAlchemy model for user accounts.

A user carries the credit balance, lifetime call statistics and the
referral code other people sign up with.
"""

import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from prankcall.db.database import Base

DEFAULT_SIGNUP_CREDITS = 1
REFERRED_SIGNUP_CREDITS = 2


class UserPlan(str, Enum):
    FREE = "free"
    STARTER = "starter"
    PRO = "pro"
    UNLIMITED = "unlimited"


class User(Base):
    """Registered user with a credit balance."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, index=True
    )
    password_hash: Mapped[str] = mapped_column(
        String(255), nullable=False, comment="PBKDF2 salt$hash"
    )

    credits: Mapped[int] = mapped_column(
        Integer, nullable=False, default=DEFAULT_SIGNUP_CREDITS
    )
    plan: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserPlan.FREE.value
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    has_ever_purchased: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Set once by the first settled checkout",
    )
    last_login_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Lifetime statistics
    total_calls: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    successful_calls: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_call_seconds: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, comment="Cumulative call duration"
    )

    # Referral program
    referral_code: Mapped[str | None] = mapped_column(
        String(6), nullable=True, unique=True, index=True
    )
    referred_by_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=True, index=True
    )
    referral_credits_earned: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
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
        CheckConstraint("credits >= 0", name="ck_users_credits_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, credits={self.credits})>"

    def to_dict(self) -> dict[str, Any]:
        """Serialize the user for API responses. The password hash is never included."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "credits": self.credits or 0,
            "plan": self.plan,
            "is_active": self.is_active,
            "has_ever_purchased": bool(self.has_ever_purchased),
            "stats": {
                "total_calls": self.total_calls or 0,
                "successful_calls": self.successful_calls or 0,
                "total_seconds": self.total_call_seconds or 0,
            },
            "referral": {
                "code": self.referral_code,
                "referred_by": self.referred_by_id,
                "credits_earned": self.referral_credits_earned or 0,
            },
            "last_login_at": self.last_login_at.isoformat()
            if self.last_login_at
            else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
