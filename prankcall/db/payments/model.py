"""
SQLAlchemy model for the processed payment ledger.

A checkout session id is inserted exactly once; whoever inserts it gets to
credit the user.
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from prankcall.db.database import Base


class ProcessedPaymentSession(Base):
    __tablename__ = "processed_payment_sessions"

    session_id: Mapped[str] = mapped_column(
        String(255), primary_key=True, comment="Stripe checkout session ID"
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )
    credits: Mapped[int] = mapped_column(Integer, nullable=False)
    package_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    source: Mapped[str] = mapped_column(
        String(20), nullable=False, comment="verify or webhook"
    )
    processed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    def __repr__(self) -> str:
        return (
            f"<ProcessedPaymentSession(session_id={self.session_id}, "
            f"user_id={self.user_id}, credits={self.credits})>"
        )
