"""
SQLAlchemy model for the scenario catalog.

Scenarios are managed by administrators; each one links to the provider
assistant that plays it.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from prankcall.db.database import Base

MAX_POPULARITY = 100


class ScenarioCategory(str, Enum):
    CLASSIC = "Klassiek"
    FAMILY = "Familie"
    WORK = "Werk"
    MEDIA = "Media"
    SALES = "Verkoop"
    LUCK = "Geluk"
    NEW = "Nieuw"


class ScenarioDifficulty(str, Enum):
    EASY = "Makkelijk"
    MEDIUM = "Gemiddeld"
    HARD = "Moeilijk"


class AudioProvider(str, Enum):
    NONE = "none"
    ELEVENLABS = "elevenlabs"
    UPLOAD = "upload"
    URL = "url"


class Scenario(Base):
    """A scripted prank that users can pick."""

    __tablename__ = "scenarios"

    id: Mapped[str] = mapped_column(String(100), primary_key=True, comment="Slug")
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    user_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    icon: Mapped[str] = mapped_column(String(20), nullable=False, default="🎭")
    image: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ScenarioCategory.CLASSIC.value
    )
    difficulty: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ScenarioDifficulty.MEDIUM.value
    )
    duration_label: Mapped[str] = mapped_column(
        String(20), nullable=False, default="2-5 min"
    )
    script: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Optional intro audio
    audio_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    audio_provider: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AudioProvider.NONE.value
    )
    voice_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    agent_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True, index=True, comment="Provider assistant ID"
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Usage statistics
    popularity: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    times_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    average_rating: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    success_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    created_by: Mapped[str] = mapped_column(String(100), nullable=False, default="admin")
    tags: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)

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
        Index("idx_scenarios_active_public", "is_active", "is_public"),
        Index("idx_scenarios_category", "category"),
    )

    def __repr__(self) -> str:
        return f"<Scenario(id={self.id}, name={self.name}, agent_id={self.agent_id})>"

    def record_usage(self, rating: float | None = None) -> None:
        """Count one more completed call and refresh popularity."""
        times_used = (self.times_used or 0) + 1
        average_rating = self.average_rating or 0
        if rating is not None:
            average_rating = (average_rating * (times_used - 1) + rating) / times_used

        self.times_used = times_used
        self.average_rating = average_rating
        self.popularity = min(MAX_POPULARITY, times_used * 2 + average_rating * 10)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "user_description": self.user_description,
            "icon": self.icon,
            "image": self.image,
            "category": self.category,
            "difficulty": self.difficulty,
            "duration": self.duration_label,
            "script": self.script,
            "audio_url": self.audio_url,
            "audio_provider": self.audio_provider,
            "voice_id": self.voice_id,
            "agent_id": self.agent_id,
            "is_active": self.is_active,
            "is_public": self.is_public,
            "popularity": self.popularity or 0,
            "times_used": self.times_used or 0,
            "average_rating": self.average_rating or 0,
            "success_rate": self.success_rate or 0,
            "tags": self.tags or [],
        }
