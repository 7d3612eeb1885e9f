"""
Pydantic schemas for scenario catalog operations.
"""

from typing import Any

from pydantic import AliasChoices, BaseModel, Field

from prankcall.db.scenarios.model import (
    AudioProvider,
    ScenarioCategory,
    ScenarioDifficulty,
)

SLUG_PATTERN = r"^[a-z0-9][a-z0-9-]*$"


class ScenarioFields(BaseModel):
    """Editable scenario fields. Every field is optional so updates can be partial."""

    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, min_length=1)
    user_description: str | None = None
    icon: str | None = Field(None, max_length=20)
    image: str | None = None
    category: ScenarioCategory | None = None
    difficulty: ScenarioDifficulty | None = None
    duration_label: str | None = Field(
        None,
        max_length=20,
        validation_alias=AliasChoices("duration_label", "duration"),
    )
    script: str | None = None
    audio_url: str | None = None
    audio_provider: AudioProvider | None = None
    voice_id: str | None = None
    agent_id: str | None = Field(None, description="Provider assistant ID")
    is_active: bool | None = None
    is_public: bool | None = None
    tags: list[str] | None = None

    def to_columns(self) -> dict[str, Any]:
        """Non-null fields that were sent, as column values."""
        return {
            key: value.value if hasattr(value, "value") else value
            for key, value in self.model_dump(exclude_unset=True, exclude_none=True).items()
        }


class CreateScenarioRequest(ScenarioFields):
    id: str = Field(..., min_length=1, max_length=100, pattern=SLUG_PATTERN)
    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)


class UpdateScenarioRequest(ScenarioFields):
    pass


class ScenarioListResponse(BaseModel):
    success: bool = True
    scenarios: list[dict[str, Any]]


class ScenarioResponse(BaseModel):
    success: bool = True
    message: str | None = None
    scenario: dict[str, Any]
