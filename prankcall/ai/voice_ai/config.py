"""
Settings for placing prank calls through the voice AI provider.

The caller ID, API credentials and the region used to read national
numbers all come from the environment.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from prankcall.ai.voice_ai.constants import VoiceAIProvider
from prankcall.utils.logger import logger


class VoiceAISettings(BaseSettings):
    """General configuration for Voice AI integrations."""

    model_config = SettingsConfigDict(
        case_sensitive=False, extra="ignore", env_prefix="VOICE_AI_"
    )

    provider: VoiceAIProvider = Field(
        default=VoiceAIProvider.VAPI, description="Voice AI provider to use"
    )
    request_timeout: int = Field(
        default=30, description="HTTP request timeout in seconds"
    )


class VapiSettings(BaseSettings):
    """Vapi-specific configuration."""

    model_config = SettingsConfigDict(
        case_sensitive=False, extra="ignore", env_prefix="VAPI_"
    )

    api_key: str = Field(description="Vapi API key for authentication")
    base_url: str = Field(
        default="https://api.vapi.ai", description="Vapi API base URL"
    )
    phone_number_id: str = Field(
        description="Vapi phone number ID used as caller for outbound calls"
    )
    default_region: str = Field(
        default="NL", description="Region used to parse national phone numbers"
    )


_voice_ai_settings: VoiceAISettings | None = None
_vapi_settings: VapiSettings | None = None


def get_voice_ai_settings() -> VoiceAISettings:
    """
    Get the global Voice AI settings instance.

    Returns:
        VoiceAISettings: The global settings instance
    """
    global _voice_ai_settings
    if _voice_ai_settings is None:
        _voice_ai_settings = VoiceAISettings()
        logger.info("VoiceAISettings loaded", provider=_voice_ai_settings.provider)
    return _voice_ai_settings


def get_vapi_settings() -> VapiSettings:
    """
    Get the global Vapi settings instance.

    Returns:
        VapiSettings: The global Vapi settings instance
    """
    global _vapi_settings
    if _vapi_settings is None:
        _vapi_settings = VapiSettings()
        logger.info(
            "VapiSettings loaded", phone_number_id=_vapi_settings.phone_number_id
        )
    return _vapi_settings


def set_voice_ai_settings(settings: VoiceAISettings) -> None:
    global _voice_ai_settings
    _voice_ai_settings = settings


def set_vapi_settings(settings: VapiSettings) -> None:
    global _vapi_settings
    _vapi_settings = settings
