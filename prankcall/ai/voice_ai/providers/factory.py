"""
Picks the voice AI provider configured in `VOICE_AI_PROVIDER`.
"""

from prankcall.ai.voice_ai.base import VoiceAIProvider
from prankcall.ai.voice_ai.config import get_voice_ai_settings
from prankcall.ai.voice_ai.constants import VoiceAIProvider as VoiceAIProviderEnum
from prankcall.ai.voice_ai.providers.vapi import VapiProvider
from prankcall.utils.logger import logger


def create_voice_ai_provider() -> VoiceAIProvider:
    """
    Create a Voice AI provider instance based on configuration.

    Returns:
        VoiceAIProvider: The configured Voice AI provider instance

    Raises:
        ValueError: If the configured provider is not supported
    """
    settings = get_voice_ai_settings()

    if settings.provider == VoiceAIProviderEnum.VAPI:
        logger.info("Creating Vapi Voice AI provider")
        return VapiProvider()
    else:
        raise ValueError(f"Unsupported Voice AI provider: {settings.provider}")


_voice_ai_provider: VoiceAIProvider | None = None


def get_voice_ai_provider() -> VoiceAIProvider:
    """
    Get the global Voice AI provider instance.

    Returns:
        VoiceAIProvider: The global provider instance
    """
    global _voice_ai_provider
    if _voice_ai_provider is None:
        _voice_ai_provider = create_voice_ai_provider()
    return _voice_ai_provider


async def close_voice_ai_provider() -> None:
    """Close the global provider's HTTP clients, if one was created."""
    global _voice_ai_provider
    if _voice_ai_provider is not None:
        await _voice_ai_provider.close()
        _voice_ai_provider = None
