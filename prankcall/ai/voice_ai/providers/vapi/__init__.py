from prankcall.ai.voice_ai.providers.vapi.provider import VapiProvider

__all__ = ["VapiProvider"]
