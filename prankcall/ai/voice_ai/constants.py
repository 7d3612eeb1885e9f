"""
Voice AI integration constants and enums.

This module contains the call status domain and the static values shared
by the voice AI gateway and the call lifecycle.
"""

import re
from enum import Enum


class CallStatus(str, Enum):
    """Internal call status values."""

    QUEUED = "queued"
    RINGING = "ringing"
    IN_PROGRESS = "in-progress"
    FORWARDING = "forwarding"
    ENDED = "ended"
    FAILED = "failed"
    CANCELLED = "cancelled"
    TIMEOUT = "timeout"


ACTIVE_CALL_STATUSES = frozenset(
    {
        CallStatus.QUEUED.value,
        CallStatus.RINGING.value,
        CallStatus.IN_PROGRESS.value,
        CallStatus.FORWARDING.value,
    }
)
TERMINAL_CALL_STATUSES = frozenset(
    {
        CallStatus.ENDED.value,
        CallStatus.FAILED.value,
        CallStatus.CANCELLED.value,
        CallStatus.TIMEOUT.value,
    }
)
# Statuses that mean someone picked up and the duration clock runs
ANSWERED_CALL_STATUSES = frozenset(
    {CallStatus.IN_PROGRESS.value, CallStatus.FORWARDING.value}
)

# Upstream spellings that differ from ours
UPSTREAM_STATUS_ALIASES = {
    "completed": CallStatus.ENDED.value,
    "inProgress": CallStatus.IN_PROGRESS.value,
}


def normalize_call_status(raw_status: str | None) -> str | None:
    """Map an upstream status onto the internal vocabulary."""
    if raw_status is None:
        return None
    return UPSTREAM_STATUS_ALIASES.get(raw_status, raw_status)


class VoiceAIProvider(str, Enum):
    """Available Voice AI providers."""

    VAPI = "vapi"


class VoiceAIErrorCode(str, Enum):
    """Standard error codes across Voice AI providers."""

    NOT_FOUND = "NOT_FOUND"
    HTTP_ERROR = "HTTP_ERROR"
    INVALID_JSON = "INVALID_JSON"
    INVALID_PHONE = "INVALID_PHONE"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


# Bare ids reference files stored at the provider, anything else is a URL
PROVIDER_AUDIO_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


def is_provider_audio_id(value: str | None) -> bool:
    """Check whether a scenario audio reference is a provider file id."""
    if not value:
        return False
    trimmed = value.strip()
    return bool(PROVIDER_AUDIO_ID_PATTERN.match(trimmed)) and not trimmed.startswith(
        "http"
    )
