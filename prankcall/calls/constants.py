"""Constants for call quality evaluation, refunds and sharing."""

from enum import Enum


class RefundReason(str, Enum):
    NONE = "none"
    TOO_SHORT = "too_short"
    VOICEMAIL = "voicemail"
    NO_ANSWER = "no_answer"
    FAILED = "failed"
    POOR_QUALITY = "poor_quality"


class CallQuality(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    POOR = "poor"
    VOICEMAIL = "voicemail"
    NO_ANSWER = "no_answer"
    FAILED = "failed"


class SharePlatform(str, Enum):
    WHATSAPP = "whatsapp"
    TELEGRAM = "telegram"
    TWITTER = "twitter"
    FACEBOOK = "facebook"
    LINK = "link"


class CallErrorCode(str, Enum):
    SCENARIO_UNAVAILABLE = "SCENARIO_UNAVAILABLE"
    INSUFFICIENT_CREDITS = "INSUFFICIENT_CREDITS"
    INVALID_PHONE = "INVALID_PHONE"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    NOT_FOUND = "NOT_FOUND"


CREDITS_PER_CALL = 1

# Seconds
MIN_BILLABLE_DURATION = 7
MIN_SUCCESSFUL_DURATION = 10
NO_ANSWER_DURATION = 30

# Conversation flow is scored 0-100
POOR_CONVERSATION_FLOW = 20
SUCCESS_CONVERSATION_FLOW = 80

UPSTREAM_ERROR_END_REASON = "error"
UPSTREAM_VOICEMAIL_END_REASON = "voicemail"
UNKNOWN_END_REASON = "unknown"

VOICEMAIL_KEYWORDS = (
    "voicemail",
    "boodschap",
    "achterlaten",
    "spreken na de piep",
    "niet bereikbaar",
    "momenteel niet beschikbaar",
    "inbox",
    "beep",
    "piep",
    "na het signaal",
    "later terugbellen",
)

DEFAULT_RECORDING_FORMAT = "mp3"
SHARE_ID_BYTES = 8
