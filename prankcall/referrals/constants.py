"""Referral program constants."""

import string
from dataclasses import dataclass
from enum import Enum

REFERRAL_CODE_LENGTH = 6
REFERRAL_CODE_ALPHABET = string.ascii_uppercase + string.digits
MAX_REFERRAL_CODE_ATTEMPTS = 20

# Paid to the referrer once per referred user
REFERRER_REWARD_CREDITS = 1
RECENT_INVITES_LIMIT = 5


@dataclass(frozen=True)
class Milestone:
    type: str
    threshold: int
    credits: int
    reward: str


MILESTONES = (
    Milestone(type="invite_3", threshold=3, credits=5, reward="5_free_calls"),
    Milestone(type="invite_5", threshold=5, credits=10, reward="10_free_calls"),
    Milestone(type="invite_10", threshold=10, credits=25, reward="25_free_calls"),
    Milestone(type="invite_25", threshold=25, credits=50, reward="unlimited_week"),
)


class ReferralErrorCode(str, Enum):
    INVALID_CODE = "INVALID_CODE"
    ALREADY_REFERRED = "ALREADY_REFERRED"
    SELF_REFERRAL = "SELF_REFERRAL"
    NOT_PURCHASED = "NOT_PURCHASED"
    USER_NOT_FOUND = "USER_NOT_FOUND"
