"""
Call quality evaluation and refund rules.

Pure functions over the provider's view of a finished call. The settlement
service persists whatever these return.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import PurePosixPath
from typing import Any
from urllib.parse import urlparse

from prankcall.ai.voice_ai.constants import CallStatus
from prankcall.ai.voice_ai.schemas import ProviderCallData
from prankcall.calls.constants import (
    DEFAULT_RECORDING_FORMAT,
    MIN_BILLABLE_DURATION,
    MIN_SUCCESSFUL_DURATION,
    NO_ANSWER_DURATION,
    POOR_CONVERSATION_FLOW,
    SUCCESS_CONVERSATION_FLOW,
    UNKNOWN_END_REASON,
    UPSTREAM_ERROR_END_REASON,
    UPSTREAM_VOICEMAIL_END_REASON,
    VOICEMAIL_KEYWORDS,
    CallQuality,
    RefundReason,
)


@dataclass(frozen=True)
class RefundDecision:
    """Result of running every refund rule against a call."""

    reason: RefundReason
    matched: tuple[RefundReason, ...]
    voicemail_detected: bool

    @property
    def should_refund(self) -> bool:
        return bool(self.matched)


def _seconds_between(start: datetime | None, end: datetime | None) -> float:
    if start is None or end is None:
        return 0
    return max((end - start).total_seconds(), 0)


def compute_duration(
    provider_data: ProviderCallData | None,
    answered_at: datetime | None = None,
    ended_at: datetime | None = None,
) -> int:
    """
    Work out how long a call lasted, in whole seconds.

    The provider's timestamps are preferred; without them the local
    answered/ended span is used. The reported duration only counts when it
    is longer than the computed one.
    """
    if provider_data and provider_data.started_at and provider_data.ended_at:
        calculated = _seconds_between(provider_data.started_at, provider_data.ended_at)
    else:
        calculated = _seconds_between(answered_at, ended_at)

    reported = provider_data.duration if provider_data else None
    duration = max(reported or calculated, calculated)
    return max(int(round(duration)), 0)


def transcript_mentions_voicemail(transcript: str | None) -> bool:
    """Case-insensitive search for voicemail phrases in a transcript."""
    if not transcript:
        return False
    lowered = transcript.lower()
    return any(keyword in lowered for keyword in VOICEMAIL_KEYWORDS)


def build_quality_report(
    provider_data: ProviderCallData | None, status: str, duration: int
) -> dict[str, Any]:
    """
    Build the provider block stored on a settled call.

    Missing quality fields are filled from the analysis success evaluation
    when the provider sent one, otherwise they stay unknown.
    """
    data = provider_data or ProviderCallData()
    evaluation = data.success_evaluation
    evaluated_success = evaluation == "true" if evaluation is not None else None

    end_reason = data.end_reason or UNKNOWN_END_REASON

    was_answered = data.was_answered
    if was_answered is None:
        was_answered = status == CallStatus.ENDED.value and duration > 0

    human_interaction = data.human_interaction
    if human_interaction is None:
        human_interaction = evaluated_success

    call_quality = data.call_quality
    if call_quality is None and evaluated_success is not None:
        call_quality = (
            CallQuality.GOOD.value if evaluated_success else CallQuality.POOR.value
        )

    conversation_flow = data.conversation_flow
    if conversation_flow is None and evaluated_success is not None:
        conversation_flow = (
            SUCCESS_CONVERSATION_FLOW if evaluated_success else POOR_CONVERSATION_FLOW
        )

    return {
        "cost": data.cost,
        "transcript": data.transcript,
        "recording_url": data.recording_url,
        "summary": data.summary,
        "end_reason": end_reason,
        "was_answered": was_answered,
        "hit_voicemail": bool(data.hit_voicemail)
        or end_reason == UPSTREAM_VOICEMAIL_END_REASON,
        "call_quality": call_quality,
        "human_interaction": human_interaction,
        "conversation_flow": conversation_flow,
        "success_evaluation": evaluation,
    }


def evaluate_refund(
    duration: int, report: dict[str, Any], status: str
) -> RefundDecision:
    """
    Run every refund rule and pick the reason to report.

    All rules are evaluated and recorded. The reported reason is the first
    match in rule order, so a call under the billable minimum is always
    ``too_short``.
    """
    matched: list[RefundReason] = []

    if duration < MIN_BILLABLE_DURATION:
        matched.append(RefundReason.TOO_SHORT)

    voicemail_detected = (
        bool(report.get("hit_voicemail"))
        or report.get("call_quality") == CallQuality.VOICEMAIL.value
        or transcript_mentions_voicemail(report.get("transcript"))
    )
    if voicemail_detected:
        matched.append(RefundReason.VOICEMAIL)

    if report.get("human_interaction") is False and duration < NO_ANSWER_DURATION:
        matched.append(RefundReason.NO_ANSWER)

    if (
        report.get("call_quality") == CallQuality.FAILED.value
        or report.get("end_reason") == UPSTREAM_ERROR_END_REASON
        or status == CallStatus.FAILED.value
    ):
        matched.append(RefundReason.FAILED)

    flow = report.get("conversation_flow")
    if flow is not None and flow < POOR_CONVERSATION_FLOW:
        matched.append(RefundReason.POOR_QUALITY)

    return RefundDecision(
        reason=matched[0] if matched else RefundReason.NONE,
        matched=tuple(matched),
        voicemail_detected=voicemail_detected,
    )


def is_successful_call(status: str, duration: int, hit_voicemail: bool) -> bool:
    return (
        status == CallStatus.ENDED.value
        and duration >= MIN_SUCCESSFUL_DURATION
        and not hit_voicemail
    )


def recording_format_from_url(recording_url: str) -> str:
    """Audio format from the recording URL's file extension."""
    suffix = PurePosixPath(urlparse(recording_url).path).suffix
    return suffix.lstrip(".").lower() or DEFAULT_RECORDING_FORMAT
