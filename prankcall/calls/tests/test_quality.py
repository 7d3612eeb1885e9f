"""Tests for call quality evaluation and refund rules."""

from datetime import datetime, timedelta, timezone

import pytest

from prankcall.ai.voice_ai.constants import CallStatus
from prankcall.ai.voice_ai.schemas import ProviderCallData
from prankcall.calls.constants import CallQuality, RefundReason
from prankcall.calls.quality import (
    build_quality_report,
    compute_duration,
    evaluate_refund,
    is_successful_call,
    recording_format_from_url,
    transcript_mentions_voicemail,
)

START = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def _report(**overrides):
    report = {
        "end_reason": "customer-ended-call",
        "hit_voicemail": False,
        "call_quality": CallQuality.GOOD.value,
        "human_interaction": True,
        "conversation_flow": 80,
        "transcript": "Hallo, met wie spreek ik?",
    }
    report.update(overrides)
    return report


class TestComputeDuration:
    def test_uses_provider_timestamps(self):
        data = ProviderCallData(started_at=START, ended_at=START + timedelta(seconds=42))
        assert compute_duration(data) == 42

    def test_reported_duration_wins_when_longer(self):
        data = ProviderCallData(
            started_at=START, ended_at=START + timedelta(seconds=30), duration=45.4
        )
        assert compute_duration(data) == 45

    def test_shorter_reported_duration_is_ignored(self):
        data = ProviderCallData(
            started_at=START, ended_at=START + timedelta(seconds=30), duration=12
        )
        assert compute_duration(data) == 30

    def test_falls_back_to_local_timestamps(self):
        assert (
            compute_duration(None, START, START + timedelta(seconds=18)) == 18
        )

    def test_no_timestamps_is_zero(self):
        assert compute_duration(None) == 0
        assert compute_duration(ProviderCallData()) == 0

    def test_clock_skew_never_goes_negative(self):
        assert compute_duration(None, START, START - timedelta(seconds=5)) == 0


class TestBuildQualityReport:
    def test_fills_missing_fields_from_success_evaluation(self):
        report = build_quality_report(
            ProviderCallData(success_evaluation="true"), CallStatus.ENDED.value, 60
        )

        assert report["call_quality"] == CallQuality.GOOD.value
        assert report["human_interaction"] is True
        assert report["conversation_flow"] == 80
        assert report["was_answered"] is True
        assert report["end_reason"] == "unknown"

    def test_failed_evaluation_marks_call_poor(self):
        report = build_quality_report(
            ProviderCallData(success_evaluation="false"), CallStatus.ENDED.value, 60
        )

        assert report["call_quality"] == CallQuality.POOR.value
        assert report["human_interaction"] is False
        assert report["conversation_flow"] == 20

    def test_without_evaluation_quality_stays_unknown(self):
        report = build_quality_report(None, CallStatus.FAILED.value, 0)

        assert report["call_quality"] is None
        assert report["human_interaction"] is None
        assert report["conversation_flow"] is None
        assert report["was_answered"] is False

    def test_voicemail_end_reason_sets_flag(self):
        report = build_quality_report(
            ProviderCallData(end_reason="voicemail"), CallStatus.ENDED.value, 20
        )
        assert report["hit_voicemail"] is True

    def test_provider_values_are_kept(self):
        data = ProviderCallData(
            call_quality=CallQuality.EXCELLENT.value,
            human_interaction=False,
            conversation_flow=55,
            success_evaluation="true",
            cost=0.12,
        )
        report = build_quality_report(data, CallStatus.ENDED.value, 60)

        assert report["call_quality"] == CallQuality.EXCELLENT.value
        assert report["human_interaction"] is False
        assert report["conversation_flow"] == 55
        assert report["cost"] == 0.12


class TestEvaluateRefund:
    def test_good_call_is_not_refunded(self):
        decision = evaluate_refund(60, _report(), CallStatus.ENDED.value)

        assert decision.should_refund is False
        assert decision.reason == RefundReason.NONE
        assert decision.matched == ()

    def test_short_call_reports_too_short_first(self):
        decision = evaluate_refund(
            3, _report(hit_voicemail=True), CallStatus.ENDED.value
        )

        assert decision.reason == RefundReason.TOO_SHORT
        assert RefundReason.VOICEMAIL in decision.matched
        assert decision.voicemail_detected is True

    def test_voicemail_in_transcript(self):
        decision = evaluate_refund(
            40,
            _report(transcript="Laat een boodschap achter na de piep"),
            CallStatus.ENDED.value,
        )
        assert decision.reason == RefundReason.VOICEMAIL

    def test_no_human_on_short_call(self):
        decision = evaluate_refund(
            20, _report(human_interaction=False), CallStatus.ENDED.value
        )
        assert decision.reason == RefundReason.NO_ANSWER

    def test_no_human_on_long_call_is_charged(self):
        decision = evaluate_refund(
            45, _report(human_interaction=False), CallStatus.ENDED.value
        )
        assert decision.should_refund is False

    @pytest.mark.parametrize(
        "overrides,status",
        [
            ({"call_quality": CallQuality.FAILED.value}, CallStatus.ENDED.value),
            ({"end_reason": "error"}, CallStatus.ENDED.value),
            ({}, CallStatus.FAILED.value),
        ],
    )
    def test_failed_calls(self, overrides, status):
        decision = evaluate_refund(60, _report(**overrides), status)
        assert decision.reason == RefundReason.FAILED

    def test_poor_conversation_flow(self):
        decision = evaluate_refund(
            60, _report(conversation_flow=10), CallStatus.ENDED.value
        )
        assert decision.reason == RefundReason.POOR_QUALITY

    def test_unknown_flow_is_not_poor(self):
        decision = evaluate_refund(
            60, _report(conversation_flow=None), CallStatus.ENDED.value
        )
        assert decision.should_refund is False


def test_transcript_voicemail_detection_is_case_insensitive():
    assert transcript_mentions_voicemail("Welkom bij de VOICEMAIL van Jan")
    assert not transcript_mentions_voicemail("Goedemiddag!")
    assert not transcript_mentions_voicemail(None)


@pytest.mark.parametrize(
    "status,duration,voicemail,expected",
    [
        (CallStatus.ENDED.value, 10, False, True),
        (CallStatus.ENDED.value, 9, False, False),
        (CallStatus.ENDED.value, 60, True, False),
        (CallStatus.FAILED.value, 60, False, False),
    ],
)
def test_is_successful_call(status, duration, voicemail, expected):
    assert is_successful_call(status, duration, voicemail) is expected


def test_recording_format_from_url():
    assert recording_format_from_url("https://cdn.example.com/rec/abc.WAV?sig=1") == "wav"
    assert recording_format_from_url("https://cdn.example.com/rec/abc") == "mp3"
