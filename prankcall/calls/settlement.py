"""
Call settlement.

Runs once per finished call: records duration and quality, decides on a
refund and updates the owner's statistics. Refund, statistics and scenario
bookkeeping each run in their own savepoint so a failure there never undoes
the call's terminal status.
"""

from dataclasses import dataclass
from datetime import UTC, datetime

from prankcall.ai.voice_ai.constants import CallStatus
from prankcall.ai.voice_ai.schemas import ProviderCallData
from prankcall.calls.constants import RefundReason
from prankcall.calls.quality import (
    build_quality_report,
    compute_duration,
    evaluate_refund,
    is_successful_call,
    recording_format_from_url,
)
from prankcall.db.calls.model import Call
from prankcall.db.calls.repository import CallRepository
from prankcall.db.scenarios.repository import ScenarioRepository
from prankcall.db.users.repository import UserRepository
from prankcall.utils.logger import logger


class SettlementError(Exception):
    """Refund bookkeeping could not be applied."""


@dataclass
class SettlementResult:
    settled: bool
    refunded: bool = False
    refund_reason: str = RefundReason.NONE.value
    was_successful: bool = False
    duration: int = 0


class CallSettlementService:
    """Evaluates finished calls and applies refunds."""

    def __init__(
        self,
        call_repository: CallRepository,
        user_repository: UserRepository,
        scenario_repository: ScenarioRepository | None = None,
    ):
        self.call_repository = call_repository
        self.user_repository = user_repository
        self.scenario_repository = scenario_repository

    @property
    def session(self):
        return self.call_repository.session

    async def settle(
        self,
        call: Call,
        provider_data: ProviderCallData | None,
        final_status: CallStatus = CallStatus.ENDED,
    ) -> SettlementResult:
        """
        Settle a call that reached a terminal status.

        Only the first caller per call does any work; everyone else gets
        ``settled=False`` back.

        Args:
            call: The call record
            provider_data: Final provider snapshot, if one could be fetched
            final_status: Terminal status to record

        Returns:
            SettlementResult: What happened to the call
        """
        if not await self.call_repository.claim_settlement(call.id):
            return SettlementResult(settled=False)

        now = datetime.now(UTC)
        call.settled_at = now
        call.status = final_status.value
        if call.ended_at is None:
            call.ended_at = (
                provider_data.ended_at if provider_data and provider_data.ended_at else now
            )

        duration = compute_duration(provider_data, call.answered_at, call.ended_at)
        report = build_quality_report(provider_data, final_status.value, duration)
        decision = evaluate_refund(duration, report, final_status.value)
        report["hit_voicemail"] = decision.voicemail_detected
        report["refund_rules_matched"] = [reason.value for reason in decision.matched]

        call.duration = duration
        call.provider_data = report
        call.was_successful = is_successful_call(
            final_status.value, duration, decision.voicemail_detected
        )
        call.should_refund = decision.should_refund
        call.refund_reason = decision.reason.value

        recording_url = report.get("recording_url")
        if recording_url:
            call.recording_available = True
            call.recording_url = recording_url
            call.recording_format = recording_format_from_url(recording_url)
            call.recording_duration = float(duration)

        await self.call_repository.save(call)
        logger.info(
            "[Call Settlement] Call evaluated",
            call_id=call.call_id,
            status=final_status.value,
            duration=duration,
            was_successful=call.was_successful,
            refund_reason=call.refund_reason,
            matched_rules=report["refund_rules_matched"],
        )

        refunded = await self.apply_pending_refund(call)
        await self._record_user_stats(call)
        if final_status == CallStatus.ENDED:
            await self._record_scenario_usage(call)

        return SettlementResult(
            settled=True,
            refunded=refunded,
            refund_reason=call.refund_reason,
            was_successful=call.was_successful,
            duration=duration,
        )

    async def apply_pending_refund(self, call: Call) -> bool:
        """
        Give the call's credits back if it is due a refund.

        Safe to call any number of times; at most one call refunds.

        Returns:
            bool: True if this call applied the refund
        """
        if not call.should_refund or call.was_free or (call.credits_refunded or 0):
            return False

        try:
            async with self.session.begin_nested():
                if not await self.call_repository.claim_refund(call.id):
                    return False
                balance = await self.user_repository.add_credits(
                    call.user_id, call.credits_used
                )
                if balance is None:
                    raise SettlementError(f"User {call.user_id} not found")
                # Refunded calls do not count towards lifetime usage
                await self.user_repository.increment_stats(call.user_id, total_calls=-1)
        except Exception as e:
            logger.error(
                "[Call Settlement] Refund could not be applied",
                call_id=call.call_id,
                user_id=call.user_id,
                error=str(e),
            )
            return False

        call.credits_refunded = call.credits_used
        call.refunded_at = datetime.now(UTC)
        await self.call_repository.save(call)

        logger.info(
            "[Call Settlement] Refunded call",
            call_id=call.call_id,
            user_id=call.user_id,
            credits=call.credits_used,
            reason=call.refund_reason,
            balance=balance,
        )
        return True

    async def _record_user_stats(self, call: Call) -> None:
        try:
            async with self.session.begin_nested():
                await self.user_repository.increment_stats(
                    call.user_id,
                    successful_calls=1 if call.was_successful else 0,
                    total_call_seconds=call.duration or 0,
                )
        except Exception as e:
            logger.error(
                "[Call Settlement] Failed to update user statistics",
                call_id=call.call_id,
                user_id=call.user_id,
                error=str(e),
            )

    async def _record_scenario_usage(self, call: Call) -> None:
        if self.scenario_repository is None:
            return
        try:
            async with self.session.begin_nested():
                await self.scenario_repository.record_usage(call.scenario_id)
        except Exception as e:
            logger.error(
                "[Call Settlement] Failed to record scenario usage",
                call_id=call.call_id,
                scenario_id=call.scenario_id,
                error=str(e),
            )
