"""
Repository for call database operations.

Provides CRUD operations for Call records using SQLAlchemy async sessions.
"""

import secrets
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import desc, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from prankcall.ai.voice_ai.constants import (
    ACTIVE_CALL_STATUSES,
    ANSWERED_CALL_STATUSES,
    CallStatus,
    VoiceAIProvider,
)
from prankcall.calls.constants import SHARE_ID_BYTES, RefundReason
from prankcall.db.calls.model import Call
from prankcall.utils.logger import logger


class CallRepository:
    """Repository for managing call records in the database."""

    def __init__(self, session: AsyncSession):
        """
        Initialize the repository with a database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def create_call(
        self,
        user_id: str,
        user_email: str | None,
        call_id: str,
        provider: VoiceAIProvider,
        target_phone: str,
        formatted_phone: str,
        scenario_id: str,
        scenario_name: str,
        agent_id: str,
        scenario_icon: str | None = None,
        target_name: str | None = None,
    ) -> Call:
        """
        Create a queued call record.

        Args:
            user_id: Owner of the call
            user_email: Owner email, stored for support lookups
            call_id: Provider call ID
            provider: Voice AI provider
            target_phone: Phone number as entered
            formatted_phone: Phone number in +31 form
            scenario_id: Scenario slug
            scenario_name: Scenario display name
            agent_id: Provider assistant ID
            scenario_icon: Scenario icon
            target_name: Name used in the script

        Returns:
            Call: Created call record
        """
        call = Call.from_started_call(
            user_id=user_id,
            user_email=user_email,
            call_id=call_id,
            provider=provider,
            target_phone=target_phone,
            formatted_phone=formatted_phone,
            scenario_id=scenario_id,
            scenario_name=scenario_name,
            agent_id=agent_id,
            scenario_icon=scenario_icon,
            target_name=target_name,
        )

        self.session.add(call)
        await self.session.flush()
        await self.session.refresh(call)

        logger.info(
            f"[CallRepository] Created call record: id={call.id}, call_id={call_id}, user_id={user_id}"
        )
        return call

    async def get_call(self, call_record_id: str) -> Call | None:
        stmt = select(Call).where(Call.id == call_record_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_call_for_user(self, call_record_id: str, user_id: str) -> Call | None:
        """
        Get a call owned by the given user.

        Accepts either our record id or the provider call id.

        Returns:
            Call | None: The call, or None if it does not exist or belongs to
                someone else
        """
        stmt = select(Call).where(
            or_(Call.id == call_record_id, Call.call_id == call_record_id),
            Call.user_id == user_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_public_call(self, share_id: str) -> Call | None:
        """Get a shared call that is publicly playable."""
        stmt = select(Call).where(
            Call.share_id == share_id,
            Call.is_public.is_(True),
            Call.allow_sharing.is_(True),
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_calls_for_user(
        self,
        user_id: str,
        limit: int = 20,
        offset: int = 0,
        status: str | None = None,
        scenario_id: str | None = None,
    ) -> list[Call]:
        """List a user's calls, newest first."""
        stmt = select(Call).where(Call.user_id == user_id)
        if status:
            stmt = stmt.where(Call.status == status)
        if scenario_id:
            stmt = stmt.where(Call.scenario_id == scenario_id)
        stmt = stmt.order_by(desc(Call.created_at)).offset(offset).limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_calls_for_user(
        self,
        user_id: str,
        status: str | None = None,
        scenario_id: str | None = None,
    ) -> int:
        stmt = select(func.count()).select_from(Call).where(Call.user_id == user_id)
        if status:
            stmt = stmt.where(Call.status == status)
        if scenario_id:
            stmt = stmt.where(Call.scenario_id == scenario_id)
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def list_active_calls(self) -> list[Call]:
        """Calls that still need monitoring."""
        stmt = select(Call).where(Call.status.in_(ACTIVE_CALL_STATUSES))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def update_call_status(self, call: Call, status: str) -> Call:
        """
        Move a non-terminal call to a new status.

        Terminal calls are left untouched. The first time a call is seen
        in-progress or forwarding its answered_at is stamped.

        Args:
            call: The call to update
            status: New status value

        Returns:
            Call: The (possibly unchanged) call
        """
        if call.is_terminal:
            logger.warning(
                "[CallRepository] Ignoring status update for terminal call",
                call_id=call.call_id,
                current_status=call.status,
                new_status=status,
            )
            return call

        if status == call.status:
            return call

        now = datetime.now(UTC)
        call.status = status
        call.updated_at = now
        if status in ANSWERED_CALL_STATUSES and call.answered_at is None:
            call.answered_at = now

        await self.session.flush()
        logger.info(
            f"[CallRepository] Updated call status: call_id={call.call_id}, status={status}"
        )
        return call

    async def mark_ended(
        self,
        call: Call,
        status: CallStatus = CallStatus.ENDED,
        ended_at: datetime | None = None,
    ) -> Call:
        """
        Move a call into a terminal status without settling it.

        Args:
            call: The call to end
            status: Terminal status to record
            ended_at: End timestamp, defaults to now

        Returns:
            Call: The updated call, or the unchanged call if it already ended
        """
        if call.is_terminal:
            return call

        now = datetime.now(UTC)
        call.status = status.value
        call.ended_at = ended_at or now
        call.updated_at = now

        await self.session.flush()
        logger.info(
            "[CallRepository] Marked call terminal",
            call_id=call.call_id,
            status=status.value,
        )
        return call

    async def mark_failed(
        self,
        call: Call,
        error_message: str | None = None,
        error_code: str | None = None,
    ) -> Call:
        """Record a failed call together with the provider's reason."""
        if call.is_terminal:
            return call

        now = datetime.now(UTC)
        call.status = CallStatus.FAILED.value
        call.ended_at = now
        call.updated_at = now
        call.error_message = error_message or "Call failed"
        call.error_code = error_code
        call.error_at = now

        await self.session.flush()
        logger.info(
            "[CallRepository] Marked call failed",
            call_id=call.call_id,
            error_code=error_code,
        )
        return call

    async def claim_settlement(self, call_record_id: str) -> bool:
        """
        Atomically claim the right to settle a call.

        Returns:
            bool: True for exactly one caller per call
        """
        stmt = (
            update(Call)
            .where(Call.id == call_record_id, Call.settled_at.is_(None))
            .values(settled_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        claimed = result.rowcount == 1
        if not claimed:
            logger.info(
                "[CallRepository] Settlement already claimed",
                call_record_id=call_record_id,
            )
        return claimed

    async def claim_refund(self, call_record_id: str) -> bool:
        """
        Atomically mark a call's credits as refunded.

        Only succeeds for a paid call that is due a refund and has not been
        refunded yet.

        Returns:
            bool: True if this caller owns the refund
        """
        stmt = (
            update(Call)
            .where(
                Call.id == call_record_id,
                Call.should_refund.is_(True),
                Call.was_free.is_(False),
                Call.credits_refunded == 0,
            )
            .values(credits_refunded=Call.credits_used, refunded_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def save(self, call: Call) -> Call:
        """Flush pending attribute changes on a call."""
        call.updated_at = datetime.now(UTC)
        await self.session.flush()
        return call

    async def record_download(self, call: Call) -> Call:
        call.download_count = (call.download_count or 0) + 1
        call.last_downloaded_at = datetime.now(UTC)
        await self.session.flush()
        return call

    async def share_call(self, call: Call, platform: str) -> Call:
        """
        Make a call's recording public and log the share.

        The share id is minted on the first share and reused afterwards.
        """
        now = datetime.now(UTC)
        if not call.share_id:
            call.share_id = secrets.token_hex(SHARE_ID_BYTES)
        call.is_public = True
        call.share_count = (call.share_count or 0) + 1
        # JSON columns are only persisted when reassigned
        call.share_platforms = [
            *(call.share_platforms or []),
            {"platform": platform, "shared_at": now.isoformat()},
        ]
        call.updated_at = now

        await self.session.flush()
        logger.info(
            "[CallRepository] Shared call",
            call_id=call.call_id,
            share_id=call.share_id,
            platform=platform,
        )
        return call

    async def get_user_stats(self, user_id: str) -> dict[str, Any]:
        """Aggregate call statistics for one user."""
        stmt = select(
            func.count(Call.id),
            func.count(Call.id).filter(Call.status == CallStatus.ENDED.value),
            func.coalesce(func.sum(Call.duration), 0),
            func.coalesce(func.avg(Call.duration), 0),
        ).where(Call.user_id == user_id)
        result = await self.session.execute(stmt)
        total, successful, total_seconds, avg_duration = result.one()

        favorite_stmt = (
            select(Call.scenario_id, Call.scenario_name, func.count(Call.id).label("n"))
            .where(Call.user_id == user_id)
            .group_by(Call.scenario_id, Call.scenario_name)
            .order_by(desc("n"))
            .limit(1)
        )
        favorite = (await self.session.execute(favorite_stmt)).first()

        return {
            "total_calls": total or 0,
            "successful_calls": successful or 0,
            "total_seconds": int(total_seconds or 0),
            "average_duration": round(float(avg_duration or 0), 1),
            "favorite_scenario": {
                "id": favorite[0],
                "name": favorite[1],
                "count": favorite[2],
            }
            if favorite
            else None,
        }

    async def get_scenario_stats(self) -> list[dict[str, Any]]:
        """Per-scenario usage over completed calls."""
        stmt = (
            select(
                Call.scenario_id,
                func.count(Call.id),
                func.coalesce(func.avg(Call.duration), 0),
                func.count(Call.id).filter(Call.was_successful.is_(True)),
            )
            .where(Call.status == CallStatus.ENDED.value)
            .group_by(Call.scenario_id)
            .order_by(desc(func.count(Call.id)))
        )
        result = await self.session.execute(stmt)
        return [
            {
                "scenario_id": scenario_id,
                "count": count,
                "average_duration": round(float(avg_duration or 0), 1),
                "successful": successful,
            }
            for scenario_id, count, avg_duration, successful in result.all()
        ]

    async def get_system_stats(self) -> dict[str, int]:
        """Aggregate call counts for the admin dashboard."""
        stmt = select(
            func.count(Call.id),
            func.count(Call.id).filter(Call.was_successful.is_(True)),
            func.count(Call.id).filter(Call.credits_refunded > 0),
            func.count(Call.id).filter(Call.status.in_(ACTIVE_CALL_STATUSES)),
            func.coalesce(func.sum(Call.duration), 0),
        )
        result = await self.session.execute(stmt)
        total, successful, refunded, active, seconds = result.one()
        return {
            "total_calls": total or 0,
            "successful_calls": successful or 0,
            "refunded_calls": refunded or 0,
            "active_calls": active or 0,
            "total_seconds": int(seconds or 0),
        }

    async def list_calls_missing_recording(self, limit: int = 50) -> list[Call]:
        """Calls with an unstored provider recording URL, oldest first."""
        recording_url = Call.provider_data["recording_url"].as_string()
        stmt = (
            select(Call)
            .where(
                Call.recording_available.is_(False),
                recording_url.is_not(None),
                recording_url != "",
            )
            .order_by(Call.created_at)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_pending_refunds(self, limit: int = 50) -> list[Call]:
        """Settled calls whose refund was decided but never applied."""
        stmt = (
            select(Call)
            .where(
                Call.should_refund.is_(True),
                Call.credits_refunded == 0,
                Call.was_free.is_(False),
                Call.refund_reason != RefundReason.NONE.value,
                Call.settled_at.is_not(None),
            )
            .order_by(Call.created_at)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
