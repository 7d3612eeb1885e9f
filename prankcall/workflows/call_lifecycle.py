"""
Call lifecycle workflow.

Starts outbound calls, charges for them once the provider has accepted
them, and drives each call to a terminal status with a background monitor
that polls the provider and settles the call when it ends.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from prankcall.ai.voice_ai.constants import (
    ACTIVE_CALL_STATUSES,
    CallStatus,
    normalize_call_status,
)
from prankcall.ai.voice_ai.schemas import CallRequest, CallResponse, VoiceAIErrorResponse
from prankcall.ai.voice_ai.service import VoiceAIService
from prankcall.calls.constants import CREDITS_PER_CALL, CallErrorCode
from prankcall.calls.schemas import CallErrorResponse, StartCallRequest
from prankcall.calls.settlement import CallSettlementService
from prankcall.db.calls.model import Call
from prankcall.db.calls.repository import CallRepository
from prankcall.db.database import get_async_session_local
from prankcall.db.scenarios.repository import ScenarioRepository
from prankcall.db.users.model import User
from prankcall.db.users.repository import UserRepository
from prankcall.utils.logger import logger
from prankcall.utils.phone import validate_phone_number
from prankcall.workflows.config import get_call_lifecycle_settings

# Strong references to running monitors; the event loop only keeps weak ones
_monitor_tasks: set[asyncio.Task] = set()


@dataclass
class LifecycleRepositories:
    """Repositories bound to one database session."""

    calls: CallRepository
    users: UserRepository
    scenarios: ScenarioRepository

    @classmethod
    def for_session(cls, session: AsyncSession) -> "LifecycleRepositories":
        return cls(
            calls=CallRepository(session),
            users=UserRepository(session),
            scenarios=ScenarioRepository(session),
        )


@dataclass
class StartedCall:
    call: Call
    credits: int


class CallLifecycleWorkflow:
    """Orchestrates call creation, monitoring and settlement."""

    def __init__(
        self,
        voice_ai_service: VoiceAIService,
        call_repository: CallRepository,
        user_repository: UserRepository,
        scenario_repository: ScenarioRepository,
        session_factory: Callable | None = None,
        repositories_factory: Callable[[AsyncSession], LifecycleRepositories]
        | None = None,
    ):
        """
        Initialize the call lifecycle workflow.

        Args:
            voice_ai_service: Service for Voice AI operations
            call_repository: Call repository bound to the request session
            user_repository: User repository bound to the request session
            scenario_repository: Scenario repository bound to the request session
            session_factory: Session factory for background monitors
            repositories_factory: Builds repositories for a monitor's session
        """
        self.voice_ai_service = voice_ai_service
        self.call_repository = call_repository
        self.user_repository = user_repository
        self.scenario_repository = scenario_repository
        self.settings = get_call_lifecycle_settings()
        self._session_factory = session_factory
        self._repositories_factory = (
            repositories_factory or LifecycleRepositories.for_session
        )

    @property
    def request_repositories(self) -> LifecycleRepositories:
        return LifecycleRepositories(
            calls=self.call_repository,
            users=self.user_repository,
            scenarios=self.scenario_repository,
        )

    async def start_call(
        self, user: User, request: StartCallRequest
    ) -> StartedCall | CallErrorResponse:
        """
        Start an outbound call for a user.

        Nothing is persisted or charged unless the provider accepted the call.

        Args:
            user: The user placing the call
            request: Scenario, destination and name

        Returns:
            StartedCall or CallErrorResponse: The queued call and the new
                balance, or why the call was not started
        """
        scenario = await self.scenario_repository.get_scenario(request.scenario_id)
        if scenario is not None and not scenario.is_active:
            return CallErrorResponse(
                error="This scenario is not available",
                error_code=CallErrorCode.SCENARIO_UNAVAILABLE,
            )

        agent_id = request.agent_id or (scenario.agent_id if scenario else None)
        if not agent_id:
            return CallErrorResponse(
                error="This scenario has no agent configured",
                error_code=CallErrorCode.SCENARIO_UNAVAILABLE,
            )

        current = await self.user_repository.get_user(user.id) or user
        if (current.credits or 0) < CREDITS_PER_CALL:
            return CallErrorResponse(
                error="Not enough credits",
                error_code=CallErrorCode.INSUFFICIENT_CREDITS,
            )

        validation = validate_phone_number(request.phone_number)
        if not validation.is_valid:
            return CallErrorResponse(
                error="Invalid Dutch phone number",
                error_code=CallErrorCode.INVALID_PHONE,
            )

        result = await self.voice_ai_service.create_outbound_call(
            CallRequest(
                phone_number=validation.formatted,
                assistant_id=agent_id,
                target_name=request.target_name,
                customer_id=user.id,
            )
        )
        if isinstance(result, VoiceAIErrorResponse):
            return CallErrorResponse(
                error=result.error, error_code=CallErrorCode.PROVIDER_ERROR
            )

        try:
            call = await self.call_repository.create_call(
                user_id=user.id,
                user_email=user.email,
                call_id=result.call_id,
                provider=result.provider,
                target_phone=request.phone_number,
                formatted_phone=validation.formatted,
                scenario_id=request.scenario_id,
                scenario_name=scenario.name
                if scenario
                else request.scenario_name or request.scenario_id,
                scenario_icon=scenario.icon if scenario else request.scenario_icon,
                agent_id=agent_id,
                target_name=request.target_name,
            )
            await self.user_repository.increment_stats(user.id, total_calls=1)
            balance = await self.user_repository.deduct_credits(
                user.id, CREDITS_PER_CALL
            )
            if balance is None:
                # Spent concurrently; the call is already running, so it is free
                logger.warning(
                    "[Call Lifecycle] Credit gone before charge, call is free",
                    user_id=user.id,
                    call_id=result.call_id,
                )
                call.was_free = True
                await self.call_repository.save(call)
                balance = 0

            # The monitor uses its own session, so the row must be visible first
            await self.call_repository.session.commit()
        except Exception:
            logger.exception(
                "[Call Lifecycle] Failed to persist started call, hanging up",
                call_id=result.call_id,
            )
            await self.voice_ai_service.end_call(result.call_id)
            raise

        logger.info(
            "[Call Lifecycle] Call started",
            call_record_id=call.id,
            call_id=call.call_id,
            user_id=user.id,
            credits=balance,
        )
        self.start_monitoring(call.id, call.call_id)
        return StartedCall(call=call, credits=balance)

    def start_monitoring(self, call_record_id: str, call_id: str) -> asyncio.Task:
        """Schedule the background monitor for a call."""
        task = asyncio.create_task(self.monitor_call(call_record_id, call_id))
        _monitor_tasks.add(task)
        task.add_done_callback(_monitor_tasks.discard)
        logger.info("[Call Lifecycle] Started monitoring for call", call_id=call_id)
        return task

    async def monitor_call(self, call_record_id: str, call_id: str) -> None:
        """
        Poll a call until it reaches a terminal status.

        Runs with its own database session. Errors never escape; they turn
        into a retry after the backoff interval. After the maximum polling
        time the call is settled as timed out.

        Args:
            call_record_id: Our call record ID
            call_id: The provider call ID
        """
        session_factory = self._session_factory or get_async_session_local()
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.settings.max_polling_seconds

        try:
            await asyncio.sleep(self.settings.initial_delay_seconds)
            async with session_factory() as session:
                repositories = self._repositories_factory(session)

                while True:
                    if loop.time() >= deadline:
                        logger.warning(
                            "[Call Lifecycle] Monitoring timed out for call",
                            call_id=call_id,
                        )
                        await self.expire_call(call_record_id, call_id, repositories)
                        break

                    delay = await self.poll_once(call_record_id, call_id, repositories)
                    if delay is None:
                        break
                    await asyncio.sleep(delay)

        except asyncio.CancelledError:
            logger.info(
                "[Call Lifecycle] Monitoring task cancelled", call_id=call_id
            )
        except Exception as e:
            logger.error(
                "[Call Lifecycle] Unexpected error monitoring call",
                call_id=call_id,
                error=str(e),
            )

    async def poll_once(
        self,
        call_record_id: str,
        call_id: str,
        repositories: LifecycleRepositories,
    ) -> float | None:
        """
        Run one monitoring step.

        Returns:
            float | None: Seconds until the next check, or None to stop
        """
        session = repositories.calls.session
        try:
            # Pick up changes made by other sessions, e.g. an explicit end
            session.expire_all()
            call = await repositories.calls.get_call(call_record_id)
            if call is None:
                logger.warning(
                    "[Call Lifecycle] Call record disappeared", call_id=call_id
                )
                return None
            if call.is_terminal:
                logger.info(
                    "[Call Lifecycle] Call already terminal, stopping",
                    call_id=call_id,
                    status=call.status,
                )
                return None

            result = await self.voice_ai_service.get_call_status(call_id)
            if isinstance(result, VoiceAIErrorResponse):
                logger.warning(
                    "[Call Lifecycle] Error polling call, retrying",
                    call_id=call_id,
                    error=result.error,
                )
                return self.settings.retry_interval_seconds

            still_active = await self.apply_provider_status(call, result, repositories)
            await session.commit()
            return self.settings.poll_interval_seconds if still_active else None

        except Exception as e:
            logger.error(
                "[Call Lifecycle] Failed to process call status, retrying",
                call_id=call_id,
                error=str(e),
            )
            await session.rollback()
            return self.settings.retry_interval_seconds

    async def apply_provider_status(
        self,
        call: Call,
        result: CallResponse,
        repositories: LifecycleRepositories,
    ) -> bool:
        """
        Move a call according to the provider's latest status.

        Returns:
            bool: True if the call is still active and needs more polling
        """
        status = normalize_call_status(result.status)
        provider_data = result.provider_data

        if status == CallStatus.ENDED.value:
            logger.info("[Call Lifecycle] Call ended", call_id=call.call_id)
            await self._settlement(repositories).settle(
                call, provider_data, CallStatus.ENDED
            )
            return False

        if status == CallStatus.FAILED.value:
            reason = provider_data.end_reason if provider_data else None
            await repositories.calls.mark_failed(
                call, error_message=reason, error_code=reason
            )
            return False

        if status in (CallStatus.CANCELLED.value, CallStatus.TIMEOUT.value):
            await self._settlement(repositories).settle(
                call, provider_data, CallStatus(status)
            )
            return False

        if status in ACTIVE_CALL_STATUSES:
            await repositories.calls.update_call_status(call, status)
            return True

        logger.warning(
            "[Call Lifecycle] Unrecognized call status, still polling",
            call_id=call.call_id,
            status=result.status,
        )
        return True

    async def expire_call(
        self,
        call_record_id: str,
        call_id: str,
        repositories: LifecycleRepositories,
    ) -> None:
        """Settle a call that never reached a terminal status in time."""
        session = repositories.calls.session
        try:
            session.expire_all()
            call = await repositories.calls.get_call(call_record_id)
            if call is None or call.is_terminal:
                return

            result = await self.voice_ai_service.get_call_status(call_id)
            provider_data = None
            final_status = CallStatus.TIMEOUT
            if isinstance(result, CallResponse):
                provider_data = result.provider_data
                if normalize_call_status(result.status) == CallStatus.ENDED.value:
                    final_status = CallStatus.ENDED

            await self._settlement(repositories).settle(
                call, provider_data, final_status
            )
            await session.commit()
        except Exception as e:
            logger.error(
                "[Call Lifecycle] Failed to expire call",
                call_id=call_id,
                error=str(e),
            )
            await session.rollback()

    async def refresh_call(self, call: Call) -> Call:
        """
        Bring an active call up to date with the provider.

        Used when a client fetches a call. Problems are logged and the
        stored record is returned as is.
        """
        if not call.is_active:
            return call

        call_record_id = call.id
        result = await self.voice_ai_service.get_call_status(call.call_id)
        if isinstance(result, VoiceAIErrorResponse):
            return call

        try:
            async with self.call_repository.session.begin_nested():
                await self.apply_provider_status(
                    call, result, self.request_repositories
                )
        except Exception as e:
            logger.error(
                "[Call Lifecycle] Live refresh failed",
                call_record_id=call_record_id,
                error=str(e),
            )
            return await self.call_repository.get_call(call_record_id) or call
        return call

    async def end_call(self, call: Call) -> Call:
        """
        Hang up a call at the user's request.

        The hangup is best-effort; the record is marked ended either way.
        A running monitor sees the ended record and stops.
        """
        if call.is_terminal:
            return call

        result = await self.voice_ai_service.end_call(call.call_id)
        if isinstance(result, VoiceAIErrorResponse):
            logger.warning(
                "[Call Lifecycle] Provider hangup failed, ending locally",
                call_id=call.call_id,
                error=result.error,
            )

        return await self.call_repository.mark_ended(call, CallStatus.ENDED)

    def _settlement(self, repositories: LifecycleRepositories) -> CallSettlementService:
        return CallSettlementService(
            call_repository=repositories.calls,
            user_repository=repositories.users,
            scenario_repository=repositories.scenarios,
        )


async def resume_active_call_monitoring(
    voice_ai_service: VoiceAIService,
    session_factory: Callable | None = None,
) -> int:
    """
    Restart monitors for calls that were active when the process stopped.

    Returns:
        int: Number of monitors started
    """
    session_factory = session_factory or get_async_session_local()
    async with session_factory() as session:
        repositories = LifecycleRepositories.for_session(session)
        workflow = CallLifecycleWorkflow(
            voice_ai_service=voice_ai_service,
            call_repository=repositories.calls,
            user_repository=repositories.users,
            scenario_repository=repositories.scenarios,
            session_factory=session_factory,
        )
        active_calls = await repositories.calls.list_active_calls()
        for call in active_calls:
            workflow.start_monitoring(call.id, call.call_id)

    logger.info(
        "[Call Lifecycle] Resumed monitoring for active calls", count=len(active_calls)
    )
    return len(active_calls)


async def stop_call_monitoring() -> int:
    """
    Cancel running call monitors and wait for them to finish.

    Returns:
        int: Number of monitors cancelled
    """
    tasks = list(_monitor_tasks)
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)

    logger.info("[Call Lifecycle] Stopped call monitoring", count=len(tasks))
    return len(tasks)
