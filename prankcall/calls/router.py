"""
Calls router.

Endpoints for placing prank calls, following them while they run, and
playing or sharing their recordings afterwards.
"""

import math
from http import HTTPStatus
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from prankcall.ai.voice_ai.base import VoiceAIError
from prankcall.ai.voice_ai.dependencies import get_voice_ai_service
from prankcall.ai.voice_ai.service import VoiceAIService
from prankcall.auth.dependencies import (
    get_current_user,
    get_current_user_or_query_token,
)
from prankcall.calls.constants import CallErrorCode
from prankcall.calls.schemas import (
    CallDetailResponse,
    CallErrorResponse,
    CallListResponse,
    CallStatsResponse,
    PublicCallResponse,
    ShareCallRequest,
    ShareCallResponse,
    StartCallRequest,
    StartCallResponse,
)
from prankcall.config import get_public_base_url
from prankcall.db.calls.model import Call
from prankcall.db.calls.repository import CallRepository
from prankcall.db.dependencies import get_call_repository, get_user_repository
from prankcall.db.users.model import User
from prankcall.db.users.repository import UserRepository
from prankcall.utils.logger import logger
from prankcall.workflows.call_lifecycle import CallLifecycleWorkflow
from prankcall.workflows.dependencies import get_call_lifecycle_workflow

router = APIRouter(prefix="/calls", tags=["Calls"])

_ERROR_STATUS = {
    CallErrorCode.SCENARIO_UNAVAILABLE: HTTPStatus.BAD_REQUEST,
    CallErrorCode.INSUFFICIENT_CREDITS: HTTPStatus.PAYMENT_REQUIRED,
    CallErrorCode.INVALID_PHONE: HTTPStatus.BAD_REQUEST,
    CallErrorCode.PROVIDER_ERROR: HTTPStatus.INTERNAL_SERVER_ERROR,
    CallErrorCode.NOT_FOUND: HTTPStatus.NOT_FOUND,
}


def _serialize(call: Call) -> dict[str, Any]:
    data = call.to_dict()
    data["playback_url"] = (
        f"/api/calls/{call.id}/recording" if call.recording_url else None
    )
    return data


async def _get_owned_call(
    call_id: str, user: User, call_repository: CallRepository
) -> Call:
    call = await call_repository.get_call_for_user(call_id, user.id)
    if call is None:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail="Call not found")
    return call


async def _proxy_recording(
    voice_ai_service: VoiceAIService, recording_url: str, cache_control: str
) -> Response:
    try:
        content, content_type = await voice_ai_service.download_recording(
            recording_url
        )
    except VoiceAIError as e:
        logger.warning(
            "Recording source unavailable", url=recording_url, error=e.message
        )
        raise HTTPException(
            status_code=HTTPStatus.BAD_GATEWAY,
            detail="Recording source unavailable",
        ) from e

    return Response(
        content=content,
        media_type=content_type or "audio/mpeg",
        headers={
            "Cache-Control": cache_control,
            "Cross-Origin-Resource-Policy": "cross-origin",
        },
    )


@router.get("/stats", response_model=CallStatsResponse)
async def get_call_stats(
    current_user: User = Depends(get_current_user),
    call_repository: CallRepository = Depends(get_call_repository),
    user_repository: UserRepository = Depends(get_user_repository),
) -> CallStatsResponse:
    """Call totals, average duration and favourite scenario for the user."""
    stats = await call_repository.get_user_stats(current_user.id)
    user = await user_repository.get_user(current_user.id) or current_user
    return CallStatsResponse(**stats, credits=user.credits)


@router.get("/history", response_model=CallListResponse)
async def get_call_history(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    call_repository: CallRepository = Depends(get_call_repository),
) -> CallListResponse:
    """Paginated call history, newest first."""
    calls = await call_repository.list_calls_for_user(
        current_user.id, limit=limit, offset=(page - 1) * limit
    )
    total = await call_repository.count_calls_for_user(current_user.id)
    return CallListResponse(
        calls=[_serialize(call) for call in calls],
        total=total,
        page=page,
        limit=limit,
        pages=math.ceil(total / limit),
    )


@router.post("", response_model=StartCallResponse, status_code=201)
async def start_call(
    request: StartCallRequest,
    current_user: User = Depends(get_current_user),
    workflow: CallLifecycleWorkflow = Depends(get_call_lifecycle_workflow),
) -> StartCallResponse:
    """
    Place a prank call.

    One credit is charged once the provider has accepted the call. A
    background monitor then follows the call and settles it when it ends.

    Args:
        request: Scenario, phone number and the target's name
        current_user: The authenticated user
        workflow: The call lifecycle workflow from dependency injection

    Returns:
        StartCallResponse: The queued call and the new credit balance

    Raises:
        HTTPException: 400 for an unavailable scenario or invalid number,
            402 without credits, 500 if the provider refused the call
    """
    result = await workflow.start_call(current_user, request)
    if isinstance(result, CallErrorResponse):
        raise HTTPException(
            status_code=_ERROR_STATUS[result.error_code], detail=result.error
        )
    return StartCallResponse(call=_serialize(result.call), credits=result.credits)


@router.get("", response_model=CallListResponse)
async def list_calls(
    limit: int = Query(50, ge=1, le=200),
    status: str | None = Query(None, description="Filter by call status"),
    scenario_id: str | None = Query(None, description="Filter by scenario"),
    current_user: User = Depends(get_current_user),
    call_repository: CallRepository = Depends(get_call_repository),
) -> CallListResponse:
    calls = await call_repository.list_calls_for_user(
        current_user.id, limit=limit, status=status, scenario_id=scenario_id
    )
    total = await call_repository.count_calls_for_user(
        current_user.id, status=status, scenario_id=scenario_id
    )
    return CallListResponse(
        calls=[_serialize(call) for call in calls],
        total=total,
        page=1,
        limit=limit,
        pages=math.ceil(total / limit),
    )


@router.get("/public/{share_id}", response_model=PublicCallResponse)
async def get_public_call(
    share_id: str,
    call_repository: CallRepository = Depends(get_call_repository),
) -> PublicCallResponse:
    """Metadata of a shared recording. No authentication."""
    call = await call_repository.get_public_call(share_id)
    if call is None:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND, detail="Recording not found"
        )
    return PublicCallResponse(
        share_id=share_id,
        scenario_name=call.scenario_name,
        scenario_icon=call.scenario_icon,
        duration=call.duration or 0,
        formatted_duration=call.formatted_duration,
        created_at=call.created_at.isoformat() if call.created_at else None,
        stream_url=f"/api/calls/public/{share_id}/stream",
    )


@router.get("/public/{share_id}/stream")
async def stream_public_recording(
    share_id: str,
    call_repository: CallRepository = Depends(get_call_repository),
    voice_ai_service: VoiceAIService = Depends(get_voice_ai_service),
) -> Response:
    """Audio of a shared recording. No authentication."""
    call = await call_repository.get_public_call(share_id)
    if call is None or not call.recording_url:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND, detail="Recording not found"
        )
    return await _proxy_recording(
        voice_ai_service, call.recording_url, "public, max-age=86400"
    )


@router.get("/{call_id}", response_model=CallDetailResponse)
async def get_call(
    call_id: str,
    current_user: User = Depends(get_current_user),
    call_repository: CallRepository = Depends(get_call_repository),
    workflow: CallLifecycleWorkflow = Depends(get_call_lifecycle_workflow),
) -> CallDetailResponse:
    """
    Get one of the user's calls.

    Active calls are refreshed from the provider first, so clients polling
    this endpoint see status changes without waiting for the monitor.
    """
    call = await _get_owned_call(call_id, current_user, call_repository)
    call = await workflow.refresh_call(call)
    return CallDetailResponse(call=_serialize(call))


@router.post("/{call_id}/end", response_model=CallDetailResponse)
async def end_call(
    call_id: str,
    current_user: User = Depends(get_current_user),
    call_repository: CallRepository = Depends(get_call_repository),
    workflow: CallLifecycleWorkflow = Depends(get_call_lifecycle_workflow),
) -> CallDetailResponse:
    """
    Hang up a running call.

    Ending a call that already finished returns it unchanged.
    """
    call = await _get_owned_call(call_id, current_user, call_repository)
    call = await workflow.end_call(call)
    return CallDetailResponse(call=_serialize(call))


@router.get("/{call_id}/recording")
async def get_call_recording(
    call_id: str,
    current_user: User = Depends(get_current_user_or_query_token),
    call_repository: CallRepository = Depends(get_call_repository),
    voice_ai_service: VoiceAIService = Depends(get_voice_ai_service),
) -> Response:
    """
    Play a call's recording.

    Accepts the bearer token as ``?token=`` so the URL works in an audio
    element. The audio is proxied to avoid cross-origin redirects.

    Raises:
        HTTPException: 404 if there is no recording, 502 if the provider's
            copy cannot be fetched
    """
    call = await _get_owned_call(call_id, current_user, call_repository)
    if not call.recording_url:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND, detail="No recording available"
        )

    await call_repository.record_download(call)
    return await _proxy_recording(
        voice_ai_service, call.recording_url, "private, max-age=3600"
    )


@router.post("/{call_id}/share", response_model=ShareCallResponse)
async def share_call(
    call_id: str,
    request: ShareCallRequest | None = None,
    current_user: User = Depends(get_current_user),
    call_repository: CallRepository = Depends(get_call_repository),
) -> ShareCallResponse:
    """
    Create (or reuse) a public link to a call's recording.

    Raises:
        HTTPException: 404 for an unknown call, 400 if it has no recording
    """
    call = await _get_owned_call(call_id, current_user, call_repository)
    if not call.recording_url:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST, detail="No recording available"
        )

    platform = (request or ShareCallRequest()).platform
    call = await call_repository.share_call(call, platform.value)
    return ShareCallResponse(
        share_id=call.share_id,
        share_url=f"{get_public_base_url()}/r/{call.share_id}",
        share_count=call.share_count,
    )
