"""
Admin router.

Scenario management, provider agents and audio, system statistics and data
repair jobs. Every endpoint requires the ``X-Admin-Password`` header.
"""

from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException, Response

from prankcall.admin.schemas import (
    AgentListResponse,
    AudioFileResponse,
    BackfillRequest,
    BackfillResponse,
    SystemStatsResponse,
)
from prankcall.ai.voice_ai.constants import VoiceAIErrorCode, is_provider_audio_id
from prankcall.ai.voice_ai.dependencies import get_voice_ai_service
from prankcall.ai.voice_ai.schemas import VoiceAIErrorResponse
from prankcall.ai.voice_ai.service import VoiceAIService
from prankcall.auth.dependencies import require_admin
from prankcall.calls.quality import recording_format_from_url
from prankcall.calls.settlement import CallSettlementService
from prankcall.db.calls.repository import CallRepository
from prankcall.db.dependencies import (
    get_call_repository,
    get_scenario_repository,
    get_user_repository,
)
from prankcall.db.scenarios.model import Scenario
from prankcall.db.scenarios.repository import ScenarioRepository
from prankcall.db.scenarios.schemas import (
    CreateScenarioRequest,
    ScenarioListResponse,
    ScenarioResponse,
    UpdateScenarioRequest,
)
from prankcall.db.users.repository import UserRepository
from prankcall.utils.logger import logger

router = APIRouter(
    prefix="/admin", tags=["Admin"], dependencies=[Depends(require_admin)]
)


async def _get_scenario_or_404(
    scenario_id: str, scenario_repository: ScenarioRepository
) -> Scenario:
    scenario = await scenario_repository.get_scenario(scenario_id)
    if scenario is None:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND, detail="Scenario not found"
        )
    return scenario


@router.get("/agents", response_model=AgentListResponse)
async def list_agents(
    voice_ai_service: VoiceAIService = Depends(get_voice_ai_service),
) -> AgentListResponse:
    """List the assistants configured at the voice AI provider."""
    result = await voice_ai_service.list_assistants()
    if isinstance(result, VoiceAIErrorResponse):
        raise HTTPException(
            status_code=HTTPStatus.BAD_GATEWAY, detail=result.error
        )
    return AgentListResponse(agents=result)


@router.get("/scenarios", response_model=ScenarioListResponse)
async def list_all_scenarios(
    scenario_repository: ScenarioRepository = Depends(get_scenario_repository),
) -> ScenarioListResponse:
    """All scenarios, including inactive and private ones."""
    scenarios = await scenario_repository.list_all_scenarios()
    return ScenarioListResponse(scenarios=[s.to_dict() for s in scenarios])


@router.post(
    "/scenarios", response_model=ScenarioResponse, status_code=HTTPStatus.CREATED
)
async def create_scenario(
    request: CreateScenarioRequest,
    scenario_repository: ScenarioRepository = Depends(get_scenario_repository),
) -> ScenarioResponse:
    """
    Add a scenario to the catalog.

    Raises:
        HTTPException: 409 if the slug is already taken
    """
    if await scenario_repository.get_scenario(request.id):
        raise HTTPException(
            status_code=HTTPStatus.CONFLICT, detail="Scenario id already exists"
        )
    scenario = await scenario_repository.create_scenario(**request.to_columns())
    logger.info("[Admin] Scenario created", scenario_id=scenario.id)
    return ScenarioResponse(message="Scenario created", scenario=scenario.to_dict())


@router.put("/scenarios/{scenario_id}", response_model=ScenarioResponse)
async def update_scenario(
    scenario_id: str,
    request: UpdateScenarioRequest,
    scenario_repository: ScenarioRepository = Depends(get_scenario_repository),
) -> ScenarioResponse:
    scenario = await _get_scenario_or_404(scenario_id, scenario_repository)
    scenario = await scenario_repository.update_scenario(
        scenario, request.to_columns()
    )
    return ScenarioResponse(message="Scenario updated", scenario=scenario.to_dict())


@router.delete("/scenarios/{scenario_id}", status_code=HTTPStatus.NO_CONTENT)
async def delete_scenario(
    scenario_id: str,
    scenario_repository: ScenarioRepository = Depends(get_scenario_repository),
) -> Response:
    scenario = await _get_scenario_or_404(scenario_id, scenario_repository)
    await scenario_repository.delete_scenario(scenario)
    return Response(status_code=HTTPStatus.NO_CONTENT)


@router.get("/audio/{audio_id}", response_model=AudioFileResponse)
async def get_audio_file(
    audio_id: str,
    voice_ai_service: VoiceAIService = Depends(get_voice_ai_service),
) -> AudioFileResponse:
    """
    Resolve a provider audio file id to a playable URL.

    Raises:
        HTTPException: 400 for a malformed id, 404 if the provider has no
            such file
    """
    if not is_provider_audio_id(audio_id):
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST, detail="Invalid audio id format"
        )

    result = await voice_ai_service.get_audio_file_url(audio_id)
    if isinstance(result, VoiceAIErrorResponse):
        if result.error_code == VoiceAIErrorCode.NOT_FOUND:
            raise HTTPException(
                status_code=HTTPStatus.NOT_FOUND, detail="Audio file not found"
            )
        raise HTTPException(status_code=HTTPStatus.BAD_GATEWAY, detail=result.error)
    if not result:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND, detail="Audio file not found"
        )
    return AudioFileResponse(audio_id=audio_id, audio_url=result)


@router.get("/stats", response_model=SystemStatsResponse)
async def get_system_stats(
    user_repository: UserRepository = Depends(get_user_repository),
    call_repository: CallRepository = Depends(get_call_repository),
) -> SystemStatsResponse:
    return SystemStatsResponse(
        users=await user_repository.get_system_stats(),
        calls=await call_repository.get_system_stats(),
        scenarios=await call_repository.get_scenario_stats(),
    )


@router.post("/backfill/recordings", response_model=BackfillResponse)
async def backfill_recordings(
    request: BackfillRequest | None = None,
    call_repository: CallRepository = Depends(get_call_repository),
) -> BackfillResponse:
    """
    Fill the recording block of calls from their stored provider data.
    """
    request = request or BackfillRequest()
    candidates = await call_repository.list_calls_missing_recording(request.limit)
    matched = [
        call
        for call in candidates
        if call.provider_data and call.provider_data.get("recording_url")
    ]

    updated = 0
    if not request.dry_run:
        for call in matched:
            url = call.provider_data["recording_url"]
            call.recording_available = True
            call.recording_url = url
            call.recording_format = recording_format_from_url(url)
            call.recording_duration = float(call.duration or 0)
            await call_repository.save(call)
            updated += 1

    logger.info(
        "[Admin] Recording backfill",
        matched=len(matched),
        updated=updated,
        dry_run=request.dry_run,
    )
    return BackfillResponse(
        matched=len(matched),
        updated=updated,
        dry_run=request.dry_run,
        sample=[
            {
                "id": call.id,
                "call_id": call.call_id,
                "url": call.provider_data["recording_url"],
            }
            for call in matched[:3]
        ],
    )


@router.post("/backfill/refunds", response_model=BackfillResponse)
async def backfill_refunds(
    request: BackfillRequest | None = None,
    call_repository: CallRepository = Depends(get_call_repository),
    user_repository: UserRepository = Depends(get_user_repository),
) -> BackfillResponse:
    """
    Apply refunds that were decided at settlement but never paid out.
    """
    request = request or BackfillRequest()
    pending = await call_repository.list_pending_refunds(request.limit)

    updated = 0
    if not request.dry_run:
        settlement = CallSettlementService(
            call_repository=call_repository, user_repository=user_repository
        )
        for call in pending:
            if await settlement.apply_pending_refund(call):
                updated += 1

    logger.info(
        "[Admin] Refund backfill",
        matched=len(pending),
        updated=updated,
        dry_run=request.dry_run,
    )
    return BackfillResponse(
        matched=len(pending),
        updated=updated,
        dry_run=request.dry_run,
        sample=[
            {
                "id": call.id,
                "call_id": call.call_id,
                "refund_reason": call.refund_reason,
            }
            for call in pending[:3]
        ],
    )
