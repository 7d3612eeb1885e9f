"""
FastAPI dependencies for workflow orchestration.

This module composes services and repositories into workflows.
"""

from fastapi import Depends

from prankcall.ai.voice_ai.dependencies import get_voice_ai_service
from prankcall.ai.voice_ai.service import VoiceAIService
from prankcall.db.calls.repository import CallRepository
from prankcall.db.dependencies import (
    get_call_repository,
    get_scenario_repository,
    get_user_repository,
)
from prankcall.db.scenarios.repository import ScenarioRepository
from prankcall.db.users.repository import UserRepository
from prankcall.workflows.call_lifecycle import CallLifecycleWorkflow


def get_call_lifecycle_workflow(
    voice_ai_service: VoiceAIService = Depends(get_voice_ai_service),
    call_repository: CallRepository = Depends(get_call_repository),
    user_repository: UserRepository = Depends(get_user_repository),
    scenario_repository: ScenarioRepository = Depends(get_scenario_repository),
) -> CallLifecycleWorkflow:
    """
    FastAPI dependency for getting the call lifecycle workflow.

    Args:
        voice_ai_service: The Voice AI service from dependency injection
        call_repository: The call repository from dependency injection
        user_repository: The user repository from dependency injection
        scenario_repository: The scenario repository from dependency injection

    Returns:
        CallLifecycleWorkflow: The workflow instance
    """
    return CallLifecycleWorkflow(
        voice_ai_service=voice_ai_service,
        call_repository=call_repository,
        user_repository=user_repository,
        scenario_repository=scenario_repository,
    )
