"""
Scenario catalog router.

Public listing of the prank scenarios users can pick from.
"""

from fastapi import APIRouter, Depends

from prankcall.db.dependencies import get_scenario_repository
from prankcall.db.scenarios.repository import ScenarioRepository
from prankcall.db.scenarios.schemas import ScenarioListResponse

router = APIRouter(prefix="/scenarios", tags=["Scenarios"])


@router.get("", response_model=ScenarioListResponse)
async def list_scenarios(
    scenario_repository: ScenarioRepository = Depends(get_scenario_repository),
) -> ScenarioListResponse:
    """
    List active, public scenarios, most popular first.

    Args:
        scenario_repository: The scenario repository from dependency injection

    Returns:
        ScenarioListResponse: The catalog
    """
    scenarios = await scenario_repository.list_public_scenarios()
    return ScenarioListResponse(scenarios=[s.to_dict() for s in scenarios])
