"""
Repository for the scenario catalog.
"""

from typing import Any

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from prankcall.db.scenarios.model import Scenario
from prankcall.utils.logger import logger


class ScenarioRepository:
    """Repository for managing scenarios."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_scenario(self, scenario_id: str) -> Scenario | None:
        stmt = select(Scenario).where(Scenario.id == scenario_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_public_scenarios(self) -> list[Scenario]:
        """Active, public scenarios with an agent, most popular first."""
        stmt = (
            select(Scenario)
            .where(
                Scenario.is_active.is_(True),
                Scenario.is_public.is_(True),
                Scenario.agent_id.is_not(None),
                Scenario.agent_id != "",
            )
            .order_by(desc(Scenario.popularity), Scenario.name)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_all_scenarios(self) -> list[Scenario]:
        stmt = select(Scenario).order_by(desc(Scenario.popularity), Scenario.name)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create_scenario(self, **fields: Any) -> Scenario:
        """
        Create a scenario.

        Args:
            **fields: Column values; ``id`` is the slug

        Returns:
            Scenario: The created scenario
        """
        scenario = Scenario(
            popularity=0,
            times_used=0,
            average_rating=0,
            success_rate=0,
            **fields,
        )
        self.session.add(scenario)
        await self.session.flush()
        await self.session.refresh(scenario)

        logger.info("[ScenarioRepository] Created scenario", scenario_id=scenario.id)
        return scenario

    async def update_scenario(
        self, scenario: Scenario, fields: dict[str, Any]
    ) -> Scenario:
        for key, value in fields.items():
            setattr(scenario, key, value)
        await self.session.flush()
        await self.session.refresh(scenario)

        logger.info(
            "[ScenarioRepository] Updated scenario",
            scenario_id=scenario.id,
            fields=sorted(fields),
        )
        return scenario

    async def delete_scenario(self, scenario: Scenario) -> None:
        await self.session.delete(scenario)
        await self.session.flush()
        logger.info("[ScenarioRepository] Deleted scenario", scenario_id=scenario.id)

    async def record_usage(
        self, scenario_id: str, rating: float | None = None
    ) -> Scenario | None:
        """Count a completed call against a scenario."""
        scenario = await self.get_scenario(scenario_id)
        if scenario is None:
            return None
        scenario.record_usage(rating)
        await self.session.flush()
        return scenario
