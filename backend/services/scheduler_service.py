"""
Scheduler Service

Loads a household's configuration and runs the appliance start-time
optimizer for it.
"""

import asyncio
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Union

import structlog

from config.settings import Settings, get_settings
from ml.optimization.appliance_models import OptimizationResult, Task, VariantSet
from ml.optimization.carbon_models import CarbonModel
from ml.optimization.scheduler import ApplianceScheduler, parse_target_date
from ml.optimization.solar_models import SolarModel
from ml.optimization.tariff_models import Tariff
from repositories.base import ConfigRepository
from services.carbon import load_carbon_model

logger = structlog.get_logger()


@dataclass
class SchedulingInputs:
    """Core objects assembled from one household's stored configuration"""

    tasks: List[Task]
    tariff: Tariff
    carbon: CarbonModel
    solar: Optional[SolarModel]


class SchedulerService:
    """
    Service layer for appliance scheduling.

    The search itself is CPU-bound, so it runs in a worker thread to keep
    the event loop free.
    """

    def __init__(self, repository: ConfigRepository, settings: Optional[Settings] = None):
        """
        Initialize the scheduler service.

        Args:
            repository: Source of household configuration
            settings: Application settings (defaults to the global instance)
        """
        self._repo = repository
        self._settings = settings or get_settings()

    async def load_inputs(self, user_id: str) -> SchedulingInputs:
        """
        Read and convert everything the optimizer needs for ``user_id``.

        A household without a carbon model falls back to the constant
        default grid factor.

        Raises:
            NotFoundError: If the user or their tariff is unknown
            SchedulingError: If a stored value is invalid
        """
        tariff = (await self._repo.get_tariff(user_id)).to_domain()
        tasks = [t.to_domain() for t in await self._repo.get_tasks(user_id)]

        carbon = await load_carbon_model(self._repo, user_id, self._settings)

        solar_config = await self._repo.get_solar_config(user_id)
        solar = solar_config.to_domain() if solar_config is not None else None

        return SchedulingInputs(tasks=tasks, tariff=tariff, carbon=carbon, solar=solar)

    def _build_scheduler(self, inputs: SchedulingInputs) -> ApplianceScheduler:
        return (
            ApplianceScheduler(self._settings.to_optimization_config())
            .add_tasks(inputs.tasks)
            .set_tariff(inputs.tariff)
            .set_carbon(inputs.carbon)
            .set_solar(inputs.solar)
        )

    async def optimize(
        self,
        user_id: str,
        target_date: Union[date, str],
        alpha: float = 1.0,
    ) -> OptimizationResult:
        """
        Plan start times for every stored task of ``user_id``.

        Args:
            user_id: Household identifier
            target_date: Day being planned
            alpha: Money weight in [0, 1]

        Returns:
            OptimizationResult
        """
        day = parse_target_date(target_date)
        inputs = await self.load_inputs(user_id)
        scheduler = self._build_scheduler(inputs)

        result = await asyncio.to_thread(scheduler.optimize, user_id, day, alpha)

        logger.info(
            "optimization_completed",
            user_id=user_id,
            date=day.isoformat(),
            alpha=alpha,
            planned=len(result.recommendations),
            infeasible=len(result.infeasible),
            no_benefit=len(result.no_benefit),
            total_saving_lkr=round(result.total_saving_lkr, 2),
            solve_time_seconds=round(result.solve_time_seconds, 4),
        )
        return result

    async def optimize_variants(
        self,
        user_id: str,
        target_date: Union[date, str],
        alpha: float = 1.0,
    ) -> VariantSet:
        """
        Plan at ``alpha`` plus the balanced, cheapest and greenest plans.

        The balanced weight comes from settings.
        """
        day = parse_target_date(target_date)
        inputs = await self.load_inputs(user_id)
        scheduler = self._build_scheduler(inputs)

        variants = await asyncio.to_thread(
            scheduler.optimize_variants,
            user_id,
            day,
            alpha,
            self._settings.balanced_alpha,
        )

        logger.info(
            "variants_completed",
            user_id=user_id,
            date=day.isoformat(),
            alpha=alpha,
            balanced_alpha=self._settings.balanced_alpha,
            planned=len(variants.plan.recommendations),
        )
        return variants
