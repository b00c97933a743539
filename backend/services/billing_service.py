"""
Billing Service

Bill previews, end-of-month projections and block-crossing checks for a
household, built on its stored tariff and metered usage.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple, Union

import structlog

from config.settings import Settings, get_settings
from ml.optimization.billing import BillingEngine, BillPreview, MonthlyProjection, add_month
from ml.optimization.block_crossing import BlockCrossingAdvisor, BlockWarning
from ml.optimization.exceptions import MalformedInput
from ml.optimization.scheduler import parse_target_date
from ml.optimization.tariff_models import BlockTariff, Tariff
from repositories.base import ConfigRepository, NotFoundError
from services.carbon import load_carbon_model

logger = structlog.get_logger()


@dataclass
class MonthToDate:
    """Consumption so far in the current billing cycle"""

    cycle_start: date
    cycle_end: date
    as_of: date
    kwh: float


def resolve_cycle_start(tariff: Tariff, as_of: date) -> Tuple[date, float]:
    """
    Find the billing cycle holding ``as_of``.

    BLOCK tariffs with a configured cycle start roll it forward whole
    months; the units already used at that start only count while
    ``as_of`` is still inside the configured cycle. Otherwise the cycle is
    the calendar month.

    Returns:
        (cycle_start, used_units_at_cycle_start)
    """
    if isinstance(tariff, BlockTariff) and tariff.billing_cycle_start is not None:
        start = tariff.billing_cycle_start
        if as_of < start:
            raise MalformedInput("asOf", f"{as_of} is before the billing cycle start {start}")
        used = tariff.used_units_at_cycle_start
        while add_month(start) <= as_of:
            start = add_month(start)
            used = 0.0
        return start, used
    return as_of.replace(day=1), 0.0


class BillingService:
    """
    Service layer for bill estimates.

    Wraps the billing engine and block-crossing advisor with repository
    access; all arithmetic stays in the core.
    """

    def __init__(self, repository: ConfigRepository, settings: Optional[Settings] = None):
        self._repo = repository
        self._settings = settings or get_settings()
        self._engine = BillingEngine(self._settings.tree_absorption_kg_per_year)
        self._advisor = BlockCrossingAdvisor()

    async def month_to_date(self, user_id: str, as_of: Union[date, str]) -> MonthToDate:
        """
        Sum metered usage for the billing cycle up to ``as_of``.

        Raises:
            NotFoundError: If the user or their tariff is unknown
        """
        day = parse_target_date(as_of)
        tariff = (await self._repo.get_tariff(user_id)).to_domain()
        cycle_start, used = resolve_cycle_start(tariff, day)
        records = [r.to_domain() for r in await self._repo.get_usage_records(user_id)]
        kwh = self._engine.month_to_date_kwh(records, cycle_start, day, used)
        return MonthToDate(
            cycle_start=cycle_start,
            cycle_end=self._engine.billing_cycle_end(cycle_start),
            as_of=day,
            kwh=kwh,
        )

    async def preview_bill(
        self,
        user_id: str,
        monthly_kwh: float,
        exported_kwh: float = 0.0,
    ) -> BillPreview:
        """
        Estimate a month's bill at ``monthly_kwh`` of grid import.

        Exported energy is settled under the household's solar scheme
        when one is configured.
        """
        tariff = (await self._repo.get_tariff(user_id)).to_domain()
        solar_config = await self._repo.get_solar_config(user_id)
        solar = solar_config.to_domain() if solar_config is not None else None

        preview = self._engine.preview_monthly_bill(
            tariff, monthly_kwh, solar=solar, exported_kwh=exported_kwh
        )
        logger.info(
            "bill_preview_generated",
            user_id=user_id,
            kwh=monthly_kwh,
            exported_kwh=exported_kwh,
            estimated_cost_lkr=round(preview.estimated_cost_lkr, 2),
        )
        return preview

    async def project_month(
        self,
        user_id: str,
        as_of: Union[date, str],
    ) -> Tuple[MonthlyProjection, MonthToDate]:
        """
        Extrapolate this cycle's usage to month end and price it.

        Returns:
            (projection, month_to_date)
        """
        day = parse_target_date(as_of)
        tariff = (await self._repo.get_tariff(user_id)).to_domain()
        carbon = await load_carbon_model(self._repo, user_id, self._settings)
        cycle_start, used = resolve_cycle_start(tariff, day)
        records = [r.to_domain() for r in await self._repo.get_usage_records(user_id)]

        mtd = self._engine.month_to_date_kwh(records, cycle_start, day, used)
        eom_kwh = self._engine.project_end_of_month_kwh(records, cycle_start, day, used)
        projection = self._engine.project_month(carbon, tariff, eom_kwh)

        logger.info(
            "month_projected",
            user_id=user_id,
            as_of=day.isoformat(),
            month_to_date_kwh=round(mtd, 3),
            projected_kwh=round(eom_kwh, 3),
            total_cost_rs=round(projection.total_cost_rs, 2),
        )
        return projection, MonthToDate(
            cycle_start=cycle_start,
            cycle_end=self._engine.billing_cycle_end(cycle_start),
            as_of=day,
            kwh=mtd,
        )

    async def check_block_crossing(
        self,
        user_id: str,
        task_kwh: float,
        as_of: Union[date, str],
    ) -> Tuple[BlockWarning, MonthToDate]:
        """
        Check whether drawing ``task_kwh`` now crosses a tariff block.

        Returns:
            (warning, month_to_date)
        """
        mtd = await self.month_to_date(user_id, as_of)
        tariff = (await self._repo.get_tariff(user_id)).to_domain()
        warning = self._advisor.warn_if_crossing(tariff, mtd.kwh, task_kwh)
        if warning.will_cross:
            logger.info(
                "block_crossing_detected",
                user_id=user_id,
                current_kwh=round(mtd.kwh, 3),
                task_kwh=task_kwh,
                threshold_kwh=warning.next_threshold_kwh,
                total_delta_lkr=round(warning.total_delta_lkr, 2),
            )
        return warning, mtd

    async def check_task_block_crossing(
        self,
        user_id: str,
        task_id: str,
        as_of: Union[date, str],
    ) -> Tuple[BlockWarning, MonthToDate]:
        """
        Check one run of a stored task.

        Raises:
            NotFoundError: If the task is not configured for the user
        """
        for task_in in await self._repo.get_tasks(user_id):
            if task_in.id == task_id:
                task = task_in.to_domain()
                return await self.check_block_crossing(user_id, task.energy_kwh, as_of)
        raise NotFoundError(f"Task {task_id} not configured for user {user_id}")
