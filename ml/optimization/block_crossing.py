"""
Block-Crossing Advisor

Warns when running a task would push the month's cumulative consumption
past a BLOCK tariff tier boundary, and prices the consequence:

- delta_marginal: extra energy cost of the portion billed above the
  current tier, versus billing the whole task at the current tier's rate
- delta_fixed: change in the monthly fixed charge when the fixed charge
  is itself tier-dependent
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ml.optimization.appliance_models import Task
from ml.optimization.exceptions import MalformedInput
from ml.optimization.tariff_models import BlockTariff, Tariff, TouTariff

logger = logging.getLogger(__name__)


@dataclass
class BlockWarning:
    """
    Outcome of a block-crossing check.

    Attributes:
        will_cross: Whether the task moves consumption into a higher tier
        next_threshold_kwh: Upper bound of the tier holding current consumption
        delta_fixed: Change in the monthly fixed charge (LKR)
        delta_marginal: Extra energy cost from the higher tier rates (LKR)
        current_kwh: Month-to-date consumption checked
        task_kwh: Energy the task would draw
        headroom_kwh: kWh left before the threshold
        note: Explanation for display
    """

    will_cross: bool
    next_threshold_kwh: Optional[float]
    delta_fixed: float
    delta_marginal: float
    current_kwh: float
    task_kwh: float
    headroom_kwh: Optional[float] = None
    note: str = ""

    @property
    def total_delta_lkr(self) -> float:
        return self.delta_fixed + self.delta_marginal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "willCross": self.will_cross,
            "nextThresholdKWh": self.next_threshold_kwh,
            "deltaFixed": self.delta_fixed,
            "deltaMarginal": self.delta_marginal,
            "headroomKWh": self.headroom_kwh,
            "note": self.note,
        }


class BlockCrossingAdvisor:
    """Checks prospective tasks against BLOCK tariff tier boundaries."""

    def warn_if_crossing(
        self,
        tariff: Tariff,
        current_kwh: float,
        task_kwh: float,
    ) -> BlockWarning:
        """
        Check whether ``task_kwh`` on top of ``current_kwh`` crosses a tier.

        Args:
            tariff: Household tariff
            current_kwh: Month-to-date consumption
            task_kwh: Energy the task would draw

        Returns:
            BlockWarning (never crossing for TOU tariffs)

        Raises:
            MalformedInput: If a quantity is negative or the tariff is unknown
        """
        if current_kwh is None or current_kwh < 0:
            raise MalformedInput("currentKWh", f"Consumption must be non-negative, got {current_kwh}")
        if task_kwh is None or task_kwh < 0:
            raise MalformedInput("taskKWh", f"Task energy must be non-negative, got {task_kwh}")

        if isinstance(tariff, TouTariff):
            return BlockWarning(
                will_cross=False,
                next_threshold_kwh=None,
                delta_fixed=0.0,
                delta_marginal=0.0,
                current_kwh=current_kwh,
                task_kwh=task_kwh,
                note="Time-of-use tariff has no consumption blocks",
            )
        if not isinstance(tariff, BlockTariff):
            raise MalformedInput("tariff", f"Unsupported tariff {type(tariff).__name__}")

        index = tariff.tier_index_for(current_kwh)
        _, upper = tariff.band(index)
        tier = tariff.blocks[index]
        threshold = None if upper == float("inf") else upper
        headroom = None if threshold is None else threshold - current_kwh
        after = current_kwh + task_kwh

        if threshold is None or after <= threshold:
            return BlockWarning(
                will_cross=False,
                next_threshold_kwh=threshold,
                delta_fixed=0.0,
                delta_marginal=0.0,
                current_kwh=current_kwh,
                task_kwh=task_kwh,
                headroom_kwh=headroom,
                note=f"Stays within the {tier.label} kWh block",
            )

        delta_marginal = tariff.increment_cost(current_kwh, task_kwh) - task_kwh * tier.rate_lkr
        delta_fixed = tariff.fixed_charge(after) - tariff.fixed_charge(current_kwh)
        next_tier = tariff.blocks[tariff.tier_index_for(after)]

        logger.debug(
            "Task of %.2f kWh crosses %.0f kWh threshold (+Rs %.2f)",
            task_kwh, threshold, delta_marginal + delta_fixed,
        )
        return BlockWarning(
            will_cross=True,
            next_threshold_kwh=threshold,
            delta_fixed=delta_fixed,
            delta_marginal=delta_marginal,
            current_kwh=current_kwh,
            task_kwh=task_kwh,
            headroom_kwh=headroom,
            note=(
                f"Crosses {threshold:g} kWh into the {next_tier.label} kWh block "
                f"at Rs {next_tier.rate_lkr:g}/kWh"
            ),
        )

    def warn_for_task(self, tariff: Tariff, current_kwh: float, task: Task) -> BlockWarning:
        """Check one run of ``task``."""
        return self.warn_if_crossing(tariff, current_kwh, task.energy_kwh)
