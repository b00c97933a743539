"""
High-Level Scheduling API for Appliance Optimization

This module provides a user-friendly interface for appliance scheduling,
abstracting away the start-time search.

Features:
- Task registration with duplicate detection
- Tariff, carbon and solar model management
- Money / balanced / carbon plan variants
- Human-readable schedule summaries
"""

import json
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from ml.optimization.appliance_models import (
    OptimizationConfig,
    OptimizationResult,
    Task,
    VariantSet,
)
from ml.optimization.carbon_models import CarbonModel
from ml.optimization.exceptions import MalformedInput
from ml.optimization.load_shifter import StartTimeOptimizer
from ml.optimization.solar_models import SolarModel
from ml.optimization.tariff_models import Tariff

DEFAULT_BALANCED_ALPHA = 0.5


class ApplianceScheduler:
    """High-level API for appliance scheduling optimization.

    This class provides a simplified interface for:
    - Registering tasks
    - Setting tariff, carbon and solar inputs
    - Running optimization for a day
    - Producing the cheapest / greenest / balanced variants

    Example:
        scheduler = ApplianceScheduler()
        scheduler.set_tariff(tariff).set_carbon(ConstantCarbon(0.53))
        scheduler.add_task(Task("washer-1", "washer", 500, 60, "20:00", "23:59"))
        result = scheduler.optimize("demo", date(2025, 1, 15), alpha=1.0)
        print(result.summary())
    """

    def __init__(self, config: Optional[OptimizationConfig] = None):
        """Initialize the scheduler.

        Args:
            config: Optional optimization configuration
        """
        self.config = config or OptimizationConfig()
        self.tasks: List[Task] = []
        self.tariff: Optional[Tariff] = None
        self.carbon: Optional[CarbonModel] = None
        self.solar: Optional[SolarModel] = None
        self._last_result: Optional[OptimizationResult] = None

    def add_task(self, task: Task) -> "ApplianceScheduler":
        """Add a task to be scheduled.

        Args:
            task: Task to add

        Returns:
            Self for method chaining

        Raises:
            MalformedInput: If a task with the same id was already added
        """
        if any(t.id == task.id for t in self.tasks):
            raise MalformedInput("id", f"Task '{task.id}' already exists")
        self.tasks.append(task)
        return self

    def add_tasks(self, tasks: Sequence[Task]) -> "ApplianceScheduler":
        for task in tasks:
            self.add_task(task)
        return self

    def remove_task(self, task_id: str) -> "ApplianceScheduler":
        self.tasks = [t for t in self.tasks if t.id != task_id]
        return self

    def clear_tasks(self) -> "ApplianceScheduler":
        self.tasks = []
        return self

    def set_tariff(self, tariff: Tariff) -> "ApplianceScheduler":
        self.tariff = tariff
        return self

    def set_carbon(self, carbon: CarbonModel) -> "ApplianceScheduler":
        self.carbon = carbon
        return self

    def set_solar(self, solar: Optional[SolarModel]) -> "ApplianceScheduler":
        self.solar = solar
        return self

    def _require_inputs(self) -> None:
        if self.tariff is None:
            raise MalformedInput("tariff", "No tariff set. Use set_tariff() first.")
        if self.carbon is None:
            raise MalformedInput("carbon", "No carbon model set. Use set_carbon() first.")

    def optimize(
        self,
        user_id: str,
        target_date: Union[date, str],
        alpha: float = 1.0,
    ) -> OptimizationResult:
        """Run the optimization for one day.

        Args:
            user_id: Household identifier
            target_date: Day being planned (date or YYYY-MM-DD)
            alpha: Money weight in [0, 1]

        Returns:
            OptimizationResult with recommendations in task order

        Raises:
            MalformedInput: If the tariff or carbon model is missing
        """
        self._require_inputs()
        result = StartTimeOptimizer(self.config).optimize(
            tasks=self.tasks,
            tariff=self.tariff,
            carbon=self.carbon,
            solar=self.solar,
            target_date=parse_target_date(target_date),
            alpha=alpha,
            user_id=user_id,
        )
        self._last_result = result
        return result

    def optimize_variants(
        self,
        user_id: str,
        target_date: Union[date, str],
        alpha: float = 1.0,
        balanced_alpha: float = DEFAULT_BALANCED_ALPHA,
    ) -> VariantSet:
        """Run the caller's plan plus the balanced, cheapest and greenest plans.

        Args:
            user_id: Household identifier
            target_date: Day being planned
            alpha: Money weight for the main plan
            balanced_alpha: Money weight for the balanced plan

        Returns:
            VariantSet
        """
        variants = VariantSet(
            plan=self.optimize(user_id, target_date, alpha),
            balanced=self.optimize(user_id, target_date, balanced_alpha),
            cheapest=self.optimize(user_id, target_date, 1.0),
            greenest=self.optimize(user_id, target_date, 0.0),
        )
        self._last_result = variants.plan
        return variants

    def get_last_result(self) -> Optional[OptimizationResult]:
        """Get the result from the last optimization.

        Returns:
            Last OptimizationResult or None if no optimization run
        """
        return self._last_result

    def get_schedule_summary(
        self,
        result: Optional[OptimizationResult] = None,
    ) -> Dict[str, Any]:
        """Get a summary of the schedule suitable for display.

        Args:
            result: Result to summarize (uses last result if not provided)

        Returns:
            Dictionary with schedule summary
        """
        result = result or self._last_result
        if result is None:
            raise ValueError("No result available. Run optimize() first.")

        return {
            "date": result.target_date.isoformat(),
            "alpha": result.alpha,
            "total_saving_lkr": round(result.total_saving_lkr, 2),
            "total_cost_rs": round(result.total_cost_rs, 2),
            "total_co2_kg": round(result.total_co2_kg, 3),
            "solve_time_seconds": round(result.solve_time_seconds, 3),
            "schedules": [
                {
                    "task": rec.task_id,
                    "appliance": rec.appliance_id,
                    "run": f"{rec.start_time}-{rec.end_time}",
                    "cost_rs": round(rec.cost_rs, 2),
                    "co2_kg": round(rec.co2_kg, 3),
                    "saving_lkr": round(rec.est_saving_lkr, 2),
                }
                for rec in result.recommendations
            ],
            "infeasible": [f.task_id for f in result.infeasible],
            "no_benefit": list(result.no_benefit),
        }

    def export_to_json(
        self,
        filepath: Union[str, Path],
        result: Optional[OptimizationResult] = None,
    ) -> None:
        """Export schedule to JSON file.

        Args:
            filepath: Output file path
            result: Result to export (uses last result if not provided)
        """
        result = result or self._last_result
        if result is None:
            raise ValueError("No result available. Run optimize() first.")

        data = {
            "timestamp": datetime.now().isoformat(),
            "config": self.config.to_dict(),
            "result": result.to_dict(),
        }

        with open(filepath, "w") as f:
            json.dump(data, f, indent=2)


def parse_target_date(value: Union[date, str]) -> date:
    """Accept a date or a YYYY-MM-DD string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise MalformedInput("date", f"Date must be YYYY-MM-DD, got '{value}'")


def optimize(
    user_id: str,
    target_date: Union[date, str],
    alpha: float,
    tasks: Sequence[Task],
    tariff: Tariff,
    carbon: CarbonModel,
    solar: Optional[SolarModel] = None,
    config: Optional[OptimizationConfig] = None,
) -> OptimizationResult:
    """Stateless entry point: schedule ``tasks`` for one household and day."""
    scheduler = ApplianceScheduler(config)
    scheduler.add_tasks(tasks).set_tariff(tariff).set_carbon(carbon).set_solar(solar)
    return scheduler.optimize(user_id, target_date, alpha)
