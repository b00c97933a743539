"""
Start-Time Optimizer for Appliance Load Shifting

This module implements the core search that places each shiftable task
at the start time minimising the blended money/carbon objective.

Algorithm Overview:
1. Build a per-minute day profile from the tariff, carbon and solar models
2. For each task, enumerate feasible starts (see constraints)
3. Score every candidate with cumulative sums (see objective)
4. Choose the lowest score, earliest start on ties
5. Compare against starting at the earliest time and explain the choice

Tasks do not compete for a shared resource, so each task is searched
independently and the searches run on a thread pool. Output order always
follows input order.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Optional, Sequence, Union
from zoneinfo import ZoneInfo

import numpy as np

from ml.optimization.appliance_models import (
    WEEKS_PER_MONTH,
    OptimizationConfig,
    OptimizationResult,
    Recommendation,
    Task,
    TaskFailure,
)
from ml.optimization.carbon_models import CarbonModel, ConstantCarbon, Profile48Carbon
from ml.optimization.constraints import StartDomain, build_start_domain, check_placement
from ml.optimization.exceptions import InfeasibleTask, MalformedInput
from ml.optimization.objective import (
    DayProfile,
    ObjectiveEvaluator,
    Segment,
    best_candidate,
    has_variation,
)
from ml.optimization.solar_models import SolarModel
from ml.optimization.tariff_models import BlockTariff, Tariff, TouTariff
from ml.optimization.timeline import format_hhmm, overlap_minutes, tag_hhmm

logger = logging.getLogger(__name__)


@dataclass
class _TaskOutcome:
    """Result of searching one task."""

    recommendation: Optional[Recommendation] = None
    failure: Optional[TaskFailure] = None
    no_benefit: bool = False


class StartTimeOptimizer:
    """Exhaustive start-time search over each task's feasible window.

    Attributes:
        config: Optimization configuration
    """

    def __init__(self, config: Optional[OptimizationConfig] = None):
        """Initialize the optimizer.

        Args:
            config: Optimization configuration (uses defaults if not provided)
        """
        self.config = config or OptimizationConfig()

    def optimize(
        self,
        tasks: Sequence[Task],
        tariff: Tariff,
        carbon: CarbonModel,
        solar: Optional[SolarModel],
        target_date: date,
        alpha: float,
        user_id: str = "",
    ) -> OptimizationResult:
        """Produce one recommendation per schedulable task.

        Args:
            tasks: Tasks to place, in the order results should appear
            tariff: TOU or BLOCK tariff
            carbon: Grid carbon model
            solar: Solar model (None when the household has no solar)
            target_date: Day being planned
            alpha: Money weight in [0, 1]; 1 means cost only, 0 carbon only
            user_id: Household identifier carried into the result

        Returns:
            OptimizationResult with recommendations, infeasible tasks and
            tasks that gain nothing from shifting

        Raises:
            MalformedInput: If alpha or a model is missing or out of range
        """
        alpha = self._validate_inputs(tariff, carbon, target_date, alpha)
        solar = solar or SolarModel.disabled()

        start_time = time.time()
        profile = DayProfile(tariff, carbon, solar)
        tz = ZoneInfo(self.config.timezone)

        def search(index_task):
            index, task = index_task
            return self._search_task(index, task, profile, alpha, target_date, tz)

        indexed = list(enumerate(tasks))
        if self.config.max_workers > 1 and len(indexed) > 1:
            workers = min(self.config.max_workers, len(indexed))
            with ThreadPoolExecutor(max_workers=workers) as pool:
                outcomes = list(pool.map(search, indexed))
        else:
            outcomes = [search(item) for item in indexed]

        result = OptimizationResult(
            user_id=user_id,
            target_date=target_date,
            alpha=alpha,
        )
        for task, outcome in zip(tasks, outcomes):
            if outcome.recommendation is not None:
                result.recommendations.append(outcome.recommendation)
            elif outcome.failure is not None:
                result.infeasible.append(outcome.failure)
            elif outcome.no_benefit:
                result.no_benefit.append(task.id)

        if result.no_benefit and not result.recommendations:
            if isinstance(tariff, BlockTariff):
                result.note = "Block tariff without time-varying inputs: no schedule benefit"
            else:
                result.note = "Flat prices and emissions across task windows: no schedule benefit"

        result.solve_time_seconds = time.time() - start_time
        logger.debug(
            "Optimized %d tasks in %.3fs: %d scheduled, %d infeasible, %d without benefit",
            len(indexed),
            result.solve_time_seconds,
            len(result.recommendations),
            len(result.infeasible),
            len(result.no_benefit),
        )
        return result

    @staticmethod
    def _validate_inputs(tariff, carbon, target_date, alpha) -> float:
        if not isinstance(tariff, (TouTariff, BlockTariff)):
            raise MalformedInput("tariff", "A TOU or BLOCK tariff is required")
        if not isinstance(carbon, (ConstantCarbon, Profile48Carbon)):
            raise MalformedInput("carbon", "A carbon model is required")
        if not isinstance(target_date, date):
            raise MalformedInput("date", f"Target date must be a date, got {target_date!r}")
        if isinstance(target_date, datetime):
            raise MalformedInput("date", "Target date must be a calendar date, not a timestamp")
        try:
            alpha = float(alpha)
        except (TypeError, ValueError):
            raise MalformedInput("alpha", f"Alpha must be a number, got {alpha!r}")
        if not 0.0 <= alpha <= 1.0:
            raise MalformedInput("alpha", f"Alpha must be between 0 and 1, got {alpha}")
        return alpha

    def _search_task(
        self,
        index: int,
        task: Task,
        profile: DayProfile,
        alpha: float,
        target_date: date,
        tz: ZoneInfo,
    ) -> _TaskOutcome:
        """Search one task's domain. Infeasibility is reported, not raised."""
        try:
            domain = build_start_domain(task, self.config)
        except InfeasibleTask as e:
            logger.warning("Task %s is infeasible: %s", task.id, e.message)
            return _TaskOutcome(failure=TaskFailure(task_id=task.id, reason=e.message))

        evaluator = ObjectiveEvaluator(profile, task, alpha, self.config.co2_to_lkr_weight)
        cost, co2, score = evaluator.evaluate(domain.starts)

        if not has_variation(score):
            logger.debug("Task %s has a constant score across its window", task.id)
            return _TaskOutcome(no_benefit=True)

        chosen, ties = best_candidate(score)
        start = int(domain.starts[chosen])
        check_placement(task, start)

        baseline_cost = float(cost[0])
        chosen_cost = float(cost[chosen])
        saving = max(0.0, baseline_cost - chosen_cost)

        reasons, justifications = self._explain(
            task, domain, evaluator, start, ties, co2, float(co2[chosen])
        )

        suggested = datetime.combine(target_date, datetime.min.time(), tzinfo=tz) + timedelta(
            minutes=start
        )
        recommendation = Recommendation(
            id=f"rec-{index + 1}",
            task_id=task.id,
            appliance_id=task.appliance_id,
            suggested_start=suggested,
            duration_minutes=task.duration_minutes,
            reasons=reasons,
            justifications=justifications,
            est_saving_lkr=saving,
            cost_rs=chosen_cost,
            co2_kg=float(co2[chosen]),
            score=float(score[chosen]),
            baseline_cost_rs=baseline_cost,
            est_monthly_saving_lkr=saving * task.repeats_per_week * WEEKS_PER_MONTH,
        )
        return _TaskOutcome(recommendation=recommendation)

    def _explain(
        self,
        task: Task,
        domain: StartDomain,
        evaluator: ObjectiveEvaluator,
        start: int,
        ties: int,
        candidate_co2: np.ndarray,
        chosen_co2: float,
    ):
        """Build reason tags and sentences describing why ``start`` was chosen."""
        profile = evaluator.profile
        segments = evaluator.breakdown(start)
        reasons: List[str] = ["Constraint:Shiftable"]
        justifications: List[str] = []

        if isinstance(profile.tariff, TouTariff):
            self._explain_windows(task, profile.tariff, segments, reasons, justifications)
        else:
            self._explain_blocks(profile.tariff, segments, reasons, justifications)

        if evaluator.alpha < 1.0 and not profile.carbon.is_flat:
            run_intensity = sum(s.intensity * s.minutes for s in segments) / task.duration_minutes
            if chosen_co2 < float(np.mean(candidate_co2)):
                reasons.append("Carbon:LowIntensity")
                justifications.append(
                    f"Grid intensity averages {run_intensity:.3f} kg CO2/kWh during the run, "
                    f"below the window average"
                )

        solar_kwh = sum(s.self_consumed_kwh for s in segments)
        if solar_kwh > 0:
            reasons.append("Solar:SelfConsumption")
            justifications.append(f"{solar_kwh:.2f} kWh served by rooftop solar")

        reasons.append(
            f"Constraint:Window_{tag_hhmm(task.earliest_minute)}_{tag_hhmm(task.latest_minute)}"
        )
        justifications.append(
            f"Fits the {format_hhmm(task.earliest_minute)}-{format_hhmm(task.latest_minute)} window"
        )
        if domain.size == 1:
            reasons.append("Constraint:OnlyFeasibleStart")
        reasons.append(f"Rule:MinRuntime{task.duration_minutes}")
        justifications.append(
            f"Runs the full {task.duration_minutes}-minute cycle without interruption"
        )
        if ties > 1:
            reasons.append("Tie:EarliestStart")
            justifications.append(f"Earliest of {ties} equally good starts")
        if domain.coarsened:
            reasons.append(f"Search:Step{domain.step_minutes}")
        return reasons, justifications

    @staticmethod
    def _explain_windows(
        task: Task,
        tariff: TouTariff,
        segments: List[Segment],
        reasons: List[str],
        justifications: List[str],
    ) -> None:
        used = []
        for segment in segments:
            if segment.window not in used:
                used.append(segment.window)
        for window in used:
            reasons.append(f"Window:{window.tag}")
            justifications.append(f"Runs in {window.name} at {window.rate_lkr:.2f} LKR/kWh")

        highest_used = max(w.rate_lkr for w in used)
        allowed = (task.earliest_minute, task.latest_minute)
        for window in tariff.windows:
            if window in used or window.rate_lkr <= highest_used:
                continue
            reachable = any(overlap_minutes(interval, allowed) > 0 for interval in window.intervals)
            if reachable:
                reasons.append(f"Avoid:{window.name.replace(' ', '')}")
                justifications.append(
                    f"Avoids {window.name} at {window.rate_lkr:.2f} LKR/kWh"
                )

    @staticmethod
    def _explain_blocks(
        tariff: BlockTariff,
        segments: List[Segment],
        reasons: List[str],
        justifications: List[str],
    ) -> None:
        grid_kwh = sum(s.grid_kwh for s in segments)
        cycle_kwh = tariff.used_units_at_cycle_start
        for tier_index, kwh in tariff.split_increment(cycle_kwh, grid_kwh):
            lower, upper = tariff.band(tier_index)
            # Bands are labelled by their first whole unit: 0-30, 31-60, ...
            lower_tag = f"{lower + 1:g}" if lower > 0 else "0"
            upper_tag = "Above" if np.isinf(upper) else f"{upper:g}"
            reasons.append(f"Block:Tier_{lower_tag}_{upper_tag}")
            justifications.append(
                f"{kwh:.2f} kWh billed in the {lower_tag}-{upper_tag} kWh block at "
                f"{tariff.blocks[tier_index].rate_lkr:.2f} LKR/kWh"
            )


def optimize_tasks(
    tasks: Sequence[Task],
    tariff: Tariff,
    carbon: CarbonModel,
    solar: Optional[SolarModel] = None,
    target_date: Union[date, str, None] = None,
    alpha: float = 1.0,
    config: Optional[OptimizationConfig] = None,
) -> OptimizationResult:
    """Convenience wrapper: optimize with minimal configuration.

    Args:
        tasks: Tasks to place
        tariff: TOU or BLOCK tariff
        carbon: Grid carbon model
        solar: Optional solar model
        target_date: Day being planned (date or ISO string, default today)
        alpha: Money weight in [0, 1]
        config: Optional configuration

    Returns:
        OptimizationResult
    """
    if target_date is None:
        target_date = date.today()
    elif isinstance(target_date, str):
        try:
            target_date = date.fromisoformat(target_date)
        except ValueError:
            raise MalformedInput("date", f"Date must be YYYY-MM-DD, got '{target_date}'")
    return StartTimeOptimizer(config).optimize(
        tasks, tariff, carbon, solar, target_date, alpha
    )
