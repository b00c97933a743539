"""
Appliance Task and Result Models

This module defines the data structures for shiftable appliance runs,
optimizer configuration and optimization results.

Time Convention:
- Times of day are HH:MM strings in the household's local timezone
- Internally every time is minutes since midnight (0-1440)
- A task never wraps midnight: earliest <= latest on the target day
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from ml.optimization.exceptions import MalformedInput
from ml.optimization.timeline import DEFAULT_TIMEZONE, format_hhmm, parse_hhmm

# LKR charged per kg CO2 when blending cost and emissions into one score.
# Puts the carbon term on the money scale so alpha trades like for like.
CO2_TO_LKR_WEIGHT = 50.0

WEEKS_PER_MONTH = 52 / 12


@dataclass(frozen=True)
class Task:
    """A shiftable appliance run.

    Attributes:
        id: Task identifier
        appliance_id: Appliance performing the run
        rated_power_w: Power draw in watts
        duration_minutes: Run length
        earliest: Earliest start, HH:MM
        latest: Latest finish, HH:MM ("24:00" allowed)
        repeats_per_week: How often the run happens in a week
    """

    id: str
    appliance_id: str
    rated_power_w: float
    duration_minutes: int
    earliest: str = "00:00"
    latest: str = "24:00"
    repeats_per_week: int = 1

    def __post_init__(self):
        self._validate()

    def _validate(self):
        """Validate task shape. Window fit is checked by the optimizer."""
        if not self.id:
            raise MalformedInput("id", "Task id is required")
        if not self.appliance_id:
            raise MalformedInput("applianceId", f"Task '{self.id}' has no appliance id")
        if self.rated_power_w is None or self.rated_power_w <= 0:
            raise MalformedInput(
                "ratedPowerW", f"Power must be positive, got {self.rated_power_w}"
            )
        if self.duration_minutes is None or self.duration_minutes <= 0:
            raise MalformedInput(
                "durationMinutes", f"Duration must be positive, got {self.duration_minutes}"
            )
        if self.repeats_per_week is None or self.repeats_per_week < 0:
            raise MalformedInput(
                "repeatsPerWeek", f"Repeats per week must be non-negative, got {self.repeats_per_week}"
            )
        if self.earliest_minute > self.latest_minute:
            raise MalformedInput(
                "latest",
                f"Task '{self.id}' latest {self.latest} is before earliest {self.earliest}",
            )

    @property
    def earliest_minute(self) -> int:
        return parse_hhmm(self.earliest, "earliest")

    @property
    def latest_minute(self) -> int:
        return parse_hhmm(self.latest, "latest", allow_end_of_day=True)

    @property
    def window_minutes(self) -> int:
        return self.latest_minute - self.earliest_minute

    @property
    def power_kw(self) -> float:
        return self.rated_power_w / 1000.0

    @property
    def energy_kwh(self) -> float:
        """Energy for one run in kWh."""
        return self.power_kw * self.duration_minutes / 60.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "applianceId": self.appliance_id,
            "ratedPowerW": self.rated_power_w,
            "durationMinutes": self.duration_minutes,
            "earliest": self.earliest,
            "latest": self.latest,
            "repeatsPerWeek": self.repeats_per_week,
        }


@dataclass
class Recommendation:
    """Suggested start for one task.

    Attributes:
        id: Deterministic recommendation id (rec-<n>)
        task_id: Task being scheduled
        appliance_id: Appliance performing the run
        suggested_start: Local start timestamp on the target day
        duration_minutes: Run length
        reasons: Machine-readable justification tags
        justifications: Human-readable sentences
        est_saving_lkr: Money saved versus starting at the earliest time
        cost_rs: Energy cost of the suggested run
        co2_kg: Grid emissions of the suggested run
        score: Blended objective value
        baseline_cost_rs: Energy cost of starting at the earliest time
        est_monthly_saving_lkr: Saving scaled by repeats per week
    """

    id: str
    task_id: str
    appliance_id: str
    suggested_start: datetime
    duration_minutes: int
    reasons: List[str]
    justifications: List[str]
    est_saving_lkr: float
    cost_rs: float
    co2_kg: float
    score: float
    baseline_cost_rs: float
    est_monthly_saving_lkr: float = 0.0

    @property
    def start_time(self) -> str:
        return format_hhmm(self.suggested_start.hour * 60 + self.suggested_start.minute)

    @property
    def end_time(self) -> str:
        start = self.suggested_start.hour * 60 + self.suggested_start.minute
        return format_hhmm(start + self.duration_minutes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the external JSON contract."""
        return {
            "id": self.id,
            "taskId": self.task_id,
            "applianceId": self.appliance_id,
            "suggestedStart": self.suggested_start.isoformat(),
            "durationMinutes": self.duration_minutes,
            "reasons": list(self.reasons),
            "justifications": list(self.justifications),
            "estSavingLKR": self.est_saving_lkr,
            "estMonthlySavingLKR": self.est_monthly_saving_lkr,
            "costRs": self.cost_rs,
            "co2Kg": self.co2_kg,
        }


@dataclass(frozen=True)
class TaskFailure:
    """A task that could not be scheduled."""

    task_id: str
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {"taskId": self.task_id, "reason": self.reason}


@dataclass
class OptimizationConfig:
    """Configuration for the start-time optimizer.

    Attributes:
        granularity_minutes: Step between candidate starts
        max_candidates_per_task: Search-space bound; wider domains are coarsened
        co2_to_lkr_weight: LKR per kg CO2 in the blended score
        max_workers: Worker threads for per-task search (1 runs sequentially)
        timezone: IANA timezone of the household's clock
    """

    granularity_minutes: int = 5
    max_candidates_per_task: int = 1440
    co2_to_lkr_weight: float = CO2_TO_LKR_WEIGHT
    max_workers: int = 4
    timezone: str = DEFAULT_TIMEZONE

    def __post_init__(self):
        """Validate configuration."""
        if self.granularity_minutes < 1:
            raise ValueError("Granularity must be at least 1 minute")
        if self.max_candidates_per_task < 2:
            raise ValueError("Must allow at least 2 candidates per task")
        if self.co2_to_lkr_weight < 0:
            raise ValueError("CO2 weight must be non-negative")
        if self.max_workers < 1:
            raise ValueError("Must have at least 1 worker")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "granularity_minutes": self.granularity_minutes,
            "max_candidates_per_task": self.max_candidates_per_task,
            "co2_to_lkr_weight": self.co2_to_lkr_weight,
            "max_workers": self.max_workers,
            "timezone": self.timezone,
        }


@dataclass
class OptimizationResult:
    """Complete optimization result for one household and day.

    Attributes:
        user_id: Household the plan belongs to
        target_date: Day being planned
        alpha: Money-versus-carbon weight used
        recommendations: One entry per schedulable task, in input order
        infeasible: Tasks whose window cannot fit their duration
        no_benefit: Tasks whose score does not vary across their window
        solve_time_seconds: Wall-clock time spent searching
        note: Plan-level remark for the caller
    """

    user_id: str
    target_date: date
    alpha: float
    recommendations: List[Recommendation] = field(default_factory=list)
    infeasible: List[TaskFailure] = field(default_factory=list)
    no_benefit: List[str] = field(default_factory=list)
    solve_time_seconds: float = 0.0
    note: Optional[str] = None

    @property
    def total_saving_lkr(self) -> float:
        return sum(r.est_saving_lkr for r in self.recommendations)

    @property
    def total_cost_rs(self) -> float:
        return sum(r.cost_rs for r in self.recommendations)

    @property
    def total_co2_kg(self) -> float:
        return sum(r.co2_kg for r in self.recommendations)

    def get_recommendation(self, task_id: str) -> Optional[Recommendation]:
        for rec in self.recommendations:
            if rec.task_id == task_id:
                return rec
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "date": self.target_date.isoformat(),
            "alpha": self.alpha,
            "plan": [r.to_dict() for r in self.recommendations],
            "infeasible": [f.to_dict() for f in self.infeasible],
            "noBenefit": list(self.no_benefit),
            "note": self.note,
        }

    def summary(self) -> str:
        """Generate human-readable summary."""
        lines = [
            "=" * 60,
            f"SCHEDULE FOR {self.user_id} ON {self.target_date.isoformat()} (alpha={self.alpha:.2f})",
            "=" * 60,
        ]
        for rec in self.recommendations:
            lines.append(f"  {rec.appliance_id}: {rec.start_time} - {rec.end_time}")
            lines.append(f"    Cost: Rs {rec.cost_rs:.2f}  CO2: {rec.co2_kg:.3f} kg")
            lines.append(f"    Saving: Rs {rec.est_saving_lkr:.2f}")
        for failure in self.infeasible:
            lines.append(f"  {failure.task_id}: NOT SCHEDULED ({failure.reason})")
        for task_id in self.no_benefit:
            lines.append(f"  {task_id}: no schedule benefit")
        lines.append(f"Total saving: Rs {self.total_saving_lkr:.2f}")
        lines.append("=" * 60)
        return "\n".join(lines)


@dataclass
class VariantSet:
    """Plans for the caller's alpha plus the balanced, money-only and carbon-only extremes."""

    plan: OptimizationResult
    balanced: OptimizationResult
    cheapest: OptimizationResult
    greenest: OptimizationResult

    def to_dict(self) -> Dict[str, Any]:
        return {
            "plan": [r.to_dict() for r in self.plan.recommendations],
            "balanced": [r.to_dict() for r in self.balanced.recommendations],
            "cheapest": [r.to_dict() for r in self.cheapest.recommendations],
            "greenest": [r.to_dict() for r in self.greenest.recommendations],
        }
