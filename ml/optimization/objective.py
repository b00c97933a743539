"""
Objective Function for Appliance Start-Time Selection

The blended objective for a task started at minute ``s`` is

    score(s) = alpha * cost(s) + (1 - alpha) * co2(s) * co2_to_lkr_weight

where cost and emissions are summed over the run ``[s, s + d)``. The run
is cut into sub-intervals wherever the tariff window, the carbon slot or
the solar slot changes; inside each sub-interval price, intensity and
generation are constant, so

    energy_kwh = rated_power_w / 1000 * minutes / 60
    grid_kwh   = energy_kwh - self-generation used
    cost      += grid_kwh * price
    co2       += grid_kwh * intensity

Every boundary falls on a whole minute, so the same totals are computed
for all candidates at once from per-minute cumulative sums. BLOCK
tariffs have no time-dependent price; their cost is the tiered price of
the run's grid energy on top of the cycle's consumption so far.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from ml.optimization.appliance_models import Task
from ml.optimization.carbon_models import CarbonModel, Profile48Carbon
from ml.optimization.solar_models import SolarModel
from ml.optimization.tariff_models import BlockTariff, Tariff, TariffWindow, TouTariff
from ml.optimization.timeline import MINUTES_PER_DAY

# Relative tolerance for treating two scores as equal
SCORE_TOLERANCE = 1e-9


@dataclass
class Segment:
    """A stretch of a run with constant price, intensity and generation.

    Attributes:
        start: First minute (inclusive)
        end: Last minute (exclusive)
        window: TOU window in force (None for BLOCK tariffs)
        price: Marginal price in LKR/kWh (first unit, for BLOCK tariffs)
        intensity: Grid intensity in kg/kWh
        gross_kwh: Energy drawn by the appliance
        self_consumed_kwh: Portion served by rooftop solar
        cost_rs: Grid energy cost
        co2_kg: Grid emissions
    """

    start: int
    end: int
    window: Optional[TariffWindow]
    price: float
    intensity: float
    gross_kwh: float
    self_consumed_kwh: float
    cost_rs: float
    co2_kg: float

    @property
    def minutes(self) -> int:
        return self.end - self.start

    @property
    def grid_kwh(self) -> float:
        return self.gross_kwh - self.self_consumed_kwh


class DayProfile:
    """Per-minute view of one day's tariff, carbon and solar inputs.

    Built once per optimization call and shared read-only by every task
    search.
    """

    def __init__(self, tariff: Tariff, carbon: CarbonModel, solar: SolarModel):
        self.tariff = tariff
        self.carbon = carbon
        self.solar = solar
        self.intensities = carbon.minute_intensities()
        self.generation = solar.minute_generation()

        boundaries = {0, MINUTES_PER_DAY}
        if isinstance(tariff, TouTariff):
            self.prices = tariff.minute_rates()
            for window in tariff.windows:
                for start, end in window.intervals:
                    boundaries.update((start, end))
        else:
            self.prices = None

        if isinstance(carbon, Profile48Carbon):
            boundaries.update(range(0, MINUTES_PER_DAY + 1, MINUTES_PER_DAY // 48))
        if solar.slot_minutes:
            boundaries.update(range(0, MINUTES_PER_DAY + 1, solar.slot_minutes))
        self.boundaries = np.array(sorted(boundaries), dtype=np.int64)

    @property
    def is_time_of_use(self) -> bool:
        return self.prices is not None

    def split(self, start: int, end: int) -> List[Tuple[int, int]]:
        """Cut ``[start, end)`` at every input boundary."""
        inner = self.boundaries[(self.boundaries > start) & (self.boundaries < end)]
        points = [start, *inner.tolist(), end]
        return list(zip(points[:-1], points[1:]))


class ObjectiveEvaluator:
    """Evaluates the blended objective for one task over candidate starts."""

    def __init__(
        self,
        profile: DayProfile,
        task: Task,
        alpha: float,
        co2_to_lkr_weight: float,
    ):
        """Initialize evaluator.

        Args:
            profile: Day profile shared by all tasks
            task: Task being placed
            alpha: Money weight in [0, 1]; 1 means cost only
            co2_to_lkr_weight: LKR per kg CO2
        """
        self.profile = profile
        self.task = task
        self.alpha = alpha
        self.co2_to_lkr_weight = co2_to_lkr_weight

        draw_per_minute = task.power_kw / 60.0
        self_used = np.minimum(draw_per_minute, profile.generation)
        grid = draw_per_minute - self_used

        self._cum_grid = np.concatenate(([0.0], np.cumsum(grid)))
        self._cum_self = np.concatenate(([0.0], np.cumsum(self_used)))
        self._cum_co2 = np.concatenate(([0.0], np.cumsum(grid * profile.intensities)))
        if profile.is_time_of_use:
            self._cum_cost = np.concatenate(([0.0], np.cumsum(grid * profile.prices)))
        else:
            self._cum_cost = None

    def _window_sum(self, cumulative: np.ndarray, starts: np.ndarray) -> np.ndarray:
        ends = starts + self.task.duration_minutes
        return cumulative[ends] - cumulative[starts]

    def grid_kwh(self, starts: np.ndarray) -> np.ndarray:
        return self._window_sum(self._cum_grid, starts)

    def self_consumed_kwh(self, starts: np.ndarray) -> np.ndarray:
        return self._window_sum(self._cum_self, starts)

    def cost(self, starts: np.ndarray) -> np.ndarray:
        """Energy cost in LKR for each candidate start."""
        if self._cum_cost is not None:
            return self._window_sum(self._cum_cost, starts)
        tariff: BlockTariff = self.profile.tariff
        cycle_kwh = tariff.used_units_at_cycle_start
        return np.array(
            [tariff.increment_cost(cycle_kwh, kwh) for kwh in self.grid_kwh(starts)],
            dtype=np.float64,
        )

    def co2(self, starts: np.ndarray) -> np.ndarray:
        """Grid emissions in kg for each candidate start."""
        return self._window_sum(self._cum_co2, starts)

    def blend(self, cost: np.ndarray, co2: np.ndarray) -> np.ndarray:
        return self.alpha * cost + (1.0 - self.alpha) * co2 * self.co2_to_lkr_weight

    def evaluate(self, starts: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Return ``(cost, co2, score)`` arrays aligned with ``starts``."""
        starts = np.asarray(starts, dtype=np.int64)
        cost = self.cost(starts)
        co2 = self.co2(starts)
        return cost, co2, self.blend(cost, co2)

    def breakdown(self, start: int) -> List[Segment]:
        """Sub-interval decomposition of the run starting at ``start``."""
        profile = self.profile
        tariff = profile.tariff
        segments = []
        cycle_kwh = getattr(tariff, "used_units_at_cycle_start", 0.0)

        for seg_start, seg_end in profile.split(start, start + self.task.duration_minutes):
            minutes = seg_end - seg_start
            gross = self.task.power_kw * minutes / 60.0
            intensity = profile.carbon.intensity_at(seg_start)
            self_used = profile.solar.self_consumed_kwh(seg_start, gross, minutes)
            grid = gross - self_used

            if isinstance(tariff, TouTariff):
                window = tariff.window_at(seg_start)
                price = window.rate_lkr
                cost = gross * price + profile.solar.net_cost_adjustment(
                    seg_start, gross, price, minutes
                )
            else:
                window = None
                price = tariff.marginal_price_at(cycle_kwh)
                cost = tariff.increment_cost(cycle_kwh, grid)
                cycle_kwh += grid

            co2 = gross * intensity + profile.solar.net_co2_adjustment(
                seg_start, gross, intensity, minutes
            )
            segments.append(
                Segment(
                    start=seg_start,
                    end=seg_end,
                    window=window,
                    price=price,
                    intensity=intensity,
                    gross_kwh=gross,
                    self_consumed_kwh=self_used,
                    cost_rs=cost,
                    co2_kg=co2,
                )
            )
        return segments


def best_candidate(scores: np.ndarray) -> Tuple[int, int]:
    """Pick the earliest candidate among equally scoring minima.

    Returns:
        Tuple of (index of chosen candidate, number of tied minima)
    """
    minimum = float(np.min(scores))
    tolerance = SCORE_TOLERANCE * max(1.0, abs(minimum))
    tied = np.flatnonzero(scores <= minimum + tolerance)
    return int(tied[0]), int(tied.size)


def has_variation(scores: np.ndarray) -> bool:
    """Whether candidate scores differ by more than rounding noise."""
    if scores.size < 2:
        return True
    spread = float(np.max(scores) - np.min(scores))
    return spread > SCORE_TOLERANCE * max(1.0, float(np.max(np.abs(scores))))
