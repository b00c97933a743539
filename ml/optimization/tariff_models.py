"""
Tariff Models

Billing plans used by the optimizer and the billing engine.

Two plan shapes exist:
- TOU (time-of-use): price depends on the time of day. Windows must
  partition the 24-hour day exactly once after midnight-wrap
  normalisation.
- BLOCK (tiered): price depends on cumulative consumption within the
  billing cycle. Tier ``i`` bills the band ``(upto[i-1], upto[i]]``; the
  last tier is unbounded whatever upper bound it carries.

Both are immutable value objects. They are replaced wholesale when the
user changes their configuration, never patched in place.
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime, time, tzinfo
from enum import Enum
from typing import ClassVar, List, Optional, Tuple, Union
from zoneinfo import ZoneInfo

import numpy as np

from ml.optimization.exceptions import InvalidTariffConfig, MalformedInput
from ml.optimization.timeline import (
    DEFAULT_TIMEZONE,
    MINUTES_PER_DAY,
    parse_hhmm,
    split_wrapping,
    tag_hhmm,
)

Instant = Union[int, time, datetime]
Zone = Union[str, tzinfo]


class TariffKind(str, Enum):
    """Tariff plan shapes"""
    TOU = "TOU"
    BLOCK = "BLOCK"


def minute_of_day(instant: Instant, tz: Optional[Zone] = None) -> int:
    """Resolve an instant to minutes since local midnight.

    Aware datetimes are converted to ``tz`` (Asia/Colombo when omitted)
    first. Naive datetimes, times and minute counts are already local.
    """
    if isinstance(instant, datetime) and instant.tzinfo is not None:
        zone = tz if isinstance(tz, tzinfo) else ZoneInfo(tz or DEFAULT_TIMEZONE)
        instant = instant.astimezone(zone)
    if isinstance(instant, (datetime, time)):
        return instant.hour * 60 + instant.minute
    if isinstance(instant, (int, np.integer)):
        minute = int(instant)
        if not 0 <= minute < MINUTES_PER_DAY:
            raise MalformedInput("instant", f"Minute of day must be 0-1439, got {minute}")
        return minute
    raise MalformedInput("instant", f"Unsupported instant {instant!r}")


@dataclass(frozen=True)
class TariffWindow:
    """A named time-of-day price band.

    Attributes:
        name: Display name ("Peak", "Off-Peak", ...)
        start_time: Start as HH:MM, inclusive
        end_time: End as HH:MM, exclusive; ``end <= start`` wraps midnight
        rate_lkr: Energy price in LKR per kWh
    """

    name: str
    start_time: str
    end_time: str
    rate_lkr: float

    def __post_init__(self):
        if not self.name:
            raise MalformedInput("name", "Tariff window name is required")
        if self.rate_lkr is None or self.rate_lkr < 0:
            raise InvalidTariffConfig(
                f"Window '{self.name}' rate must be non-negative, got {self.rate_lkr}"
            )
        parse_hhmm(self.start_time, "startTime")
        parse_hhmm(self.end_time, "endTime", allow_end_of_day=True)

    @property
    def start_minute(self) -> int:
        return parse_hhmm(self.start_time, "startTime")

    @property
    def end_minute(self) -> int:
        return parse_hhmm(self.end_time, "endTime", allow_end_of_day=True)

    @property
    def intervals(self) -> List[Tuple[int, int]]:
        """Non-wrapping ``[start, end)`` minute intervals covered by this window."""
        end = self.end_minute % MINUTES_PER_DAY
        return split_wrapping(self.start_minute, end)

    @property
    def duration_minutes(self) -> int:
        return sum(end - start for start, end in self.intervals)

    @property
    def tag(self) -> str:
        """Reason-trail tag such as ``Off-Peak_22_30_05_30``."""
        name = self.name.replace(" ", "")
        return f"{name}_{tag_hhmm(self.start_minute)}_{tag_hhmm(self.end_minute)}"

    def contains(self, instant: Instant, tz: Optional[Zone] = None) -> bool:
        minute = minute_of_day(instant, tz)
        return any(start <= minute < end for start, end in self.intervals)


@dataclass(frozen=True)
class TouTariff:
    """Time-of-use tariff.

    Attributes:
        windows: Price bands partitioning the day
        fixed_lkr: Fixed charge per billing period
    """

    kind: ClassVar[TariffKind] = TariffKind.TOU

    windows: Tuple[TariffWindow, ...]
    fixed_lkr: float = 0.0
    _window_index: np.ndarray = field(init=False, repr=False, compare=False)
    _minute_rates: np.ndarray = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        windows = tuple(self.windows or ())
        object.__setattr__(self, "windows", windows)
        if not windows:
            raise InvalidTariffConfig("TOU tariff must define at least one window")
        if self.fixed_lkr is None or self.fixed_lkr < 0:
            raise InvalidTariffConfig(f"Fixed charge must be non-negative, got {self.fixed_lkr}")

        coverage = np.zeros(MINUTES_PER_DAY, dtype=np.int64)
        window_index = np.full(MINUTES_PER_DAY, -1, dtype=np.int64)
        for idx, window in enumerate(windows):
            for start, end in window.intervals:
                coverage[start:end] += 1
                window_index[start:end] = idx

        gaps = np.flatnonzero(coverage == 0)
        if gaps.size:
            raise InvalidTariffConfig(
                f"TOU windows leave a gap starting at {tag_hhmm(int(gaps[0])).replace('_', ':')}"
            )
        overlaps = np.flatnonzero(coverage > 1)
        if overlaps.size:
            raise InvalidTariffConfig(
                f"TOU windows overlap starting at {tag_hhmm(int(overlaps[0])).replace('_', ':')}"
            )

        rates = np.array([w.rate_lkr for w in windows], dtype=np.float64)[window_index]
        window_index.setflags(write=False)
        rates.setflags(write=False)
        object.__setattr__(self, "_window_index", window_index)
        object.__setattr__(self, "_minute_rates", rates)

    def window_at(self, instant: Instant, tz: Optional[Zone] = None) -> TariffWindow:
        """Return the single window containing ``instant``."""
        idx = int(self._window_index[minute_of_day(instant, tz)])
        if idx < 0:
            raise InvalidTariffConfig(f"No tariff window covers {instant}")
        return self.windows[idx]

    def price_at(self, instant: Instant, tz: Optional[Zone] = None) -> float:
        """Energy price in LKR/kWh at a time of day."""
        return self.window_at(instant, tz).rate_lkr

    def minute_rates(self) -> np.ndarray:
        """Read-only array of 1440 per-minute prices."""
        return self._minute_rates

    def window_indices(self) -> np.ndarray:
        """Read-only array mapping each minute to its window index."""
        return self._window_index

    @property
    def mean_rate(self) -> float:
        """Duration-weighted mean price across the day (flat load shape)."""
        return float(np.mean(self._minute_rates))

    @property
    def is_flat(self) -> bool:
        return float(np.ptp(self._minute_rates)) == 0.0

    def fixed_charge(self, total_kwh: float = 0.0) -> float:
        return float(self.fixed_lkr)

    def energy_cost(self, total_kwh: float) -> float:
        """Approximate energy cost using the mean rate when load shape is unknown."""
        return total_kwh * self.mean_rate


@dataclass(frozen=True)
class BlockTier:
    """A cumulative-consumption tier.

    Attributes:
        upto_kwh: Inclusive upper bound of the band (None for unbounded)
        rate_lkr: Marginal price for energy inside the band
        fixed_lkr: Monthly fixed charge when the month's total lands in this band
    """

    upto_kwh: Optional[float]
    rate_lkr: float
    fixed_lkr: Optional[float] = None

    @property
    def label(self) -> str:
        return "unbounded" if self.upto_kwh is None else f"{self.upto_kwh:g}"


@dataclass(frozen=True)
class BlockTariff:
    """Tiered tariff priced on cumulative monthly consumption.

    Attributes:
        blocks: Tiers sorted ascending by upper bound
        fixed_lkr: Fixed charge used when tiers carry no fixed charge of their own
        billing_cycle_start: First day of the current billing cycle
        used_units_at_cycle_start: kWh already consumed when the cycle data was captured
    """

    kind: ClassVar[TariffKind] = TariffKind.BLOCK

    blocks: Tuple[BlockTier, ...]
    fixed_lkr: float = 0.0
    billing_cycle_start: Optional[date] = None
    used_units_at_cycle_start: float = 0.0

    def __post_init__(self):
        blocks = tuple(self.blocks or ())
        object.__setattr__(self, "blocks", blocks)
        if not blocks:
            raise InvalidTariffConfig("BLOCK tariff must define at least one tier")
        if self.fixed_lkr is None or self.fixed_lkr < 0:
            raise InvalidTariffConfig(f"Fixed charge must be non-negative, got {self.fixed_lkr}")
        if self.used_units_at_cycle_start is None or self.used_units_at_cycle_start < 0:
            raise MalformedInput(
                "usedUnitsAtCycleStart",
                f"Used units must be non-negative, got {self.used_units_at_cycle_start}",
            )

        previous = 0.0
        for idx, tier in enumerate(blocks):
            if tier.rate_lkr is None or tier.rate_lkr < 0:
                raise InvalidTariffConfig(f"Tier {idx} rate must be non-negative")
            if tier.fixed_lkr is not None and tier.fixed_lkr < 0:
                raise InvalidTariffConfig(f"Tier {idx} fixed charge must be non-negative")
            last = idx == len(blocks) - 1
            if tier.upto_kwh is None:
                if not last:
                    raise InvalidTariffConfig("Only the last tier may be unbounded")
                continue
            if tier.upto_kwh <= previous:
                raise InvalidTariffConfig(
                    f"Tier bounds must be strictly ascending: {tier.upto_kwh:g} after {previous:g}"
                )
            previous = tier.upto_kwh

    @property
    def upper_bounds(self) -> List[float]:
        """Band upper bounds; the last tier is always unbounded."""
        bounds = [float(t.upto_kwh) for t in self.blocks[:-1]]
        bounds.append(math.inf)
        return bounds

    def band(self, index: int) -> Tuple[float, float]:
        """``(lower, upper]`` consumption band of a tier."""
        bounds = self.upper_bounds
        lower = bounds[index - 1] if index > 0 else 0.0
        return lower, bounds[index]

    def tier_index_for(self, cumulative_kwh: float) -> int:
        """Index of the tier whose band ``(lower, upper]`` contains ``cumulative_kwh``."""
        for idx, upper in enumerate(self.upper_bounds):
            if cumulative_kwh <= upper:
                return idx
        return len(self.blocks) - 1

    def marginal_price_at(self, cumulative_kwh_before_unit: float) -> float:
        """Price of the next unit consumed after ``cumulative_kwh_before_unit``."""
        for idx, upper in enumerate(self.upper_bounds):
            if cumulative_kwh_before_unit < upper:
                return self.blocks[idx].rate_lkr
        return self.blocks[-1].rate_lkr

    def split_increment(self, cumulative_kwh: float, delta_kwh: float) -> List[Tuple[int, float]]:
        """Split an increment into ``(tier_index, kWh)`` sub-spans.

        Args:
            cumulative_kwh: Consumption already billed this cycle
            delta_kwh: New consumption to bill

        Returns:
            Non-empty sub-spans in ascending tier order
        """
        spans = []
        position = cumulative_kwh
        remaining = delta_kwh
        for idx, upper in enumerate(self.upper_bounds):
            if remaining <= 0:
                break
            if position >= upper:
                continue
            portion = min(remaining, upper - position)
            spans.append((idx, portion))
            position += portion
            remaining -= portion
        return spans

    def increment_cost(self, cumulative_kwh: float, delta_kwh: float) -> float:
        """Energy cost of ``delta_kwh`` consumed on top of ``cumulative_kwh``."""
        return sum(
            kwh * self.blocks[idx].rate_lkr
            for idx, kwh in self.split_increment(cumulative_kwh, delta_kwh)
        )

    def energy_cost(self, total_kwh: float) -> float:
        """Closed-form tier summation of a month's energy cost."""
        cost = 0.0
        remaining = total_kwh
        previous_upper = 0.0
        for tier, upper in zip(self.blocks, self.upper_bounds):
            portion = max(0.0, min(remaining, upper - previous_upper))
            cost += portion * tier.rate_lkr
            remaining -= portion
            previous_upper = upper
        return cost

    @property
    def has_tiered_fixed_charge(self) -> bool:
        return any(t.fixed_lkr is not None for t in self.blocks)

    def fixed_charge(self, total_kwh: float = 0.0) -> float:
        """Monthly fixed charge, a step function of total consumption when configured."""
        if not self.has_tiered_fixed_charge:
            return float(self.fixed_lkr)
        tier = self.blocks[self.tier_index_for(total_kwh)]
        return float(tier.fixed_lkr if tier.fixed_lkr is not None else self.fixed_lkr)


Tariff = Union[TouTariff, BlockTariff]
