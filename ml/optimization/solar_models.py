"""
Rooftop Solar Model

Self-generation offsets grid draw one-for-one up to the generated amount
in the same slot; offset energy carries no price and no emissions. The
export scheme only matters for surplus settlement, which the billing
engine handles:

- NET_METERING: exported units net against imported units, so surplus is
  worth the import tariff; leftover units carry forward.
- NET_ACCOUNTING: surplus is paid at the export price, settled monthly.
- NET_PLUS: generation is paid at the export price, settled monthly.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

import numpy as np

from ml.optimization.exceptions import MalformedInput
from ml.optimization.tariff_models import Instant, Zone, minute_of_day
from ml.optimization.timeline import MINUTES_PER_DAY


class SolarScheme(str, Enum):
    """Export settlement schemes"""
    NET_METERING = "NET_METERING"
    NET_ACCOUNTING = "NET_ACCOUNTING"
    NET_PLUS = "NET_PLUS"


class SettlementRule(str, Enum):
    """How surplus credit rolls over between billing periods"""
    CARRY_FORWARD_UNITS = "CARRY_FORWARD_UNITS"
    MONTHLY_PAYMENT = "MONTHLY_PAYMENT"


SETTLEMENT_RULES = {
    SolarScheme.NET_METERING: SettlementRule.CARRY_FORWARD_UNITS,
    SolarScheme.NET_ACCOUNTING: SettlementRule.MONTHLY_PAYMENT,
    SolarScheme.NET_PLUS: SettlementRule.MONTHLY_PAYMENT,
}


@dataclass(frozen=True)
class SolarModel:
    """Solar configuration and generation profile.

    Attributes:
        enabled: Whether the household has rooftop solar
        scheme: Export settlement scheme
        export_price_lkr: Export price in LKR per kWh
        daily_profile: kWh generated per slot; the slot count must divide the day evenly
    """

    enabled: bool = False
    scheme: SolarScheme = SolarScheme.NET_ACCOUNTING
    export_price_lkr: float = 0.0
    daily_profile: Optional[Sequence[float]] = None
    _minute_generation: np.ndarray = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        try:
            object.__setattr__(self, "scheme", SolarScheme(self.scheme))
        except ValueError:
            raise MalformedInput("scheme", f"Unknown solar scheme '{self.scheme}'")
        if self.export_price_lkr is None or self.export_price_lkr < 0:
            raise MalformedInput("exportPriceLKR", "Export price must be non-negative")

        generation = np.zeros(MINUTES_PER_DAY, dtype=np.float64)
        profile = None
        if self.daily_profile is not None and len(self.daily_profile) > 0:
            values = np.asarray(list(self.daily_profile), dtype=np.float64)
            if MINUTES_PER_DAY % values.size != 0:
                raise MalformedInput(
                    "dailyProfile",
                    f"Generation profile length {values.size} does not divide the day evenly",
                )
            if not np.all(np.isfinite(values)) or np.any(values < 0):
                raise MalformedInput("dailyProfile", "Generation values must be non-negative numbers")
            slot_minutes = MINUTES_PER_DAY // values.size
            generation = np.repeat(values / slot_minutes, slot_minutes)
            profile = tuple(float(v) for v in values)

        if not self.enabled:
            generation = np.zeros(MINUTES_PER_DAY, dtype=np.float64)
        generation.setflags(write=False)
        object.__setattr__(self, "daily_profile", profile)
        object.__setattr__(self, "_minute_generation", generation)

    @classmethod
    def disabled(cls) -> "SolarModel":
        return cls(enabled=False)

    @property
    def settlement_rule(self) -> SettlementRule:
        return SETTLEMENT_RULES[self.scheme]

    @property
    def has_generation(self) -> bool:
        return bool(self.enabled and np.any(self._minute_generation > 0))

    @property
    def slot_minutes(self) -> Optional[int]:
        if not self.daily_profile:
            return None
        return MINUTES_PER_DAY // len(self.daily_profile)

    @property
    def daily_generation_kwh(self) -> float:
        return float(np.sum(self._minute_generation))

    def minute_generation(self) -> np.ndarray:
        """Read-only array of kWh generated in each minute of the day."""
        return self._minute_generation

    def self_consumed_kwh(
        self,
        instant: Instant,
        gross_kwh: float,
        duration_minutes: int = 1,
        tz: Optional[Zone] = None,
    ) -> float:
        """Portion of ``gross_kwh`` drawn over ``duration_minutes`` that generation covers."""
        if not self.enabled:
            return 0.0
        available = float(self._minute_generation[minute_of_day(instant, tz)]) * duration_minutes
        return min(gross_kwh, available)

    def net_cost_adjustment(
        self,
        instant: Instant,
        gross_kwh: float,
        import_price: float,
        duration_minutes: int = 1,
    ) -> float:
        """Change in cost (LKR, never positive) from serving load with self-generation."""
        return -self.self_consumed_kwh(instant, gross_kwh, duration_minutes) * import_price

    def net_co2_adjustment(
        self,
        instant: Instant,
        gross_kwh: float,
        grid_intensity: float,
        duration_minutes: int = 1,
    ) -> float:
        """Change in emissions (kg, never positive) from serving load with self-generation."""
        return -self.self_consumed_kwh(instant, gross_kwh, duration_minutes) * grid_intensity

    def export_rate(self, import_rate: float) -> float:
        """Value of one exported kWh under this scheme."""
        if self.scheme == SolarScheme.NET_METERING:
            return import_rate
        return float(self.export_price_lkr)
