"""
Carbon Intensity Models

Grid emission factors in kg CO2 per kWh, either a single constant or a
48-slot half-hourly profile where slot ``i`` covers
``[i * 30min, (i + 1) * 30min)``.
"""

from dataclasses import dataclass, field
from typing import Optional, Sequence, Union

import numpy as np

from ml.optimization.exceptions import InvalidCarbonProfile
from ml.optimization.tariff_models import Instant, Zone, minute_of_day
from ml.optimization.timeline import MINUTES_PER_DAY

PROFILE_SLOTS = 48
SLOT_MINUTES = MINUTES_PER_DAY // PROFILE_SLOTS

# Sri Lankan grid average used when a household has not configured a factor
DEFAULT_KG_PER_KWH = 0.53


@dataclass(frozen=True)
class ConstantCarbon:
    """Single emission factor for every minute of the day."""

    kg_per_kwh: float = DEFAULT_KG_PER_KWH

    def __post_init__(self):
        if self.kg_per_kwh is None or not np.isfinite(self.kg_per_kwh) or self.kg_per_kwh < 0:
            raise InvalidCarbonProfile(
                f"Emission factor must be a non-negative number, got {self.kg_per_kwh}"
            )

    def intensity_at(self, instant: Instant, tz: Optional[Zone] = None) -> float:
        minute_of_day(instant, tz)
        return float(self.kg_per_kwh)

    def minute_intensities(self) -> np.ndarray:
        return np.full(MINUTES_PER_DAY, float(self.kg_per_kwh))

    @property
    def effective_intensity(self) -> float:
        return float(self.kg_per_kwh)

    @property
    def is_flat(self) -> bool:
        return True


@dataclass(frozen=True)
class Profile48Carbon:
    """Half-hourly emission profile."""

    slots: Sequence[float]
    _values: np.ndarray = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        values = np.asarray(list(self.slots or ()), dtype=np.float64)
        if values.shape != (PROFILE_SLOTS,):
            raise InvalidCarbonProfile(
                f"Carbon profile must have exactly {PROFILE_SLOTS} slots, got {values.size}"
            )
        if not np.all(np.isfinite(values)):
            raise InvalidCarbonProfile("Carbon profile contains non-numeric values")
        if np.any(values < 0):
            bad = int(np.flatnonzero(values < 0)[0])
            raise InvalidCarbonProfile(f"Carbon profile slot {bad} is negative")
        values.setflags(write=False)
        object.__setattr__(self, "slots", tuple(float(v) for v in values))
        object.__setattr__(self, "_values", values)

    @staticmethod
    def slot_index(minute: int) -> int:
        return min(max(minute // SLOT_MINUTES, 0), PROFILE_SLOTS - 1)

    def intensity_at(self, instant: Instant, tz: Optional[Zone] = None) -> float:
        return float(self._values[self.slot_index(minute_of_day(instant, tz))])

    def minute_intensities(self) -> np.ndarray:
        return np.repeat(self._values, SLOT_MINUTES)

    @property
    def effective_intensity(self) -> float:
        """Mean of the slots, i.e. the intensity seen by a flat load."""
        return float(np.mean(self._values))

    @property
    def is_flat(self) -> bool:
        return float(np.ptp(self._values)) == 0.0


CarbonModel = Union[ConstantCarbon, Profile48Carbon]
