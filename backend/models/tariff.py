"""
Tariff Data Models

Pydantic models for tariff payloads. Wire names follow the client contract
(``tariffType``, ``rateLKR``, ``uptoKWh``, ``usedUnitsAtCycleStart``) and
accept the older aliases the client still sends.
"""

from datetime import date
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, Discriminator, Field, Tag, TypeAdapter

from ml.optimization.tariff_models import BlockTariff, BlockTier, TariffWindow, TouTariff


class TariffWindowIn(BaseModel):
    """A named time-of-day price band"""

    name: str = Field(..., min_length=1, validation_alias=AliasChoices("name", "label"))
    start_time: str = Field(..., validation_alias=AliasChoices("startTime", "start_time"))
    end_time: str = Field(..., validation_alias=AliasChoices("endTime", "end_time"))
    rate_lkr: float = Field(
        ..., validation_alias=AliasChoices("rateLKR", "rateLKRPerKWh", "rate_lkr")
    )

    def to_domain(self) -> TariffWindow:
        return TariffWindow(
            name=self.name,
            start_time=self.start_time,
            end_time=self.end_time,
            rate_lkr=self.rate_lkr,
        )


class BlockTierIn(BaseModel):
    """A cumulative-consumption tier; ``uptoKWh`` may be null on the last tier"""

    upto_kwh: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("uptoKWh", "upto_kwh")
    )
    rate_lkr: float = Field(
        ..., validation_alias=AliasChoices("rateLKR", "rateLKRPerKWh", "rate_lkr")
    )
    fixed_lkr: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("fixedLKR", "fixed_lkr")
    )

    def to_domain(self) -> BlockTier:
        return BlockTier(upto_kwh=self.upto_kwh, rate_lkr=self.rate_lkr, fixed_lkr=self.fixed_lkr)


class TouTariffIn(BaseModel):
    """Time-of-use tariff payload"""

    tariff_type: Literal["TOU"] = Field(
        default="TOU", validation_alias=AliasChoices("tariffType", "type", "tariff_type")
    )
    utility: Optional[str] = None
    windows: List[TariffWindowIn]
    fixed_lkr: float = Field(default=0.0, validation_alias=AliasChoices("fixedLKR", "fixed_lkr"))

    def to_domain(self) -> TouTariff:
        return TouTariff(
            windows=tuple(w.to_domain() for w in self.windows),
            fixed_lkr=self.fixed_lkr,
        )


class BlockTariffIn(BaseModel):
    """Block tariff payload"""

    tariff_type: Literal["BLOCK"] = Field(
        default="BLOCK", validation_alias=AliasChoices("tariffType", "type", "tariff_type")
    )
    utility: Optional[str] = None
    blocks: List[BlockTierIn]
    fixed_lkr: float = Field(default=0.0, validation_alias=AliasChoices("fixedLKR", "fixed_lkr"))
    billing_cycle_start: Optional[date] = Field(
        default=None,
        validation_alias=AliasChoices("billingCycleStart", "startDate", "billing_cycle_start"),
    )
    used_units_at_cycle_start: float = Field(
        default=0.0,
        validation_alias=AliasChoices(
            "usedUnitsAtCycleStart", "usedUnits", "used_units_at_cycle_start"
        ),
    )

    def to_domain(self) -> BlockTariff:
        return BlockTariff(
            blocks=tuple(b.to_domain() for b in self.blocks),
            fixed_lkr=self.fixed_lkr,
            billing_cycle_start=self.billing_cycle_start,
            used_units_at_cycle_start=self.used_units_at_cycle_start,
        )


def tariff_tag(value: Any) -> Optional[str]:
    """Read the plan tag from a payload (``tariffType``, or ``type``) or a parsed model"""
    if isinstance(value, dict):
        for key in ("tariffType", "type", "tariff_type"):
            if key in value:
                return value[key]
        return None
    return getattr(value, "tariff_type", None)


TariffIn = Annotated[
    Union[Annotated[TouTariffIn, Tag("TOU")], Annotated[BlockTariffIn, Tag("BLOCK")]],
    Discriminator(tariff_tag),
]

tariff_adapter = TypeAdapter(TariffIn)
