"""
Solar Configuration Data Models
"""

from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field

from ml.optimization.solar_models import SolarModel, SolarScheme


class SolarConfigIn(BaseModel):
    """Solar configuration payload. A payload without ``enabled`` is enabled."""

    enabled: bool = Field(default=True, validation_alias=AliasChoices("enabled", "has"))
    scheme: SolarScheme = SolarScheme.NET_ACCOUNTING
    export_price_lkr: float = Field(
        default=0.0,
        validation_alias=AliasChoices("exportPriceLKR", "exportRate", "export_price_lkr"),
    )
    daily_profile: Optional[List[float]] = Field(
        default=None,
        validation_alias=AliasChoices("dailyProfile", "profile", "daily_profile"),
    )

    def to_domain(self) -> SolarModel:
        return SolarModel(
            enabled=self.enabled,
            scheme=self.scheme,
            export_price_lkr=self.export_price_lkr,
            daily_profile=self.daily_profile,
        )
