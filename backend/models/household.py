"""
Household Configuration Data Models

A household bundles everything the scheduler and billing services read
for one user: tariff, appliances, carbon, solar and usage history.
"""

from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from models.appliance import ApplianceTaskIn
from models.carbon import CarbonConfigIn
from models.solar import SolarConfigIn
from models.tariff import TariffIn
from models.usage import UsageRecordIn


class HouseholdConfig(BaseModel):
    """Stored configuration for one household"""

    user_id: str = Field(..., min_length=1, validation_alias=AliasChoices("userId", "user_id"))
    tariff: Optional[TariffIn] = None
    appliances: List[ApplianceTaskIn] = Field(
        default_factory=list, validation_alias=AliasChoices("appliances", "tasks")
    )
    carbon: Optional[CarbonConfigIn] = None
    solar: Optional[SolarConfigIn] = None
    usage: List[UsageRecordIn] = Field(
        default_factory=list, validation_alias=AliasChoices("usage", "usageRecords")
    )

    @field_validator("appliances")
    @classmethod
    def unique_appliance_ids(cls, value: List[ApplianceTaskIn]) -> List[ApplianceTaskIn]:
        seen = set()
        for task in value:
            if task.id in seen:
                raise ValueError(f"Duplicate appliance id '{task.id}'")
            seen.add(task.id)
        return value
