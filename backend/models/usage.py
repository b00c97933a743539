"""
Usage History Data Models
"""

from datetime import date

from pydantic import AliasChoices, BaseModel, Field

from ml.optimization.billing import UsageRecord


class UsageRecordIn(BaseModel):
    """Metered grid import for one day"""

    day: date = Field(..., validation_alias=AliasChoices("date", "day"))
    kwh: float = Field(..., validation_alias=AliasChoices("kwh", "kWh", "units"))

    def to_domain(self) -> UsageRecord:
        return UsageRecord(day=self.day, kwh=self.kwh)
