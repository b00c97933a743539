"""
Carbon Configuration Data Models
"""

from enum import Enum
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from ml.optimization.carbon_models import CarbonModel, ConstantCarbon, Profile48Carbon
from ml.optimization.exceptions import MalformedInput


class CarbonModelType(str, Enum):
    """Carbon model shapes"""
    CONSTANT = "CONSTANT"
    PROFILE_48 = "PROFILE_48"


class CarbonConfigIn(BaseModel):
    """
    Carbon configuration payload.

    Either ``{kgPerKWh}`` for a constant factor or
    ``{modelType: "PROFILE_48", profile: [48 values]}``. A payload carrying
    only a profile is read as a half-hourly profile.
    """

    model_config = ConfigDict(protected_namespaces=())

    model_type: Optional[CarbonModelType] = Field(
        default=None, validation_alias=AliasChoices("modelType", "model_type")
    )
    kg_per_kwh: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices("kgPerKWh", "defaultKgPerKWh", "kg_per_kwh"),
    )
    slots: Optional[List[float]] = Field(
        default=None, validation_alias=AliasChoices("profile", "slots")
    )

    @property
    def resolved_type(self) -> CarbonModelType:
        if self.model_type is not None:
            return self.model_type
        if self.slots is not None and self.kg_per_kwh is None:
            return CarbonModelType.PROFILE_48
        return CarbonModelType.CONSTANT

    def to_domain(self) -> CarbonModel:
        if self.resolved_type == CarbonModelType.PROFILE_48:
            if self.slots is None:
                raise MalformedInput("profile", "PROFILE_48 carbon model needs a 'profile'")
            return Profile48Carbon(self.slots)
        if self.kg_per_kwh is None:
            raise MalformedInput("kgPerKWh", "Constant carbon model needs 'kgPerKWh'")
        return ConstantCarbon(self.kg_per_kwh)
