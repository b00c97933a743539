"""
Appliance Task Data Models

Pydantic models for shiftable appliance runs.
"""

from typing import Optional

from pydantic import AliasChoices, BaseModel, Field

from ml.optimization.appliance_models import Task


class ApplianceTaskIn(BaseModel):
    """
    Shiftable appliance run as configured by the user.

    ``applianceId`` defaults to the task id when the client sends only one
    identifier.
    """

    id: str = Field(..., min_length=1, validation_alias=AliasChoices("id", "taskId"))
    appliance_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("applianceId", "appliance_id")
    )
    name: Optional[str] = None
    rated_power_w: float = Field(
        ..., validation_alias=AliasChoices("ratedPowerW", "watts", "rated_power_w")
    )
    duration_minutes: int = Field(
        ...,
        validation_alias=AliasChoices("durationMinutes", "cycleMinutes", "minutes", "duration_minutes"),
    )
    earliest: str = Field(default="00:00", validation_alias=AliasChoices("earliest", "earliestStart"))
    latest: str = Field(default="24:00", validation_alias=AliasChoices("latest", "latestFinish"))
    repeats_per_week: int = Field(
        default=1,
        validation_alias=AliasChoices("repeatsPerWeek", "runsPerWeek", "perWeek", "repeats_per_week"),
    )

    def to_domain(self) -> Task:
        return Task(
            id=self.id,
            appliance_id=self.appliance_id or self.id,
            rated_power_w=self.rated_power_w,
            duration_minutes=self.duration_minutes,
            earliest=self.earliest,
            latest=self.latest,
            repeats_per_week=self.repeats_per_week,
        )
