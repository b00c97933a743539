"""
Response Schemas

Pydantic response models for scheduler and billing results. Field aliases
carry the client's JSON names (``estSavingLKR``, ``willCross``, ...);
dump with ``by_alias=True``.
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ml.optimization.appliance_models import OptimizationResult, Recommendation, VariantSet
from ml.optimization.billing import BillPreview, MonthlyProjection
from ml.optimization.block_crossing import BlockWarning


class RecommendationResponse(BaseModel):
    """Suggested start for one appliance run"""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    task_id: str = Field(..., alias="taskId")
    appliance_id: str = Field(..., alias="applianceId")
    suggested_start: datetime = Field(..., alias="suggestedStart")
    duration_minutes: int = Field(..., alias="durationMinutes")
    reasons: List[str] = Field(default_factory=list)
    justifications: List[str] = Field(default_factory=list)
    est_saving_lkr: float = Field(..., ge=0, alias="estSavingLKR")
    est_monthly_saving_lkr: float = Field(default=0.0, alias="estMonthlySavingLKR")
    cost_rs: Optional[float] = Field(default=None, alias="costRs")
    co2_kg: Optional[float] = Field(default=None, alias="co2Kg")

    @classmethod
    def from_domain(cls, recommendation: Recommendation) -> "RecommendationResponse":
        return cls.model_validate(recommendation.to_dict())


class TaskFailureResponse(BaseModel):
    """A task that could not be placed"""

    model_config = ConfigDict(populate_by_name=True)

    task_id: str = Field(..., alias="taskId")
    reason: str


class OptimizeResponse(BaseModel):
    """Response schema for a single optimization"""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")
    target_date: date = Field(..., alias="date")
    alpha: float
    plan: List[RecommendationResponse] = Field(default_factory=list)
    infeasible: List[TaskFailureResponse] = Field(default_factory=list)
    no_benefit: List[str] = Field(default_factory=list, alias="noBenefit")
    note: Optional[str] = None

    @classmethod
    def from_domain(cls, result: OptimizationResult) -> "OptimizeResponse":
        return cls(
            user_id=result.user_id,
            target_date=result.target_date,
            alpha=result.alpha,
            plan=[RecommendationResponse.from_domain(r) for r in result.recommendations],
            infeasible=[
                TaskFailureResponse(task_id=f.task_id, reason=f.reason) for f in result.infeasible
            ],
            no_benefit=list(result.no_benefit),
            note=result.note,
        )


class SchedulerVariantsResponse(BaseModel):
    """Plans at the caller's alpha plus the balanced, cheapest and greenest plans"""

    plan: List[RecommendationResponse]
    balanced: List[RecommendationResponse]
    cheapest: List[RecommendationResponse]
    greenest: List[RecommendationResponse]

    @classmethod
    def from_domain(cls, variants: VariantSet) -> "SchedulerVariantsResponse":
        def convert(result: OptimizationResult) -> List[RecommendationResponse]:
            return [RecommendationResponse.from_domain(r) for r in result.recommendations]

        return cls(
            plan=convert(variants.plan),
            balanced=convert(variants.balanced),
            cheapest=convert(variants.cheapest),
            greenest=convert(variants.greenest),
        )


class ExportCreditResponse(BaseModel):
    """Solar export settlement"""

    model_config = ConfigDict(populate_by_name=True)

    scheme: str
    settlement_rule: str = Field(..., alias="settlementRule")
    exported_kwh: float = Field(..., alias="exportedKWh")
    netted_kwh: float = Field(default=0.0, alias="nettedKWh")
    carried_forward_kwh: float = Field(default=0.0, alias="carriedForwardKWh")
    credit_lkr: float = Field(default=0.0, alias="creditLKR")


class BillPreviewResponse(BaseModel):
    """Response schema for a monthly bill preview"""

    model_config = ConfigDict(populate_by_name=True)

    estimated_kwh: float = Field(..., alias="estimatedKWh")
    estimated_cost_lkr: float = Field(..., alias="estimatedCostLKR")
    note: str
    energy_cost_lkr: float = Field(default=0.0, alias="energyCostLKR")
    fixed_charge_lkr: float = Field(default=0.0, alias="fixedChargeLKR")
    export_credit: Optional[ExportCreditResponse] = Field(default=None, alias="exportCredit")

    @classmethod
    def from_domain(cls, preview: BillPreview) -> "BillPreviewResponse":
        return cls.model_validate(preview.to_dict())


class MonthlyProjectionResponse(BaseModel):
    """Response schema for an end-of-month projection"""

    model_config = ConfigDict(populate_by_name=True)

    total_kwh: float = Field(..., alias="totalKWh")
    total_cost_rs: float = Field(..., alias="totalCostRs")
    total_co2_kg: float = Field(..., alias="totalCO2Kg")
    trees_required: float = Field(..., alias="treesRequired")
    month_to_date_kwh: Optional[float] = Field(default=None, alias="monthToDateKWh")
    cycle_start: Optional[date] = Field(default=None, alias="cycleStart")
    cycle_end: Optional[date] = Field(default=None, alias="cycleEnd")

    @classmethod
    def from_domain(
        cls,
        projection: MonthlyProjection,
        month_to_date_kwh: Optional[float] = None,
        cycle_start: Optional[date] = None,
        cycle_end: Optional[date] = None,
    ) -> "MonthlyProjectionResponse":
        response = cls.model_validate(projection.to_dict())
        response.month_to_date_kwh = month_to_date_kwh
        response.cycle_start = cycle_start
        response.cycle_end = cycle_end
        return response


class BlockWarningResponse(BaseModel):
    """Response schema for a block-crossing check"""

    model_config = ConfigDict(populate_by_name=True)

    will_cross: bool = Field(..., alias="willCross")
    next_threshold_kwh: Optional[float] = Field(default=None, alias="nextThresholdKWh")
    delta_fixed: float = Field(default=0.0, alias="deltaFixed")
    delta_marginal: float = Field(default=0.0, alias="deltaMarginal")
    headroom_kwh: Optional[float] = Field(default=None, alias="headroomKWh")
    note: str = ""
    month_to_date_kwh: Optional[float] = Field(default=None, alias="monthToDateKWh")

    @classmethod
    def from_domain(
        cls,
        warning: BlockWarning,
        month_to_date_kwh: Optional[float] = None,
    ) -> "BlockWarningResponse":
        response = cls.model_validate(warning.to_dict())
        response.month_to_date_kwh = month_to_date_kwh
        return response


class ErrorResponse(BaseModel):
    """Error body returned by the command-line entry point"""

    error: str
    message: str
    field: Optional[str] = None
    task_id: Optional[str] = Field(default=None, alias="taskId")

    model_config = ConfigDict(populate_by_name=True)
