"""
Appliance Scheduling and Billing Optimization Module

This module schedules shiftable household appliance runs against a
tariff, a grid carbon model and optional rooftop solar, and estimates
monthly bills.

Key Components:
- tariff_models: TOU windows and BLOCK tiers
- carbon_models: Constant and half-hourly carbon intensity
- solar_models: Self-generation and export schemes
- appliance_models: Tasks, recommendations and results
- constraints: Feasible start domains and the search-space bound
- objective: Blended money/carbon objective
- load_shifter: Per-task start-time search
- scheduler: High-level scheduling API
- billing: Bill previews, projections and export settlement
- block_crossing: Tier-boundary warnings

Algorithm Overview:
Tasks do not share a capacity limit, so each task is optimized on its
own: every candidate start from earliest to latest - duration (5-minute
steps by default) is scored with

    score = alpha * cost + (1 - alpha) * co2 * co2_to_lkr_weight

and the lowest score wins, ties going to the earliest start.

Example Usage:
    from ml.optimization import (
        ApplianceScheduler, ConstantCarbon, Task, TariffWindow, TouTariff,
    )

    tariff = TouTariff(windows=(
        TariffWindow("Off-Peak", "22:30", "05:30", 25.0),
        TariffWindow("Day", "05:30", "18:30", 45.0),
        TariffWindow("Peak", "18:30", "22:30", 70.0),
    ))

    scheduler = ApplianceScheduler()
    scheduler.set_tariff(tariff).set_carbon(ConstantCarbon(0.53))
    scheduler.add_task(Task("washer-1", "washer", 500, 60, "20:00", "23:59"))

    result = scheduler.optimize("demo", "2025-01-15", alpha=1.0)
    print(result.summary())
"""

from ml.optimization.appliance_models import (
    CO2_TO_LKR_WEIGHT,
    OptimizationConfig,
    OptimizationResult,
    Recommendation,
    Task,
    TaskFailure,
    VariantSet,
)
from ml.optimization.billing import (
    BillingEngine,
    BillPreview,
    ExportCredit,
    MonthlyProjection,
    UsageRecord,
)
from ml.optimization.block_crossing import BlockCrossingAdvisor, BlockWarning
from ml.optimization.carbon_models import CarbonModel, ConstantCarbon, Profile48Carbon
from ml.optimization.exceptions import (
    InfeasibleTask,
    InvalidCarbonProfile,
    InvalidTariffConfig,
    MalformedInput,
    SchedulingError,
)
from ml.optimization.load_shifter import StartTimeOptimizer, optimize_tasks
from ml.optimization.scheduler import ApplianceScheduler, optimize
from ml.optimization.solar_models import SettlementRule, SolarModel, SolarScheme
from ml.optimization.tariff_models import (
    BlockTariff,
    BlockTier,
    Tariff,
    TariffKind,
    TariffWindow,
    TouTariff,
)

__all__ = [
    "CO2_TO_LKR_WEIGHT",
    "OptimizationConfig",
    "OptimizationResult",
    "Recommendation",
    "Task",
    "TaskFailure",
    "VariantSet",
    "BillingEngine",
    "BillPreview",
    "ExportCredit",
    "MonthlyProjection",
    "UsageRecord",
    "BlockCrossingAdvisor",
    "BlockWarning",
    "CarbonModel",
    "ConstantCarbon",
    "Profile48Carbon",
    "InfeasibleTask",
    "InvalidCarbonProfile",
    "InvalidTariffConfig",
    "MalformedInput",
    "SchedulingError",
    "StartTimeOptimizer",
    "optimize_tasks",
    "ApplianceScheduler",
    "optimize",
    "SettlementRule",
    "SolarModel",
    "SolarScheme",
    "BlockTariff",
    "BlockTier",
    "Tariff",
    "TariffKind",
    "TariffWindow",
    "TouTariff",
]

__version__ = "1.0.0"
