"""
Business Logic Services

Service layer for the household energy scheduler.
"""

from services.scheduler_service import SchedulerService, SchedulingInputs
from services.billing_service import BillingService, MonthToDate, resolve_cycle_start
from services.carbon import load_carbon_model

__all__ = [
    "SchedulerService",
    "SchedulingInputs",
    "BillingService",
    "MonthToDate",
    "resolve_cycle_start",
    "load_carbon_model",
]
