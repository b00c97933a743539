"""
Data Models

Pydantic models for the household scheduling and billing services.
"""

from models.appliance import ApplianceTaskIn
from models.carbon import CarbonConfigIn, CarbonModelType
from models.household import HouseholdConfig
from models.responses import (
    BillPreviewResponse,
    BlockWarningResponse,
    ErrorResponse,
    ExportCreditResponse,
    MonthlyProjectionResponse,
    OptimizeResponse,
    RecommendationResponse,
    SchedulerVariantsResponse,
    TaskFailureResponse,
)
from models.solar import SolarConfigIn
from models.tariff import (
    BlockTariffIn,
    BlockTierIn,
    TariffIn,
    TariffWindowIn,
    TouTariffIn,
)
from models.usage import UsageRecordIn
from models.validation import (
    malformed_from_validation,
    parse_household,
    parse_payload,
    parse_tariff,
)

__all__ = [
    "ApplianceTaskIn",
    "CarbonConfigIn",
    "CarbonModelType",
    "HouseholdConfig",
    "BillPreviewResponse",
    "BlockWarningResponse",
    "ErrorResponse",
    "ExportCreditResponse",
    "MonthlyProjectionResponse",
    "OptimizeResponse",
    "RecommendationResponse",
    "SchedulerVariantsResponse",
    "TaskFailureResponse",
    "SolarConfigIn",
    "BlockTariffIn",
    "BlockTierIn",
    "TariffIn",
    "TariffWindowIn",
    "TouTariffIn",
    "UsageRecordIn",
    "malformed_from_validation",
    "parse_household",
    "parse_payload",
    "parse_tariff",
]
