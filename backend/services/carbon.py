"""
Carbon Model Lookup

Shared by the scheduler and billing services so a household without a
stored carbon model gets the same configured default everywhere.
"""

import structlog

from config.settings import Settings
from ml.optimization.carbon_models import CarbonModel, ConstantCarbon
from repositories.base import ConfigRepository, NotFoundError

logger = structlog.get_logger()


async def load_carbon_model(
    repository: ConfigRepository,
    user_id: str,
    settings: Settings,
) -> CarbonModel:
    """
    Return the household's carbon model, or the constant default grid factor.

    Raises:
        SchedulingError: If the stored model is invalid
    """
    try:
        return (await repository.get_carbon_profile(user_id)).to_domain()
    except NotFoundError:
        logger.warning(
            "carbon_profile_missing",
            user_id=user_id,
            fallback_kg_per_kwh=settings.default_carbon_kg_per_kwh,
        )
        return ConstantCarbon(settings.default_carbon_kg_per_kwh)
