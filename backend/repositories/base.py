"""
Base Repository

Provides the abstract configuration repository and the repository errors.
Implements the Repository pattern so services never touch storage directly.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from models.appliance import ApplianceTaskIn
from models.carbon import CarbonConfigIn
from models.household import HouseholdConfig
from models.solar import SolarConfigIn
from models.tariff import TariffIn
from models.usage import UsageRecordIn


class RepositoryError(Exception):
    """Base exception for repository errors"""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.message = message
        self.original_error = original_error
        super().__init__(self.message)


class NotFoundError(RepositoryError):
    """Raised when an entity is not found"""
    pass


class DuplicateError(RepositoryError):
    """Raised when a duplicate entity is detected"""
    pass


class ConfigRepository(ABC):
    """
    Abstract source of per-household configuration.

    Implementations return validated wire models; services convert them
    to core types with ``to_domain()``.
    """

    @abstractmethod
    async def get_household(self, user_id: str) -> HouseholdConfig:
        """
        Retrieve a household's full configuration.

        Raises:
            NotFoundError: If the user is unknown
        """
        pass

    @abstractmethod
    async def save_household(self, household: HouseholdConfig) -> HouseholdConfig:
        """
        Create a household configuration.

        Raises:
            DuplicateError: If the user already has one
        """
        pass

    @abstractmethod
    async def get_tariff(self, user_id: str) -> TariffIn:
        """
        Retrieve the user's tariff.

        Raises:
            NotFoundError: If no tariff is configured
        """
        pass

    @abstractmethod
    async def get_tasks(self, user_id: str) -> List[ApplianceTaskIn]:
        """Retrieve the appliance runs to schedule, in stored order."""
        pass

    @abstractmethod
    async def get_carbon_profile(self, user_id: str) -> CarbonConfigIn:
        """
        Retrieve the user's carbon model.

        Raises:
            NotFoundError: If no carbon model is configured
        """
        pass

    @abstractmethod
    async def get_solar_config(self, user_id: str) -> Optional[SolarConfigIn]:
        """Retrieve the solar configuration, or None if the user has none."""
        pass

    @abstractmethod
    async def get_usage_records(self, user_id: str) -> List[UsageRecordIn]:
        """Retrieve daily metered usage, oldest first."""
        pass

    @abstractmethod
    async def add_usage_record(self, user_id: str, record: UsageRecordIn) -> UsageRecordIn:
        """Append or replace the usage record for ``record.day``."""
        pass
