"""
In-Memory Configuration Repository

Holds household configurations in a dict keyed by user id. Used by the
command-line entry point (loaded from a JSON file) and by the tests.
"""

import json
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import structlog

from models.appliance import ApplianceTaskIn
from models.carbon import CarbonConfigIn
from models.household import HouseholdConfig
from models.solar import SolarConfigIn
from models.tariff import TariffIn
from models.usage import UsageRecordIn
from models.validation import parse_household
from repositories.base import (
    ConfigRepository,
    DuplicateError,
    NotFoundError,
    RepositoryError,
)

logger = structlog.get_logger()


class InMemoryConfigRepository(ConfigRepository):
    """
    Repository backed by a process-local dict.

    Households are stored as validated ``HouseholdConfig`` models; reads
    return the stored models without copying.
    """

    def __init__(self, households: Optional[Iterable[HouseholdConfig]] = None):
        """Index households by user id; a repeated id raises DuplicateError."""
        self._households: Dict[str, HouseholdConfig] = {}
        for household in households or []:
            self._insert(household)

    def _insert(self, household: HouseholdConfig) -> HouseholdConfig:
        if household.user_id in self._households:
            raise DuplicateError(f"Household for user {household.user_id} already exists")
        self._households[household.user_id] = household
        return household

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "InMemoryConfigRepository":
        """
        Load households from a JSON file.

        The file holds one household object, a list of them, or an object
        with a ``households`` list.

        Raises:
            RepositoryError: If the file cannot be read or is not JSON
            DuplicateError: If the file lists a user id twice
            MalformedInput: If a household fails validation
        """
        path = Path(path)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise RepositoryError(f"Failed to read household file {path}: {e}", e)
        except json.JSONDecodeError as e:
            raise RepositoryError(f"Household file {path} is not valid JSON: {e}", e)

        if isinstance(raw, dict) and "households" in raw:
            raw = raw["households"]
        if isinstance(raw, dict):
            raw = [raw]
        if not isinstance(raw, list):
            raise RepositoryError(f"Household file {path} must hold an object or a list")

        households = [parse_household(item) for item in raw]
        logger.info("households_loaded", path=str(path), count=len(households))
        return cls(households)

    async def get_household(self, user_id: str) -> HouseholdConfig:
        household = self._households.get(user_id)
        if household is None:
            raise NotFoundError(f"No household configured for user {user_id}")
        return household

    async def save_household(self, household: HouseholdConfig) -> HouseholdConfig:
        self._insert(household)
        logger.info("household_saved", user_id=household.user_id)
        return household

    async def get_tariff(self, user_id: str) -> TariffIn:
        household = await self.get_household(user_id)
        if household.tariff is None:
            raise NotFoundError(f"No tariff configured for user {user_id}")
        return household.tariff

    async def get_tasks(self, user_id: str) -> List[ApplianceTaskIn]:
        household = await self.get_household(user_id)
        return list(household.appliances)

    async def get_carbon_profile(self, user_id: str) -> CarbonConfigIn:
        household = await self.get_household(user_id)
        if household.carbon is None:
            raise NotFoundError(f"No carbon model configured for user {user_id}")
        return household.carbon

    async def get_solar_config(self, user_id: str) -> Optional[SolarConfigIn]:
        household = await self.get_household(user_id)
        return household.solar

    async def get_usage_records(self, user_id: str) -> List[UsageRecordIn]:
        household = await self.get_household(user_id)
        return sorted(household.usage, key=lambda r: r.day)

    async def add_usage_record(self, user_id: str, record: UsageRecordIn) -> UsageRecordIn:
        household = await self.get_household(user_id)
        kept = [r for r in household.usage if r.day != record.day]
        kept.append(record)
        household.usage = kept
        return record
