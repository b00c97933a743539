"""
Pytest Configuration and Shared Fixtures

This module provides common fixtures and configuration for all tests.
"""

import copy
import json
import os
from typing import Any, Dict
from unittest.mock import patch

import pytest

# Add backend directory and repository root to path for imports
import sys
from pathlib import Path

backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))
sys.path.insert(0, str(backend_dir.parent))


# =============================================================================
# SETTINGS FIXTURES
# =============================================================================


@pytest.fixture
def test_settings():
    """Settings built from a clean test environment, single-threaded search."""
    from config.settings import Settings

    with patch.dict(os.environ, {
        "ENVIRONMENT": "test",
        "OPTIMIZER_MAX_WORKERS": "1",
    }):
        yield Settings(_env_file=None)


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================


TOU_TARIFF: Dict[str, Any] = {
    "utility": "CEB",
    "tariffType": "TOU",
    "windows": [
        {"name": "Off-Peak", "startTime": "22:30", "endTime": "05:30", "rateLKR": 25},
        {"name": "Day", "startTime": "05:30", "endTime": "18:30", "rateLKR": 45},
        {"name": "Peak", "startTime": "18:30", "endTime": "22:30", "rateLKR": 70},
    ],
    "fixedLKR": 540,
}

BLOCK_TARIFF: Dict[str, Any] = {
    "utility": "CEB",
    "tariffType": "BLOCK",
    "blocks": [
        {"uptoKWh": 30, "rateLKR": 8},
        {"uptoKWh": 60, "rateLKR": 20},
        {"uptoKWh": 90, "rateLKR": 30},
        {"uptoKWh": 120, "rateLKR": 50},
        {"uptoKWh": 180, "rateLKR": 50},
        {"uptoKWh": None, "rateLKR": 75},
    ],
    "fixedLKR": 400,
    "billingCycleStart": "2025-01-01",
}


@pytest.fixture
def tou_household() -> Dict[str, Any]:
    """TOU household with a washer, a pump and an iron that cannot fit its window."""
    return {
        "userId": "user-tou",
        "tariff": copy.deepcopy(TOU_TARIFF),
        "appliances": [
            {
                "id": "washer-1",
                "applianceId": "washer",
                "ratedPowerW": 500,
                "durationMinutes": 60,
                "earliest": "20:00",
                "latest": "23:59",
                "repeatsPerWeek": 3,
            },
            {
                "id": "pump-1",
                "applianceId": "pump",
                "ratedPowerW": 750,
                "durationMinutes": 30,
                "earliest": "06:00",
                "latest": "20:00",
                "repeatsPerWeek": 7,
            },
            {
                "id": "iron-1",
                "applianceId": "iron",
                "ratedPowerW": 1000,
                "durationMinutes": 90,
                "earliest": "07:00",
                "latest": "08:00",
                "repeatsPerWeek": 2,
            },
        ],
        "carbon": {"modelType": "CONSTANT", "kgPerKWh": 0.53},
    }


@pytest.fixture
def block_household() -> Dict[str, Any]:
    """BLOCK household metering 5 kWh a day for the first ten days of January."""
    return {
        "userId": "user-block",
        "tariff": copy.deepcopy(BLOCK_TARIFF),
        "tasks": [
            {
                "taskId": "heater-1",
                "watts": 3000,
                "minutes": 300,
                "earliestStart": "08:00",
                "latestFinish": "20:00",
            },
        ],
        "carbon": {"kgPerKWh": 0.53},
        "solar": {
            "enabled": True,
            "scheme": "NET_METERING",
            "exportPriceLKR": 0,
        },
        "usage": [
            {"date": f"2025-01-{day:02d}", "kwh": 5} for day in range(1, 11)
        ],
    }


@pytest.fixture
def household_file(tmp_path, tou_household, block_household):
    """JSON file holding both sample households."""
    path = tmp_path / "households.json"
    path.write_text(json.dumps({"households": [tou_household, block_household]}))
    return path


@pytest.fixture
def repository(tou_household, block_household):
    """In-memory repository seeded with both sample households."""
    from models.validation import parse_household
    from repositories.memory_repository import InMemoryConfigRepository

    return InMemoryConfigRepository(
        [parse_household(tou_household), parse_household(block_household)]
    )
