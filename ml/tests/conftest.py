"""
Pytest Configuration and Fixtures for Optimization Core Tests

Provides shared fixtures for:
- Time-of-use and block tariffs
- Carbon intensity models
- Solar configurations
- Typical household tasks
"""

import os
import sys
from datetime import date

import pytest

# Add repository root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from ml.optimization.appliance_models import OptimizationConfig, Task
from ml.optimization.carbon_models import ConstantCarbon, Profile48Carbon
from ml.optimization.solar_models import SolarModel, SolarScheme
from ml.optimization.tariff_models import BlockTariff, BlockTier, TariffWindow, TouTariff


# ============================================================================
# Tariff Fixtures
# ============================================================================


@pytest.fixture
def ceb_tou_tariff() -> TouTariff:
    """Three-window domestic TOU tariff (wrapping off-peak)."""
    return TouTariff(
        windows=(
            TariffWindow("Off-Peak", "22:30", "05:30", 25.0),
            TariffWindow("Day", "05:30", "18:30", 45.0),
            TariffWindow("Peak", "18:30", "22:30", 70.0),
        ),
        fixed_lkr=540.0,
    )


@pytest.fixture
def flat_tou_tariff() -> TouTariff:
    """Single all-day window."""
    return TouTariff(windows=(TariffWindow("Flat", "00:00", "00:00", 40.0),))


@pytest.fixture
def block_tiers():
    """Domestic block tiers with the sentinel upper bound on the last tier."""
    return (
        BlockTier(30, 8.0),
        BlockTier(60, 20.0),
        BlockTier(90, 30.0),
        BlockTier(120, 50.0),
        BlockTier(180, 50.0),
        BlockTier(999999, 75.0),
    )


@pytest.fixture
def block_tariff(block_tiers) -> BlockTariff:
    """Block tariff with a flat fixed charge."""
    return BlockTariff(
        blocks=block_tiers,
        fixed_lkr=400.0,
        billing_cycle_start=date(2025, 1, 1),
    )


@pytest.fixture
def stepped_block_tariff() -> BlockTariff:
    """Block tariff whose fixed charge depends on the month's total."""
    return BlockTariff(
        blocks=(
            BlockTier(30, 8.0, fixed_lkr=150.0),
            BlockTier(60, 20.0, fixed_lkr=300.0),
            BlockTier(90, 30.0, fixed_lkr=400.0),
            BlockTier(None, 50.0, fixed_lkr=1000.0),
        ),
        billing_cycle_start=date(2025, 1, 1),
    )


# ============================================================================
# Carbon and Solar Fixtures
# ============================================================================


@pytest.fixture
def constant_carbon() -> ConstantCarbon:
    return ConstantCarbon(0.53)


@pytest.fixture
def evening_peak_carbon() -> Profile48Carbon:
    """Clean overnight grid (0.3) with a dirty evening peak (0.9)."""
    slots = [0.5] * 48
    for i in range(0, 12):
        slots[i] = 0.3
    for i in range(36, 45):
        slots[i] = 0.9
    return Profile48Carbon(slots)


@pytest.fixture
def midday_solar() -> SolarModel:
    """Hourly profile generating 1 kWh per hour from 10:00 to 14:00."""
    profile = [0.0] * 24
    for hour in range(10, 14):
        profile[hour] = 1.0
    return SolarModel(
        enabled=True,
        scheme=SolarScheme.NET_ACCOUNTING,
        export_price_lkr=27.06,
        daily_profile=profile,
    )


# ============================================================================
# Task Fixtures
# ============================================================================


@pytest.fixture
def washer_task() -> Task:
    """500 W, 60 minute run allowed 20:00-23:59."""
    return Task(
        id="washer-1",
        appliance_id="washer",
        rated_power_w=500,
        duration_minutes=60,
        earliest="20:00",
        latest="23:59",
        repeats_per_week=3,
    )


@pytest.fixture
def household_tasks(washer_task):
    """Washer, pump and an iron that cannot fit its window."""
    return [
        washer_task,
        Task("pump-1", "pump", 750, 30, "06:00", "20:00", 7),
        Task("iron-1", "iron", 1000, 90, "07:00", "08:00", 2),
    ]


@pytest.fixture
def target_date() -> date:
    return date(2025, 1, 15)


@pytest.fixture
def sequential_config() -> OptimizationConfig:
    """Single-worker configuration."""
    return OptimizationConfig(max_workers=1)
