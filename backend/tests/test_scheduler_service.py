"""
Tests for the SchedulerService
"""

from datetime import date
from unittest.mock import AsyncMock

import pytest

from ml.optimization.carbon_models import ConstantCarbon
from ml.optimization.exceptions import MalformedInput
from models.validation import parse_household
from repositories.base import NotFoundError
from repositories.memory_repository import InMemoryConfigRepository
from services.scheduler_service import SchedulerService


class TestLoadInputs:
    """Tests for assembling optimizer inputs from the repository"""

    @pytest.mark.asyncio
    async def test_converts_stored_configuration(self, repository, test_settings):
        """Test tariff, tasks and carbon come back as core objects"""
        service = SchedulerService(repository, test_settings)

        inputs = await service.load_inputs("user-tou")

        assert [t.id for t in inputs.tasks] == ["washer-1", "pump-1", "iron-1"]
        assert inputs.carbon.effective_intensity == pytest.approx(0.53)
        assert inputs.solar is None

    @pytest.mark.asyncio
    async def test_missing_carbon_falls_back_to_default(self, tou_household, test_settings):
        """Test a household without a carbon model uses the default factor"""
        del tou_household["carbon"]
        repo = InMemoryConfigRepository([parse_household(tou_household)])
        service = SchedulerService(repo, test_settings)

        inputs = await service.load_inputs("user-tou")

        assert isinstance(inputs.carbon, ConstantCarbon)
        assert inputs.carbon.kg_per_kwh == test_settings.default_carbon_kg_per_kwh

    @pytest.mark.asyncio
    async def test_missing_tariff_raises(self, tou_household, test_settings):
        """Test a household without a tariff cannot be scheduled"""
        del tou_household["tariff"]
        repo = InMemoryConfigRepository([parse_household(tou_household)])
        service = SchedulerService(repo, test_settings)

        with pytest.raises(NotFoundError):
            await service.load_inputs("user-tou")

    @pytest.mark.asyncio
    async def test_unknown_user_raises(self, repository, test_settings):
        """Test an unknown user id"""
        service = SchedulerService(repository, test_settings)

        with pytest.raises(NotFoundError):
            await service.optimize("nobody", "2025-01-15")

    @pytest.mark.asyncio
    async def test_reads_through_repository_interface(self, tou_household, test_settings):
        """Test the service only uses the abstract repository methods"""
        household = parse_household(tou_household)
        repo = AsyncMock()
        repo.get_tariff.return_value = household.tariff
        repo.get_tasks.return_value = household.appliances[:1]
        repo.get_carbon_profile.return_value = household.carbon
        repo.get_solar_config.return_value = None
        service = SchedulerService(repo, test_settings)

        result = await service.optimize("user-tou", date(2025, 1, 15))

        repo.get_tariff.assert_awaited_once_with("user-tou")
        repo.get_tasks.assert_awaited_once_with("user-tou")
        assert len(result.recommendations) == 1


class TestOptimize:
    """Tests for single optimizations"""

    @pytest.mark.asyncio
    async def test_tou_household_plan(self, repository, test_settings):
        """Test the washer moves to the off-peak window and the iron is infeasible"""
        service = SchedulerService(repository, test_settings)

        result = await service.optimize("user-tou", "2025-01-15", alpha=1.0)

        assert result.user_id == "user-tou"
        assert result.target_date == date(2025, 1, 15)
        assert [r.task_id for r in result.recommendations] == ["washer-1", "pump-1"]
        assert [r.id for r in result.recommendations] == ["rec-1", "rec-2"]

        washer = result.get_recommendation("washer-1")
        assert (washer.suggested_start.hour, washer.suggested_start.minute) == (22, 30)
        assert washer.cost_rs == pytest.approx(12.5)
        assert washer.est_saving_lkr == pytest.approx(22.5)

        pump = result.get_recommendation("pump-1")
        assert (pump.suggested_start.hour, pump.suggested_start.minute) == (6, 0)
        assert pump.est_saving_lkr == pytest.approx(0.0)

        assert [f.task_id for f in result.infeasible] == ["iron-1"]

    @pytest.mark.asyncio
    async def test_block_household_has_no_benefit(self, repository, test_settings):
        """Test a BLOCK tariff with constant carbon gives no schedule benefit"""
        service = SchedulerService(repository, test_settings)

        result = await service.optimize("user-block", "2025-01-15")

        assert result.recommendations == []
        assert result.no_benefit == ["heater-1"]
        assert result.note

    @pytest.mark.asyncio
    async def test_invalid_alpha(self, repository, test_settings):
        """Test alpha outside [0, 1] is malformed"""
        service = SchedulerService(repository, test_settings)

        with pytest.raises(MalformedInput) as exc_info:
            await service.optimize("user-tou", "2025-01-15", alpha=1.5)

        assert exc_info.value.field == "alpha"

    @pytest.mark.asyncio
    async def test_invalid_date(self, repository, test_settings):
        """Test an unparseable date is malformed"""
        service = SchedulerService(repository, test_settings)

        with pytest.raises(MalformedInput) as exc_info:
            await service.optimize("user-tou", "15/01/2025")

        assert exc_info.value.field == "date"

    @pytest.mark.asyncio
    async def test_repeated_runs_are_identical(self, repository, test_settings):
        """Test the same inputs give the same plan"""
        service = SchedulerService(repository, test_settings)

        first = await service.optimize("user-tou", "2025-01-15")
        second = await service.optimize("user-tou", "2025-01-15")

        assert first.to_dict() == second.to_dict()


class TestOptimizeVariants:
    """Tests for multi-weight plans"""

    @pytest.mark.asyncio
    async def test_variants_use_expected_weights(self, repository, test_settings):
        """Test the four plans carry their alphas"""
        service = SchedulerService(repository, test_settings)

        variants = await service.optimize_variants("user-tou", "2025-01-15", alpha=0.8)

        assert variants.plan.alpha == 0.8
        assert variants.balanced.alpha == test_settings.balanced_alpha
        assert variants.cheapest.alpha == 1.0
        assert variants.greenest.alpha == 0.0

    @pytest.mark.asyncio
    async def test_greenest_with_constant_carbon(self, repository, test_settings):
        """Test carbon-only plans see no variation on a constant grid"""
        service = SchedulerService(repository, test_settings)

        variants = await service.optimize_variants("user-tou", "2025-01-15")

        washer = variants.cheapest.get_recommendation("washer-1")
        assert (washer.suggested_start.hour, washer.suggested_start.minute) == (22, 30)
        assert variants.greenest.recommendations == []
        assert set(variants.greenest.no_benefit) == {"washer-1", "pump-1"}
