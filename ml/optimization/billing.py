"""
Billing Engine

Monthly bill previews, end-of-month projections, month-to-date
aggregation and solar export settlement.

Bill Formulas:
- TOU:   assumed_kwh * mean_rate + fixed_lkr
  (an approximation: the hourly load shape is unknown, so the load is
  assumed flat and the duration-weighted mean window rate applies)
- BLOCK: sum over tiers of max(0, min(remaining, upper - previous_upper)) * rate
  plus the fixed charge for the tier containing the month's total

Projection:
- total_co2_kg   = eom_kwh * effective_intensity
- trees_required = total_co2_kg * 12 / tree_absorption_kg_per_year
"""

import calendar
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, Iterable, Optional

from ml.optimization.carbon_models import CarbonModel
from ml.optimization.exceptions import MalformedInput
from ml.optimization.solar_models import SettlementRule, SolarModel, SolarScheme
from ml.optimization.tariff_models import BlockTariff, Tariff, TouTariff

logger = logging.getLogger(__name__)

# kg CO2 one mature tree absorbs in a year
TREE_ABSORPTION_KG_PER_YEAR = 22.0

MONTHS_PER_YEAR = 12


@dataclass(frozen=True)
class UsageRecord:
    """Metered consumption for one day.

    Attributes:
        day: Calendar day of the reading
        kwh: Energy imported from the grid that day
    """

    day: date
    kwh: float

    def __post_init__(self):
        if self.kwh is None or self.kwh < 0:
            raise MalformedInput("kwh", f"Usage on {self.day} must be non-negative, got {self.kwh}")


@dataclass
class ExportCredit:
    """Settlement of exported solar energy for one billing period.

    Attributes:
        scheme: Export scheme in force
        settlement_rule: How surplus credit rolls over between periods
        exported_kwh: Energy exported to the grid
        netted_kwh: Exported units offset against imported units
        carried_forward_kwh: Exported units left over for the next period
        credit_lkr: Money value of the credit this period
    """

    scheme: SolarScheme
    settlement_rule: SettlementRule
    exported_kwh: float
    netted_kwh: float = 0.0
    carried_forward_kwh: float = 0.0
    credit_lkr: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scheme": self.scheme.value,
            "settlementRule": self.settlement_rule.value,
            "exportedKWh": self.exported_kwh,
            "nettedKWh": self.netted_kwh,
            "carriedForwardKWh": self.carried_forward_kwh,
            "creditLKR": self.credit_lkr,
        }


@dataclass
class BillPreview:
    """Estimated bill for a month of consumption.

    Attributes:
        estimated_kwh: Consumption the estimate is for
        estimated_cost_lkr: Energy cost plus fixed charge less any export credit
        note: How the estimate was made
        energy_cost_lkr: Energy component
        fixed_charge_lkr: Fixed component
        export_credit: Solar settlement, if any
    """

    estimated_kwh: float
    estimated_cost_lkr: float
    note: str
    energy_cost_lkr: float = 0.0
    fixed_charge_lkr: float = 0.0
    export_credit: Optional[ExportCredit] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "estimatedKWh": self.estimated_kwh,
            "estimatedCostLKR": self.estimated_cost_lkr,
            "note": self.note,
            "energyCostLKR": self.energy_cost_lkr,
            "fixedChargeLKR": self.fixed_charge_lkr,
        }
        if self.export_credit is not None:
            data["exportCredit"] = self.export_credit.to_dict()
        return data


@dataclass
class MonthlyProjection:
    """End-of-month totals."""

    total_kwh: float
    total_cost_rs: float
    total_co2_kg: float
    trees_required: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalKWh": self.total_kwh,
            "totalCostRs": self.total_cost_rs,
            "totalCO2Kg": self.total_co2_kg,
            "treesRequired": self.trees_required,
        }


def add_month(day: date) -> date:
    """Same day next month, clamped to the month's last day."""
    year = day.year + day.month // 12
    month = day.month % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


class BillingEngine:
    """
    Computes bill previews and monthly projections.

    The engine is stateless apart from its constants and is safe to share
    between callers.
    """

    def __init__(self, tree_absorption_kg_per_year: float = TREE_ABSORPTION_KG_PER_YEAR):
        """
        Initialize the billing engine.

        Args:
            tree_absorption_kg_per_year: kg CO2 one tree absorbs per year
        """
        if tree_absorption_kg_per_year <= 0:
            raise ValueError("Tree absorption must be positive")
        self.tree_absorption_kg_per_year = tree_absorption_kg_per_year

    def preview_monthly_bill(
        self,
        tariff: Tariff,
        assumed_kwh: float,
        solar: Optional[SolarModel] = None,
        exported_kwh: float = 0.0,
    ) -> BillPreview:
        """
        Estimate a month's bill.

        Args:
            tariff: Household tariff
            assumed_kwh: Energy imported over the month
            solar: Solar configuration (export settlement only)
            exported_kwh: Energy exported over the month

        Returns:
            BillPreview

        Raises:
            MalformedInput: If a quantity is negative or the tariff is unknown
        """
        if not isinstance(tariff, (TouTariff, BlockTariff)):
            raise MalformedInput("tariff", f"Unsupported tariff {type(tariff).__name__}")
        if assumed_kwh is None or assumed_kwh < 0:
            raise MalformedInput("assumedKWh", f"Consumption must be non-negative, got {assumed_kwh}")
        if exported_kwh is None or exported_kwh < 0:
            raise MalformedInput("exportedKWh", f"Export must be non-negative, got {exported_kwh}")

        credit = None
        billed_kwh = assumed_kwh
        if solar is not None and solar.enabled and exported_kwh > 0:
            credit = self.export_credit(solar, tariff, exported_kwh, assumed_kwh)
            if credit.settlement_rule == SettlementRule.CARRY_FORWARD_UNITS:
                billed_kwh = assumed_kwh - credit.netted_kwh

        energy = tariff.energy_cost(billed_kwh)
        fixed = tariff.fixed_charge(billed_kwh)
        total = energy + fixed

        if isinstance(tariff, TouTariff):
            note = (
                f"Approximation: flat load at the mean window rate of "
                f"{tariff.mean_rate:.2f} LKR/kWh plus fixed charge"
            )
        else:
            tier = tariff.blocks[tariff.tier_index_for(billed_kwh)]
            note = f"Tiered estimate up to the {tier.label} kWh block plus fixed charge"

        if credit is not None:
            if credit.settlement_rule == SettlementRule.CARRY_FORWARD_UNITS:
                note += f"; {credit.netted_kwh:.2f} kWh netted against solar export"
                if credit.carried_forward_kwh > 0:
                    note += f", {credit.carried_forward_kwh:.2f} kWh carried forward"
            else:
                total -= credit.credit_lkr
                note += f"; less Rs {credit.credit_lkr:.2f} export payment"

        logger.debug("Bill preview for %.2f kWh: Rs %.2f", assumed_kwh, total)
        return BillPreview(
            estimated_kwh=assumed_kwh,
            estimated_cost_lkr=total,
            note=note,
            energy_cost_lkr=energy,
            fixed_charge_lkr=fixed,
            export_credit=credit,
        )

    def project_month(
        self,
        carbon: CarbonModel,
        tariff: Tariff,
        eom_kwh: float,
    ) -> MonthlyProjection:
        """
        Project end-of-month cost and emissions.

        Args:
            carbon: Grid carbon model
            tariff: Household tariff
            eom_kwh: Projected consumption for the whole month

        Returns:
            MonthlyProjection
        """
        if eom_kwh is None or eom_kwh < 0:
            raise MalformedInput("eomKWh", f"Consumption must be non-negative, got {eom_kwh}")

        cost = self.preview_monthly_bill(tariff, eom_kwh).estimated_cost_lkr
        co2 = eom_kwh * carbon.effective_intensity
        trees = co2 * MONTHS_PER_YEAR / self.tree_absorption_kg_per_year
        return MonthlyProjection(
            total_kwh=eom_kwh,
            total_cost_rs=cost,
            total_co2_kg=co2,
            trees_required=trees,
        )

    @staticmethod
    def month_to_date_kwh(
        records: Iterable[UsageRecord],
        cycle_start: date,
        as_of: date,
        used_units_at_cycle_start: float = 0.0,
    ) -> float:
        """
        Sum consumption since the start of the billing cycle.

        Args:
            records: Daily usage records (any order, any range)
            cycle_start: First day of the billing cycle
            as_of: Last day to include
            used_units_at_cycle_start: Units already on the meter when records begin

        Returns:
            Month-to-date kWh
        """
        if as_of < cycle_start:
            raise MalformedInput("asOf", f"{as_of} is before the billing cycle start {cycle_start}")
        recorded = sum(r.kwh for r in records if cycle_start <= r.day <= as_of)
        return used_units_at_cycle_start + recorded

    def project_end_of_month_kwh(
        self,
        records: Iterable[UsageRecord],
        cycle_start: date,
        as_of: date,
        used_units_at_cycle_start: float = 0.0,
    ) -> float:
        """
        Extrapolate month-to-date consumption over the whole billing cycle.

        The cycle runs one calendar month from ``cycle_start``; the daily
        average so far is assumed to hold for the remaining days.
        """
        mtd = self.month_to_date_kwh(records, cycle_start, as_of, used_units_at_cycle_start)
        cycle_end = add_month(cycle_start)
        cycle_days = (cycle_end - cycle_start).days
        elapsed = min((as_of - cycle_start).days + 1, cycle_days)
        return mtd / elapsed * cycle_days

    @staticmethod
    def billing_cycle_end(cycle_start: date) -> date:
        """Last day of the billing cycle starting on ``cycle_start``."""
        return add_month(cycle_start) - timedelta(days=1)

    @staticmethod
    def export_credit(
        solar: SolarModel,
        tariff: Tariff,
        exported_kwh: float,
        imported_kwh: float,
    ) -> ExportCredit:
        """
        Settle exported solar energy against a month's import.

        NET_METERING nets exported units against imported units; the
        credit is worth what those units would have cost and any surplus
        units carry forward. NET_ACCOUNTING and NET_PLUS pay the export
        price for every exported kWh.

        Args:
            solar: Solar configuration
            tariff: Household tariff (values netted units)
            exported_kwh: Energy exported this period
            imported_kwh: Energy imported this period

        Returns:
            ExportCredit
        """
        if exported_kwh is None or exported_kwh < 0:
            raise MalformedInput("exportedKWh", f"Export must be non-negative, got {exported_kwh}")
        if imported_kwh is None or imported_kwh < 0:
            raise MalformedInput("importedKWh", f"Import must be non-negative, got {imported_kwh}")

        credit = ExportCredit(
            scheme=solar.scheme,
            settlement_rule=solar.settlement_rule,
            exported_kwh=exported_kwh,
        )
        if not solar.enabled:
            return credit

        if solar.settlement_rule == SettlementRule.CARRY_FORWARD_UNITS:
            netted = min(exported_kwh, imported_kwh)
            credit.netted_kwh = netted
            credit.carried_forward_kwh = exported_kwh - netted
            credit.credit_lkr = tariff.energy_cost(imported_kwh) - tariff.energy_cost(
                imported_kwh - netted
            )
        else:
            credit.credit_lkr = exported_kwh * solar.export_price_lkr
        return credit
