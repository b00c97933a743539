"""
Tests for Tariff Models and Time-of-Day Helpers

Test Coverage:
- HH:MM parsing and midnight-wrap splitting
- TOU partition validation and price lookup
- BLOCK tier validation, incremental and closed-form billing
- Tier-dependent fixed charges
"""

from datetime import datetime, time, timezone
from zoneinfo import ZoneInfo

import numpy as np
import pytest

from ml.optimization.exceptions import InvalidTariffConfig, MalformedInput
from ml.optimization.tariff_models import (
    BlockTariff,
    BlockTier,
    TariffKind,
    TariffWindow,
    TouTariff,
    minute_of_day,
)
from ml.optimization.timeline import (
    MINUTES_PER_DAY,
    format_hhmm,
    overlap_minutes,
    parse_hhmm,
    split_wrapping,
)


class TestTimeline:
    """Tests for minute-of-day helpers."""

    def test_parse_hhmm(self):
        """Test parsing valid times."""
        assert parse_hhmm("00:00") == 0
        assert parse_hhmm("05:30") == 330
        assert parse_hhmm("23:59") == 1439
        assert parse_hhmm("7:05") == 425

    def test_parse_end_of_day(self):
        """Test 24:00 is only accepted where allowed."""
        assert parse_hhmm("24:00", allow_end_of_day=True) == MINUTES_PER_DAY
        with pytest.raises(MalformedInput):
            parse_hhmm("24:00")

    def test_parse_rejects_garbage(self):
        """Test malformed times name the offending field."""
        with pytest.raises(MalformedInput) as exc_info:
            parse_hhmm("25:00", "earliest")
        assert exc_info.value.field == "earliest"

        with pytest.raises(MalformedInput):
            parse_hhmm("12-30")
        with pytest.raises(MalformedInput):
            parse_hhmm(None, "latest")

    def test_format_hhmm(self):
        """Test formatting minutes back to HH:MM."""
        assert format_hhmm(0) == "00:00"
        assert format_hhmm(1350) == "22:30"
        assert format_hhmm(MINUTES_PER_DAY) == "24:00"

    def test_split_wrapping(self):
        """Test midnight-wrapping windows become two intervals."""
        assert split_wrapping(330, 1110) == [(330, 1110)]
        assert split_wrapping(1350, 330) == [(1350, 1440), (0, 330)]
        assert split_wrapping(1350, 0) == [(1350, 1440)]
        assert split_wrapping(0, 0) == [(0, 1440)]

    def test_overlap_minutes(self):
        """Test interval overlap length."""
        assert overlap_minutes((0, 60), (30, 90)) == 30
        assert overlap_minutes((0, 60), (60, 90)) == 0


class TestTouTariff:
    """Tests for time-of-use tariffs."""

    def test_kind(self, ceb_tou_tariff):
        """Test tariff kind tag."""
        assert ceb_tou_tariff.kind == TariffKind.TOU

    def test_every_minute_has_one_window(self, ceb_tou_tariff):
        """Test the windows partition the whole day."""
        indices = ceb_tou_tariff.window_indices()
        assert indices.shape == (MINUTES_PER_DAY,)
        assert np.all(indices >= 0)
        total = sum(w.duration_minutes for w in ceb_tou_tariff.windows)
        assert total == MINUTES_PER_DAY

    def test_price_at_boundaries(self, ceb_tou_tariff):
        """Test window starts are inclusive and ends exclusive."""
        assert ceb_tou_tariff.price_at(0) == 25.0
        assert ceb_tou_tariff.price_at(time(5, 29)) == 25.0
        assert ceb_tou_tariff.price_at(time(5, 30)) == 45.0
        assert ceb_tou_tariff.price_at(time(18, 29)) == 45.0
        assert ceb_tou_tariff.price_at(time(18, 30)) == 70.0
        assert ceb_tou_tariff.price_at(time(22, 30)) == 25.0
        assert ceb_tou_tariff.price_at(datetime(2025, 1, 15, 23, 59)) == 25.0

    def test_aware_instants_use_colombo_clock(self, ceb_tou_tariff):
        """Test an aware datetime is read on the household clock, not its own."""
        # 17:00 UTC is 22:30 in Colombo
        utc = datetime(2025, 1, 15, 17, 0, tzinfo=timezone.utc)
        assert ceb_tou_tariff.price_at(utc) == 25.0
        assert ceb_tou_tariff.window_at(utc).name == "Off-Peak"
        assert minute_of_day(utc) == 22 * 60 + 30

    def test_aware_instants_in_a_given_zone(self, ceb_tou_tariff):
        """Test the zone can be passed by name or as tzinfo."""
        utc = datetime(2025, 1, 15, 17, 0, tzinfo=timezone.utc)
        assert ceb_tou_tariff.price_at(utc, "UTC") == 45.0
        assert ceb_tou_tariff.price_at(utc, ZoneInfo("Asia/Kolkata")) == 25.0
        colombo = datetime(2025, 1, 15, 19, 0, tzinfo=ZoneInfo("Asia/Colombo"))
        assert ceb_tou_tariff.price_at(colombo) == 70.0

    def test_window_at(self, ceb_tou_tariff):
        """Test the containing window is returned."""
        assert ceb_tou_tariff.window_at(time(20, 0)).name == "Peak"
        assert ceb_tou_tariff.window_at(time(3, 0)).name == "Off-Peak"

    def test_window_tag(self, ceb_tou_tariff):
        """Test reason-trail tag format."""
        assert ceb_tou_tariff.windows[0].tag == "Off-Peak_22_30_05_30"

    def test_gap_rejected(self):
        """Test a gap in coverage is a configuration error."""
        with pytest.raises(InvalidTariffConfig, match="gap starting at 12:00"):
            TouTariff(
                windows=(
                    TariffWindow("Morning", "00:00", "12:00", 30.0),
                    TariffWindow("Evening", "13:00", "00:00", 50.0),
                )
            )

    def test_overlap_rejected(self):
        """Test overlapping windows are a configuration error."""
        with pytest.raises(InvalidTariffConfig, match="overlap starting at 12:00"):
            TouTariff(
                windows=(
                    TariffWindow("Morning", "00:00", "13:00", 30.0),
                    TariffWindow("Evening", "12:00", "00:00", 50.0),
                )
            )

    def test_empty_rejected(self):
        """Test a TOU tariff needs windows."""
        with pytest.raises(InvalidTariffConfig):
            TouTariff(windows=())

    def test_negative_rate_rejected(self):
        """Test negative rates are rejected."""
        with pytest.raises(InvalidTariffConfig):
            TariffWindow("Bad", "00:00", "00:00", -1.0)

    def test_malformed_window_time(self):
        """Test bad window times raise MalformedInput."""
        with pytest.raises(MalformedInput) as exc_info:
            TariffWindow("Bad", "25:00", "05:00", 10.0)
        assert exc_info.value.field == "startTime"

    def test_mean_rate(self, ceb_tou_tariff):
        """Test duration-weighted mean across the day."""
        # (420 * 25 + 780 * 45 + 240 * 70) / 1440
        assert ceb_tou_tariff.mean_rate == pytest.approx(62400 / 1440)
        assert not ceb_tou_tariff.is_flat

    def test_flat_tariff(self, flat_tou_tariff):
        """Test a single full-day window."""
        assert flat_tou_tariff.is_flat
        assert flat_tou_tariff.mean_rate == 40.0
        assert flat_tou_tariff.windows[0].duration_minutes == MINUTES_PER_DAY

    def test_minute_rates_read_only(self, ceb_tou_tariff):
        """Test the cached price array cannot be mutated."""
        rates = ceb_tou_tariff.minute_rates()
        with pytest.raises(ValueError):
            rates[0] = 0.0

    def test_minute_of_day_range(self):
        """Test integer instants must fall inside the day."""
        assert minute_of_day(1439) == 1439
        with pytest.raises(MalformedInput):
            minute_of_day(1440)


class TestBlockTariff:
    """Tests for block (tiered) tariffs."""

    def test_kind(self, block_tariff):
        """Test tariff kind tag."""
        assert block_tariff.kind == TariffKind.BLOCK

    def test_last_tier_unbounded(self, block_tariff):
        """Test the sentinel upper bound is treated as unbounded."""
        assert block_tariff.upper_bounds[-1] == float("inf")
        assert block_tariff.marginal_price_at(2_000_000) == 75.0

    def test_non_ascending_rejected(self):
        """Test tiers must have strictly increasing bounds."""
        with pytest.raises(InvalidTariffConfig, match="strictly ascending"):
            BlockTariff(blocks=(BlockTier(60, 10.0), BlockTier(30, 20.0), BlockTier(None, 30.0)))
        with pytest.raises(InvalidTariffConfig):
            BlockTariff(blocks=(BlockTier(30, 10.0), BlockTier(30, 20.0)))

    def test_only_last_tier_unbounded(self):
        """Test an unbounded tier must come last."""
        with pytest.raises(InvalidTariffConfig, match="last tier"):
            BlockTariff(blocks=(BlockTier(None, 10.0), BlockTier(60, 20.0)))

    def test_negative_used_units_rejected(self, block_tiers):
        """Test negative opening consumption is malformed."""
        with pytest.raises(MalformedInput):
            BlockTariff(blocks=block_tiers, used_units_at_cycle_start=-1.0)

    def test_tier_index_inclusive_upper(self, block_tariff):
        """Test bands are (lower, upper]."""
        assert block_tariff.tier_index_for(0) == 0
        assert block_tariff.tier_index_for(30) == 0
        assert block_tariff.tier_index_for(30.5) == 1
        assert block_tariff.tier_index_for(500) == 5

    def test_marginal_price(self, block_tariff):
        """Test the price of the next unit."""
        assert block_tariff.marginal_price_at(0) == 8.0
        assert block_tariff.marginal_price_at(29.9) == 8.0
        assert block_tariff.marginal_price_at(30) == 20.0

    def test_split_increment_straddles_boundary(self, block_tariff):
        """Test an increment is split at tier boundaries."""
        assert block_tariff.split_increment(28, 5) == [(0, 2), (1, 3)]
        assert block_tariff.increment_cost(28, 5) == pytest.approx(2 * 8 + 3 * 20)

    def test_closed_form(self, block_tariff):
        """Test closed-form tier summation."""
        assert block_tariff.energy_cost(0) == 0.0
        assert block_tariff.energy_cost(30) == pytest.approx(240.0)
        assert block_tariff.energy_cost(45) == pytest.approx(540.0)
        assert block_tariff.energy_cost(100) == pytest.approx(240 + 600 + 900 + 500)

    @pytest.mark.parametrize("total", [0.0, 17.5, 30.0, 59.0, 133.3, 420.0])
    def test_incremental_matches_closed_form(self, block_tariff, total):
        """Test billing in pieces equals billing the total at once."""
        pieces = np.linspace(0, total, 8)
        incremental = sum(
            block_tariff.increment_cost(start, end - start)
            for start, end in zip(pieces[:-1], pieces[1:])
        )
        assert incremental == pytest.approx(block_tariff.energy_cost(total))

    def test_flat_fixed_charge(self, block_tariff):
        """Test tariff-level fixed charge applies without a table."""
        assert not block_tariff.has_tiered_fixed_charge
        assert block_tariff.fixed_charge(10) == 400.0
        assert block_tariff.fixed_charge(500) == 400.0

    def test_stepped_fixed_charge(self, stepped_block_tariff):
        """Test fixed charge follows the tier containing the total."""
        assert stepped_block_tariff.has_tiered_fixed_charge
        assert stepped_block_tariff.fixed_charge(30) == 150.0
        assert stepped_block_tariff.fixed_charge(31) == 300.0
        assert stepped_block_tariff.fixed_charge(200) == 1000.0

    def test_band(self, block_tariff):
        """Test band limits."""
        assert block_tariff.band(0) == (0.0, 30.0)
        assert block_tariff.band(1) == (30.0, 60.0)
        assert block_tariff.band(5) == (180.0, float("inf"))
