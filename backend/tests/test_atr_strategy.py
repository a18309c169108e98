import math
from datetime import datetime, timedelta, timezone

import pytest

from trade_sentinel.services.analysis.types import MonitorState, TradeState
from trade_sentinel.services.indicators.core import atr
from trade_sentinel.services.trading_strategy.atr_dual_stop import (
    AtrStopStrategy,
    find_entry_index,
    manage_profit,
)
from trade_sentinel.services.trading_strategy.reference_bar import LatestBarSelector, TradingHoursSelector
from trade_sentinel.services.trading_strategy.trace_format import render_trace


def _latest():
    return AtrStopStrategy(reference_selector=LatestBarSelector())


def _labels(result):
    return [entry.label for entry in result.rationale]


def _wave(n=60):
    return [100.0 + 8.0 * math.sin(i / 4.0) + 0.3 * i for i in range(n)]


class TestNoEntry:
    def test_flat_bars_end_to_end(self, flat_bars):
        result = _latest().calculate_stop(flat_bars(20))
        assert result.enough_data
        assert result.cut_loss_price == pytest.approx(92.0, abs=0.1)
        assert result.trailing_stop_price == pytest.approx(92.0)
        assert not result.can_enter
        assert result.entry_reason == "Weak trend (score: 0)"
        assert result.post_entry is None
        assert result.monitor_result is None
        assert "ISL: Current Close (102.00) - 2.0x ATR(5.00) = 92.00" in render_trace(result.rationale)

    def test_not_enough_data(self, flat_bars):
        result = _latest().calculate_stop(flat_bars(14))
        assert not result.enough_data
        assert result.cut_loss_price == 0.0
        assert result.rationale[0].value == "Not enough data"

    def test_period_plus_one_bars_is_enough(self, flat_bars):
        assert _latest().calculate_stop(flat_bars(15)).enough_data

    def test_rolling_high_drives_trailing(self, rising_bars):
        result = _latest().calculate_stop(rising_bars)
        # 159 - 3 * ATR 2 = 153 is floored at the initial stop 159 - 2 * 2
        assert result.cut_loss_price == pytest.approx(155.0)
        assert result.trailing_stop_price == pytest.approx(155.0)
        assert "Rolling 60-day High" in render_trace(result.rationale)

    def test_previous_close_during_session(self, make_bars, clock_at):
        bars = make_bars([100.0] * 19 + [110.0], spread=2.5)
        strategy = AtrStopStrategy(reference_selector=TradingHoursSelector(clock=clock_at(15)))
        result = strategy.calculate_stop(bars)
        assert result.cut_loss_price == pytest.approx(100.0 - 2.0 * atr(bars, 14)[-1])
        assert "Prev Close (Trading Hours) (100.00)" in render_trace(result.rationale)

    def test_last_close_outside_session(self, make_bars, clock_at):
        bars = make_bars([100.0] * 19 + [110.0], spread=2.5)
        strategy = AtrStopStrategy(reference_selector=TradingHoursSelector(clock=clock_at(23)))
        result = strategy.calculate_stop(bars)
        assert result.cut_loss_price == pytest.approx(110.0 - 2.0 * atr(bars, 14)[-1])
        assert "Current Close (110.00)" in render_trace(result.rationale)

    def test_name(self):
        assert AtrStopStrategy().name == "ATR Strategy (14, ISL:2.0x, Trail:3.0x)"

    def test_unknown_match_policy(self):
        with pytest.raises(ValueError):
            AtrStopStrategy(entry_date_match="nearest")


class TestWithEntry:
    def test_fresh_entry_waits_for_confirmation(self, flat_bars, entry_day):
        result = _latest().calculate_stop(flat_bars(20), entry_date=entry_day(18), entry_price=102.0)
        assert result.cut_loss_price == pytest.approx(92.0)
        assert result.trailing_stop_price == pytest.approx(92.0)
        assert result.post_entry.state == TradeState.WAITING_CONFIRMATION
        assert result.post_entry.note == "Day 1/3-7: Waiting confirmation"
        assert result.monitor_result.state == MonitorState.NEUTRAL_WAIT
        assert result.can_enter
        assert result.entry_reason == ""
        assert not result.move_to_breakeven
        assert result.partial_profit_target == pytest.approx(122.0)

    def test_entry_date_without_price_uses_entry_close(self, rising_bars, entry_day):
        result = _latest().calculate_stop(rising_bars, entry_date=entry_day(20))
        assert result.cut_loss_price == pytest.approx(116.0)
        assert result.post_entry is None
        assert result.monitor_result is not None
        assert "Entry Close (120.00)" in render_trace(result.rationale)

    def test_trailing_above_initial_and_breakeven(self, rising_bars, entry_day):
        result = _latest().calculate_stop(rising_bars, entry_date=entry_day(20), entry_price=120.0)
        assert result.trailing_stop_price == pytest.approx(153.0)
        assert result.move_to_breakeven
        assert result.partial_profit_target is None
        assert "Trailing Above Initial" in _labels(result)
        assert "Move Stop To Breakeven" in _labels(result)
        assert result.post_entry.state == TradeState.CONFIRMED

    def test_price_only_entry(self, flat_bars):
        result = _latest().calculate_stop(flat_bars(20), entry_price=90.0)
        assert result.cut_loss_price == pytest.approx(80.0)
        assert result.post_entry is None
        assert result.monitor_result is None
        assert result.move_to_breakeven
        assert result.partial_profit_target == pytest.approx(110.0)
        assert "Entry Price (90.00)" in render_trace(result.rationale)


class TestEntryDateMatching:
    def _gapped(self, make_bars):
        # no bar on day 10
        days = list(range(10)) + list(range(11, 21))
        return make_bars([100.0] * 20, days=days)

    def test_exact_misses_gap(self, make_bars, entry_day):
        bars = self._gapped(make_bars)
        assert find_entry_index(bars, entry_day(10)) is None
        result = _latest().calculate_stop(bars, entry_date=entry_day(10), entry_price=100.0)
        assert result.post_entry is None
        assert result.monitor_result is None

    def test_on_or_after_takes_next_bar(self, make_bars, entry_day):
        bars = self._gapped(make_bars)
        assert find_entry_index(bars, entry_day(10), "on_or_after") == 10
        strategy = AtrStopStrategy(reference_selector=LatestBarSelector(), entry_date_match="on_or_after")
        result = strategy.calculate_stop(bars, entry_date=entry_day(10), entry_price=100.0)
        assert result.post_entry.days_held == 9

    def test_datetime_compared_by_utc_date(self, make_bars):
        bars = make_bars([100.0] * 10)
        late_evening = datetime(2024, 1, 3, 23, 0, tzinfo=timezone(timedelta(hours=-5)))
        assert find_entry_index(bars, late_evening) == 3

    def test_unknown_policy(self, make_bars, entry_day):
        with pytest.raises(ValueError):
            find_entry_index(make_bars([100.0] * 5), entry_day(1), "closest")


class TestTrailingStopBounds:
    @pytest.mark.parametrize("entry_idx", [0, 15, 30, 45, 58])
    def test_trailing_never_below_initial(self, make_bars, entry_day, entry_idx):
        closes = _wave()
        bars = make_bars(closes, spread=1.5)
        result = _latest().calculate_stop(bars, entry_date=entry_day(entry_idx), entry_price=closes[entry_idx])
        assert result.trailing_stop_price >= result.cut_loss_price

    def test_trailing_never_below_initial_without_entry(self, make_bars):
        result = _latest().calculate_stop(make_bars(_wave(), spread=1.5))
        assert result.trailing_stop_price >= result.cut_loss_price

    def test_trailing_ratchets_as_bars_arrive(self, make_bars, entry_day):
        closes = _wave()
        bars = make_bars(closes, spread=1.5)
        strategy = _latest()
        stops = [
            strategy.calculate_stop(bars[:k], entry_date=entry_day(15), entry_price=closes[15]).trailing_stop_price
            for k in range(20, 61)
        ]
        assert all(b >= a for a, b in zip(stops, stops[1:]))

    def test_price_only_entry_trails_rolling_high(self, make_bars):
        bars = make_bars([100.0] * 20 + [120.0] + [100.0] * 5)
        strategy = AtrStopStrategy(reference_selector=LatestBarSelector(), trailing_lookback=5)
        with_peak = strategy.calculate_stop(bars[:25], entry_price=100.0).trailing_stop_price
        after_peak = strategy.calculate_stop(bars, entry_price=100.0).trailing_stop_price
        assert with_peak == pytest.approx(120.0 - 3.0 * atr(bars[:25], 14)[-1])
        assert after_peak < with_peak


class TestProfitManagement:
    @pytest.mark.parametrize(
        "price_now,breakeven,target",
        [(105.0, False, 120.0), (115.0, True, 120.0), (125.0, True, None), (90.0, False, 120.0)],
    )
    def test_r_multiples(self, price_now, breakeven, target):
        plan = manage_profit(100.0, 90.0, price_now)
        assert plan.move_to_breakeven is breakeven
        assert plan.partial_profit_target == (pytest.approx(target) if target else None)

    def test_zero_risk(self):
        plan = manage_profit(100.0, 100.0, 150.0)
        assert plan.r_multiple == 0.0
        assert not plan.move_to_breakeven
        assert plan.partial_profit_target == 100.0

    def test_idempotent(self):
        assert manage_profit(100.0, 90.0, 112.0) == manage_profit(100.0, 90.0, 112.0)

    def test_evaluation_is_repeatable(self, rising_bars, entry_day):
        strategy = _latest()
        first = strategy.calculate_stop(rising_bars, entry_date=entry_day(20), entry_price=120.0)
        second = strategy.calculate_stop(rising_bars, entry_date=entry_day(20), entry_price=120.0)
        assert first == second
