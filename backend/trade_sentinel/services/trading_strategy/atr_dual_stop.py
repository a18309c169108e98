"""ATR dual-stop strategy: initial stop, ratcheting trailing stop, entry checks and profit management."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime, timezone

from trade_sentinel.schemas.market import Bar
from trade_sentinel.services.analysis.monitor_engine import (
    DEFAULT_DRY_RATIO,
    DEFAULT_SPIKE_RATIO,
    DEFAULT_VOLUME_LOOKBACK,
    MonitorEngine,
)
from trade_sentinel.services.analysis.post_entry import classify_post_entry
from trade_sentinel.services.analysis.trend_score import assess_entry
from trade_sentinel.services.indicators.core import (
    UNDEFINED,
    atr,
    closes_of,
    ema,
    is_undefined,
    rolling_highest_close,
)
from trade_sentinel.services.indicators.swings import DEFAULT_STRUCTURE_LOOKBACK
from trade_sentinel.services.trading_strategy.reference_bar import (
    ReferenceBarSelector,
    TradingHoursSelector,
)
from trade_sentinel.services.trading_strategy.trace_format import fmt_value
from trade_sentinel.services.trading_strategy.types import (
    StrategyResult,
    TraceEntry,
    not_enough_data,
)

logger = logging.getLogger(__name__)

DEFAULT_ATR_PERIOD = 14
DEFAULT_STOP_MULT = 2.0
DEFAULT_TRAIL_MULT = 3.0
DEFAULT_TRAILING_LOOKBACK = 60
BREAKEVEN_R = 1.0
PARTIAL_PROFIT_R = 2.0
MIN_MONITOR_BARS = 2
ENTRY_DATE_MATCH_POLICIES = ("exact", "on_or_after")


@dataclass(frozen=True)
class ProfitPlan:
    risk_amount: float
    r_multiple: float
    move_to_breakeven: bool
    partial_profit_target: float | None


def _as_utc_date(value: date) -> date:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value


def find_entry_index(bars: Sequence[Bar], entry_date: date, match: str = "exact") -> int | None:
    """
    Index of the entry bar by UTC calendar date.

    exact: the bar dated entry_date, if any.
    on_or_after: the first bar dated entry_date or later (weekend/holiday entries).
    """
    if match not in ENTRY_DATE_MATCH_POLICIES:
        raise ValueError(f"Unknown entry date match policy: {match}")
    target = _as_utc_date(entry_date)
    for i, b in enumerate(bars):
        d = b.utc_date
        if d == target or (match == "on_or_after" and d > target):
            return i
    return None


def manage_profit(entry_price: float, initial_stop: float, price_now: float) -> ProfitPlan:
    """
    R-multiple profit management. risk = |entry - initial stop|.

    >= 1R: move the stop to breakeven. Below 2R: partial profit target at entry + 2R.
    """
    risk = abs(entry_price - initial_stop)
    gain = price_now - entry_price
    r_multiple = gain / risk if risk > 0 else 0.0
    target = None
    if r_multiple < PARTIAL_PROFIT_R:
        target = entry_price + PARTIAL_PROFIT_R * risk
        if is_undefined(target):
            target = None
    return ProfitPlan(
        risk_amount=risk,
        r_multiple=r_multiple,
        move_to_breakeven=r_multiple >= BREAKEVEN_R,
        partial_profit_target=target,
    )


def ratchet_trailing_stop(
    closes: Sequence[float],
    atr_series: Sequence[float],
    entry_index: int,
    atr_at_entry: float,
    trail_multiplier: float,
) -> tuple[float, float, int]:
    """
    Highest trailing level reached since entry.

    For every bar j from entry to now: highest close up to j minus
    trail_multiplier * min(ATR at entry, ATR[j]). The maximum over j is returned
    with the highest close and its index, so appending bars never lowers the
    stop. On the last bar this equals highest-since-entry - k * min(ATR at entry,
    latest ATR).
    """
    best = UNDEFINED
    highest = UNDEFINED
    highest_idx = entry_index
    for j in range(entry_index, len(closes)):
        if is_undefined(highest) or closes[j] >= highest:
            highest = closes[j]
            highest_idx = j
        atr_j = atr_series[j]
        if is_undefined(atr_j):
            continue
        level = highest - trail_multiplier * min(atr_at_entry, atr_j)
        if is_undefined(best) or level > best:
            best = level
    return best, highest, highest_idx


class AtrStopStrategy:
    def __init__(
        self,
        period: int = DEFAULT_ATR_PERIOD,
        stop_multiplier: float = DEFAULT_STOP_MULT,
        trail_multiplier: float = DEFAULT_TRAIL_MULT,
        *,
        reference_selector: ReferenceBarSelector | None = None,
        entry_date_match: str = "exact",
        trend_lookback: int = DEFAULT_STRUCTURE_LOOKBACK,
        trailing_lookback: int = DEFAULT_TRAILING_LOOKBACK,
        monitor_dry_ratio: float = DEFAULT_DRY_RATIO,
        monitor_spike_ratio: float = DEFAULT_SPIKE_RATIO,
        monitor_volume_lookback: int = DEFAULT_VOLUME_LOOKBACK,
    ) -> None:
        if entry_date_match not in ENTRY_DATE_MATCH_POLICIES:
            raise ValueError(f"Unknown entry date match policy: {entry_date_match}")
        self.period = period
        self.stop_multiplier = stop_multiplier
        self.trail_multiplier = trail_multiplier
        self.reference_selector = reference_selector or TradingHoursSelector()
        self.entry_date_match = entry_date_match
        self.trend_lookback = trend_lookback
        self.trailing_lookback = trailing_lookback
        self.monitor_dry_ratio = monitor_dry_ratio
        self.monitor_spike_ratio = monitor_spike_ratio
        self.monitor_volume_lookback = monitor_volume_lookback

    @property
    def name(self) -> str:
        return f"ATR Strategy ({self.period}, ISL:{self.stop_multiplier}x, Trail:{self.trail_multiplier}x)"

    def calculate_stop(
        self,
        bars: Sequence[Bar],
        entry_date: date | None = None,
        entry_price: float | None = None,
    ) -> StrategyResult:
        """
        Evaluate the initial and trailing stops for `bars`.

        The trailing stop ratchets only when `entry_date` resolves to a bar. A
        price-only entry, or no entry at all, trails the rolling
        `trailing_lookback` high, so the stop can move down once an old high
        leaves the window.
        """
        if len(bars) < self.period + 1:
            logger.debug("%s: %d bars, need %d", self.name, len(bars), self.period + 1)
            return not_enough_data(self.name)

        closes = closes_of(bars)
        atr_series = atr(bars, self.period)
        last = len(bars) - 1
        latest_atr = atr_series[last]
        latest_ema20 = ema(closes, 20)[last]
        latest_ema50 = ema(closes, 50)[last]
        price_now = closes[last]

        if is_undefined(latest_atr):
            return not_enough_data(self.name, "Error calculating ATR")

        # --- Entry reference ---
        entry_index = None
        if entry_date is not None:
            entry_index = find_entry_index(bars, entry_date, self.entry_date_match)
            if entry_index is None:
                logger.debug("%s: entry date %s not found in bars", self.name, entry_date)

        if entry_price is not None:
            has_entry = True
            entry_ref = entry_price
            ref_desc = "Entry Price"
        elif entry_index is not None:
            has_entry = True
            entry_ref = closes[entry_index]
            ref_desc = "Entry Close"
        else:
            has_entry = False
            ref = self.reference_selector.select(bars)
            entry_ref = ref.close
            ref_desc = ref.description

        # --- Initial stop ---
        atr_at_entry = latest_atr
        if entry_index is not None and not is_undefined(atr_series[entry_index]):
            atr_at_entry = atr_series[entry_index]
        min_atr = min(atr_at_entry, latest_atr)
        initial_stop = entry_ref - self.stop_multiplier * atr_at_entry

        # --- Trailing stop, floored at the initial stop ---
        if entry_index is not None:
            trailing_raw, highest, highest_idx = ratchet_trailing_stop(
                closes, atr_series, entry_index, atr_at_entry, self.trail_multiplier
            )
            highest_desc = f"@[{bars[highest_idx].date_str}]"
        else:
            highest = rolling_highest_close(closes, last, self.trailing_lookback)
            highest_desc = f"Rolling {self.trailing_lookback}-day High"
            trailing_raw = highest - self.trail_multiplier * min_atr
        trailing_stop = None if is_undefined(trailing_raw) else max(initial_stop, trailing_raw)

        trace = [
            TraceEntry("ATR", latest_atr),
            TraceEntry("Min ATR", min_atr),
            TraceEntry("ATR at Entry", atr_at_entry),
            TraceEntry("EMA20", latest_ema20),
            TraceEntry("EMA50", latest_ema50),
            TraceEntry(
                "ISL",
                f"{ref_desc} ({fmt_value(entry_ref)}) - {self.stop_multiplier}x "
                f"ATR({fmt_value(atr_at_entry)}) = {fmt_value(initial_stop)}",
            ),
            TraceEntry(
                "Trailing",
                f"Highest ({highest_desc} {fmt_value(highest)}) - {self.trail_multiplier}x "
                f"ATR({fmt_value(min_atr)}) = {fmt_value(trailing_stop)}",
            ),
        ]

        # --- Pre-entry validation ---
        can_enter = True
        entry_reason = ""
        breakout = False
        if not has_entry:
            assessment = assess_entry(bars, latest_atr, latest_ema20, trend_lookback=self.trend_lookback)
            can_enter = assessment.can_enter
            entry_reason = assessment.reason
            breakout = assessment.breakout_detected

        # --- Post-entry lifecycle and monitor ---
        post_entry = None
        monitor_result = None
        if entry_index is not None and entry_price is not None:
            post_entry = classify_post_entry(bars, entry_index, entry_price, latest_atr, latest_ema20)
            trace.append(TraceEntry("Status", post_entry.note))
        if has_entry and entry_index is not None:
            since_entry = bars[entry_index:]
            if len(since_entry) >= MIN_MONITOR_BARS:
                monitor_result = MonitorEngine.from_bars(
                    since_entry,
                    dry_ratio=self.monitor_dry_ratio,
                    spike_ratio=self.monitor_spike_ratio,
                    volume_lookback=self.monitor_volume_lookback,
                ).evaluate()
                trace.append(TraceEntry("Monitor", monitor_result.state.value))

        # --- Profit management ---
        move_to_breakeven = False
        partial_target = None
        if has_entry:
            if trailing_stop is not None and trailing_stop > initial_stop:
                trace.append(TraceEntry("Trailing Above Initial", trailing_stop))
            plan = manage_profit(entry_ref, initial_stop, price_now)
            move_to_breakeven = plan.move_to_breakeven
            partial_target = plan.partial_profit_target
            trace.append(TraceEntry("Risk (1R)", plan.risk_amount))
            trace.append(TraceEntry("R Multiple", plan.r_multiple))
            if move_to_breakeven:
                trace.append(TraceEntry("Move Stop To Breakeven", entry_ref))
            if partial_target is not None:
                trace.append(TraceEntry("Partial Profit Target (2R)", partial_target))
        else:
            trace.append(TraceEntry("Entry Allowed" if can_enter else "Entry Blocked", entry_reason))
            if breakout:
                trace.append(TraceEntry("Breakout", "detected"))

        logger.debug(
            "%s: initial=%s trailing=%s entry=%s",
            self.name,
            fmt_value(initial_stop),
            fmt_value(trailing_stop),
            ref_desc,
        )
        return StrategyResult(
            cut_loss_price=initial_stop,
            rationale=tuple(trace),
            strategy_name=self.name,
            trailing_stop_price=trailing_stop,
            post_entry=post_entry,
            monitor_result=monitor_result,
            can_enter=can_enter,
            entry_reason=entry_reason,
            breakout_detected=breakout,
            move_to_breakeven=move_to_breakeven,
            partial_profit_target=partial_target,
        )
