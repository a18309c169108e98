"""Structure + EMA trend score, trend label, entry-safety advisory and TrendAnalyzer."""

import logging
from collections.abc import Sequence

from trade_sentinel.schemas.market import Bar
from trade_sentinel.services.analysis.types import EntryAssessment, TrendAnalysisResult
from trade_sentinel.services.indicators.core import (
    UNDEFINED,
    atr,
    closes_of,
    ema,
    is_undefined,
    rolling_avg_volume,
    rolling_highest_close,
    volumes_of,
)
from trade_sentinel.services.indicators.swings import (
    DEFAULT_STRUCTURE_LOOKBACK,
    empty_structure,
    structure_signals,
    structure_string,
)

logger = logging.getLogger(__name__)

FAST_EMA = 20
SLOW_EMA = 50
SLOPE_BARS = 3
UPTREND_THRESHOLD = 3
DOWNTREND_THRESHOLD = -3

DEFAULT_ENTRY_ATR_FACTOR = 0.5
DEFAULT_ENTRY_UPPER_FACTOR = 0.2
DEFAULT_BREAKOUT_LOOKBACK = 20
DEFAULT_VOL_LOOKBACK = 20
DEFAULT_VOLUME_CONFIRM_RATIO = 1.2
CHASE_ATR_MULT = 1.0
MIN_TREND_SCORE = 1


def calc_trend_score(bars: Sequence[Bar], lookback: int = DEFAULT_STRUCTURE_LOOKBACK) -> int:
    """
    Balanced trend score: positive = uptrend signals, negative = downtrend.

    +1 HH, +1 HL, -1 LH, -1 LL. When EMA20 and EMA50 are both defined on the last
    bar, add +/-1 for close vs EMA20, EMA20 vs EMA50 and the EMA20 slope over 3 bars.
    """
    sig = structure_signals(bars, lookback=lookback)
    score = 0
    score += 1 if sig["HH"] else 0
    score += 1 if sig["HL"] else 0
    score -= 1 if sig["LH"] else 0
    score -= 1 if sig["LL"] else 0

    if not bars:
        return score

    closes = closes_of(bars)
    ema20 = ema(closes, FAST_EMA)
    ema50 = ema(closes, SLOW_EMA)
    last = len(closes) - 1

    if is_undefined(ema20[last]) or is_undefined(ema50[last]):
        return score

    score += 1 if closes[last] > ema20[last] else -1
    score += 1 if ema20[last] > ema50[last] else -1
    prev_idx = max(0, last - SLOPE_BARS)
    if not is_undefined(ema20[prev_idx]):
        score += 1 if ema20[last] > ema20[prev_idx] else -1
    return score


def trend_label(score: int) -> str:
    if score >= UPTREND_THRESHOLD:
        return "uptrend"
    if score <= DOWNTREND_THRESHOLD:
        return "downtrend"
    return "sideways"


def entry_band(
    ema20: float,
    atr_value: float,
    lower_factor: float = DEFAULT_ENTRY_ATR_FACTOR,
    upper_factor: float = DEFAULT_ENTRY_UPPER_FACTOR,
) -> tuple[float, float]:
    """Safe entry band [EMA20 - lower*ATR, EMA20 + upper*ATR]. NaN in, NaN out."""
    return ema20 - lower_factor * atr_value, ema20 + upper_factor * atr_value


def detect_breakout(closes: Sequence[float], lookback: int = DEFAULT_BREAKOUT_LOOKBACK) -> bool:
    """Last close above the highest close of the `lookback` bars ending one bar back."""
    if not closes:
        return False
    prev_high = rolling_highest_close(closes, len(closes) - 2, lookback)
    return not is_undefined(prev_high) and closes[-1] > prev_high


def volume_confirmed(
    volumes: Sequence[float],
    lookback: int = DEFAULT_VOL_LOOKBACK,
    ratio: float = DEFAULT_VOLUME_CONFIRM_RATIO,
) -> bool:
    if not volumes:
        return False
    avg = rolling_avg_volume(volumes, len(volumes) - 1, lookback)
    return not is_undefined(avg) and volumes[-1] >= avg * ratio


def _fmt(value: float) -> str:
    return "n/a" if is_undefined(value) else f"{value:.2f}"


def assess_entry(
    bars: Sequence[Bar],
    latest_atr: float,
    latest_ema20: float,
    *,
    trend_lookback: int = DEFAULT_STRUCTURE_LOOKBACK,
    entry_atr_factor: float = DEFAULT_ENTRY_ATR_FACTOR,
    entry_upper_factor: float = DEFAULT_ENTRY_UPPER_FACTOR,
    breakout_lookback: int = DEFAULT_BREAKOUT_LOOKBACK,
    vol_lookback: int = DEFAULT_VOL_LOOKBACK,
    volume_confirm_ratio: float = DEFAULT_VOLUME_CONFIRM_RATIO,
) -> EntryAssessment:
    """
    Pre-entry safety check. First matching rule wins:
    weak trend, volume below average, chasing, too far below, in band, acceptable.
    """
    closes = closes_of(bars)
    volumes = volumes_of(bars)
    price_now = closes[-1] if closes else UNDEFINED

    breakout = len(bars) >= breakout_lookback + 1 and detect_breakout(closes, breakout_lookback)
    entry_min, entry_max = entry_band(latest_ema20, latest_atr, entry_atr_factor, entry_upper_factor)
    vol_ok = volume_confirmed(volumes, vol_lookback, volume_confirm_ratio)
    score = calc_trend_score(bars, lookback=trend_lookback)
    band_known = not (is_undefined(entry_min) or is_undefined(entry_max) or is_undefined(price_now))

    if score < MIN_TREND_SCORE:
        can_enter, reason = False, f"Weak trend (score: {score})"
    elif not vol_ok:
        can_enter, reason = False, "Volume below average"
    elif not band_known:
        can_enter, reason = True, "Acceptable (entry zone unavailable)"
    elif price_now > entry_max + CHASE_ATR_MULT * latest_atr:
        can_enter, reason = False, "Chasing (too far above EMA20)"
    elif price_now < entry_min - CHASE_ATR_MULT * latest_atr:
        can_enter, reason = False, "Price too far below EMA20"
    elif entry_min <= price_now <= entry_max:
        can_enter, reason = True, "Breakout + Good zone" if breakout else "Good entry zone"
    else:
        can_enter, reason = True, "Acceptable (outside optimal zone)"

    if can_enter and band_known:
        reason = f"{reason} at Range({_fmt(entry_min)}, {_fmt(entry_max)})"

    return EntryAssessment(
        can_enter=can_enter,
        reason=reason,
        entry_min=entry_min,
        entry_max=entry_max,
        breakout_detected=breakout,
        volume_confirm=vol_ok,
        trend_score=score,
    )


class TrendAnalyzer:
    """Advisory analyzer built on the integer structure + EMA trend score."""

    def __init__(
        self,
        atr_period: int = 14,
        entry_atr_factor: float = DEFAULT_ENTRY_ATR_FACTOR,
        entry_upper_factor: float = DEFAULT_ENTRY_UPPER_FACTOR,
        breakout_lookback: int = DEFAULT_BREAKOUT_LOOKBACK,
        vol_lookback: int = DEFAULT_VOL_LOOKBACK,
        volume_confirm_ratio: float = DEFAULT_VOLUME_CONFIRM_RATIO,
        structure_lookback: int = DEFAULT_STRUCTURE_LOOKBACK,
    ) -> None:
        self.atr_period = atr_period
        self.entry_atr_factor = entry_atr_factor
        self.entry_upper_factor = entry_upper_factor
        self.breakout_lookback = breakout_lookback
        self.vol_lookback = vol_lookback
        self.volume_confirm_ratio = volume_confirm_ratio
        self.structure_lookback = structure_lookback

    def analyze(self, bars: Sequence[Bar]) -> TrendAnalysisResult:
        if len(bars) < self.atr_period + 1:
            return TrendAnalysisResult(
                trend_score=0,
                trend="unknown",
                atr=0.0,
                ema20=0.0,
                ema50=0.0,
                entry_min=0.0,
                entry_max=0.0,
                entry_advice="Insufficient data",
                volume_confirm=False,
                breakout_detected=False,
                structure=empty_structure(),
                notes=["Not enough data to analyze"],
            )

        closes = closes_of(bars)
        volumes = volumes_of(bars)
        last = len(bars) - 1
        latest_atr = atr(bars, self.atr_period)[last]
        latest_ema20 = ema(closes, FAST_EMA)[last]
        latest_ema50 = ema(closes, SLOW_EMA)[last]

        score = calc_trend_score(bars, lookback=self.structure_lookback)
        structure = structure_signals(bars, lookback=self.structure_lookback)
        entry_min, entry_max = entry_band(
            latest_ema20, latest_atr, self.entry_atr_factor, self.entry_upper_factor
        )
        price_now = closes[last]
        vol_ok = volume_confirmed(volumes, self.vol_lookback, self.volume_confirm_ratio)
        breakout = detect_breakout(closes, self.breakout_lookback)

        # NaN band comparisons are False, so an undefined band never reads as "in zone"
        if score >= 3 and entry_min <= price_now <= entry_max and vol_ok:
            advice = "Good entry zone"
        elif score >= 2 and price_now <= entry_min:
            advice = "Potential dip; entry with smaller size"
        elif score < 1:
            advice = "Avoid entry: weak trend"
        elif not vol_ok:
            advice = "Caution: volume below average"
        elif price_now > entry_max:
            advice = "Wait or small position (chasing)"
        else:
            advice = "Wait or small position"

        notes = [
            f"ATR={_fmt(latest_atr)}, EMA20={_fmt(latest_ema20)}, EMA50={_fmt(latest_ema50)}",
            f"TrendScore={score}, breakout={'yes' if breakout else 'no'}, "
            f"volConfirm={'yes' if vol_ok else 'no'}",
        ]
        struct_str = structure_string(structure)
        if struct_str:
            notes.append(f"Structure: {struct_str}")

        label = trend_label(score)
        logger.debug("Trend analysis: score=%d trend=%s advice=%s", score, label, advice)
        return TrendAnalysisResult(
            trend_score=score,
            trend=label,
            atr=latest_atr,
            ema20=latest_ema20,
            ema50=latest_ema50,
            entry_min=entry_min,
            entry_max=entry_max,
            entry_advice=advice,
            volume_confirm=vol_ok,
            breakout_detected=breakout,
            structure=structure,
            notes=notes,
        )
