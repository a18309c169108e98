"""Core indicator series: EMA, true range, Wilder ATR, rolling windows, OBV.

Every series is aligned index-for-index with its input. Positions without
enough lookback hold UNDEFINED (NaN), and NaN operands stay NaN through any
arithmetic done on them.
"""

import math
from collections.abc import Sequence

from trade_sentinel.schemas.market import Bar

UNDEFINED = float("nan")


def is_undefined(value: float | None) -> bool:
    return value is None or math.isnan(value)


def ema(values: Sequence[float], period: int) -> list[float]:
    """Exponential moving average, alpha = 2/(period+1).

    Seeded at index period-1 with the simple mean of the first `period` values.
    """
    n = len(values)
    out = [UNDEFINED] * n
    if period <= 0 or n < period:
        return out
    alpha = 2.0 / (period + 1)
    prev = sum(values[:period]) / period
    out[period - 1] = prev
    for i in range(period, n):
        prev = values[i] * alpha + prev * (1 - alpha)
        out[i] = prev
    return out


def true_range(bars: Sequence[Bar]) -> list[float]:
    """TR[0] = high - low; afterwards max(high-low, |high-prevClose|, |low-prevClose|).

    Any undefined operand makes that bar's TR undefined.
    """
    out: list[float] = []
    for i, b in enumerate(bars):
        if i == 0:
            out.append(b.high - b.low)
            continue
        prev_close = bars[i - 1].close
        if is_undefined(b.high) or is_undefined(b.low) or is_undefined(prev_close):
            out.append(UNDEFINED)
            continue
        out.append(max(b.high - b.low, abs(b.high - prev_close), abs(b.low - prev_close)))
    return out


def atr(bars: Sequence[Bar], period: int = 14) -> list[float]:
    """Average true range with Wilder smoothing.

    Seed at index period-1 with the mean of the first `period` TR values,
    then prev*(period-1)/period + tr/period.
    """
    n = len(bars)
    out = [UNDEFINED] * n
    if period <= 0 or n < period:
        return out
    tr = true_range(bars)
    prev = sum(tr[:period]) / period
    out[period - 1] = prev
    for i in range(period, n):
        prev = (prev * (period - 1) + tr[i]) / period
        out[i] = prev
    return out


def _window_start(index: int, lookback: int) -> int:
    return max(0, index - lookback + 1)


def rolling_highest_close(closes: Sequence[float], index: int, lookback: int) -> float:
    """Highest close over [index-lookback+1, index]; UNDEFINED for an empty window or any undefined close."""
    if index < 0 or lookback <= 0 or not closes:
        return UNDEFINED
    index = min(index, len(closes) - 1)
    window = closes[_window_start(index, lookback) : index + 1]
    if not window or any(is_undefined(v) for v in window):
        return UNDEFINED
    hi = max(window)
    return hi if math.isfinite(hi) else UNDEFINED


def rolling_avg_volume(volumes: Sequence[float], index: int, lookback: int) -> float:
    """Mean volume over the same window shape as rolling_highest_close."""
    if index < 0 or lookback <= 0 or not volumes:
        return UNDEFINED
    index = min(index, len(volumes) - 1)
    window = volumes[_window_start(index, lookback) : index + 1]
    if not window:
        return UNDEFINED
    return sum(window) / len(window)


def obv(closes: Sequence[float], volumes: Sequence[float]) -> list[float]:
    """On-balance volume, starting at 0 on the first bar. Undefined from the first undefined operand on."""
    if not closes:
        return []
    out = [0.0]
    for i in range(1, len(closes)):
        if is_undefined(closes[i]) or is_undefined(closes[i - 1]) or is_undefined(volumes[i]):
            out.append(UNDEFINED)
        elif closes[i] > closes[i - 1]:
            out.append(out[-1] + volumes[i])
        elif closes[i] < closes[i - 1]:
            out.append(out[-1] - volumes[i])
        else:
            out.append(out[-1])
    return out


def closes_of(bars: Sequence[Bar]) -> list[float]:
    return [b.close for b in bars]


def volumes_of(bars: Sequence[Bar]) -> list[float]:
    return [float(b.volume) for b in bars]
