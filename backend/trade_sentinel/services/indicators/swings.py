"""Swing points and HH/HL/LH/LL structure signals."""

from collections.abc import Sequence

from trade_sentinel.schemas.market import Bar

DEFAULT_STRUCTURE_LOOKBACK = 14
MIN_STRUCTURE_BARS = 5
MAX_SWINGS = 3


def local_peaks(values: Sequence[float]) -> list[int]:
    """Indices strictly greater than both neighbours. Endpoints never qualify."""
    return [
        i
        for i in range(1, len(values) - 1)
        if values[i] > values[i - 1] and values[i] > values[i + 1]
    ]


def local_troughs(values: Sequence[float]) -> list[int]:
    """Indices strictly less than both neighbours. Endpoints never qualify."""
    return [
        i
        for i in range(1, len(values) - 1)
        if values[i] < values[i - 1] and values[i] < values[i + 1]
    ]


def _strictly_rising(points: list[float]) -> bool:
    return all(points[i] > points[i - 1] for i in range(1, len(points)))


def _strictly_falling(points: list[float]) -> bool:
    return all(points[i] < points[i - 1] for i in range(1, len(points)))


def empty_structure() -> dict[str, bool]:
    return {"HH": False, "HL": False, "LH": False, "LL": False}


def structure_signals(
    bars: Sequence[Bar],
    lookback: int = DEFAULT_STRUCTURE_LOOKBACK,
) -> dict[str, bool]:
    """
    Swing structure over the last `lookback` bars.

    Uses at most the last 3 peaks (highs) and troughs (lows). HH/LH need at least
    two peaks with each successive peak strictly higher/lower; HL/LL likewise
    with troughs. Fewer than 5 bars gives all flags False.
    """
    signals = empty_structure()
    if len(bars) < MIN_STRUCTURE_BARS:
        return signals

    window = bars[max(0, len(bars) - lookback) :]
    highs = [b.high for b in window]
    lows = [b.low for b in window]

    peaks = [highs[i] for i in local_peaks(highs)][-MAX_SWINGS:]
    troughs = [lows[i] for i in local_troughs(lows)][-MAX_SWINGS:]

    if len(peaks) >= 2:
        signals["HH"] = _strictly_rising(peaks)
        signals["LH"] = _strictly_falling(peaks)
    if len(troughs) >= 2:
        signals["HL"] = _strictly_rising(troughs)
        signals["LL"] = _strictly_falling(troughs)
    return signals


def structure_string(signals: dict[str, bool]) -> str:
    """Join active flags in HH, HL, LH, LL order, e.g. 'HH+HL'."""
    return "+".join(k for k in ("HH", "HL", "LH", "LL") if signals.get(k))
