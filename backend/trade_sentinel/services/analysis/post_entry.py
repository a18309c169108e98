"""Post-entry lifecycle: waiting confirmation -> confirmed / failed."""

from collections.abc import Sequence

from trade_sentinel.schemas.market import Bar
from trade_sentinel.services.analysis.types import PostEntryAnalysis, TradeState
from trade_sentinel.services.indicators.core import closes_of, ema, is_undefined

CONFIRMATION_DAYS = 3
EMA_GRACE_DAYS = 7
STRUCTURE_ATR_MULT = 1.5
KEY_EMA_PERIOD = 20


def classify_post_entry(
    bars: Sequence[Bar],
    entry_index: int,
    entry_price: float,
    latest_atr: float,
    ema20: float | None = None,
) -> PostEntryAnalysis:
    """
    Classify the open trade from the current bars alone (no stored history).

    structure_intact: lowest low since entry > entry_price - 1.5*ATR.
    above_key_ema: last close > EMA20 (computed here unless passed in).
    """
    if not bars:
        return PostEntryAnalysis(
            state=TradeState.NOT_ENTERED,
            days_held=0,
            structure_intact=False,
            above_key_ema=False,
            note="No bars",
        )

    last = len(bars) - 1
    entry_index = max(0, min(entry_index, last))
    days_held = last - entry_index

    if ema20 is None:
        ema20 = ema(closes_of(bars), KEY_EMA_PERIOD)[last]
    above_ema = not is_undefined(ema20) and bars[last].close > ema20

    lowest_low = min(b.low for b in bars[entry_index:])
    break_level = entry_price - STRUCTURE_ATR_MULT * latest_atr
    structure_intact = not is_undefined(break_level) and lowest_low > break_level

    if days_held < CONFIRMATION_DAYS:
        state = TradeState.WAITING_CONFIRMATION
        note = f"Day {days_held}/3-7: Waiting confirmation"
    elif not structure_intact:
        state = TradeState.FAILED
        note = "Structure broken"
    elif not above_ema and days_held >= EMA_GRACE_DAYS:
        state = TradeState.FAILED
        note = "Failed to hold above EMA20"
    elif above_ema and structure_intact:
        state = TradeState.CONFIRMED
        note = f"Confirmed ({days_held} days)"
    else:
        state = TradeState.WAITING_CONFIRMATION
        note = f"Day {days_held}: Monitoring"

    return PostEntryAnalysis(
        state=state,
        days_held=days_held,
        structure_intact=structure_intact,
        above_key_ema=above_ema,
        note=note,
    )
