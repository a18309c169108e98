"""EMA stop strategy: stop = EMA of closes on the last bar."""

import logging
from collections.abc import Sequence
from datetime import date

from trade_sentinel.schemas.market import Bar
from trade_sentinel.services.indicators.core import closes_of, ema, is_undefined
from trade_sentinel.services.trading_strategy.types import (
    StrategyResult,
    TraceEntry,
    not_enough_data,
)

logger = logging.getLogger(__name__)

DEFAULT_EMA_PERIOD = 20


def ema_chart_series(bars: Sequence[Bar], period: int = DEFAULT_EMA_PERIOD) -> list[float | None]:
    """EMA aligned with bars, None where undefined (chart line gaps)."""
    return [None if is_undefined(v) else v for v in ema(closes_of(bars), period)]


class EmaStopStrategy:
    def __init__(self, period: int = DEFAULT_EMA_PERIOD) -> None:
        self.period = period

    @property
    def name(self) -> str:
        return f"EMA Strategy ({self.period})"

    def calculate_stop(
        self,
        bars: Sequence[Bar],
        entry_date: date | None = None,
        entry_price: float | None = None,
    ) -> StrategyResult:
        # Entry context does not move an EMA stop.
        if len(bars) < self.period:
            logger.debug("%s: %d bars, need %d", self.name, len(bars), self.period)
            return not_enough_data(self.name)

        limit = ema(closes_of(bars), self.period)[-1]
        if is_undefined(limit):
            return not_enough_data(self.name, "Error calculating EMA")

        logger.debug("%s: limit=%.4f", self.name, limit)
        return StrategyResult(
            cut_loss_price=limit,
            rationale=(
                TraceEntry("Limit", limit),
                TraceEntry("Calculation", f"EMA ({self.period}) of Close Prices"),
            ),
            strategy_name=self.name,
        )
