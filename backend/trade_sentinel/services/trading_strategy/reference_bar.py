"""Reference bar selection for stop math when no entry is known."""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

from trade_sentinel.schemas.market import Bar

DEFAULT_SESSION_START_UTC = 13
DEFAULT_SESSION_END_UTC = 22


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ReferenceBar:
    index: int
    close: float
    description: str


class ReferenceBarSelector(Protocol):
    def select(self, bars: Sequence[Bar]) -> ReferenceBar: ...


class LatestBarSelector:
    """Always the last bar."""

    def select(self, bars: Sequence[Bar]) -> ReferenceBar:
        last = len(bars) - 1
        return ReferenceBar(index=last, close=bars[last].close, description="Current Close")


class TradingHoursSelector:
    """
    While the session is open (UTC hour in [start, end)) the last bar is still
    forming, so the previous bar's close is used; otherwise the last close.
    """

    def __init__(
        self,
        start_hour: int = DEFAULT_SESSION_START_UTC,
        end_hour: int = DEFAULT_SESSION_END_UTC,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.start_hour = start_hour
        self.end_hour = end_hour
        self._clock = clock

    def is_trading_hours(self) -> bool:
        now = self._clock()
        if now.tzinfo is not None:
            now = now.astimezone(timezone.utc)
        return self.start_hour <= now.hour < self.end_hour

    def select(self, bars: Sequence[Bar]) -> ReferenceBar:
        if self.is_trading_hours() and len(bars) > 1:
            idx = len(bars) - 2
            return ReferenceBar(index=idx, close=bars[idx].close, description="Prev Close (Trading Hours)")
        return LatestBarSelector().select(bars)
