"""Stop strategy types."""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from typing import Protocol

from trade_sentinel.schemas.market import Bar
from trade_sentinel.services.analysis.types import MonitorResult, PostEntryAnalysis


@dataclass(frozen=True)
class TraceEntry:
    """One labelled step of a strategy's rationale."""

    label: str
    value: float | str | None


@dataclass(frozen=True)
class StrategyResult:
    """Output of one stop evaluation. Built fresh per call, never mutated."""

    cut_loss_price: float  # Initial stop; 0.0 when there is not enough data
    rationale: tuple[TraceEntry, ...]
    strategy_name: str = ""
    enough_data: bool = True
    trailing_stop_price: float | None = None  # Only when enough history exists
    post_entry: PostEntryAnalysis | None = None
    monitor_result: MonitorResult | None = None
    can_enter: bool = True
    entry_reason: str = ""
    breakout_detected: bool = False
    move_to_breakeven: bool = False
    partial_profit_target: float | None = None


def not_enough_data(strategy_name: str, message: str = "Not enough data") -> StrategyResult:
    return StrategyResult(
        cut_loss_price=0.0,
        rationale=(TraceEntry("Error", message),),
        strategy_name=strategy_name,
        enough_data=False,
    )


class StopStrategy(Protocol):
    @property
    def name(self) -> str: ...

    def calculate_stop(
        self,
        bars: Sequence[Bar],
        entry_date: date | None = None,
        entry_price: float | None = None,
    ) -> StrategyResult: ...
