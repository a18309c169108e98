"""Alert events from comparing two successive evaluations of one symbol."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from trade_sentinel.services.analysis.types import MonitorState, TrendAnalysisResult
from trade_sentinel.services.trading_strategy.types import StrategyResult

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    STOP_LOSS = "stop_loss"
    TREND = "trend"
    INFO = "info"


@dataclass(frozen=True)
class StockEvent:
    timestamp: datetime
    symbol: str
    message: str
    type: EventType = EventType.INFO

    def to_json(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "symbol": self.symbol,
            "message": self.message,
            "type": self.type.value,
        }

    @classmethod
    def from_json(cls, data: dict) -> "StockEvent":
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            symbol=data["symbol"],
            message=data["message"],
            type=EventType(data.get("type") or EventType.INFO.value),
        )


@dataclass(frozen=True)
class EvaluationSnapshot:
    """The parts of an evaluation that alerts are raised on."""

    trailing_stop: float | None = None
    trend: str | None = None
    trend_score: int | None = None
    monitor_state: MonitorState | None = None

    @classmethod
    def from_results(
        cls,
        strategy: StrategyResult | None = None,
        trend: TrendAnalysisResult | None = None,
    ) -> "EvaluationSnapshot":
        return cls(
            trailing_stop=strategy.trailing_stop_price if strategy else None,
            trend=trend.trend if trend else None,
            trend_score=trend.trend_score if trend else None,
            monitor_state=(
                strategy.monitor_result.state if strategy and strategy.monitor_result else None
            ),
        )


def diff_evaluations(
    symbol: str,
    previous: EvaluationSnapshot,
    current: EvaluationSnapshot,
    now: datetime | None = None,
) -> list[StockEvent]:
    """
    stop_loss: trailing stop raised. trend: trend label or score changed.
    info: monitor state changed. Fields missing on either side are not compared.
    """
    ts = now or datetime.now(timezone.utc)
    events: list[StockEvent] = []

    if (
        previous.trailing_stop is not None
        and current.trailing_stop is not None
        and current.trailing_stop > previous.trailing_stop
    ):
        events.append(
            StockEvent(
                timestamp=ts,
                symbol=symbol,
                message=f"Trailing stop raised: {previous.trailing_stop:.2f} -> {current.trailing_stop:.2f}",
                type=EventType.STOP_LOSS,
            )
        )

    if previous.trend is not None and current.trend is not None and previous.trend != current.trend:
        events.append(
            StockEvent(
                timestamp=ts,
                symbol=symbol,
                message=f"Trend changed: {previous.trend} -> {current.trend}",
                type=EventType.TREND,
            )
        )
    elif (
        previous.trend_score is not None
        and current.trend_score is not None
        and previous.trend_score != current.trend_score
    ):
        events.append(
            StockEvent(
                timestamp=ts,
                symbol=symbol,
                message=f"Trend score changed: {previous.trend_score} -> {current.trend_score}",
                type=EventType.TREND,
            )
        )

    if (
        previous.monitor_state is not None
        and current.monitor_state is not None
        and previous.monitor_state != current.monitor_state
    ):
        events.append(
            StockEvent(
                timestamp=ts,
                symbol=symbol,
                message=f"Monitor: {previous.monitor_state.value} -> {current.monitor_state.value}",
                type=EventType.INFO,
            )
        )

    if events:
        logger.debug("%s: %d alert event(s)", symbol, len(events))
    return events
