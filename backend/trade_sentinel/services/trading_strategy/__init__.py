"""Stop pricing strategies: ATR dual stop and EMA stop."""

from trade_sentinel.services.trading_strategy.atr_dual_stop import AtrStopStrategy, manage_profit
from trade_sentinel.services.trading_strategy.ema_stop import EmaStopStrategy
from trade_sentinel.services.trading_strategy.types import StopStrategy, StrategyResult, TraceEntry

__all__ = [
    "AtrStopStrategy",
    "EmaStopStrategy",
    "StopStrategy",
    "StrategyResult",
    "TraceEntry",
    "manage_profit",
]
