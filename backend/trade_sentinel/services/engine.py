"""Engine facade: build a stop strategy from config and run the scoring policies."""

import logging
from collections.abc import Sequence

from trade_sentinel.config import Settings, settings
from trade_sentinel.schemas.analysis import EntryContext, StrategyConfig
from trade_sentinel.schemas.market import Bar
from trade_sentinel.services.analysis.risk_score import RiskAnalyzer, RiskWeights
from trade_sentinel.services.analysis.trend_score import TrendAnalyzer
from trade_sentinel.services.analysis.types import RiskAnalysisResult, TrendAnalysisResult
from trade_sentinel.services.trading_strategy import AtrStopStrategy, EmaStopStrategy, StopStrategy, StrategyResult
from trade_sentinel.services.trading_strategy.reference_bar import ReferenceBarSelector, TradingHoursSelector

logger = logging.getLogger(__name__)

STRATEGY_KINDS = ("atr", "ema")
TREND_POLICIES = ("structure", "weighted")


def build_strategy(
    config: StrategyConfig,
    reference_selector: ReferenceBarSelector | None = None,
    cfg: Settings = settings,
) -> StopStrategy:
    if config.kind == "atr":
        return AtrStopStrategy(
            period=config.atr_period,
            stop_multiplier=config.stop_multiplier,
            trail_multiplier=config.trail_multiplier,
            reference_selector=reference_selector
            or TradingHoursSelector(cfg.trading_hours_start_utc, cfg.trading_hours_end_utc),
            entry_date_match=config.entry_date_match,
            trend_lookback=cfg.trend_lookback,
            monitor_dry_ratio=cfg.monitor_dry_ratio,
            monitor_spike_ratio=cfg.monitor_spike_ratio,
            monitor_volume_lookback=cfg.monitor_volume_lookback,
        )
    if config.kind == "ema":
        return EmaStopStrategy(period=config.ema_period)
    raise ValueError(f"Unknown strategy kind: {config.kind}")


def evaluate(
    bars: Sequence[Bar],
    config: StrategyConfig | None = None,
    entry: EntryContext | None = None,
    reference_selector: ReferenceBarSelector | None = None,
) -> StrategyResult:
    """Run one stop evaluation. Stateless: every call starts from the bars alone."""
    config = config or StrategyConfig.from_settings()
    strategy = build_strategy(config, reference_selector)
    entry_date = entry.date if entry else None
    entry_price = entry.price if entry else None
    result = strategy.calculate_stop(bars, entry_date=entry_date, entry_price=entry_price)
    logger.debug("evaluate %s on %d bars: enough_data=%s", strategy.name, len(bars), result.enough_data)
    return result


def analyze_trend(
    bars: Sequence[Bar],
    policy: str = "structure",
    cfg: Settings = settings,
) -> TrendAnalysisResult | RiskAnalysisResult:
    """structure: integer trend score + entry advisory. weighted: FOMO / falling-knife risk score."""
    if policy == "structure":
        return TrendAnalyzer(atr_period=cfg.atr_period, structure_lookback=cfg.trend_lookback).analyze(bars)
    if policy == "weighted":
        return RiskAnalyzer(weights=RiskWeights.from_settings(cfg), atr_period=cfg.atr_period).analyze(bars)
    raise ValueError(f"Unknown trend policy: {policy}")
