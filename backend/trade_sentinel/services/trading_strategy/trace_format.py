"""Render strategy traces and convert results to JSON-ready payloads."""

import math

from trade_sentinel.services.analysis.types import (
    MonitorResult,
    PostEntryAnalysis,
    RiskAnalysisResult,
    TrendAnalysisResult,
)
from trade_sentinel.services.trading_strategy.types import StrategyResult, TraceEntry


def fmt_value(value: float | str | None) -> str:
    """Floats with 2 decimals, undefined as n/a, strings as-is."""
    if value is None:
        return "n/a"
    if isinstance(value, str):
        return value
    if math.isnan(value):
        return "n/a"
    return f"{value:.2f}"


def render_trace(rationale: tuple[TraceEntry, ...] | list[TraceEntry]) -> str:
    """One "Label: value" line per trace entry."""
    return "\n".join(f"{entry.label}: {fmt_value(entry.value)}" for entry in rationale)


def _num(value: float | None) -> float | None:
    if value is None or math.isnan(value):
        return None
    return value


def _trace_value(value: float | str | None) -> float | str | None:
    if isinstance(value, float):
        return _num(value)
    return value


def _post_entry_payload(pe: PostEntryAnalysis | None) -> dict | None:
    if pe is None:
        return None
    return {
        "state": pe.state.value,
        "daysHeld": pe.days_held,
        "structureIntact": pe.structure_intact,
        "aboveKeyEma": pe.above_key_ema,
        "note": pe.note,
    }


def _monitor_payload(mr: MonitorResult | None) -> dict | None:
    if mr is None:
        return None
    return {
        "state": mr.state.value,
        "label": mr.label,
        "emoji": mr.emoji,
        "continuation": dict(mr.continuation),
        "failure": dict(mr.failure),
        "sideways": dict(mr.sideways),
    }


def strategy_result_to_payload(result: StrategyResult) -> dict:
    """Stop evaluation for API clients. Undefined numbers become null."""
    return {
        "strategyName": result.strategy_name,
        "enoughData": result.enough_data,
        "cutLossPrice": _num(result.cut_loss_price),
        "trailingStopPrice": _num(result.trailing_stop_price),
        "canEnter": result.can_enter,
        "entryReason": result.entry_reason,
        "breakoutDetected": result.breakout_detected,
        "moveToBreakeven": result.move_to_breakeven,
        "partialProfitTarget": _num(result.partial_profit_target),
        "postEntry": _post_entry_payload(result.post_entry),
        "monitor": _monitor_payload(result.monitor_result),
        "rationale": [
            {"label": entry.label, "value": _trace_value(entry.value)}
            for entry in result.rationale
        ],
        "equation": render_trace(result.rationale),
    }


def trend_result_to_payload(result: TrendAnalysisResult) -> dict:
    return {
        "trendScore": result.trend_score,
        "trend": result.trend,
        "atr": _num(result.atr),
        "ema20": _num(result.ema20),
        "ema50": _num(result.ema50),
        "entryMin": _num(result.entry_min),
        "entryMax": _num(result.entry_max),
        "entryAdvice": result.entry_advice,
        "isSafeEntry": result.is_safe_entry,
        "volumeConfirm": result.volume_confirm,
        "breakoutDetected": result.breakout_detected,
        "structure": dict(result.structure),
        "notes": list(result.notes),
    }


def risk_result_to_payload(result: RiskAnalysisResult) -> dict:
    return {
        "riskScore": result.risk_score,
        "zone": result.zone,
        "trend": result.trend,
        "distanceAtr": _num(result.distance_atr),
        "volumeSpike": result.volume_spike,
        "sideways": result.sideways,
        "components": {k: _num(v) for k, v in result.components.items()},
        "entryAdvice": result.entry_advice,
        "notes": list(result.notes),
    }
