"""Analysis API: stop evaluation, trend/risk scoring, position sizing and alert diffing."""
import logging

from fastapi import APIRouter, HTTPException, Query

from trade_sentinel.schemas.analysis import (
    AlertsRequest,
    EvaluateRequest,
    PositionSizeRequest,
    StrategyConfig,
    TrendRequest,
)
from trade_sentinel.schemas.market import Bar
from trade_sentinel.services.alerts import EvaluationSnapshot, diff_evaluations
from trade_sentinel.services.analysis.types import TrendAnalysisResult
from trade_sentinel.services.engine import STRATEGY_KINDS, TREND_POLICIES, analyze_trend, evaluate
from trade_sentinel.services.trading_strategy.position_sizing import (
    calculate_position_size,
    calculate_risk_reward_ratio,
)
from trade_sentinel.services.trading_strategy.trace_format import (
    risk_result_to_payload,
    strategy_result_to_payload,
    trend_result_to_payload,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["analysis"])


def _validate_bars(bars: list[Bar]) -> None:
    if not bars:
        logger.warning("Rejected request: empty bar series")
        raise HTTPException(status_code=400, detail="Bar series is empty.")
    for prev, cur in zip(bars, bars[1:]):
        if cur.time <= prev.time:
            logger.warning("Rejected request: bars out of order at time=%s", cur.time)
            raise HTTPException(
                status_code=400,
                detail="Bars must be strictly ascending by time.",
            )


@router.get("/strategies")
def list_strategies() -> dict[str, list[dict]]:
    """Supported stop strategy kinds with their configured defaults."""
    defaults = StrategyConfig.from_settings()
    params = {
        "atr": {
            "period": defaults.atr_period,
            "stopMultiplier": defaults.stop_multiplier,
            "trailMultiplier": defaults.trail_multiplier,
            "entryDateMatch": defaults.entry_date_match,
        },
        "ema": {"period": defaults.ema_period},
    }
    return {"strategies": [{"kind": kind, "defaults": params[kind]} for kind in STRATEGY_KINDS]}


@router.post("/evaluate")
def evaluate_stop(req: EvaluateRequest) -> dict:
    """Stop-loss / trailing-stop evaluation for one bar series."""
    _validate_bars(req.bars)
    result = evaluate(req.bars, config=req.config, entry=req.entry)
    return strategy_result_to_payload(result)


@router.post("/trend")
def trend(
    req: TrendRequest,
    policy: str = Query(default="structure", description="structure | weighted"),
) -> dict:
    if policy not in TREND_POLICIES:
        logger.warning("Rejected request: unknown trend policy %r", policy)
        raise HTTPException(
            status_code=400,
            detail=f"Invalid policy. Allowed: {list(TREND_POLICIES)}",
        )
    _validate_bars(req.bars)
    result = analyze_trend(req.bars, policy=policy)
    if isinstance(result, TrendAnalysisResult):
        return trend_result_to_payload(result)
    return risk_result_to_payload(result)


@router.post("/position-size")
def position_size(req: PositionSizeRequest) -> dict:
    size = calculate_position_size(req.account_size, req.risk_percentage, req.entry_price, req.stop_loss)
    payload = {
        "shares": size.shares,
        "positionValue": size.position_value,
        "riskAmount": size.risk_amount,
        "riskPerShare": size.risk_per_share,
        "riskRewardRatio": None,
    }
    if req.target_price is not None:
        payload["riskRewardRatio"] = calculate_risk_reward_ratio(req.entry_price, req.stop_loss, req.target_price)
    return payload


@router.post("/alerts")
def alerts(req: AlertsRequest) -> dict[str, list[dict]]:
    """Alert events between two successive evaluations of one symbol."""
    events = diff_evaluations(
        req.symbol,
        EvaluationSnapshot(**req.previous.model_dump()),
        EvaluationSnapshot(**req.current.model_dump()),
    )
    return {"events": [ev.to_json() for ev in events]}

