"""Weighted entry-risk score (FOMO / falling-knife policy).

Independent of the integer trend score in trend_score.py: each signal adds its
configured weight, and the sum (floored at 0) is the risk score. Higher is riskier.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from trade_sentinel.schemas.market import Bar
from trade_sentinel.services.analysis.types import RiskAnalysisResult
from trade_sentinel.services.indicators.core import (
    UNDEFINED,
    atr,
    closes_of,
    ema,
    is_undefined,
    rolling_avg_volume,
    volumes_of,
)

logger = logging.getLogger(__name__)

FOMO_DISTANCE = 1.0
SLIGHTLY_ABOVE_DISTANCE = 0.2
FALLING_KNIFE_DISTANCE = -0.5
VOLUME_SPIKE_RATIO = 1.5
VOLUME_LOOKBACK = 20
HIGH_RISK_SCORE = 4.0


@dataclass(frozen=True)
class RiskWeights:
    fomo: float = 3.0
    slightly_above: float = 1.0
    optimal: float = 0.0
    falling_knife: float = 2.0
    volume_spike: float = -1.0
    sideways: float = 2.0

    @classmethod
    def from_settings(cls, settings) -> "RiskWeights":
        return cls(
            fomo=settings.score_fomo,
            slightly_above=settings.score_slightly_above,
            optimal=settings.score_optimal,
            falling_knife=settings.score_falling_knife,
            volume_spike=settings.score_volume_spike,
            sideways=settings.score_sideways,
        )


def classify_zone(distance_atr: float) -> str:
    """Where the close sits relative to EMA20, in ATR units."""
    if is_undefined(distance_atr):
        return "unknown"
    if distance_atr > FOMO_DISTANCE:
        return "fomo"
    if distance_atr > SLIGHTLY_ABOVE_DISTANCE:
        return "slightly_above"
    if distance_atr >= FALLING_KNIFE_DISTANCE:
        return "optimal"
    return "falling_knife"


def ema_alignment_trend(close: float, ema20: float, ema50: float) -> str:
    if is_undefined(ema20) or is_undefined(ema50):
        return "unknown"
    if close > ema20 > ema50:
        return "uptrend"
    if close < ema20 < ema50:
        return "downtrend"
    return "sideways"


class RiskAnalyzer:
    def __init__(self, weights: RiskWeights | None = None, atr_period: int = 14) -> None:
        self.weights = weights or RiskWeights()
        self.atr_period = atr_period

    def analyze(self, bars: Sequence[Bar]) -> RiskAnalysisResult:
        if not bars:
            return RiskAnalysisResult(
                risk_score=0.0,
                zone="unknown",
                trend="unknown",
                distance_atr=UNDEFINED,
                volume_spike=False,
                sideways=False,
                components={},
                entry_advice="Insufficient data to advise",
                notes=["Not enough data to analyze"],
            )

        closes = closes_of(bars)
        volumes = volumes_of(bars)
        last = len(bars) - 1
        close = closes[last]
        latest_atr = atr(bars, self.atr_period)[last]
        ema20 = ema(closes, 20)[last]
        ema50 = ema(closes, 50)[last]

        if is_undefined(latest_atr) or is_undefined(ema20) or latest_atr <= 0:
            distance = UNDEFINED
        else:
            distance = (close - ema20) / latest_atr
        zone = classify_zone(distance)
        trend = ema_alignment_trend(close, ema20, ema50)

        vol_avg = rolling_avg_volume(volumes, last, VOLUME_LOOKBACK)
        volume_spike = (
            len(bars) >= VOLUME_LOOKBACK
            and not is_undefined(vol_avg)
            and volumes[last] > vol_avg * VOLUME_SPIKE_RATIO
        )
        sideways = trend == "sideways"

        components: dict[str, float] = {}
        if zone != "unknown":
            components[zone] = getattr(self.weights, zone)
        if volume_spike:
            components["volume_spike"] = self.weights.volume_spike
        if sideways:
            components["sideways"] = self.weights.sideways
        risk = max(0.0, sum(components.values()))

        if trend == "unknown":
            advice = "Insufficient data to advise"
        elif trend == "downtrend":
            advice = "Downtrend: avoid long entries"
        elif risk >= HIGH_RISK_SCORE:
            advice = "High risk: avoid entry or reduce size"
        elif sideways:
            advice = "Market sideways: wait for breakout or use small size and tight stops"
        elif zone == "optimal":
            advice = "Good entry zone (trend confirmed)"
        elif zone == "falling_knife":
            advice = "Falling knife: wait for price to stabilise above EMA20"
        else:
            advice = "Price above safe zone; consider wait or partial position"

        dist_txt = "n/a" if is_undefined(distance) else f"{distance:.2f}"
        notes = [
            f"distance={dist_txt} ATR, zone={zone}, trend={trend}",
            f"volumeSpike={'yes' if volume_spike else 'no'}, risk={risk:.1f}",
        ]
        logger.debug("Risk analysis: zone=%s trend=%s risk=%.2f", zone, trend, risk)
        return RiskAnalysisResult(
            risk_score=risk,
            zone=zone,
            trend=trend,
            distance_atr=distance,
            volume_spike=volume_spike,
            sideways=sideways,
            components=components,
            entry_advice=advice,
            notes=notes,
        )
