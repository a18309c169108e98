import json

from trade_sentinel.services.analysis.risk_score import RiskAnalyzer
from trade_sentinel.services.analysis.trend_score import TrendAnalyzer
from trade_sentinel.services.trading_strategy.atr_dual_stop import AtrStopStrategy
from trade_sentinel.services.trading_strategy.reference_bar import LatestBarSelector
from trade_sentinel.services.trading_strategy.trace_format import (
    fmt_value,
    render_trace,
    risk_result_to_payload,
    strategy_result_to_payload,
    trend_result_to_payload,
)
from trade_sentinel.services.trading_strategy.types import TraceEntry, not_enough_data


def test_fmt_value():
    assert fmt_value(1.234) == "1.23"
    assert fmt_value(float("nan")) == "n/a"
    assert fmt_value(None) == "n/a"
    assert fmt_value("Good") == "Good"


def test_render_trace():
    text = render_trace((TraceEntry("ATR", 5.0), TraceEntry("Status", "ok")))
    assert text == "ATR: 5.00\nStatus: ok"


class TestStrategyPayload:
    def test_undefined_values_become_null(self, flat_bars):
        result = AtrStopStrategy(reference_selector=LatestBarSelector()).calculate_stop(flat_bars(20))
        payload = strategy_result_to_payload(result)
        ema50 = next(item for item in payload["rationale"] if item["label"] == "EMA50")
        assert ema50["value"] is None
        assert payload["cutLossPrice"] == 92.0
        assert payload["canEnter"] is False
        assert payload["postEntry"] is None
        assert payload["equation"] == render_trace(result.rationale)
        json.dumps(payload, allow_nan=False)

    def test_degenerate_result(self):
        payload = strategy_result_to_payload(not_enough_data("EMA Strategy (20)"))
        assert payload["enoughData"] is False
        assert payload["trailingStopPrice"] is None
        assert payload["equation"] == "Error: Not enough data"

    def test_post_entry_and_monitor(self, rising_bars, entry_day):
        result = AtrStopStrategy(reference_selector=LatestBarSelector()).calculate_stop(
            rising_bars, entry_date=entry_day(20), entry_price=120.0
        )
        payload = strategy_result_to_payload(result)
        assert payload["postEntry"]["state"] == "confirmed"
        assert payload["monitor"]["state"] in {
            "trend_continuation",
            "trend_failure",
            "sideways_consolidation",
            "neutral_wait",
        }
        assert "higherLow" in payload["monitor"]["continuation"]


def test_trend_payload_insufficient_data(flat_bars):
    payload = trend_result_to_payload(TrendAnalyzer().analyze(flat_bars(5)))
    assert payload["trend"] == "unknown"
    assert payload["isSafeEntry"] is False
    assert payload["structure"] == {"HH": False, "HL": False, "LH": False, "LL": False}


def test_risk_payload_nan_distance():
    payload = risk_result_to_payload(RiskAnalyzer().analyze([]))
    assert payload["distanceAtr"] is None
    json.dumps(payload, allow_nan=False)
