from datetime import datetime, timezone

from trade_sentinel.services.alerts import EvaluationSnapshot, EventType, StockEvent, diff_evaluations
from trade_sentinel.services.analysis.types import MonitorState
from trade_sentinel.services.trading_strategy.atr_dual_stop import AtrStopStrategy
from trade_sentinel.services.trading_strategy.reference_bar import LatestBarSelector

NOW = datetime(2024, 3, 1, 16, 0, tzinfo=timezone.utc)


class TestDiffEvaluations:
    def test_trailing_stop_raised(self):
        events = diff_evaluations("AAPL", EvaluationSnapshot(trailing_stop=90.0), EvaluationSnapshot(trailing_stop=92.5), now=NOW)
        assert len(events) == 1
        assert events[0].type == EventType.STOP_LOSS
        assert events[0].message == "Trailing stop raised: 90.00 -> 92.50"
        assert events[0].timestamp == NOW

    def test_trailing_stop_unchanged_is_quiet(self):
        assert diff_evaluations("AAPL", EvaluationSnapshot(trailing_stop=90.0), EvaluationSnapshot(trailing_stop=90.0)) == []

    def test_trend_label_change(self):
        events = diff_evaluations(
            "AAPL",
            EvaluationSnapshot(trend="sideways", trend_score=2),
            EvaluationSnapshot(trend="uptrend", trend_score=3),
        )
        assert [ev.type for ev in events] == [EventType.TREND]
        assert events[0].message == "Trend changed: sideways -> uptrend"

    def test_trend_score_change_same_label(self):
        events = diff_evaluations(
            "AAPL",
            EvaluationSnapshot(trend="uptrend", trend_score=3),
            EvaluationSnapshot(trend="uptrend", trend_score=4),
        )
        assert events[0].message == "Trend score changed: 3 -> 4"

    def test_monitor_state_change(self):
        events = diff_evaluations(
            "AAPL",
            EvaluationSnapshot(monitor_state=MonitorState.TREND_CONTINUATION),
            EvaluationSnapshot(monitor_state=MonitorState.TREND_FAILURE),
        )
        assert [ev.type for ev in events] == [EventType.INFO]

    def test_missing_fields_not_compared(self):
        assert diff_evaluations("AAPL", EvaluationSnapshot(), EvaluationSnapshot(trailing_stop=10.0, trend="uptrend")) == []

    def test_snapshot_from_results(self, rising_bars, entry_day):
        result = AtrStopStrategy(reference_selector=LatestBarSelector()).calculate_stop(
            rising_bars, entry_date=entry_day(20), entry_price=120.0
        )
        snap = EvaluationSnapshot.from_results(strategy=result)
        assert snap.trailing_stop == result.trailing_stop_price
        assert snap.monitor_state == result.monitor_result.state
        assert snap.trend is None


class TestStockEvent:
    def test_json_round_trip(self):
        event = StockEvent(timestamp=NOW, symbol="MSFT", message="hello", type=EventType.TREND)
        data = event.to_json()
        assert data == {"timestamp": NOW.isoformat(), "symbol": "MSFT", "message": "hello", "type": "trend"}
        assert StockEvent.from_json(data) == event

    def test_missing_type_defaults_to_info(self):
        event = StockEvent.from_json({"timestamp": NOW.isoformat(), "symbol": "MSFT", "message": "x"})
        assert event.type == EventType.INFO
