import pytest

from trade_sentinel.services.trading_strategy.position_sizing import (
    calculate_position_size,
    calculate_risk_reward_ratio,
    calculate_shares,
)


class TestPositionSizing:
    def test_shares_from_risk(self):
        assert calculate_shares(10_000, 1.0, 50.0, 48.0) == 50

    def test_rounds_down(self):
        assert calculate_shares(10_000, 1.0, 50.0, 47.0) == 33

    @pytest.mark.parametrize("stop", [50.0, 55.0])
    def test_stop_at_or_above_entry(self, stop):
        assert calculate_shares(10_000, 1.0, 50.0, stop) == 0

    def test_position_size(self):
        size = calculate_position_size(10_000, 2.0, 100.0, 95.0)
        assert size.shares == 40
        assert size.position_value == 4000.0
        assert size.risk_amount == 200.0
        assert size.risk_per_share == 5.0

    def test_risk_reward(self):
        assert calculate_risk_reward_ratio(100.0, 90.0, 120.0) == pytest.approx(2.0)
        assert calculate_risk_reward_ratio(100.0, 100.0, 120.0) == 0.0
