"""Position sizing from account risk and stop distance."""

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class PositionSize:
    shares: int
    position_value: float
    risk_amount: float  # account_size * risk_percentage / 100
    risk_per_share: float


def calculate_shares(
    account_size: float,
    risk_percentage: float,
    entry_price: float,
    stop_loss: float,
) -> int:
    """Whole shares so that a stop-out loses risk_percentage of the account. 0 if entry <= stop."""
    if entry_price <= stop_loss:
        return 0
    risk_amount = account_size * risk_percentage / 100
    return max(0, math.floor(risk_amount / (entry_price - stop_loss)))


def calculate_position_size(
    account_size: float,
    risk_percentage: float,
    entry_price: float,
    stop_loss: float,
) -> PositionSize:
    shares = calculate_shares(account_size, risk_percentage, entry_price, stop_loss)
    return PositionSize(
        shares=shares,
        position_value=shares * entry_price,
        risk_amount=account_size * risk_percentage / 100,
        risk_per_share=max(0.0, entry_price - stop_loss),
    )


def calculate_risk_reward_ratio(entry_price: float, stop_loss: float, target_price: float) -> float:
    risk = entry_price - stop_loss
    if risk <= 0:
        return 0.0
    return (target_price - entry_price) / risk
