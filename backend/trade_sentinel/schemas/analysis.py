import datetime as dt
from typing import Literal

from pydantic import BaseModel, Field

from trade_sentinel.config import Settings, settings
from trade_sentinel.schemas.market import Bar
from trade_sentinel.services.analysis.types import MonitorState


class StrategyConfig(BaseModel):
    """Which stop strategy to run and its parameters."""

    kind: Literal["atr", "ema"] = "atr"
    atr_period: int = Field(default=14, gt=0)
    stop_multiplier: float = Field(default=2.0, gt=0)
    trail_multiplier: float = Field(default=3.0, gt=0)
    ema_period: int = Field(default=20, gt=0)
    entry_date_match: Literal["exact", "on_or_after"] = "exact"

    @classmethod
    def from_settings(cls, cfg: Settings = settings, **overrides) -> "StrategyConfig":
        values = {
            "atr_period": cfg.atr_period,
            "stop_multiplier": cfg.stop_multiplier,
            "trail_multiplier": cfg.trail_multiplier,
            "ema_period": cfg.ema_period,
            "entry_date_match": cfg.entry_date_match,
        }
        values.update(overrides)
        return cls(**values)


class EntryContext(BaseModel):
    date: dt.date | None = None
    price: float | None = Field(default=None, gt=0)


class EvaluateRequest(BaseModel):
    bars: list[Bar]
    config: StrategyConfig | None = None
    entry: EntryContext | None = None


class TrendRequest(BaseModel):
    bars: list[Bar]


class PositionSizeRequest(BaseModel):
    account_size: float = Field(gt=0)
    risk_percentage: float = Field(gt=0, le=100)
    entry_price: float = Field(gt=0)
    stop_loss: float = Field(ge=0)
    target_price: float | None = None


class SnapshotModel(BaseModel):
    trailing_stop: float | None = None
    trend: str | None = None
    trend_score: int | None = None
    monitor_state: MonitorState | None = None


class AlertsRequest(BaseModel):
    symbol: str
    previous: SnapshotModel
    current: SnapshotModel
