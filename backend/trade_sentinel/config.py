from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Trade Sentinel"
    cors_origins: list[str] = ["http://localhost:4000"]
    log_level: str = "INFO"

    # Stop strategies
    atr_period: int = 14
    stop_multiplier: float = 2.0
    trail_multiplier: float = 3.0
    ema_period: int = 20
    trend_lookback: int = 14
    # exact: bar date must equal the entry date; on_or_after: first bar on/after it
    entry_date_match: Literal["exact", "on_or_after"] = "exact"

    # Reference bar selection when no entry exists (UTC hours, end exclusive)
    trading_hours_start_utc: int = 13
    trading_hours_end_utc: int = 22

    # Monitor engine volume thresholds (fraction of trailing average volume)
    monitor_dry_ratio: float = 0.6
    monitor_spike_ratio: float = 0.4
    monitor_volume_lookback: int = 5

    # Weighted risk policy
    score_fomo: float = 3.0
    score_slightly_above: float = 1.0
    score_optimal: float = 0.0
    score_falling_knife: float = 2.0
    score_volume_spike: float = -1.0
    score_sideways: float = 2.0

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


settings = Settings()
