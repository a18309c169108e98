"""Post-entry trend monitor: continuation, failure and sideways checks on the bars since entry."""

from collections.abc import Sequence

from trade_sentinel.schemas.market import Bar
from trade_sentinel.services.analysis.types import MonitorResult, MonitorState
from trade_sentinel.services.indicators.core import obv

DEFAULT_DRY_RATIO = 0.6
DEFAULT_SPIKE_RATIO = 0.4
DEFAULT_VOLUME_LOOKBACK = 5


class MonitorEngine:
    def __init__(
        self,
        closes: Sequence[float],
        highs: Sequence[float],
        lows: Sequence[float],
        volumes: Sequence[float],
        *,
        dry_ratio: float = DEFAULT_DRY_RATIO,
        spike_ratio: float = DEFAULT_SPIKE_RATIO,
        volume_lookback: int = DEFAULT_VOLUME_LOOKBACK,
    ) -> None:
        self.closes = list(closes)
        self.highs = list(highs)
        self.lows = list(lows)
        self.volumes = list(volumes)
        self.dry_ratio = dry_ratio
        self.spike_ratio = spike_ratio
        self.volume_lookback = volume_lookback
        self.obv = obv(self.closes, self.volumes)

    @classmethod
    def from_bars(cls, bars: Sequence[Bar], **kwargs) -> "MonitorEngine":
        return cls(
            closes=[b.close for b in bars],
            highs=[b.high for b in bars],
            lows=[b.low for b in bars],
            volumes=[float(b.volume) for b in bars],
            **kwargs,
        )

    # --- signals on the last two bars ---

    def _is_higher_low(self) -> bool:
        return len(self.lows) >= 2 and self.lows[-1] > self.lows[-2]

    def _is_price_down_volume_up(self) -> bool:
        if len(self.closes) < 2:
            return False
        return self.closes[-1] < self.closes[-2] and self.volumes[-1] > self.volumes[-2]

    def _is_volume_rising_on_green(self) -> bool:
        if len(self.closes) < 2:
            return False
        return self.closes[-1] > self.closes[-2] and self.volumes[-1] > self.volumes[-2]

    def _is_obv_bearish_divergence(self) -> bool:
        """Price flat or up while OBV drops."""
        if len(self.closes) < 2 or len(self.obv) < 2:
            return False
        return self.closes[-1] >= self.closes[-2] and self.obv[-1] < self.obv[-2]

    def _is_higher_low_broken(self) -> bool:
        return len(self.lows) >= 2 and self.closes[-1] < self.lows[-2]

    def _prior_volume_average(self) -> float | None:
        """Mean volume of the `volume_lookback` bars before the last one."""
        n = self.volume_lookback
        if n <= 0 or len(self.volumes) < n + 1:
            return None
        return sum(self.volumes[-n - 1 : -1]) / n

    def _is_volume_drying(self) -> bool:
        avg = self._prior_volume_average()
        return avg is not None and self.volumes[-1] < avg * self.dry_ratio

    def _is_volume_spike_down(self) -> bool:
        avg = self._prior_volume_average()
        return avg is not None and self.volumes[-1] < avg * self.spike_ratio

    # --- checks ---

    def check_trend_continuation(self) -> dict[str, bool]:
        hl = self._is_higher_low()
        vol_green_up = self._is_volume_rising_on_green()
        return {
            "continuation": hl and vol_green_up,
            "higherLow": hl,
            "volumeUpOnGreen": vol_green_up,
        }

    def check_trend_failure(self) -> dict[str, bool]:
        price_down_vol_up = self._is_price_down_volume_up()
        obv_divergence = self._is_obv_bearish_divergence()
        hl_broken = self._is_higher_low_broken()
        return {
            "failure": price_down_vol_up or obv_divergence or hl_broken,
            "priceDownVolumeUp": price_down_vol_up,
            "obvBearishDivergence": obv_divergence,
            "higherLowBroken": hl_broken,
        }

    def check_sideways(self) -> dict[str, bool]:
        dry = self._is_volume_drying()
        spike_down = self._is_volume_spike_down()
        return {
            "sideways": dry and not spike_down,
            "volumeDry": dry,
            "volumeSpikeDown": spike_down,
        }

    def evaluate(self) -> MonitorResult:
        """Failure wins over continuation, continuation over sideways."""
        cont = self.check_trend_continuation()
        fail = self.check_trend_failure()
        side = self.check_sideways()

        if fail["failure"]:
            state = MonitorState.TREND_FAILURE
        elif cont["continuation"]:
            state = MonitorState.TREND_CONTINUATION
        elif side["sideways"]:
            state = MonitorState.SIDEWAYS_CONSOLIDATION
        else:
            state = MonitorState.NEUTRAL_WAIT

        return MonitorResult(state=state, continuation=cont, failure=fail, sideways=side)
