"""Analysis result types shared by the scorers, classifiers and stop strategies."""

from dataclasses import dataclass, field
from enum import Enum


class TradeState(str, Enum):
    """Post-entry lifecycle. Derived from scratch on every evaluation."""

    NOT_ENTERED = "notEntered"
    WAITING_CONFIRMATION = "waitingConfirmation"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class MonitorState(str, Enum):
    TREND_CONTINUATION = "trend_continuation"
    TREND_FAILURE = "trend_failure"
    SIDEWAYS_CONSOLIDATION = "sideways_consolidation"
    NEUTRAL_WAIT = "neutral_wait"


_MONITOR_LABELS = {
    MonitorState.TREND_CONTINUATION: ("Trend Continuation", "✅"),
    MonitorState.TREND_FAILURE: ("Trend Failure", "❌"),
    MonitorState.SIDEWAYS_CONSOLIDATION: ("Sideways Consolidation", "⏸️"),
    MonitorState.NEUTRAL_WAIT: ("Neutral/Waiting", "⏳"),
}


@dataclass(frozen=True)
class PostEntryAnalysis:
    state: TradeState
    days_held: int
    structure_intact: bool
    above_key_ema: bool
    note: str


@dataclass(frozen=True)
class MonitorResult:
    """Monitor verdict plus the individual signals behind it."""

    state: MonitorState
    continuation: dict[str, bool]
    failure: dict[str, bool]
    sideways: dict[str, bool]

    @property
    def label(self) -> str:
        return _MONITOR_LABELS[self.state][0]

    @property
    def emoji(self) -> str:
        return _MONITOR_LABELS[self.state][1]


@dataclass(frozen=True)
class EntryAssessment:
    """Pre-entry verdict from the entry-safety advisory."""

    can_enter: bool
    reason: str
    entry_min: float
    entry_max: float
    breakout_detected: bool
    volume_confirm: bool
    trend_score: int


@dataclass(frozen=True)
class TrendAnalysisResult:
    trend_score: int
    trend: str  # uptrend | downtrend | sideways | unknown
    atr: float
    ema20: float
    ema50: float
    entry_min: float  # EMA20 - 0.5*ATR
    entry_max: float  # EMA20 + 0.2*ATR
    entry_advice: str
    volume_confirm: bool
    breakout_detected: bool
    structure: dict[str, bool]
    notes: list[str] = field(default_factory=list)

    @property
    def is_safe_entry(self) -> bool:
        return "good" in self.entry_advice.lower()


@dataclass(frozen=True)
class RiskAnalysisResult:
    """Output of the weighted FOMO / falling-knife risk policy."""

    risk_score: float
    zone: str  # fomo | slightly_above | optimal | falling_knife | unknown
    trend: str
    distance_atr: float
    volume_spike: bool
    sideways: bool
    components: dict[str, float]
    entry_advice: str
    notes: list[str] = field(default_factory=list)
