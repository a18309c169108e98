from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


class Bar(BaseModel):
    """One trading period. `time` is Unix seconds (bar open)."""

    model_config = ConfigDict(frozen=True)

    time: int
    open: float
    high: float
    low: float
    close: float
    volume: int = Field(ge=0)

    @property
    def utc_date(self):
        return datetime.fromtimestamp(self.time, tz=timezone.utc).date()

    @property
    def date_str(self) -> str:
        return self.utc_date.isoformat()
