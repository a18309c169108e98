from datetime import date, datetime, timedelta, timezone

import pytest

from trade_sentinel.schemas.market import Bar

DAY = 86400
START = 1704067200  # 2024-01-01 00:00 UTC


def day_of(i: int) -> date:
    return date(2024, 1, 1) + timedelta(days=i)


def bars_from_closes(closes, spread=1.0, volumes=None, days=None, start=START):
    """Daily bars with open == close and a symmetric high/low around it. `days` offsets skip dates."""
    volumes = volumes or [1000] * len(closes)
    days = days or list(range(len(closes)))
    return [
        Bar(
            time=start + days[i] * DAY,
            open=c,
            high=c + spread,
            low=c - spread,
            close=c,
            volume=volumes[i],
        )
        for i, c in enumerate(closes)
    ]


def constant_bars(n, open=100.0, high=105.0, low=100.0, close=102.0, volume=1000, start=START):
    return [
        Bar(time=start + i * DAY, open=open, high=high, low=low, close=close, volume=volume)
        for i in range(n)
    ]


def fixed_clock(hour: int):
    moment = datetime(2024, 3, 1, hour, 30, tzinfo=timezone.utc)
    return lambda: moment


@pytest.fixture
def make_bars():
    return bars_from_closes


@pytest.fixture
def flat_bars():
    return constant_bars


@pytest.fixture
def rising_bars():
    """60 bars, close 100..159, ATR 2, constant volume."""
    return bars_from_closes([100.0 + i for i in range(60)])


@pytest.fixture
def entry_day():
    return day_of


@pytest.fixture
def clock_at():
    return fixed_clock
