"""Shared fixtures: bar factories and a seeded random OHLCV frame."""

from datetime import datetime, timedelta, timezone

import numpy as np
import pandas as pd
import pytest

from pandas_ta_overlay import Bar

T0 = datetime(2024, 3, 15, tzinfo=timezone.utc)


def flat_bar(i: int, price: float, volume: float = 1.0) -> Bar:
    """O=H=L=C bar stamped *i* minutes after T0."""
    return Bar(time=T0 + timedelta(minutes=i), open=price, high=price,
               low=price, close=price, volume=volume)


@pytest.fixture
def make_bar():
    def _make(i, close, high=None, low=None, open=None, volume=1.0, time=None):
        return Bar(
            time=T0 + timedelta(minutes=i) if time is None else time,
            open=close if open is None else open,
            high=close if high is None else high,
            low=close if low is None else low,
            close=close,
            volume=volume,
        )
    return _make


@pytest.fixture
def flat_bars():
    def _make(closes, volume=1.0):
        return [flat_bar(i, c, volume) for i, c in enumerate(closes)]
    return _make


@pytest.fixture
def ohlcv() -> pd.DataFrame:
    rows = 600
    rng = np.random.default_rng(7)
    idx = pd.date_range("2025-01-01", periods=rows, freq="15min", tz="UTC")
    base = 100 + rng.standard_normal(rows).cumsum()
    close = base + rng.normal(0, 0.2, rows)
    open_ = base + rng.normal(0, 0.2, rows)
    high = np.maximum(open_, close) + rng.random(rows) * 0.5
    low = np.minimum(open_, close) - rng.random(rows) * 0.5
    volume = rng.integers(100, 1000, rows).astype(float)
    return pd.DataFrame(
        {"open": open_, "high": high, "low": low, "close": close, "volume": volume},
        index=idx,
    )
