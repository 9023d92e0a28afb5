import datetime as dt
import math

import pytest
import pandas as pd

from trendlens.models import Bar


def _bars_from_closes(closes, start=dt.date(2024, 1, 1)):
    """Build one daily Bar per close, with open/high/low around the close."""
    return [
        Bar(
            date=start + dt.timedelta(days=i),
            open=float(c),
            high=float(c) + 1,
            low=float(c) - 1,
            close=float(c),
            volume=1000.0,
        )
        for i, c in enumerate(closes)
    ]


@pytest.fixture
def wave_closes():
    """A deterministic series with both up and down moves."""
    return [100 + 10 * math.sin(i / 3) + 0.1 * i for i in range(120)]


@pytest.fixture
def fake_df():
    """Provide a deterministic fake yfinance frame for tests."""
    index = pd.date_range("2024-01-01", periods=60, freq="D")
    closes = [100 + i for i in range(60)]
    return pd.DataFrame(
        {
            "Open": closes,
            "High": [c + 1 for c in closes],
            "Low": [c - 1 for c in closes],
            "Close": closes,
            "Adj Close": closes,
            "Volume": [1_000_000] * 60,
        },
        index=index,
    )


@pytest.fixture
def make_bars():
    """Factory turning a list of closes into daily Bars."""
    return _bars_from_closes
