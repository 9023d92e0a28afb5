import datetime as dt

import numpy as np
import pandas as pd

from trendlens import prices
from trendlens.prices import HISTORY_CACHE, generate_simulated_history, load_history


def _fail(*args, **kwargs):
    raise RuntimeError("source unavailable")


def test_history_cache(monkeypatch, make_bars):
    calls = []

    def fake_yf(symbol, timeframe):
        calls.append(symbol)
        return make_bars([1, 2, 3])

    monkeypatch.setattr("trendlens.prices._get_history_from_yf", fake_yf)
    HISTORY_CACHE.clear()
    first = load_history("AAPL", "6m")
    second = load_history("AAPL", "6m")
    assert first == second
    assert first[1:] == ("AAPL", False)
    assert calls == ["AAPL"]  # second call comes from the cache


def test_history_cache_key_is_normalised(monkeypatch, make_bars):
    calls = []

    def fake_yf(symbol, timeframe):
        calls.append(symbol)
        return make_bars([1, 2, 3])

    monkeypatch.setattr("trendlens.prices._get_history_from_yf", fake_yf)
    HISTORY_CACHE.clear()
    load_history(" aapl", "6m")
    load_history("AAPL", "6m")
    assert calls == ["AAPL"]
    assert list(HISTORY_CACHE) == [("AAPL", "6m")]


def test_stale_cache_entry_is_dropped(monkeypatch, make_bars):
    monkeypatch.setattr("trendlens.prices._get_history_from_yf", _fail)
    monkeypatch.setattr("trendlens.prices._get_history_from_chart", _fail)
    HISTORY_CACHE.clear()
    HISTORY_CACHE[("AAPL", "6m")] = (0.0, make_bars([1, 2]), "AAPL")
    bars, used, simulated = load_history("AAPL", "6m")
    assert simulated
    assert ("AAPL", "6m") not in HISTORY_CACHE


def test_chart_endpoint_is_second_tier(monkeypatch):
    payload = {
        "chart": {"result": [{
            "timestamp": [1704153600, 1704240000, 1704326400],
            "indicators": {"quote": [{
                "open": [10.0, None, 12.0],
                "high": [11.0, 12.0, 13.0],
                "low": [9.0, 10.0, 11.0],
                "close": [10.5, 11.5, 12.5],
                "volume": [100, 200, None],
            }]},
        }]}
    }
    monkeypatch.setattr("trendlens.prices._get_history_from_yf", _fail)
    monkeypatch.setattr("trendlens.prices.fetch_json", lambda url: payload)
    HISTORY_CACHE.clear()
    bars, used, simulated = load_history("MSFT", "1m")
    assert not simulated and used == "MSFT"
    # The row with a missing open is skipped; a missing volume becomes 0.
    assert [b.close for b in bars] == [10.5, 12.5]
    assert bars[0].date == dt.date(2024, 1, 2)
    assert bars[-1].volume == 0.0


def test_suffix_candidates_are_tried(monkeypatch, make_bars):
    tried = []

    def fake_yf(symbol, timeframe):
        tried.append(symbol)
        if symbol != "ENI.MI":
            raise RuntimeError("no data")
        return make_bars([1, 2])

    monkeypatch.setattr("trendlens.prices._get_history_from_yf", fake_yf)
    monkeypatch.setattr("trendlens.prices._get_history_from_chart", _fail)
    HISTORY_CACHE.clear()
    bars, used, simulated = load_history("ENI", "6m")
    assert used == "ENI.MI"
    assert tried == ["ENI", "ENI.MI"]
    assert not simulated


def test_simulated_fallback(monkeypatch):
    monkeypatch.setattr("trendlens.prices._get_history_from_yf", _fail)
    monkeypatch.setattr("trendlens.prices._get_history_from_chart", _fail)
    HISTORY_CACHE.clear()
    bars, used, simulated = load_history("nothing", "1m")
    assert simulated
    assert used == "NOTHING"
    assert len(bars) == 30
    assert ("NOTHING", "1m") not in HISTORY_CACHE


def test_simulated_history_shape():
    bars = generate_simulated_history("X", "6m", rng=np.random.default_rng(7))
    assert len(bars) == 180
    assert bars[-1].date == dt.date.today() - dt.timedelta(days=1)
    dates = [b.date for b in bars]
    assert dates == sorted(set(dates))
    for b in bars:
        assert b.low <= min(b.open, b.close) <= max(b.open, b.close) <= b.high
        assert 500_000 <= b.volume < 1_500_000


def test_simulated_history_is_reproducible_with_seed():
    a = generate_simulated_history("X", "1m", rng=np.random.default_rng(1))
    b = generate_simulated_history("X", "1m", rng=np.random.default_rng(1))
    assert a == b


def test_frame_to_bars_flattens_multiindex(fake_df):
    multi = fake_df.copy()
    multi.columns = pd.MultiIndex.from_product([fake_df.columns, ["AAPL"]])
    bars = prices._frame_to_bars(multi)
    assert len(bars) == 60
    assert bars[0].close == 100.0
    assert bars[0].date == dt.date(2024, 1, 1)
    assert bars[-1].volume == 1_000_000.0


def test_yf_source_uses_timeframe_period(monkeypatch, fake_df):
    seen = {}

    def fake_download(symbol, period="6mo", interval="1d"):
        seen.update(symbol=symbol, period=period, interval=interval)
        return fake_df

    monkeypatch.setattr("trendlens.prices._download_history", fake_download)
    bars = prices._get_history_from_yf("AAPL", "5y")
    assert seen == {"symbol": "AAPL", "period": "5y", "interval": "1wk"}
    assert len(bars) == 60
