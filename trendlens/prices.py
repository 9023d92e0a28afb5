"""
Price history loading.

This module turns a ticker and a timeframe into an ordered list of Bars.
Sources are tried in order for every candidate ticker:

  1. yfinance (``_download_history``),
  2. the Yahoo v8 chart endpoint via ``fetch_json`` (direct, then proxy).

When every candidate fails, a simulated random walk is returned instead and
flagged as such.  Real histories are kept in a small in-memory cache.
"""

import datetime as dt
import time
from functools import lru_cache
from typing import Optional

import numpy as np
import pandas as pd
import yfinance as yf

from .fetch import fetch_json
from .models import TIMEFRAMES, DEFAULT_TIMEFRAME, Bar
from .symbols import candidate_tickers, normalize_symbol
from .utils import logger

# Cache for real histories.  Maps (ticker, timeframe) -> (timestamp, bars, used_ticker).
HISTORY_CACHE: dict[tuple[str, str], tuple[float, list[Bar], str]] = {}
# Time-to-live for cache entries (seconds).
CACHE_TTL = 300

CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}?range={range}&interval={interval}"

# Daily volatility of the simulated random walk.
SIM_VOLATILITY = 0.02


@lru_cache(maxsize=256)
def _download_history(symbol: str, period: str = "6mo", interval: str = "1d") -> pd.DataFrame:
    """
    Download historical price data using yfinance.

    Cached to avoid repeated network calls within a session.
    """
    logger.info("Downloading history (yfinance) for %s [%s/%s]", symbol, period, interval)
    df = yf.download(
        symbol, period=period, interval=interval,
        progress=False, auto_adjust=False
    )
    if df is None or df.empty:
        raise RuntimeError(f"No price data for {symbol}")
    return df


def _frame_to_bars(df: pd.DataFrame) -> list[Bar]:
    """Convert a yfinance frame into date-ordered Bars, one per date."""
    if isinstance(df.columns, pd.MultiIndex):
        # Recent yfinance releases return (field, ticker) columns.
        df = df.copy()
        df.columns = df.columns.get_level_values(0)
    df = df.dropna(subset=["Open", "High", "Low", "Close"])

    by_date: dict[dt.date, Bar] = {}
    for ts, row in df.iterrows():
        day = pd.Timestamp(ts).date()
        volume = row.get("Volume")
        by_date[day] = Bar(
            date=day,
            open=float(row["Open"]),
            high=float(row["High"]),
            low=float(row["Low"]),
            close=float(row["Close"]),
            volume=0.0 if volume is None or pd.isna(volume) else float(volume),
        )
    return [by_date[d] for d in sorted(by_date)]


def _chart_to_bars(data: dict) -> list[Bar]:
    """Parse a Yahoo v8 chart payload, skipping incomplete rows."""
    result = ((data or {}).get("chart") or {}).get("result") or []
    if not result:
        return []
    result = result[0]
    timestamps = result.get("timestamp") or []
    quotes = (result.get("indicators") or {}).get("quote") or [{}]
    columns = {k: quotes[0].get(k) or [] for k in ("open", "high", "low", "close", "volume")}
    if not timestamps or not columns["close"]:
        return []

    def _at(name: str, i: int):
        col = columns[name]
        return col[i] if i < len(col) else None

    by_date: dict[dt.date, Bar] = {}
    for i, ts in enumerate(timestamps):
        fields = [_at(k, i) for k in ("open", "high", "low", "close")]
        if any(v is None for v in fields):
            continue
        open_, high, low, close = (float(v) for v in fields)
        volume = _at("volume", i)
        day = dt.datetime.fromtimestamp(ts, tz=dt.timezone.utc).date()
        by_date[day] = Bar(
            date=day, open=open_, high=high, low=low, close=close,
            volume=float(volume or 0),
        )
    return [by_date[d] for d in sorted(by_date)]


def _get_history_from_yf(symbol: str, timeframe: str) -> list[Bar]:
    tf = TIMEFRAMES[timeframe]
    return _frame_to_bars(_download_history(symbol, period=tf.range, interval=tf.interval))


def _get_history_from_chart(symbol: str, timeframe: str) -> list[Bar]:
    tf = TIMEFRAMES[timeframe]
    logger.info("Calling Yahoo chart endpoint for %s", symbol)
    url = CHART_URL.format(symbol=symbol, range=tf.range, interval=tf.interval)
    return _chart_to_bars(fetch_json(url))


def _get_history(symbol: str, timeframe: str) -> Optional[list[Bar]]:
    """Try each real source for one ticker; None when all of them fail."""
    for source in (_get_history_from_yf, _get_history_from_chart):
        try:
            bars = source(symbol, timeframe)
        except Exception as exc:
            logger.warning("%s failed for %s: %s", source.__name__, symbol, exc)
            continue
        if bars:
            return bars
        logger.warning("%s returned no bars for %s", source.__name__, symbol)
    return None


def generate_simulated_history(
    ticker: str,
    timeframe: str = DEFAULT_TIMEFRAME,
    rng: Optional[np.random.Generator] = None,
) -> list[Bar]:
    """
    Build a random-walk history ending yesterday.

    One bar per calendar day, starting price between 50 and 150, daily moves
    within +/-2% and volume between 500k and 1.5M.
    """
    points = TIMEFRAMES[timeframe].simulated_points
    rng = rng if rng is not None else np.random.default_rng()
    today = dt.date.today()
    price = float(rng.uniform(50, 150))

    history: list[Bar] = []
    for i in range(points):
        change = price * float(rng.uniform(-SIM_VOLATILITY, SIM_VOLATILITY))
        open_ = price
        close = price + change
        high = max(open_, close) + float(rng.uniform(0, price * 0.01))
        low = min(open_, close) - float(rng.uniform(0, price * 0.01))
        history.append(Bar(
            date=today - dt.timedelta(days=points - i),
            open=open_, high=high, low=low, close=close,
            volume=float(rng.integers(500_000, 1_500_000)),
        ))
        price = close
    logger.info("Generated %d simulated bars for %s", points, ticker)
    return history


def load_history(ticker: str, timeframe: str = DEFAULT_TIMEFRAME) -> tuple[list[Bar], str, bool]:
    """
    Return ``(bars, used_ticker, is_simulated)`` for a ticker.

    A fresh cache entry is returned without touching the network.  Otherwise
    every candidate ticker is tried against every source, and simulated data
    is returned only if all of them fail.
    """
    if timeframe not in TIMEFRAMES:
        raise ValueError(f"Unknown timeframe: {timeframe}")

    symbol = normalize_symbol(ticker)
    key = (symbol, timeframe)
    now = time.time()
    if key in HISTORY_CACHE:
        ts, cached_bars, used_ticker = HISTORY_CACHE[key]
        if now - ts <= CACHE_TTL:
            return cached_bars, used_ticker, False
        del HISTORY_CACHE[key]

    for candidate in candidate_tickers(symbol):
        bars = _get_history(candidate, timeframe)
        if bars:
            HISTORY_CACHE[key] = (now, bars, candidate)
            return bars, candidate, False

    logger.warning("No real data for %s; falling back to simulated history", symbol)
    return generate_simulated_history(symbol, timeframe), symbol, True


__all__ = ["load_history", "generate_simulated_history", "HISTORY_CACHE", "_download_history"]
