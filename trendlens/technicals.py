"""
Technical indicator computations.

The series helpers work on pandas Series: rolling windows for SMA and
Bollinger Bands, ``ewm(adjust=False)`` for EMA and Wilder smoothing.  Warm-up
positions are NaN inside these Series and become ``None`` when an
IndicatorSnapshot is built, so callers can tell "not yet available" apart
from a computed zero.

``sma``, ``std_dev``, ``bollinger``, ``rsi`` and ``snapshot_at`` evaluate a
single prefix from scratch and serve as the reference for
``compute_indicators``.
"""

from typing import Optional, Sequence

import numpy as np
import pandas as pd

from .models import (
    BB_MULTIPLIER,
    BB_WINDOW,
    MACD_FAST,
    MACD_SIGNAL,
    MACD_SLOW,
    RSI_OVERBOUGHT,
    RSI_OVERSOLD,
    RSI_WINDOW,
    SMA_LONG,
    SMA_SHORT,
    BollingerBands,
    IndicatorSnapshot,
    InvalidInput,
    MacdValue,
)


def _as_series(values) -> pd.Series:
    if isinstance(values, pd.Series):
        return values.astype(float)
    return pd.Series(list(values), dtype=float)


def _opt(value) -> Optional[float]:
    """NaN -> None, anything else -> float."""
    return None if pd.isna(value) else float(value)


# ---------------------------------------------------------------------------
# Single-prefix helpers
# ---------------------------------------------------------------------------

def sma(values: Sequence[float], window: int) -> Optional[float]:
    """Arithmetic mean of the last ``window`` values, or None if too short."""
    if len(values) < window:
        return None
    return float(np.mean(np.asarray(values, dtype=float)[-window:]))


def std_dev(values: Sequence[float], window: int) -> Optional[float]:
    """Population standard deviation of the last ``window`` values."""
    if len(values) < window:
        return None
    return float(np.std(np.asarray(values, dtype=float)[-window:]))


def bollinger(values: Sequence[float]) -> Optional[BollingerBands]:
    """Bollinger(20, 2) for the last point, or None as a whole."""
    middle = sma(values, BB_WINDOW)
    sigma = std_dev(values, BB_WINDOW)
    if middle is None or sigma is None:
        return None
    return BollingerBands(
        upper=middle + sigma * BB_MULTIPLIER,
        middle=middle,
        lower=middle - sigma * BB_MULTIPLIER,
    )


def rsi(values: Sequence[float], window: int = RSI_WINDOW) -> Optional[float]:
    """
    Relative Strength Index with Wilder smoothing, computed from the start
    of ``values``.

    The first ``window`` deltas seed the average gain and loss.  Every later
    delta updates them with ``avg = (avg * (window - 1) + x) / window``.
    Returns None when fewer than ``window + 1`` points are available and 100
    when the average loss is exactly zero.
    """
    if len(values) <= window:
        return None

    gains = 0.0
    losses = 0.0
    for i in range(1, window + 1):
        change = values[i] - values[i - 1]
        if change > 0:
            gains += change
        else:
            losses += abs(change)

    avg_gain = gains / window
    avg_loss = losses / window

    for i in range(window + 1, len(values)):
        change = values[i] - values[i - 1]
        gain = change if change > 0 else 0.0
        loss = abs(change) if change < 0 else 0.0
        avg_gain = (avg_gain * (window - 1) + gain) / window
        avg_loss = (avg_loss * (window - 1) + loss) / window

    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100 - (100 / (1 + rs))


# ---------------------------------------------------------------------------
# Series helpers
# ---------------------------------------------------------------------------

def _seeded_ewm(series: pd.Series, seed_pos: int, seed: float, alpha: float) -> pd.Series:
    """
    ``ewm(adjust=False)`` started at ``seed_pos`` with ``seed`` as its first
    value; earlier positions are NaN.
    """
    tail = series.iloc[seed_pos:].copy()
    tail.iloc[0] = seed
    return tail.ewm(alpha=alpha, adjust=False).mean().reindex(series.index)


def ema_series(values, window: int) -> pd.Series:
    """
    EMA aligned with ``values``, seeded with the mean of the first
    ``window`` values at position ``window - 1``.
    """
    series = _as_series(values)
    if len(series) < window:
        return pd.Series(np.nan, index=series.index)
    seed = series.iloc[:window].mean()
    return _seeded_ewm(series, window - 1, seed, alpha=2 / (window + 1))


def ema(values, window: int) -> list[Optional[float]]:
    return [_opt(v) for v in ema_series(values, window)]


def rsi_series(values, window: int = RSI_WINDOW) -> pd.Series:
    """Wilder RSI at every position; NaN until ``window`` deltas exist."""
    prices = _as_series(values)
    if len(prices) <= window:
        return pd.Series(np.nan, index=prices.index)

    delta = prices.diff()
    gain = delta.clip(lower=0)
    loss = -delta.clip(upper=0)
    alpha = 1 / window
    avg_gain = _seeded_ewm(gain, window, gain.iloc[1:window + 1].sum() / window, alpha)
    avg_loss = _seeded_ewm(loss, window, loss.iloc[1:window + 1].sum() / window, alpha)

    rs = avg_gain / avg_loss
    out = 100 - (100 / (1 + rs))
    # A zero average loss is the maximal bullish case, not a division fault.
    return out.where(avg_loss != 0, 100.0).where(avg_gain.notna())


def compact(series) -> pd.Series:
    """Drop the undefined points, keeping original positions as the index."""
    return _as_series(series).dropna()


def expand(dense: pd.Series, index) -> pd.Series:
    """Map a compacted series back onto ``index``; missing positions are NaN."""
    return dense.reindex(index)


def macd_series(closes) -> list[Optional[MacdValue]]:
    """
    MACD(12, 26, 9) at every position of ``closes``.

    The signal line is an EMA over the defined MACD values only, so its
    9-point warm-up counts compacted points rather than series positions.
    A MacdValue is emitted only where line and signal both exist.
    """
    prices = _as_series(closes)
    line = ema_series(prices, MACD_FAST) - ema_series(prices, MACD_SLOW)
    signal = expand(ema_series(compact(line), MACD_SIGNAL), line.index)

    out: list[Optional[MacdValue]] = []
    for m, s in zip(line, signal):
        if pd.isna(m) or pd.isna(s):
            out.append(None)
        else:
            m, s = float(m), float(s)
            out.append(MacdValue(macd_line=m, signal_line=s, histogram=m - s))
    return out


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------

def compute_indicators(closes) -> list[IndicatorSnapshot]:
    """
    Compute one IndicatorSnapshot per closing price.

    Snapshot ``i`` depends only on ``closes[:i + 1]``.  Nothing is kept
    between calls; each call starts again from the first close.
    """
    if len(closes) == 0:
        raise InvalidInput("Cannot compute indicators for an empty price series.")

    prices = _as_series(closes).reset_index(drop=True)
    sma20 = prices.rolling(SMA_SHORT, min_periods=SMA_SHORT).mean()
    sma50 = prices.rolling(SMA_LONG, min_periods=SMA_LONG).mean()
    mid = prices.rolling(BB_WINDOW, min_periods=BB_WINDOW).mean()
    sigma = prices.rolling(BB_WINDOW, min_periods=BB_WINDOW).std(ddof=0)
    rsi14 = rsi_series(prices, RSI_WINDOW)
    macd_values = macd_series(prices)

    snapshots: list[IndicatorSnapshot] = []
    for i, macd in enumerate(macd_values):
        m, s = _opt(mid.iloc[i]), _opt(sigma.iloc[i])
        bands = None
        if m is not None and s is not None:
            bands = BollingerBands(
                upper=m + s * BB_MULTIPLIER, middle=m, lower=m - s * BB_MULTIPLIER
            )
        snapshots.append(IndicatorSnapshot(
            sma20=_opt(sma20.iloc[i]),
            sma50=_opt(sma50.iloc[i]),
            rsi14=_opt(rsi14.iloc[i]),
            macd=macd,
            bollinger=bands,
        ))
    return snapshots


def snapshot_at(closes: Sequence[float]) -> IndicatorSnapshot:
    """Indicators for the last point of ``closes``, computed from scratch."""
    if len(closes) == 0:
        raise InvalidInput("Cannot compute indicators for an empty price series.")
    prices = [float(c) for c in closes]
    return IndicatorSnapshot(
        sma20=sma(prices, SMA_SHORT),
        sma50=sma(prices, SMA_LONG),
        rsi14=rsi(prices, RSI_WINDOW),
        macd=macd_series(prices)[-1],
        bollinger=bollinger(prices),
    )


def latest_indicators(closes) -> IndicatorSnapshot:
    return compute_indicators(closes)[-1]


def rsi_alert(rsi14: Optional[float]) -> Optional[str]:
    """Return "oversold", "overbought" or None for an RSI reading."""
    if rsi14 is None:
        return None
    if rsi14 < RSI_OVERSOLD:
        return "oversold"
    if rsi14 > RSI_OVERBOUGHT:
        return "overbought"
    return None


__all__ = [
    "sma",
    "std_dev",
    "bollinger",
    "rsi",
    "rsi_series",
    "ema",
    "ema_series",
    "compact",
    "expand",
    "macd_series",
    "compute_indicators",
    "snapshot_at",
    "latest_indicators",
    "rsi_alert",
]
