"""
Result assembly.

Pairs every bar with its indicator snapshot, works out the latest price and
percent change, and packages everything into an AnalysisResult.  Failures
are returned as values (``AnalysisOutcome.error``) so that the caller can
decide between falling back to simulated data and showing an error.
"""

import math
from typing import Sequence

import pandas as pd

from .models import (
    DEFAULT_TIMEFRAME,
    AnalysisOutcome,
    AnalysisResult,
    AnnotatedBar,
    Bar,
    InvalidInput,
)
from .prices import generate_simulated_history, load_history
from .technicals import compute_indicators
from .utils import logger

_PRICE_FIELDS = ("open", "high", "low", "close", "volume")


def validate_bars(bars: Sequence[Bar]) -> None:
    """Raise InvalidInput unless ``bars`` satisfies the input contract."""
    if not bars:
        raise InvalidInput("Price history is empty.")
    prev_date = None
    for bar in bars:
        for field in _PRICE_FIELDS:
            value = getattr(bar, field)
            if not math.isfinite(value):
                raise InvalidInput(f"Non-finite {field} on {bar.date}: {value}")
        if bar.volume < 0:
            raise InvalidInput(f"Negative volume on {bar.date}: {bar.volume}")
        if prev_date is not None and bar.date <= prev_date:
            raise InvalidInput(f"Bars out of order or duplicated at {bar.date}")
        prev_date = bar.date


def change_percent(closes: Sequence[float]) -> float:
    """
    Percent change of the last close against the one before it.

    A single close is compared with itself (0%).  A previous close of zero
    also yields 0% rather than an infinite change.
    """
    if not closes:
        raise InvalidInput("Cannot compute a change for an empty price series.")
    last = closes[-1]
    prev = closes[-2] if len(closes) >= 2 else last
    if prev == 0:
        logger.warning("Previous close is zero; reporting no change")
        return 0.0
    return ((last - prev) / prev) * 100


def assemble_result(ticker: str, bars: Sequence[Bar], is_simulated: bool = False) -> AnalysisResult:
    validate_bars(bars)
    closes = [bar.close for bar in bars]
    snapshots = compute_indicators(closes)
    return AnalysisResult(
        ticker=ticker,
        current_price=closes[-1],
        change_percent=change_percent(closes),
        data=[AnnotatedBar(bar=b, indicators=s) for b, s in zip(bars, snapshots)],
        latest_indicators=snapshots[-1],
        is_simulated=is_simulated,
    )


def analyze_bars(ticker: str, bars: Sequence[Bar], is_simulated: bool = False) -> AnalysisOutcome:
    """Value-level wrapper around ``assemble_result``."""
    try:
        return AnalysisOutcome(result=assemble_result(ticker, bars, is_simulated))
    except InvalidInput as exc:
        logger.warning("Cannot analyse %s: %s", ticker, exc)
        return AnalysisOutcome(error=str(exc))


def generate_market_data(ticker: str, timeframe: str = DEFAULT_TIMEFRAME) -> AnalysisOutcome:
    """
    Load history for ``ticker`` and annotate it with indicators.

    Real data that fails validation is replaced with simulated data.  A blank
    ticker or an unknown timeframe is returned as an error outcome.
    """
    try:
        bars, used_ticker, is_simulated = load_history(ticker, timeframe)
    except ValueError as exc:
        logger.warning("Cannot load %r [%s]: %s", ticker, timeframe, exc)
        return AnalysisOutcome(error=str(exc))
    outcome = analyze_bars(used_ticker, bars, is_simulated)
    if outcome.ok or is_simulated:
        return outcome

    logger.warning("Real data for %s is unusable (%s); using simulated history", used_ticker, outcome.error)
    simulated = generate_simulated_history(ticker, timeframe)
    return analyze_bars(ticker.strip().upper(), simulated, is_simulated=True)


def to_frame(result: AnalysisResult) -> pd.DataFrame:
    """
    Flatten an AnalysisResult into a date-indexed DataFrame for charting.

    Absent indicators become NaN here, which is what the chart widgets
    expect; the AnalysisResult itself keeps them as None.
    """
    rows = []
    for item in result.data:
        bar, ind = item.bar, item.indicators
        rows.append({
            "date": pd.Timestamp(bar.date),
            "open": bar.open,
            "high": bar.high,
            "low": bar.low,
            "close": bar.close,
            "volume": bar.volume,
            "sma20": ind.sma20,
            "sma50": ind.sma50,
            "rsi14": ind.rsi14,
            "macd_line": ind.macd.macd_line if ind.macd else None,
            "macd_signal": ind.macd.signal_line if ind.macd else None,
            "macd_histogram": ind.macd.histogram if ind.macd else None,
            "bb_upper": ind.bollinger.upper if ind.bollinger else None,
            "bb_middle": ind.bollinger.middle if ind.bollinger else None,
            "bb_lower": ind.bollinger.lower if ind.bollinger else None,
        })
    return pd.DataFrame(rows).set_index("date").astype(float)


__all__ = [
    "validate_bars",
    "change_percent",
    "assemble_result",
    "analyze_bars",
    "generate_market_data",
    "to_frame",
]
