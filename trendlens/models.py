# Centralised definitions for the data types, timeframes and indicator
# parameters used across the loader, the indicator engine and the UI.
#
# Indicator values that cannot be computed yet are stored as ``None``.  A
# ``None`` field means "not enough history", never zero.

import datetime as dt
from dataclasses import dataclass
from typing import Optional


class InvalidInput(ValueError):
    """Raised when a price series violates the input contract."""


@dataclass(frozen=True)
class Bar:
    """One period's open/high/low/close/volume observation."""

    date: dt.date
    open: float
    high: float
    low: float
    close: float
    volume: float


@dataclass(frozen=True)
class MacdValue:
    macd_line: float
    signal_line: float
    histogram: float


@dataclass(frozen=True)
class BollingerBands:
    upper: float
    middle: float
    lower: float


@dataclass(frozen=True)
class IndicatorSnapshot:
    sma20: Optional[float] = None
    sma50: Optional[float] = None
    rsi14: Optional[float] = None
    macd: Optional[MacdValue] = None
    bollinger: Optional[BollingerBands] = None


@dataclass(frozen=True)
class AnnotatedBar:
    bar: Bar
    indicators: IndicatorSnapshot


@dataclass(frozen=True)
class AnalysisResult:
    ticker: str
    current_price: float
    change_percent: float
    data: list[AnnotatedBar]
    latest_indicators: IndicatorSnapshot
    is_simulated: bool


@dataclass(frozen=True)
class AnalysisOutcome:
    """Either a result or an error message, never both."""

    result: Optional[AnalysisResult] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.result is not None


@dataclass(frozen=True)
class SearchResult:
    symbol: str
    shortname: str
    exchange: str
    type: str


@dataclass(frozen=True)
class TimeFrameSpec:
    range: str
    interval: str
    simulated_points: int


# Timeframes offered by the UI, mapped to the Yahoo range/interval pair and
# to the number of daily points generated when no real data is reachable.
TIMEFRAMES = {
    "1m": TimeFrameSpec(range="1mo", interval="1d", simulated_points=30),
    "6m": TimeFrameSpec(range="6mo", interval="1d", simulated_points=180),
    "1y": TimeFrameSpec(range="1y", interval="1d", simulated_points=365),
    "5y": TimeFrameSpec(range="5y", interval="1wk", simulated_points=365 * 5),
}
DEFAULT_TIMEFRAME = "6m"

# Fixed indicator parameters.
SMA_SHORT = 20
SMA_LONG = 50
RSI_WINDOW = 14
MACD_FAST = 12
MACD_SLOW = 26
MACD_SIGNAL = 9
BB_WINDOW = 20
BB_MULTIPLIER = 2

# RSI levels used for the oversold / overbought alert.
RSI_OVERSOLD = 30
RSI_OVERBOUGHT = 70

# Exchange suffixes tried when a bare ticker returns no data.
FALLBACK_SUFFIXES = [".MI", ".DE"]

__all__ = [
    "InvalidInput",
    "Bar",
    "MacdValue",
    "BollingerBands",
    "IndicatorSnapshot",
    "AnnotatedBar",
    "AnalysisResult",
    "AnalysisOutcome",
    "SearchResult",
    "TimeFrameSpec",
    "TIMEFRAMES",
    "DEFAULT_TIMEFRAME",
    "SMA_SHORT",
    "SMA_LONG",
    "RSI_WINDOW",
    "MACD_FAST",
    "MACD_SLOW",
    "MACD_SIGNAL",
    "BB_WINDOW",
    "BB_MULTIPLIER",
    "RSI_OVERSOLD",
    "RSI_OVERBOUGHT",
    "FALLBACK_SUFFIXES",
]
