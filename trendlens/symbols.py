"""
Symbol normalisation and search.

User input is trimmed and upper-cased.  A bare ticker such as ``ENI`` that
returns no data is retried with European exchange suffixes, and the search
box understands the Directa convention where ``1GOOGL`` means the Borsa
Italiana listing ``GOOGL.MI``.
"""

import re
from urllib.parse import quote

from .fetch import fetch_json
from .models import FALLBACK_SUFFIXES, SearchResult
from .utils import logger

SEARCH_URL = (
    "https://query1.finance.yahoo.com/v1/finance/search"
    "?q={query}&quotesCount=20&newsCount=0&region=IT&lang=it-IT"
)

# Quote types worth analysing; options, futures and currencies are dropped.
SEARCHABLE_TYPES = {"EQUITY", "ETF", "MUTUALFUND", "INDEX"}

_DIRECTA_RE = re.compile(r"^1[A-Z0-9]+$")


def normalize_symbol(text: str) -> str:
    """
    Normalise user input into a ticker string.

      >>> normalize_symbol("  aapl ")
      'AAPL'

      >>> normalize_symbol("eni.mi")
      'ENI.MI'
    """
    if not text or not text.strip():
        raise ValueError("Please enter a valid ticker or company name.")
    return text.strip().upper()


def candidate_tickers(text: str) -> list[str]:
    """
    Tickers to try, in order, when loading history for ``text``.

    A ticker that already carries an exchange suffix is used as-is.
    """
    symbol = normalize_symbol(text)
    if "." in symbol:
        return [symbol]
    return [symbol] + [symbol + suffix for suffix in FALLBACK_SUFFIXES]


def directa_symbol(text: str):
    """Map a Directa-style code like ``1GOOGL`` to ``GOOGL.MI``."""
    clean = (text or "").strip().upper()
    if _DIRECTA_RE.match(clean):
        return clean[1:] + ".MI"
    return None


def search_symbols(query: str) -> list[SearchResult]:
    """
    Search Yahoo Finance for tickers matching ``query``.

    Search is best effort: network failures are logged and whatever was
    found so far is returned.
    """
    clean = (query or "").strip()
    if not clean:
        return []

    results: list[SearchResult] = []

    directa = directa_symbol(clean)
    if directa:
        stripped = directa[: -len(".MI")]
        results.append(SearchResult(
            symbol=directa,
            shortname=f"{stripped} (Directa/GEM)",
            exchange="Borsa Italiana",
            type="EQUITY",
        ))

    try:
        data = fetch_json(SEARCH_URL.format(query=quote(clean)))
        for item in (data or {}).get("quotes") or []:
            if item.get("quoteType") not in SEARCHABLE_TYPES or not item.get("isYahooFinance"):
                continue
            results.append(SearchResult(
                symbol=item["symbol"],
                shortname=item.get("shortname") or item.get("longname") or item["symbol"],
                exchange=item.get("exchange", ""),
                type=item["quoteType"],
            ))
    except Exception as exc:
        logger.warning("Symbol search failed for %r: %s", clean, exc)

    seen: set[str] = set()
    unique: list[SearchResult] = []
    for res in results:
        if res.symbol in seen:
            continue
        seen.add(res.symbol)
        unique.append(res)
    return unique


__all__ = ["normalize_symbol", "candidate_tickers", "directa_symbol", "search_symbols"]
