import pytest

from trendlens.models import SearchResult
from trendlens.symbols import candidate_tickers, directa_symbol, normalize_symbol, search_symbols


def test_normalize_trims_and_uppercases():
    assert normalize_symbol("  aapl ") == "AAPL"


def test_normalize_keeps_exchange_suffix():
    assert normalize_symbol("eni.mi") == "ENI.MI"


def test_normalize_rejects_blank():
    with pytest.raises(ValueError):
        normalize_symbol("   ")


def test_candidates_for_bare_ticker():
    assert candidate_tickers("eni") == ["ENI", "ENI.MI", "ENI.DE"]


def test_candidates_for_qualified_ticker():
    assert candidate_tickers("SAP.DE") == ["SAP.DE"]


def test_directa_symbol():
    assert directa_symbol("1googl") == "GOOGL.MI"
    assert directa_symbol("GOOGL") is None


def test_search_filters_and_deduplicates(monkeypatch):
    payload = {"quotes": [
        {"symbol": "GOOGL.MI", "shortname": "Alphabet", "exchange": "MIL",
         "quoteType": "EQUITY", "isYahooFinance": True},
        {"symbol": "GOOGL", "longname": "Alphabet Inc.", "exchange": "NMS",
         "quoteType": "EQUITY", "isYahooFinance": True},
        {"symbol": "GOOGL250117C00100000", "exchange": "OPR",
         "quoteType": "OPTION", "isYahooFinance": True},
        {"symbol": "NEWS", "quoteType": "EQUITY", "isYahooFinance": False},
    ]}
    monkeypatch.setattr("trendlens.symbols.fetch_json", lambda url: payload)
    results = search_symbols("1GOOGL")
    assert [r.symbol for r in results] == ["GOOGL.MI", "GOOGL"]
    # The Directa shortcut comes first and wins over the API duplicate.
    assert results[0].shortname == "GOOGL (Directa/GEM)"
    assert results[1] == SearchResult(
        symbol="GOOGL", shortname="Alphabet Inc.", exchange="NMS", type="EQUITY"
    )


def test_search_survives_network_failure(monkeypatch):
    def boom(url):
        raise RuntimeError("All fetch paths failed")

    monkeypatch.setattr("trendlens.symbols.fetch_json", boom)
    assert search_symbols("apple") == []
    assert [r.symbol for r in search_symbols("1ENI")] == ["ENI.MI"]


def test_search_blank_query():
    assert search_symbols("  ") == []
