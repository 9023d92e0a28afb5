"""
Streamlit front-end for TrendLens – Technical Analysis Dashboard

Run with ``streamlit run trendlens_app.py``.  OPENAI_API_KEY is read from
Streamlit secrets (or the environment) and is only needed for the AI panel.
"""

import streamlit as st

from trendlens.analysis import generate_market_data, to_frame
from trendlens.insight import (
    DEFAULT_LANGUAGE,
    INSIGHT_ERROR_MESSAGE,
    generate_stock_insight,
    has_api_key,
)
from trendlens.models import TIMEFRAMES, DEFAULT_TIMEFRAME
from trendlens.symbols import search_symbols
from trendlens.technicals import rsi_alert

st.set_page_config(
    page_title="TrendLens – Technical Analysis",
    layout="wide",
)

TIMEFRAME_LABELS = {"1m": "1 month", "6m": "6 months", "1y": "1 year", "5y": "5 years"}


@st.cache_data(ttl=600, show_spinner=False)
def _search(query: str):
    return search_symbols(query)


def _fmt(value) -> str:
    return "--" if value is None else f"{value:.2f}"


def _analyze(ticker: str, timeframe: str) -> None:
    st.session_state["insight"] = None
    with st.spinner(f"Loading {ticker}..."):
        outcome = generate_market_data(ticker, timeframe)
    if outcome.ok:
        st.session_state["result"] = outcome.result
        st.session_state["error"] = None
    else:
        st.session_state["error"] = outcome.error


# Load a default symbol on first render.
if "result" not in st.session_state:
    st.session_state["result"] = None
    st.session_state["insight"] = None
    st.session_state["error"] = None
    _analyze("AAPL", DEFAULT_TIMEFRAME)

# --------------------------------------------------------------------
# Sidebar: search and timeframe
# --------------------------------------------------------------------
with st.sidebar:
    st.title("TrendLens")
    query = st.text_input(
        "Search a ticker or company",
        help="Examples: `AAPL`, `ENI.MI`, `Tesla`. Directa codes like `1GOOGL` map to Borsa Italiana.",
    )
    ticker = query.strip().upper()
    if query.strip():
        matches = _search(query.strip())
        if matches:
            labels = {f"{m.symbol} · {m.shortname} ({m.exchange})": m.symbol for m in matches}
            ticker = labels[st.selectbox("Matches", options=list(labels))]

    timeframe = st.radio(
        "Timeframe",
        options=list(TIMEFRAMES),
        index=list(TIMEFRAMES).index(DEFAULT_TIMEFRAME),
        format_func=lambda key: TIMEFRAME_LABELS[key],
        horizontal=True,
    )

    if st.button("Analyze", type="primary", disabled=not ticker):
        _analyze(ticker, timeframe)

    result = st.session_state["result"]
    if result is not None and result.is_simulated:
        st.warning("No market data was reachable; showing a simulated series.")

if st.session_state["error"]:
    st.error(f"Something went wrong: {st.session_state['error']}")

result = st.session_state["result"]
if result is None:
    st.info("Pick a ticker to analyse.")
    st.stop()

# --------------------------------------------------------------------
# Header
# --------------------------------------------------------------------
col_name, col_price = st.columns([3, 1])
with col_name:
    st.header(result.ticker)
    st.caption("Market analysis" + (" (simulation)" if result.is_simulated else ""))
with col_price:
    st.metric("Last price", f"${result.current_price:.2f}", f"{result.change_percent:+.2f}%")

latest = result.latest_indicators

alert = rsi_alert(latest.rsi14)
if alert == "oversold":
    st.success(
        f"Oversold signal: RSI is {latest.rsi14:.2f}. "
        "The asset may be undervalued and a reversal could follow."
    )
elif alert == "overbought":
    st.error(
        f"Overbought signal: RSI is {latest.rsi14:.2f}. "
        "The asset may be overvalued and a pullback could be near."
    )

# --------------------------------------------------------------------
# Charts
# --------------------------------------------------------------------
frame = to_frame(result)

st.subheader("Price")
st.line_chart(frame[["close", "sma20", "sma50", "bb_upper", "bb_lower"]])
st.bar_chart(frame[["volume"]], height=160)

col_rsi, col_macd = st.columns(2)
with col_rsi:
    st.subheader("RSI (14)")
    st.line_chart(frame[["rsi14"]], height=220)
with col_macd:
    st.subheader("MACD (12, 26, 9)")
    st.line_chart(frame[["macd_line", "macd_signal", "macd_histogram"]], height=220)

# --------------------------------------------------------------------
# Indicator summary
# --------------------------------------------------------------------
st.subheader("Indicator summary")
cards = st.columns(4)
cards[0].metric("RSI (14)", _fmt(latest.rsi14))
cards[1].metric(
    "MACD line / signal",
    f"{_fmt(latest.macd.macd_line if latest.macd else None)} / "
    f"{_fmt(latest.macd.signal_line if latest.macd else None)}",
)
cards[2].metric("SMA 20 / 50", f"{_fmt(latest.sma20)} / {_fmt(latest.sma50)}")
cards[3].metric(
    "Bollinger upper / lower",
    f"{_fmt(latest.bollinger.upper if latest.bollinger else None)} / "
    f"{_fmt(latest.bollinger.lower if latest.bollinger else None)}",
)

# --------------------------------------------------------------------
# AI insight
# --------------------------------------------------------------------
st.subheader("AI analyst")
if not has_api_key():
    st.warning("Set OPENAI_API_KEY in the Streamlit secrets to enable the AI analysis.")
else:
    language = st.radio(
        "Language for the analysis",
        options=[DEFAULT_LANGUAGE, "English"],
        index=0,
        horizontal=True,
    )
    label = "Retry analysis" if st.session_state["insight"] else "Generate analysis"
    if st.button(label):
        try:
            with st.spinner("Reading the market patterns..."):
                st.session_state["insight"] = generate_stock_insight(
                    result.ticker, result.current_price, latest, language=language
                )
        except Exception as exc:
            st.error(f"Something went wrong: {exc}")

    insight = st.session_state["insight"]
    if insight == INSIGHT_ERROR_MESSAGE:
        st.error(insight)
    elif insight:
        st.markdown(insight)
    else:
        st.caption("Unlock a Buy/Sell/Hold report based on RSI, MACD and volatility.")

st.markdown(
    "<br><small>This tool is for educational purposes only and is not investment advice.</small>",
    unsafe_allow_html=True,
)
