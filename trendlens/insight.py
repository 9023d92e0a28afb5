"""
AI trading insight.

Builds a prompt from the latest indicator snapshot and asks an OpenAI chat
model for a short strategy.  Only the final snapshot is used; the full
series never leaves the process.
"""

import time
from typing import Optional

from openai import OpenAI

from .models import IndicatorSnapshot
from .utils import logger, OPENAI_API_KEY, OPENAI_MODEL

INSIGHT_ERROR_MESSAGE = "Could not generate the AI analysis. Check the API configuration."

# Answers are in Italian unless the caller asks for another language.
DEFAULT_LANGUAGE = "Italian"

SYSTEM_PROMPT = (
    "You are an experienced technical trading analyst. "
    "Base your view ONLY on the indicators you are given and go straight to "
    "the technical point, without generic disclaimers."
)

_client: Optional[OpenAI] = None


def _get_client() -> OpenAI:
    global _client
    if _client is None:
        _client = OpenAI(api_key=OPENAI_API_KEY)
    return _client


def has_api_key() -> bool:
    return bool(OPENAI_API_KEY)


def format_indicator(value: Optional[float]) -> str:
    """Two decimals, or ``N/A`` for an indicator that is not available yet."""
    if value is None:
        return "N/A"
    return f"{value:.2f}"


def _safe_chat(
    system_prompt: str,
    user_prompt: str,
    model: str,
    max_tokens: int = 600,
    temperature: float = 0.4,
) -> str:
    """
    Call the chat completions API, retrying transient failures.

    Newer models (gpt-5.x / o-series) take ``max_completion_tokens`` instead
    of ``max_tokens``.
    """
    last_err = None
    if model.startswith("gpt-5") or model.startswith("o"):
        token_param = {"max_completion_tokens": max_tokens}
    else:
        token_param = {"max_tokens": max_tokens}

    for attempt in range(3):
        try:
            resp = _get_client().chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                **token_param,
            )
            return (resp.choices[0].message.content or "").strip()
        except Exception as exc:
            last_err = exc
            msg = str(exc).lower()
            if "rate" in msg or "timeout" in msg or "overloaded" in msg:
                time.sleep(2 ** attempt)
                continue
            break

    raise RuntimeError(f"OpenAI call failed: {last_err}")


def build_insight_prompt(ticker: str, price: float, indicators: IndicatorSnapshot, language: str = DEFAULT_LANGUAGE) -> str:
    macd = indicators.macd
    bands = indicators.bollinger
    return f"""
Analyse the following technical data for {ticker}.

MARKET DATA:
- Current price: ${price:.2f}
- RSI (14): {format_indicator(indicators.rsi14)} (above 70 = overbought, below 30 = oversold)
- MACD line: {format_indicator(macd.macd_line if macd else None)}
- MACD signal: {format_indicator(macd.signal_line if macd else None)} (bullish when line > signal)
- Bollinger upper: {format_indicator(bands.upper if bands else None)}
- Bollinger lower: {format_indicator(bands.lower if bands else None)}
- SMA 20: {format_indicator(indicators.sma20)}
- SMA 50: {format_indicator(indicators.sma50)}

TASK:
Using ONLY these indicators, give a clear operating strategy.

MANDATORY FORMAT:

STRATEGY: <exactly one of "BUY (Long)", "SELL (Short)" or "WAIT (Hold)">

ANALYSIS:
At most 3 sentences explaining the choice.

KEY LEVELS:
One likely support (SMA or lower Bollinger band) and the nearest resistance.

Answer in {language}.
"""


def generate_stock_insight(
    ticker: str,
    price: float,
    indicators: IndicatorSnapshot,
    model: Optional[str] = None,
    language: str = DEFAULT_LANGUAGE,
) -> str:
    """
    Return the model's strategy text for the latest snapshot.

    A missing API key raises RuntimeError.  A failed model call is logged and
    replaced with ``INSIGHT_ERROR_MESSAGE`` so the page can still render.
    """
    if not OPENAI_API_KEY:
        raise RuntimeError("OPENAI_API_KEY is missing.")

    prompt = build_insight_prompt(ticker, price, indicators, language=language)
    try:
        text = _safe_chat(SYSTEM_PROMPT, prompt, model=model or OPENAI_MODEL)
    except RuntimeError as exc:
        logger.error("AI insight failed for %s: %s", ticker, exc)
        return INSIGHT_ERROR_MESSAGE
    return text or INSIGHT_ERROR_MESSAGE


__all__ = [
    "generate_stock_insight",
    "build_insight_prompt",
    "format_indicator",
    "has_api_key",
    "INSIGHT_ERROR_MESSAGE",
    "DEFAULT_LANGUAGE",
]
