import logging
import os

import streamlit as st

# A single logger for the whole backend.  Streamlit attaches its own handlers
# so output ends up in the Streamlit console.
logger = logging.getLogger("trendlens")
if not logger.handlers:
    logger.setLevel(logging.INFO)


def _read_setting(name: str, default: str = "") -> str:
    """Read a setting from Streamlit secrets, then the environment."""
    try:
        return str(st.secrets[name]).strip()
    except Exception:
        return os.getenv(name, default).strip()


# Settings are read once at import time.  A missing OpenAI key only disables
# the AI insight panel; market data never needs a key.
OPENAI_API_KEY = _read_setting("OPENAI_API_KEY")
OPENAI_MODEL = _read_setting("OPENAI_MODEL", "gpt-4.1-mini")

# Proxy used when the Yahoo endpoints refuse a direct request.  ``{url}`` is
# replaced with the percent-encoded target URL.
CHART_PROXY_URL = _read_setting("CHART_PROXY_URL", "https://api.allorigins.win/raw?url={url}")

logger.info("OpenAI key present: %s (len=%d)", bool(OPENAI_API_KEY), len(OPENAI_API_KEY))

__all__ = ["logger", "OPENAI_API_KEY", "OPENAI_MODEL", "CHART_PROXY_URL"]
