"""
JSON fetching with a proxy fallback.

Yahoo's public endpoints occasionally reject direct requests from hosted
environments.  ``fetch_json`` first calls the URL directly and, if that
fails for any reason, retries once through ``CHART_PROXY_URL``.
"""

from urllib.parse import quote

import requests

from .utils import logger, CHART_PROXY_URL

# Seconds before any single HTTP request is abandoned.
REQUEST_TIMEOUT = 8

# Yahoo answers 429 to the default python-requests agent.
HEADERS = {"User-Agent": "Mozilla/5.0 (compatible; TrendLens/1.0)"}


def _get_json(url: str):
    resp = requests.get(url, timeout=REQUEST_TIMEOUT, headers=HEADERS)
    if resp.status_code != 200:
        raise RuntimeError(f"HTTP {resp.status_code}: {resp.text[:120]}")
    return resp.json()


def fetch_json(url: str):
    """Return the decoded JSON body of ``url``, trying the proxy on failure."""
    try:
        return _get_json(url)
    except Exception as exc:
        logger.warning("Direct fetch failed for %s: %s", url, exc)

    proxied = CHART_PROXY_URL.format(url=quote(url, safe=""))
    logger.info("Retrying through proxy: %s", proxied)
    try:
        return _get_json(proxied)
    except Exception as exc:
        raise RuntimeError(f"All fetch paths failed for {url}: {exc}") from exc


__all__ = ["fetch_json", "REQUEST_TIMEOUT"]
