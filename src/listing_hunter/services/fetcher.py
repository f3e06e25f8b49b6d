"""Fetch the search results page, falling back to text proxies when blocked."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

import requests

from listing_hunter.config import HuntConfig

logger = logging.getLogger(__name__)

DIRECT = "direct"
FALLBACK = "fallback"


@dataclass
class FetchResult:
    content: str
    source: str
    status: Optional[int] = None

    @property
    def ok(self) -> bool:
        return bool(self.content)


def is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


def browser_headers(config: HuntConfig) -> dict[str, str]:
    return {
        "User-Agent": config.user_agent,
        "Accept": "text/html,application/xhtml+xml",
        "Accept-Language": config.accept_language,
        "Referer": f"{config.site_origin}/",
        "Cache-Control": "no-cache",
    }


def fallback_urls(config: HuntConfig) -> list[str]:
    bare = re.sub(r"^https?://", "", config.search_url)
    return [f"{base}{bare}" for base in config.fallback_bases]


def _fetch_fallback(url: str, config: HuntConfig, session: requests.Session) -> str:
    headers = {
        "User-Agent": config.user_agent,
        "Accept": "text/html,application/xhtml+xml",
    }
    try:
        resp = session.get(url, headers=headers, timeout=config.request_timeout)
    except requests.RequestException as exc:
        logger.warning("Fallback %s failed: %s", url, exc)
        return ""
    if not is_success(resp.status_code):
        logger.warning("Fallback %s returned %s", url, resp.status_code)
        return ""
    return resp.text or ""


def fetch_search_page(config: HuntConfig, session: requests.Session | None = None) -> FetchResult:
    """Fetch ``config.search_url``.

    Only a 403 triggers the fallback proxies; any other non-2xx status is
    returned as-is. When every fallback fails the original 403 is reported.
    """
    if session is None:
        with requests.Session() as http:
            return _fetch(config, http)
    return _fetch(config, session)


def _fetch(config: HuntConfig, http: requests.Session) -> FetchResult:
    try:
        resp = http.get(config.search_url, headers=browser_headers(config), timeout=config.request_timeout)
    except requests.RequestException as exc:
        logger.warning("Direct fetch of %s failed: %s", config.search_url, exc)
        return FetchResult(content="", source=DIRECT, status=502)

    if is_success(resp.status_code):
        return FetchResult(content=resp.text or "", source=DIRECT, status=resp.status_code)

    if resp.status_code != 403:
        logger.warning("Direct fetch returned %s", resp.status_code)
        return FetchResult(content="", source=DIRECT, status=resp.status_code)

    logger.info("Direct fetch blocked (403); trying %d fallback(s)", len(config.fallback_bases))
    for url in fallback_urls(config):
        content = _fetch_fallback(url, config, http)
        if content.strip():
            logger.info("Fetched via fallback %s", url)
            return FetchResult(content=content, source=FALLBACK, status=200)
    return FetchResult(content="", source=FALLBACK, status=resp.status_code)
