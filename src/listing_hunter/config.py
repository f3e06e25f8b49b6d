from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple
from urllib.parse import urlparse


DEFAULT_SEARCH_URL = "https://ingatlan.com/szukites/elado+lakas+budapest+maganszemely"
DEFAULT_FALLBACK_BASES: Tuple[str, ...] = (
    "https://r.jina.ai/http://",
    "https://r.jina.ai/https://",
)
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
DEFAULT_ACCEPT_LANGUAGE = "hu-HU,hu;q=0.9,en-US;q=0.8,en;q=0.7"


class ConfigError(RuntimeError):
    """Raised when a required setting is missing."""


def _split_list(raw: str) -> Tuple[str, ...]:
    return tuple(p for p in re.split(r"[\s,]+", raw.strip()) if p)


@dataclass
class HuntConfig:
    """Settings for one hunt run.

    Secrets have no defaults: leave ``telegram_bot_token``/``telegram_chat_id``
    unset to run without notifications.
    """

    search_url: str = DEFAULT_SEARCH_URL
    fallback_bases: Tuple[str, ...] = field(default_factory=lambda: DEFAULT_FALLBACK_BASES)
    user_agent: str = DEFAULT_USER_AGENT
    accept_language: str = DEFAULT_ACCEPT_LANGUAGE
    request_timeout: float = 30.0
    telegram_bot_token: Optional[str] = None
    telegram_chat_id: Optional[str] = None
    db_url: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "HuntConfig":
        env = os.environ if environ is None else environ
        fallback_raw = env.get("HUNT_FALLBACK_BASES")
        timeout_raw = env.get("HUNT_REQUEST_TIMEOUT")
        try:
            timeout = float(timeout_raw) if timeout_raw else 30.0
        except ValueError:
            raise ConfigError(f"HUNT_REQUEST_TIMEOUT must be a number, got {timeout_raw!r}")
        return cls(
            search_url=env.get("HUNT_SEARCH_URL") or DEFAULT_SEARCH_URL,
            fallback_bases=_split_list(fallback_raw) if fallback_raw is not None else DEFAULT_FALLBACK_BASES,
            user_agent=env.get("HTTP_USER_AGENT") or DEFAULT_USER_AGENT,
            accept_language=env.get("HUNT_ACCEPT_LANGUAGE") or DEFAULT_ACCEPT_LANGUAGE,
            request_timeout=timeout,
            telegram_bot_token=env.get("TELEGRAM_BOT_TOKEN") or None,
            telegram_chat_id=env.get("TELEGRAM_CHAT_ID") or None,
            db_url=env.get("DB_URL") or None,
        )

    @property
    def site_origin(self) -> str:
        """Scheme and host of the search URL, e.g. ``https://ingatlan.com``."""
        u = urlparse(self.search_url)
        return f"{u.scheme or 'https'}://{u.netloc}"

    @property
    def site_host(self) -> str:
        host = urlparse(self.search_url).netloc.lower()
        return host[4:] if host.startswith("www.") else host

    @property
    def notifications_enabled(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_chat_id)

    def require_db_url(self) -> str:
        if not self.db_url:
            raise ConfigError("DB_URL is not set")
        return self.db_url
