"""
Format and send new-listing notifications via the Telegram Bot API.
"""

from __future__ import annotations

import logging

import requests

from listing_hunter.models import ListingRecord
from listing_hunter.services.fetcher import is_success

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"


def build_listing_message(listing: ListingRecord) -> str:
    lines = [
        "New listing detected!",
        f"Price: {listing.price}" if listing.price else "Price: n/a",
        f"Location: {listing.location}" if listing.location else "Location: n/a",
        listing.link,
    ]
    return "\n".join(lines)


class TelegramNotifier:
    """Posts one ``sendMessage`` per listing.

    Delivery is best-effort: ``send`` logs and returns ``False`` on any
    network or API error instead of raising.
    """

    def __init__(
        self,
        token: str,
        chat_id: str,
        timeout: float = 30.0,
        session: requests.Session | None = None,
        api_base: str = TELEGRAM_API_BASE,
    ) -> None:
        self.token = token
        self.chat_id = chat_id
        self.timeout = timeout
        self.session = session
        self.api_base = api_base.rstrip("/")

    @property
    def url(self) -> str:
        return f"{self.api_base}/bot{self.token}/sendMessage"

    def send(self, listing: ListingRecord) -> bool:
        payload = {
            "chat_id": self.chat_id,
            "text": build_listing_message(listing),
            "disable_web_page_preview": False,
        }
        post = self.session.post if self.session is not None else requests.post
        try:
            resp = post(self.url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("Telegram send for %s failed: %s", listing.external_id, exc)
            return False
        if not is_success(resp.status_code):
            logger.warning(
                "Telegram send for %s returned %s: %s",
                listing.external_id,
                resp.status_code,
                resp.text[:200],
            )
            return False
        try:
            body = resp.json()
        except ValueError:
            body = {}
        if isinstance(body, dict) and body.get("ok") is False:
            logger.warning(
                "Telegram rejected message for %s: %s",
                listing.external_id,
                body.get("description", body),
            )
            return False
        return True


class NullNotifier:
    """Stands in when Telegram credentials are not configured."""

    def send(self, listing: ListingRecord) -> bool:
        logger.debug("Notifications disabled; not announcing %s", listing.external_id)
        return False
