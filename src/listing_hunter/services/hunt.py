"""One hunt run: fetch, extract, diff against the store, notify."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

import requests

from listing_hunter.config import HuntConfig
from listing_hunter.models import ListingRecord
from listing_hunter.services.extractor import SiteProfile, extract_listings
from listing_hunter.services.fetcher import FetchResult, fetch_search_page
from listing_hunter.services.notifier import NullNotifier, TelegramNotifier

logger = logging.getLogger(__name__)


class ListingStore(Protocol):
    def exists(self, external_id: str) -> bool: ...

    def insert(self, listing: ListingRecord) -> bool: ...


class Notifier(Protocol):
    def send(self, listing: ListingRecord) -> bool: ...


@dataclass
class HuntOutcome:
    """Summary of a run plus the HTTP status to report it with."""

    ok: bool
    status_code: int
    scraped: int = 0
    inserted: int = 0
    source: Optional[str] = None
    message: Optional[str] = None
    new_listings: List[ListingRecord] = field(default_factory=list)

    def body(self) -> Dict[str, Any]:
        if self.ok:
            return {
                "ok": True,
                "scraped": self.scraped,
                "inserted": self.inserted,
                "source": self.source,
            }
        return {"ok": False, "status": self.status_code, "message": self.message}

    @classmethod
    def fetch_failed(cls, result: FetchResult, config: HuntConfig) -> "HuntOutcome":
        status = result.status if result.status and result.status >= 400 else 500
        host = config.site_host
        if status == 403:
            message = f"Failed to fetch {host} listings (403 blocked); all fallbacks failed"
        else:
            message = f"Failed to fetch {host} listings (status {status})"
        return cls(ok=False, status_code=status, source=result.source, message=message)


def make_notifier(config: HuntConfig) -> Notifier:
    if config.notifications_enabled:
        return TelegramNotifier(
            config.telegram_bot_token or "",
            config.telegram_chat_id or "",
            timeout=config.request_timeout,
        )
    logger.warning("TELEGRAM_BOT_TOKEN/TELEGRAM_CHAT_ID not set; notifications disabled")
    return NullNotifier()


def store_new_listings(
    listings: List[ListingRecord],
    store: ListingStore,
    notifier: Notifier,
) -> List[ListingRecord]:
    """Insert unseen listings in order and announce each one.

    Returns the listings that were actually inserted. A failed notification
    does not undo the insert or stop the loop.
    """
    inserted: List[ListingRecord] = []
    failed = 0
    for listing in listings:
        if store.exists(listing.external_id):
            continue
        if not store.insert(listing):
            continue
        inserted.append(listing)
        logger.info("New listing %s %s", listing.external_id, listing.link)
        if not notifier.send(listing):
            failed += 1
    if failed and not isinstance(notifier, NullNotifier):
        logger.warning("%d of %d notifications were not delivered", failed, len(inserted))
    return inserted


def run_hunt(
    config: HuntConfig,
    store: ListingStore,
    notifier: Notifier | None = None,
    session: requests.Session | None = None,
) -> HuntOutcome:
    fetched = fetch_search_page(config, session=session)
    if not fetched.ok:
        outcome = HuntOutcome.fetch_failed(fetched, config)
        logger.warning("Hunt aborted: %s", outcome.message)
        return outcome

    listings = extract_listings(fetched.content, SiteProfile.from_url(config.search_url))
    new = store_new_listings(listings, store, notifier or make_notifier(config))
    logger.info(
        "Hunt finished via %s: scraped=%d inserted=%d",
        fetched.source,
        len(listings),
        len(new),
    )
    return HuntOutcome(
        ok=True,
        status_code=200,
        scraped=len(listings),
        inserted=len(new),
        source=fetched.source,
        new_listings=new,
    )
