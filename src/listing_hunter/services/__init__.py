"""Service layer for the listing hunter."""

from .extractor import extract_listings
from .fetcher import fetch_search_page
from .hunt import HuntOutcome, run_hunt
from .notifier import TelegramNotifier

__all__ = ["extract_listings", "fetch_search_page", "HuntOutcome", "run_hunt", "TelegramNotifier"]
