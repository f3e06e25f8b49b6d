"""Listing extraction from an ingatlan.com search results page.

Extraction is a cascade of strategies tried in order; the first one that
yields any record wins and the rest are skipped:

1. the embedded ``__NEXT_DATA__`` (or other JSON) payload,
2. listing containers marked with a ``data-*`` id attribute,
3. anchors pointing at listing pages,
4. a raw regex scan for listing URLs (works on proxy-rendered text too).
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence, Tuple
from urllib.parse import urlparse

from scrapy import Selector

from listing_hunter.config import DEFAULT_SEARCH_URL
from listing_hunter.models import ListingRecord

logger = logging.getLogger(__name__)


ID_KEYS = ("listingId", "listing_id", "adId", "propertyId")
PRICE_KEYS = ("priceLabel", "formattedPrice", "price")
LOCATION_KEYS = ("address", "location", "city", "district")
AREA_KEYS = ("areaSize", "area", "size")
LINK_KEYS = ("url", "link", "href", "detailsUrl")

ATTRIBUTE_NAMES = ("data-listing-id", "data-id", "data-ad-id", "data-adid")
PRICE_SELECTORS = (
    "[data-testid='listing-price']",
    "[data-test='listing-price']",
    "[data-testid='price']",
    ".price",
    "[class*='price']",
)
LOCATION_SELECTORS = (
    "[data-testid='listing-location']",
    "[data-test='listing-location']",
    ".listing__address",
    ".address",
    "[class*='location']",
)

# "45 000 000 Ft", "45,9 M Ft", "1.200.000 HUF"
PRICE_TEXT_RE = re.compile(r"\d[\d\s.,]*(?:M\s?|millió\s?)?(?:Ft|HUF)\b")
# Grouped thousands only: "45 000 000 Ft"
GROUPED_PRICE_RE = re.compile(r"\d{1,3}(?:[ .]\d{3})+\s?Ft\b")
PRICE_HINT_RE = re.compile(r"Ft|HUF|\d")
WHITESPACE_RE = re.compile(r"\s+")

LISTING_PATH_PREFIX = r"(?:hirdetes/)?"
# "notingatlan.com" must not match "ingatlan.com"; subdomains may
HOST_BOUNDARY = r"(?<![\w-])"


@dataclass
class SiteProfile:
    """Where listings live: origin for link building, host for id matching."""

    origin: str
    host: str
    absolute_id_re: re.Pattern = field(init=False, repr=False)
    relative_id_re: re.Pattern = field(init=False, repr=False)
    listing_path_re: re.Pattern = field(init=False, repr=False)
    raw_url_re: re.Pattern = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.origin = self.origin.rstrip("/")
        host = re.escape(self.host)
        self.absolute_id_re = re.compile(HOST_BOUNDARY + host + "/" + LISTING_PATH_PREFIX + r"(\d+)", re.IGNORECASE)
        self.relative_id_re = re.compile(r"^/?" + LISTING_PATH_PREFIX + r"(\d+)", re.IGNORECASE)
        self.listing_path_re = re.compile(r"^/" + LISTING_PATH_PREFIX + r"(\d+)(?:/|$)", re.IGNORECASE)
        self.raw_url_re = re.compile(
            r"(?:https?://)?(?:www\.)?" + HOST_BOUNDARY + host + "/" + LISTING_PATH_PREFIX + r"(\d+)",
            re.IGNORECASE,
        )

    @classmethod
    def from_url(cls, url: str) -> "SiteProfile":
        u = urlparse(url)
        host = u.netloc.lower()
        if host.startswith("www."):
            host = host[4:]
        return cls(origin=f"{u.scheme or 'https'}://{u.netloc}", host=host)

    def is_own_host(self, netloc: str) -> bool:
        netloc = netloc.lower()
        return netloc == self.host or netloc == "www." + self.host


DEFAULT_SITE = SiteProfile.from_url(DEFAULT_SEARCH_URL)


@dataclass
class Page:
    """Raw page content plus its parsed selector."""

    text: str
    selector: Selector

    @classmethod
    def parse(cls, text: str) -> "Page":
        return cls(text=text, selector=Selector(text=text))


def normalize_text(text: Optional[str]) -> str:
    """Collapse whitespace runs to single spaces and trim."""
    return WHITESPACE_RE.sub(" ", text or "").strip()


def to_absolute_link(href: Optional[str], site: SiteProfile = DEFAULT_SITE) -> str:
    href = (href or "").strip()
    if not href:
        return ""
    if href.startswith("http"):
        return href
    if href.startswith("/"):
        return f"{site.origin}{href}"
    return f"{site.origin}/{href}"


def id_from_link(link: str, site: SiteProfile = DEFAULT_SITE) -> str:
    """Derive the listing id from a link, or ``""`` when there is none.

    Prefers a numeric segment right after the site domain; falls back to a
    numeric prefix of a relative path.
    """
    if not link:
        return ""
    m = site.absolute_id_re.search(link)
    if m:
        return m.group(1)
    m = site.relative_id_re.match(link)
    return m.group(1) if m else ""


def node_text(node: Selector) -> str:
    return normalize_text(" ".join(node.css("::text").getall()))


# --- structured data -------------------------------------------------------


def _scalar(value: object) -> str:
    if isinstance(value, bool) or value is None:
        return ""
    if isinstance(value, (str, int, float)):
        return normalize_text(str(value))
    return ""


def _first_scalar(node: dict, keys: Iterable[str]) -> str:
    for key in keys:
        text = _scalar(node.get(key))
        if text:
            return text
    return ""


def _price_from_node(node: dict) -> str:
    for key in PRICE_KEYS:
        value = node.get(key)
        if isinstance(value, dict):
            text = _first_scalar(value, ("label", "formatted", "text"))
            if text:
                return text
            amount = _first_scalar(value, ("amount", "value"))
            if amount:
                currency = _scalar(value.get("currency"))
                return f"{amount} {currency}".strip()
            continue
        text = _scalar(value)
        if text:
            return text
    return ""


def _location_from_node(node: dict) -> str:
    location = ""
    for key in LOCATION_KEYS:
        value = node.get(key)
        if isinstance(value, dict):
            location = _first_scalar(value, ("label", "name", "fullName"))
        else:
            location = _scalar(value)
        if location:
            break

    area = ""
    for key in AREA_KEYS:
        value = node.get(key)
        if isinstance(value, bool):
            continue
        if isinstance(value, (int, float)):
            num = int(value) if float(value).is_integer() else value
            area = f"{num} m²"
            break
        text = _scalar(value)
        if text:
            area = text
            break

    if location and area:
        return f"{location}, {area}"
    return location or area


def _record_from_node(node: dict, site: SiteProfile) -> Optional[ListingRecord]:
    external_id = _first_scalar(node, ID_KEYS)
    if not external_id:
        return None
    link = to_absolute_link(_first_scalar(node, LINK_KEYS), site) or f"{site.origin}/{external_id}"
    return ListingRecord(
        external_id=external_id,
        price=_price_from_node(node),
        location=_location_from_node(node),
        link=link,
    )


def walk_listing_nodes(
    node: object,
    site: SiteProfile,
    visited: set[int],
    out: List[ListingRecord],
) -> None:
    """Collect listing records from nested dicts/lists, depth first.

    ``visited`` holds ``id()`` of containers already seen so shared or
    self-referencing structures are walked once. A listing node is not
    descended into. Uses an explicit stack, so nesting depth is unbounded.
    """
    stack: List[object] = [node]
    while stack:
        current = stack.pop()
        if not isinstance(current, (dict, list)):
            continue
        if id(current) in visited:
            continue
        visited.add(id(current))
        if isinstance(current, dict):
            record = _record_from_node(current, site)
            if record is not None:
                out.append(record)
                continue
            children = list(current.values())
        else:
            children = list(current)
        # reversed so children pop in document order
        stack.extend(reversed(children))


def _json_blobs(page: Page) -> List[str]:
    blobs: List[str] = []
    for script in page.selector.css("script#__NEXT_DATA__"):
        blobs.append("".join(script.css("::text").getall()))
    for script in page.selector.css("script[type='application/json'], script[type='application/ld+json']"):
        if script.attrib.get("id") == "__NEXT_DATA__":
            continue
        blob = "".join(script.css("::text").getall())
        if any(f'"{key}"' in blob for key in ID_KEYS):
            blobs.append(blob)
    return blobs


def from_structured_data(page: Page, site: SiteProfile) -> List[ListingRecord]:
    records: List[ListingRecord] = []
    visited: set[int] = set()
    for blob in _json_blobs(page):
        try:
            data = json.loads(blob)
        except (ValueError, RecursionError) as exc:
            logger.debug("Ignoring unparseable embedded JSON: %s", exc)
            continue
        walk_listing_nodes(data, site, visited, records)
    return records


# --- markup ----------------------------------------------------------------


def extract_price(node: Selector) -> str:
    for selector in PRICE_SELECTORS:
        match = node.css(selector)
        if not match:
            continue
        text = node_text(match[0])
        if text and PRICE_HINT_RE.search(text):
            return text
    m = PRICE_TEXT_RE.search(node_text(node))
    return normalize_text(m.group(0)) if m else ""


def extract_location(node: Selector) -> str:
    for selector in LOCATION_SELECTORS:
        match = node.css(selector)
        if not match:
            continue
        text = node_text(match[0])
        if text:
            return text
    return ""


def _attribute_id(node: Selector) -> str:
    for name in ATTRIBUTE_NAMES:
        value = normalize_text(node.attrib.get(name))
        if value:
            return value
    return ""


def from_attributes(page: Page, site: SiteProfile) -> List[ListingRecord]:
    records: List[ListingRecord] = []
    for name in ATTRIBUTE_NAMES:
        for node in page.selector.css(f"[{name}]"):
            link = to_absolute_link(node.css("a[href]::attr(href)").get(), site)
            external_id = _attribute_id(node) or id_from_link(link, site)
            if not external_id or not link:
                continue
            records.append(
                ListingRecord(
                    external_id=external_id,
                    price=extract_price(node),
                    location=extract_location(node),
                    link=link,
                )
            )
    return records


def from_anchors(page: Page, site: SiteProfile) -> List[ListingRecord]:
    records: List[ListingRecord] = []
    for anchor in page.selector.css("a[href]"):
        link = to_absolute_link(anchor.attrib.get("href"), site)
        u = urlparse(link)
        if not site.is_own_host(u.netloc):
            continue
        m = site.listing_path_re.match(u.path)
        if not m:
            continue
        container = anchor.xpath(
            "ancestor::*[self::article or self::section or self::li or self::div][1]"
        )
        scope = container[0] if container else anchor
        price = GROUPED_PRICE_RE.search(node_text(scope))
        records.append(
            ListingRecord(
                external_id=m.group(1),
                price=normalize_text(price.group(0)) if price else "",
                location="",
                link=link,
            )
        )
    return records


# --- raw text --------------------------------------------------------------


def from_raw_text(page: Page, site: SiteProfile) -> List[ListingRecord]:
    records: List[ListingRecord] = []
    for m in site.raw_url_re.finditer(page.text):
        link = m.group(0)
        if not link.lower().startswith("http"):
            link = "https://" + link.lstrip("/")
        records.append(ListingRecord(external_id=m.group(1), link=link))
    return records


Strategy = Callable[[Page, SiteProfile], List[ListingRecord]]

STRATEGIES: Tuple[Tuple[str, Strategy], ...] = (
    ("structured_data", from_structured_data),
    ("attributes", from_attributes),
    ("anchors", from_anchors),
    ("raw_text", from_raw_text),
)


def dedupe(records: Sequence[ListingRecord]) -> List[ListingRecord]:
    """Keep the first record per external id, preserving order."""
    by_id: dict[str, ListingRecord] = {}
    for record in records:
        if record.external_id and record.external_id not in by_id:
            by_id[record.external_id] = record
    return list(by_id.values())


def extract_listings(
    content: str,
    site: SiteProfile = DEFAULT_SITE,
    strategies: Sequence[Tuple[str, Strategy]] = STRATEGIES,
) -> List[ListingRecord]:
    """Return the deduplicated listings found in ``content``.

    Strategies run in order and extraction stops at the first one that
    yields anything.
    """
    if not content or not content.strip():
        return []
    page = Page.parse(content)
    for name, strategy in strategies:
        records = dedupe(strategy(page, site))
        if records:
            logger.info("Extracted %d listings via %s", len(records), name)
            return records
        logger.debug("Strategy %s found nothing", name)
    logger.info("No listings found in page (%d chars)", len(content))
    return []
