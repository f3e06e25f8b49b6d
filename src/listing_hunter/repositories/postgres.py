from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional

import psycopg2

from listing_hunter.config import HuntConfig
from listing_hunter.models import ListingRecord, PersistedListing

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS listings (
  id BIGSERIAL PRIMARY KEY,
  external_id TEXT NOT NULL,
  price TEXT,
  location TEXT,
  link TEXT,
  created_at TIMESTAMPTZ NOT NULL DEFAULT now()
);
CREATE UNIQUE INDEX IF NOT EXISTS listings_external_id_unique ON listings (external_id);
CREATE INDEX IF NOT EXISTS listings_created_at_idx ON listings (created_at);
"""

_COLUMNS = "id, external_id, price, location, link, created_at"


@contextmanager
def connect(dsn: str) -> Iterator["psycopg2.extensions.connection"]:
    conn = psycopg2.connect(dsn)
    try:
        yield conn
    finally:
        conn.close()


def _row_to_listing(row: tuple) -> PersistedListing:
    _id, external_id, price, location, link, created_at = row
    return PersistedListing(
        id=int(_id),
        external_id=external_id,
        price=price or "",
        location=location or "",
        link=link or "",
        created_at=created_at,
    )


class PostgresListingStore:
    """Listings table keyed by ``external_id``.

    Each call opens its own short-lived connection. Uniqueness across
    concurrent runs is left to the ``listings_external_id_unique`` index.
    """

    def __init__(self, dsn: str) -> None:
        self.dsn = dsn

    @classmethod
    def from_config(cls, config: HuntConfig) -> "PostgresListingStore":
        return cls(config.require_db_url())

    def init_schema(self) -> None:
        with connect(self.dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(SCHEMA_SQL)
            conn.commit()

    def exists(self, external_id: str) -> bool:
        with connect(self.dsn) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1 FROM listings WHERE external_id=%s LIMIT 1", (external_id,))
                return cur.fetchone() is not None

    def insert(self, listing: ListingRecord) -> bool:
        """Insert ``listing``; return ``False`` if its id is already stored."""
        with connect(self.dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO listings (external_id, price, location, link)
                    VALUES (%s, %s, %s, %s)
                    ON CONFLICT (external_id) DO NOTHING
                    RETURNING id
                    """,
                    (listing.external_id, listing.price, listing.location, listing.link),
                )
                row = cur.fetchone()
            conn.commit()
        if row is None:
            logger.info("Listing %s was inserted concurrently; skipping", listing.external_id)
            return False
        return True

    def get(self, external_id: str) -> Optional[PersistedListing]:
        with connect(self.dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM listings WHERE external_id=%s",
                    (external_id,),
                )
                row = cur.fetchone()
        return _row_to_listing(row) if row else None

    def recent(self, limit: int = 20) -> List[PersistedListing]:
        with connect(self.dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM listings ORDER BY created_at DESC, id DESC LIMIT %s",
                    (limit,),
                )
                rows = cur.fetchall()
        return [_row_to_listing(r) for r in rows]
