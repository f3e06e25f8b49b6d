"""Data models for scraped listings."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class ListingRecord(BaseModel):
    """A single listing extracted from a search results page.

    ``external_id`` is the site's own id and the only identity that matters:
    two records with the same id are the same listing.
    """

    external_id: str = Field(min_length=1)
    price: str = ""
    location: str = ""
    link: str


class PersistedListing(ListingRecord):
    """A listing row as stored in the ``listings`` table."""

    id: int
    created_at: datetime
