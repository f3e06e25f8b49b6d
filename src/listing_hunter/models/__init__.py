from .listing import ListingRecord, PersistedListing

__all__ = ["ListingRecord", "PersistedListing"]
