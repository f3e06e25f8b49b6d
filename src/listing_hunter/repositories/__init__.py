"""Persistence for seen listings."""

from .postgres import PostgresListingStore

__all__ = ["PostgresListingStore"]
