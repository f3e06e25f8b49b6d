"""Fetch, diff and announce new ingatlan.com listings."""
