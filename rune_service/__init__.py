"""Mabinogi Mobile rune scraper, cache and search service."""

__version__ = "0.1.0"
