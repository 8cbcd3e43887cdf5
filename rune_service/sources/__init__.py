"""Pre-built rune data sources."""

from .remote import fetch_remote_runes

__all__ = ["fetch_remote_runes"]
