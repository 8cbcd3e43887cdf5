"""Page fetching and rune table extraction.

This package:
1. Fetches the rune page (httpx, or Playwright for JS-rendered tables)
2. Rejects anti-bot interstitials before anything is extracted
3. Applies a declarative field mapping to every table row
"""

from rune_service.extractors.fetch import (
    HttpFetcher,
    RawContent,
    detect_block_marker,
    ensure_not_blocked,
)
from rune_service.extractors.rules import (
    ExtractionRules,
    FieldRule,
    MABIMOBI_RULES,
    get_rules,
)
from rune_service.extractors.table import extract_candidates

__all__ = [
    "HttpFetcher",
    "RawContent",
    "detect_block_marker",
    "ensure_not_blocked",
    "ExtractionRules",
    "FieldRule",
    "MABIMOBI_RULES",
    "get_rules",
    "extract_candidates",
]
