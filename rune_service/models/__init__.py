"""Data models for the rune service."""

from rune_service.models.rune import (
    CandidateRecord,
    Rune,
    RecordSet,
    SearchResult,
    RefreshResult,
)

__all__ = [
    "CandidateRecord",
    "Rune",
    "RecordSet",
    "SearchResult",
    "RefreshResult",
]
