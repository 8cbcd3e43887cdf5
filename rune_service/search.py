"""Rune name lookup."""

import re

from rune_service.errors import InvalidRequestError, NotFoundError, StoreEmptyError
from rune_service.models import RecordSet, SearchResult

WHITESPACE = re.compile(r"\s+")


def normalize_name(value: str) -> str:
    """Remove all whitespace and lower-case, so "루나의 룬" == "루나의룬"."""
    return WHITESPACE.sub("", value).lower()


def search_runes(records: RecordSet, query: str | None) -> SearchResult:
    """Partial, space- and case-insensitive name search.

    Matches keep record-set order and the first one is the primary
    answer. Duplicate names or substring collisions are not ranked.
    """
    if query is None or not query.strip():
        raise InvalidRequestError("name parameter required")
    if not records:
        raise StoreEmptyError()

    needle = normalize_name(query)
    matches = [rune for rune in records if needle in normalize_name(rune.name)]

    if not matches:
        raise NotFoundError(query.strip())

    return SearchResult(matches=matches, primary=matches[0])
