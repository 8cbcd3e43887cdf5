"""Rune table extraction from HTML."""

from bs4 import BeautifulSoup, Tag

from rune_service.extractors.rules import ExtractionRules, FieldRule, MABIMOBI_RULES
from rune_service.models import CandidateRecord


def read_field(row: Tag, rule: FieldRule) -> str:
    """Read one field from a row. Missing element or attribute gives ""."""
    el = row.select_one(rule.selector)
    if el is None:
        return ""
    if rule.attribute:
        value = el.get(rule.attribute)
        if isinstance(value, list):  # multi-valued attrs like class
            value = " ".join(value)
        return value or ""
    return el.get_text()


def extract_candidates(
    html: str,
    rules: ExtractionRules = MABIMOBI_RULES,
) -> list[CandidateRecord]:
    """Apply the field rules to every row of the table.

    Rows are never dropped here, even when fields are missing;
    the normalizer decides what is valid.
    """
    soup = BeautifulSoup(html, "lxml")
    candidates = []

    for row in soup.select(rules.row_selector):
        values = {field: read_field(row, rule) for field, rule in rules.fields.items()}
        candidates.append(CandidateRecord(**values))

    return candidates
