"""Declarative field mappings for rune tables.

A site (or a new version of the same site) is supported by adding an
ExtractionRules instance, not by writing another crawl function.
"""

from typing import Optional

from pydantic import BaseModel


class FieldRule(BaseModel):
    """How to read one field from a table row.

    selector: CSS selector relative to the row (supports nth-child,
        nth-of-type, :last-child and attribute selectors).
    attribute: read this attribute instead of the element text.
    """

    selector: str
    attribute: Optional[str] = None


class ExtractionRules(BaseModel):
    """Row selector plus one rule per rune field."""

    name: str  # label shown in logs
    row_selector: str
    fields: dict[str, FieldRule]
    # Element that proves the table has rendered (browser fetch waits on it)
    ready_selector: Optional[str] = None

    @property
    def wait_selector(self) -> str:
        return self.ready_selector or self.row_selector


MABIMOBI_RULES = ExtractionRules(
    name="mabimobi.life",
    row_selector="tr[data-slot='table-row']",
    fields={
        # Name cell holds an icon span and the display-name span
        "name": FieldRule(selector="td:nth-child(3) span:last-child"),
        "category": FieldRule(selector="td:nth-child(2)"),
        "grade": FieldRule(selector="td:nth-child(4)"),
        "effect": FieldRule(selector="td:nth-child(5) span"),
        "image_ref": FieldRule(selector="img", attribute="src"),
    },
)

RULESETS: dict[str, ExtractionRules] = {
    MABIMOBI_RULES.name: MABIMOBI_RULES,
}


def get_rules(name: str) -> ExtractionRules:
    """Look up a registered rule set by name."""
    try:
        return RULESETS[name]
    except KeyError:
        raise ValueError(f"Unknown rule set '{name}'. Known: {', '.join(RULESETS)}")
