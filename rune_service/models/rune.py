"""Data models for rune records."""

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class CandidateRecord(BaseModel):
    """Raw row pulled from the rune table, before validation.

    Every field is a string; a sub-field the extractor could not find is "".
    """

    name: str = ""
    category: str = ""
    grade: str = ""
    effect: str = ""
    image_ref: str = ""


class Rune(BaseModel):
    """A validated rune record."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: str
    category: str = ""
    grade: str = ""
    # Older runes.json files use desc/img
    effect: str = Field(
        default="",
        validation_alias=AliasChoices("effect", "desc", "description"),
    )
    image_ref: str = Field(
        default="",
        validation_alias=AliasChoices("imageRef", "image_ref", "img", "image"),
        serialization_alias="imageRef",
    )

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("name must not be blank")
        return value

    def to_json_record(self) -> dict:
        """Convert to the JSON shape served over HTTP and written to disk."""
        return self.model_dump(by_alias=True)

    @classmethod
    def from_json_record(cls, data: dict) -> "Rune":
        # Legacy files may contain null for missing fields
        cleaned = {k: ("" if v is None else v) for k, v in data.items()}
        return cls.model_validate(cleaned)


# Ordered and immutable; replaced wholesale, never edited in place
RecordSet = tuple[Rune, ...]


class SearchResult(BaseModel):
    """Result of a name lookup."""

    matches: list[Rune]
    primary: Rune

    @property
    def count(self) -> int:
        return len(self.matches)


class RefreshResult(BaseModel):
    """Outcome of one refresh attempt, reported to the trigger caller."""

    ok: bool
    trigger: str
    count: int = 0
    error: Optional[str] = None
    error_type: Optional[str] = None
    warning: Optional[str] = None
    rejected: bool = False  # True if another refresh was already running
    finished_at: Optional[str] = None

    def to_response(self) -> dict:
        """Convert to the {ok, ...} body used by the admin routes."""
        if self.ok:
            body = {"ok": True, "count": self.count, "at": self.finished_at}
            if self.warning:
                body["warning"] = self.warning
            return body
        return {"ok": False, "error": self.error}
