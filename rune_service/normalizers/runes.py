"""Rune record validation and normalization."""

import re

from pydantic import ValidationError
from rich.console import Console

from rune_service.errors import EmptyResultError
from rune_service.models import CandidateRecord, RecordSet, Rune

console = Console()

WHITESPACE_RUN = re.compile(r"\s+")


def absolutize_image_ref(ref: str, origin: str) -> str:
    """Rewrite a site-relative image path to an absolute URL.

    "/img/a.png"        -> origin + "/img/a.png"
    "//cdn.x/a.png"     -> "https://cdn.x/a.png"
    absolute or empty   -> unchanged
    """
    ref = ref.strip()
    if ref.startswith("//"):
        return "https:" + ref
    if ref.startswith("/"):
        return origin.rstrip("/") + ref
    return ref


def normalize_candidate(candidate: CandidateRecord, origin: str) -> Rune | None:
    """Clean one candidate. Returns None if it has no usable name."""
    name = candidate.name.strip()
    if not name:
        return None

    try:
        return Rune(
            name=name,
            category=candidate.category.strip(),
            grade=candidate.grade.strip(),
            effect=WHITESPACE_RUN.sub(" ", candidate.effect).strip(),
            image_ref=absolutize_image_ref(candidate.image_ref, origin),
        )
    except ValidationError:
        return None


def normalize_candidates(candidates: list[CandidateRecord], origin: str) -> RecordSet:
    """Turn extracted candidates into a record set, in page order.

    Duplicate names are kept. An empty result means extraction failed
    (layout change or a block we did not recognize), so it raises
    instead of returning an empty set that could overwrite a good cache.
    """
    runes = []
    dropped = 0
    for candidate in candidates:
        rune = normalize_candidate(candidate, origin)
        if rune is None:
            dropped += 1
            continue
        runes.append(rune)

    if dropped:
        console.print(f"[dim]Dropped {dropped} rows without a name[/dim]")

    if not runes:
        raise EmptyResultError(candidates=len(candidates))

    return tuple(runes)
