"""Normalizers for rune data quality."""

from .runes import absolutize_image_ref, normalize_candidate, normalize_candidates

__all__ = ["absolutize_image_ref", "normalize_candidate", "normalize_candidates"]
