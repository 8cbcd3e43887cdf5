"""Generative-AI answers over rune data."""

from rune_service.enrichers.gemini import ask_gemini, build_prompt, summarize_top_runes

__all__ = ["ask_gemini", "build_prompt", "summarize_top_runes"]
