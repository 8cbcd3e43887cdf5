"""Scrape pipeline: fetch -> extract -> normalize."""

from collections import Counter
from typing import Protocol

from rich.console import Console
from rich.table import Table

from rune_service.config import Settings
from rune_service.extractors import ExtractionRules, HttpFetcher, MABIMOBI_RULES, RawContent
from rune_service.extractors.table import extract_candidates
from rune_service.models import RecordSet
from rune_service.normalizers import normalize_candidates

console = Console()


class Fetcher(Protocol):
    async def fetch(self, url: str) -> RawContent: ...

    async def close(self) -> None: ...


def build_fetcher(settings: Settings, rules: ExtractionRules = MABIMOBI_RULES) -> Fetcher:
    """Pick the fetch strategy configured for this deployment."""
    if settings.fetch_mode == "browser":
        # Only pull in Playwright when the deployment needs it
        from rune_service.extractors.browser import BrowserFetcher, BrowserPool

        return BrowserFetcher(
            pool=BrowserPool(headless=settings.headless),
            wait_selector=rules.wait_selector,
            render_timeout=settings.render_timeout,
            settle_delay=settings.settle_delay,
        )
    return HttpFetcher(timeout=settings.http_timeout)


async def scrape_runes(
    fetcher: Fetcher,
    url: str,
    origin: str,
    rules: ExtractionRules = MABIMOBI_RULES,
) -> RecordSet:
    """Run one fetch -> extract -> normalize pass.

    Raises NetworkError, BlockedError, RenderTimeoutError or
    EmptyResultError; never returns an empty set.
    """
    console.print(f"[cyan]Scraping runes from {url} ({rules.name})...[/cyan]")

    raw = await fetcher.fetch(url)
    console.print(f"[dim]Fetched {len(raw.html)} chars via {raw.method}[/dim]")

    candidates = extract_candidates(raw.html, rules)
    console.print(f"[dim]Rows extracted: {len(candidates)}[/dim]")

    records = normalize_candidates(candidates, origin)
    console.print(f"[green]Scrape complete: {len(records)} runes[/green]")
    return records


def print_rune_summary(records: RecordSet, limit: int = 20) -> None:
    """Print a summary table of runes."""
    table = Table(title=f"Runes (showing {min(len(records), limit)} of {len(records)})")
    table.add_column("Name", style="cyan", max_width=24)
    table.add_column("Category", style="green", max_width=12)
    table.add_column("Grade", style="yellow")
    table.add_column("Effect", style="white", max_width=50)

    for rune in records[:limit]:
        table.add_row(
            rune.name,
            rune.category or "-",
            rune.grade or "-",
            rune.effect[:50] or "-",
        )

    console.print(table)


def print_stats(records: RecordSet) -> None:
    """Print counts by grade and category."""
    console.print("\n[bold]Statistics[/bold]")
    grades = Counter(rune.grade or "Unknown" for rune in records)
    console.print(f"  By grade: {dict(grades.most_common())}")
    categories = Counter(rune.category or "Unknown" for rune in records)
    console.print(f"  Top categories: {dict(categories.most_common(5))}")
