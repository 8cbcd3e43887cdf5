"""CLI for the rune service."""

import asyncio

import typer
from dotenv import load_dotenv
from rich.console import Console

from rune_service.config import Settings
from rune_service.errors import ConfigurationError, RuneServiceError
from rune_service.pipeline import build_fetcher, print_rune_summary, print_stats, scrape_runes
from rune_service.search import search_runes
from rune_service.sources import fetch_remote_runes
from rune_service.store import RuneStore

# Load environment variables (override=True to beat shell env vars)
load_dotenv(override=True)

app = typer.Typer(
    name="rune-service",
    help="Mabinogi Mobile rune scraper and search service",
    add_completion=False,
)
console = Console()


def load_settings() -> Settings:
    try:
        return Settings.from_env()
    except ConfigurationError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def serve(
    host: str = typer.Option(None, "--host", help="Bind address (default: HOST env var)"),
    port: int = typer.Option(None, "--port", "-p", help="Port (default: PORT env var)"),
):
    """Run the HTTP API."""
    import uvicorn

    from rune_service.api import configure_logging, create_app

    settings = load_settings()
    configure_logging()
    uvicorn.run(
        create_app(settings),
        host=host or settings.host,
        port=port or settings.port,
        log_config=None,
    )


@app.command()
def crawl(
    browser: bool = typer.Option(False, "--browser", help="Render with Playwright instead of httpx"),
    limit: int = typer.Option(20, "--limit", "-l", help="Rows to show in the summary"),
    show_stats: bool = typer.Option(True, "--stats/--no-stats", help="Show statistics"),
):
    """Scrape the rune table once and write the disk cache."""
    settings = load_settings()
    if browser:
        settings = settings.model_copy(update={"fetch_mode": "browser"})

    async def run():
        fetcher = build_fetcher(settings)
        try:
            return await scrape_runes(fetcher, settings.source_url, settings.source_origin)
        finally:
            await fetcher.close()

    try:
        records = asyncio.run(run())
    except RuneServiceError as e:
        console.print(f"[red]Crawl failed: {e}[/red]")
        raise typer.Exit(1)

    store = RuneStore(settings.cache_file)
    try:
        store.replace(records, source="scrape")
    except RuneServiceError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    print_rune_summary(records, limit=limit)
    if show_stats:
        print_stats(records)
    console.print(f"\n[bold green]Saved {len(records)} runes to {settings.cache_file}[/bold green]")


@app.command()
def search(
    name: str = typer.Argument(..., help="Full or partial rune name"),
    show_all: bool = typer.Option(False, "--all", "-a", help="Show every match"),
):
    """Search the disk cache by rune name."""
    settings = load_settings()
    store = RuneStore(settings.cache_file)
    store.restore()

    try:
        result = search_runes(store.current(), name)
    except RuneServiceError as e:
        console.print(f"[yellow]{e.message}[/yellow]")
        raise typer.Exit(1)

    if show_all:
        print_rune_summary(tuple(result.matches), limit=len(result.matches))
        return

    rune = result.primary
    console.print(f"\n[bold cyan]{rune.name}[/bold cyan] [dim]({result.count} match(es))[/dim]")
    console.print(f"  Category: {rune.category or '-'}")
    console.print(f"  Grade: {rune.grade or '-'}")
    console.print(f"  Effect: {rune.effect or '-'}")
    if rune.image_ref:
        console.print(f"  [dim]{rune.image_ref}[/dim]")


@app.command()
def reload():
    """Load runes from RUNE_JSON_URL and write the disk cache."""
    settings = load_settings()
    if not settings.remote_json_url:
        console.print("[red]Error: RUNE_JSON_URL is not set[/red]")
        raise typer.Exit(1)

    try:
        records = asyncio.run(fetch_remote_runes(settings.remote_json_url, timeout=settings.http_timeout))
        RuneStore(settings.cache_file).replace(records, source="remote")
    except RuneServiceError as e:
        console.print(f"[red]Reload failed: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[bold green]Saved {len(records)} runes to {settings.cache_file}[/bold green]")


@app.command()
def watch(
    once: bool = typer.Option(False, "--once", help="Check a single time and exit"),
):
    """Watch the status widget and post changes to WEBHOOK_URLS."""
    from rune_service.notifiers import StatusWatcher

    settings = load_settings()
    if not settings.status_url or not settings.status_selector:
        console.print("[red]Error: STATUS_URL and STATUS_SELECTOR must be set[/red]")
        raise typer.Exit(1)
    if not settings.webhook_urls:
        console.print("[yellow]WEBHOOK_URLS is empty; changes will only be printed[/yellow]")

    watcher = StatusWatcher(settings.status_url, settings.status_selector, settings.webhook_urls)

    if once:
        try:
            asyncio.run(watcher.check_once())
        except RuneServiceError as e:
            console.print(f"[red]Status check failed: {e}[/red]")
            raise typer.Exit(1)
        console.print(f"Status: {watcher.last_status or '?'}")
        return

    try:
        asyncio.run(watcher.run(interval=settings.status_poll_interval))
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped[/dim]")


if __name__ == "__main__":
    app()
