"""Status widget watcher.

Polls a page, reads one widget's text and, when it changes, tells every
configured webhook. The first observation only sets the baseline.
"""

import asyncio
from typing import Optional

import httpx
from bs4 import BeautifulSoup
from rich.console import Console

from rune_service.errors import NetworkError, RuneServiceError
from rune_service.extractors.fetch import HttpFetcher
from rune_service.notifiers.webhook import send_webhook

console = Console()


def read_status(html: str, selector: str) -> Optional[str]:
    """Text of the status widget, whitespace-collapsed. None if missing."""
    el = BeautifulSoup(html, "lxml").select_one(selector)
    if el is None:
        return None
    text = " ".join(el.get_text().split())
    return text or None


def format_change(previous: str, current: str) -> str:
    return f"{previous} → {current}"


class StatusWatcher:
    """Remembers the last seen status and notifies on change."""

    def __init__(
        self,
        url: str,
        selector: str,
        webhook_urls: list[str],
        fetcher: Optional[HttpFetcher] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.selector = selector
        self.webhook_urls = webhook_urls
        self.fetcher = fetcher or HttpFetcher(transport=transport)
        self.transport = transport
        self.last_status: Optional[str] = None

    async def check_once(self) -> Optional[str]:
        """Poll once. Returns the change message if one was sent, else None."""
        raw = await self.fetcher.fetch(self.url)
        status = read_status(raw.html, self.selector)
        if status is None:
            console.print(f"[yellow]Status widget '{self.selector}' not found[/yellow]")
            return None

        previous = self.last_status
        self.last_status = status

        if previous is None or previous == status:
            return None

        message = format_change(previous, status)
        console.print(f"[cyan]Status changed: {message}[/cyan]")
        await self.notify(message)
        return message

    async def notify(self, message: str) -> int:
        """Send to every webhook; failures are logged. Returns the number delivered."""
        delivered = 0
        for url in self.webhook_urls:
            try:
                await send_webhook(url, message, transport=self.transport)
                delivered += 1
            except NetworkError as e:
                console.print(f"[red]Webhook failed: {e}[/red]")
        return delivered

    async def run(self, interval: float = 60.0) -> None:
        """Poll forever."""
        console.print(f"[bold cyan]Watching {self.url} every {interval:g}s[/bold cyan]")
        while True:
            try:
                await self.check_once()
            except RuneServiceError as e:
                console.print(f"[yellow]Status check failed: {e}[/yellow]")
            await asyncio.sleep(interval)
