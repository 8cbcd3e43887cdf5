"""Plain HTTP fetcher with anti-bot interstitial detection.

Two fetch strategies share one contract, ``await fetcher.fetch(url) -> RawContent``:
1. HttpFetcher: httpx GET, for when the rune table is server-rendered
2. BrowserFetcher (browser.py): Playwright, for when the table is built by JS
"""

import asyncio
import random
from typing import Optional

import httpx
from pydantic import BaseModel
from rich.console import Console

from rune_service.errors import BlockedError, NetworkError

console = Console()

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:134.0) Gecko/20100101 Firefox/134.0",
    "Mozilla/5.0 (X11; Linux x86_64; rv:134.0) Gecko/20100101 Firefox/134.0",
]

ACCEPT_LANGUAGE = "ko-KR,ko;q=0.9,en-US;q=0.8,en;q=0.7"

# Strings that only appear on interstitial pages. Cloudflare also injects
# /cdn-cgi/challenge-platform/ scripts into ordinary pages, so that path
# alone is not a marker.
BLOCK_MARKERS = [
    "<title>Just a moment...</title>",
    "Checking your browser before accessing",
    "cf-browser-verification",
    "cf-chl-",
    "Attention Required! | Cloudflare",
]


class RawContent(BaseModel):
    """Page content handed to the extractor."""

    html: str
    url: str
    method: str  # "httpx" or "playwright"
    status: Optional[int] = None


def detect_block_marker(html: str) -> Optional[str]:
    """Return the first interstitial marker found in the page, if any."""
    for marker in BLOCK_MARKERS:
        if marker in html:
            return marker
    return None


def ensure_not_blocked(html: str, url: str) -> None:
    """Raise BlockedError if the page is an anti-bot challenge."""
    marker = detect_block_marker(html)
    if marker:
        raise BlockedError(url, marker)


def browser_headers() -> dict[str, str]:
    return {
        "User-Agent": random.choice(USER_AGENTS),
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": ACCEPT_LANGUAGE,
        "Upgrade-Insecure-Requests": "1",
    }


class HttpFetcher:
    """Fetch a page with a single httpx GET."""

    method = "httpx"

    def __init__(
        self,
        timeout: float = 20.0,
        retries: int = 1,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self.retries = max(1, retries)
        self.transport = transport

    async def fetch(self, url: str) -> RawContent:
        last_error: Optional[NetworkError] = None

        for attempt in range(self.retries):
            try:
                return await self._fetch_once(url)
            except NetworkError as e:
                last_error = e
                console.print(f"[dim]Attempt {attempt + 1}: {e.message} ({url})[/dim]")
            if attempt < self.retries - 1:
                await asyncio.sleep(0.5 * (2 ** attempt))

        raise last_error

    async def _fetch_once(self, url: str) -> RawContent:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self.transport,
            ) as client:
                response = await client.get(url, headers=browser_headers())
        except httpx.TimeoutException:
            raise NetworkError(f"Timed out after {self.timeout:g}s", url=url)
        except httpx.RequestError as e:
            raise NetworkError(f"Request failed: {type(e).__name__}", url=url)

        # Challenge pages often come back as 403/503; report them as blocks
        ensure_not_blocked(response.text, url)

        if not response.is_success:
            raise NetworkError(
                f"HTTP {response.status_code} {response.reason_phrase}",
                url=url,
                status=response.status_code,
            )

        return RawContent(
            html=response.text,
            url=str(response.url),
            method=self.method,
            status=response.status_code,
        )

    async def close(self) -> None:
        """Nothing to release; present so both fetchers share one interface."""
