"""Playwright fetcher for JS-rendered rune tables.

One Chromium process is kept alive for the life of the service and every
fetch gets its own isolated context. If the browser dies between fetches
it is relaunched on the next call. The refresh controller guarantees only
one fetch uses the browser at a time.
"""

import random
from typing import Optional

from playwright.async_api import (
    Browser,
    Error as PlaywrightError,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)
from rich.console import Console

from rune_service.errors import BlockedError, NetworkError, RenderTimeoutError
from rune_service.extractors.fetch import (
    ACCEPT_LANGUAGE,
    USER_AGENTS,
    RawContent,
    detect_block_marker,
    ensure_not_blocked,
)

console = Console()

LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--no-sandbox",
    "--disable-dev-shm-usage",
]


class BrowserPool:
    """Holds the single long-lived browser instance."""

    def __init__(self, headless: bool = True):
        self.headless = headless
        self._playwright = None
        self._browser: Optional[Browser] = None
        self.launches = 0

    def is_alive(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    async def get_browser(self) -> Browser:
        """Return the running browser, launching or relaunching it as needed."""
        if self.is_alive():
            return self._browser

        if self._browser is not None:
            console.print("[yellow]Browser is gone, relaunching...[/yellow]")
            await self._shutdown()

        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=LAUNCH_ARGS,
            )
        except PlaywrightError as e:
            # Stop the driver started above as well
            await self._shutdown()
            raise NetworkError(f"Browser launch failed: {e}")
        self.launches += 1
        console.print(f"[dim]Chromium launched (#{self.launches})[/dim]")
        return self._browser

    async def invalidate(self) -> None:
        """Drop the current browser so the next call launches a fresh one."""
        await self._shutdown()

    async def _shutdown(self) -> None:
        browser, pw = self._browser, self._playwright
        self._browser = None
        self._playwright = None
        if browser is not None:
            try:
                await browser.close()
            except PlaywrightError:
                pass  # already dead
        if pw is not None:
            await pw.stop()

    async def close(self) -> None:
        await self._shutdown()


class BrowserFetcher:
    """Render the page in Chromium and return the live DOM as HTML.

    Waits either a fixed settle delay (for sites whose anti-bot check takes
    a known time) or until ``wait_selector`` appears.
    """

    method = "playwright"

    def __init__(
        self,
        pool: BrowserPool,
        wait_selector: str,
        render_timeout: float = 45.0,
        nav_timeout: float = 30.0,
        settle_delay: float = 0.0,
    ):
        self.pool = pool
        self.wait_selector = wait_selector
        self.render_timeout = render_timeout
        self.nav_timeout = nav_timeout
        self.settle_delay = settle_delay

    async def fetch(self, url: str) -> RawContent:
        try:
            browser = await self.pool.get_browser()
        except PlaywrightError as e:
            raise NetworkError(f"Browser unavailable: {e}", url=url)
        console.print(f"[cyan]Rendering {url[:60]}...[/cyan]")

        try:
            context = await browser.new_context(
                user_agent=random.choice(USER_AGENTS),
                viewport={"width": 1920, "height": 1080},
                locale="ko-KR",
                extra_http_headers={"Accept-Language": ACCEPT_LANGUAGE},
            )
        except PlaywrightError as e:
            # Browser crashed under us; next fetch relaunches
            await self.pool.invalidate()
            raise NetworkError(f"Browser unavailable: {e}", url=url)

        try:
            return await self._render(context, url)
        except PlaywrightError as e:
            # e.g. content() while a challenge redirect is still navigating
            raise NetworkError(f"Rendering failed: {e}", url=url)
        finally:
            try:
                await context.close()
            except PlaywrightError:
                await self.pool.invalidate()

    async def _render(self, context, url: str) -> RawContent:
        page = await context.new_page()
        try:
            response = await page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=self.nav_timeout * 1000,
            )
        except PlaywrightTimeoutError:
            raise NetworkError(f"Navigation timed out after {self.nav_timeout:g}s", url=url)
        except PlaywrightError as e:
            raise NetworkError(f"Navigation failed: {e}", url=url)

        status = response.status if response is not None else None

        if self.settle_delay > 0:
            await page.wait_for_timeout(self.settle_delay * 1000)
        else:
            try:
                await page.wait_for_selector(
                    self.wait_selector,
                    timeout=self.render_timeout * 1000,
                )
            except PlaywrightTimeoutError:
                # A challenge that never cleared is a block, not a slow page
                marker = detect_block_marker(await page.content())
                if marker:
                    raise BlockedError(url, marker)
                raise RenderTimeoutError(url, self.wait_selector, self.render_timeout)

        html = await page.content()
        ensure_not_blocked(html, url)
        return RawContent(html=html, url=page.url, method=self.method, status=status)

    async def close(self) -> None:
        await self.pool.close()
