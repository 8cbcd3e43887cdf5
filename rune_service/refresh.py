"""Refresh controller: single-flight scrape/reload into the rune store."""

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Optional

from rich.console import Console

from rune_service.errors import REFRESH_ERRORS, PersistenceError
from rune_service.models import RecordSet, RefreshResult
from rune_service.store import RuneStore, utc_now_iso

console = Console()

Loader = Callable[[], Awaitable[RecordSet]]


class RefreshState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class RefreshController:
    """Runs refreshes one at a time and commits successful ones to the store.

    Manual, timer and reload triggers share one guard: a request that
    arrives while a refresh is running is rejected, not queued, so the
    fetcher (possibly a browser) is never used by two refreshes at once.
    Failures leave the store untouched and are never retried here.
    """

    def __init__(
        self,
        store: RuneStore,
        scrape: Loader,
        load_remote: Optional[Loader] = None,
    ):
        self.store = store
        self.scrape = scrape
        self.load_remote = load_remote
        self.state = RefreshState.IDLE
        self.running_trigger: Optional[str] = None
        self.last_result: Optional[RefreshResult] = None
        self._timer: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self.state is RefreshState.RUNNING

    async def refresh(self, trigger: str = "manual") -> RefreshResult:
        """Scrape the source page and replace the store."""
        return await self._run(trigger, self.scrape, source="scrape")

    async def reload(self, trigger: str = "reload") -> RefreshResult:
        """Replace the store from the remote JSON instead of scraping."""
        if self.load_remote is None:
            return RefreshResult(
                ok=False,
                trigger=trigger,
                error="RUNE_JSON_URL is not configured",
                error_type="ConfigurationError",
                finished_at=utc_now_iso(),
            )
        return await self._run(trigger, self.load_remote, source="remote")

    async def _run(self, trigger: str, loader: Loader, source: str) -> RefreshResult:
        # Check-and-set happens before the first await, so it is atomic
        if self.state is RefreshState.RUNNING:
            console.print(
                f"[yellow]Refresh ({trigger}) rejected: "
                f"{self.running_trigger} refresh already running[/yellow]"
            )
            return RefreshResult(
                ok=False,
                trigger=trigger,
                error="Refresh already in progress",
                rejected=True,
                finished_at=utc_now_iso(),
            )

        self.state = RefreshState.RUNNING
        self.running_trigger = trigger
        try:
            result = await self._load_and_commit(trigger, loader, source)
        finally:
            self.state = RefreshState.IDLE
            self.running_trigger = None

        self.last_result = result
        return result

    async def _load_and_commit(self, trigger: str, loader: Loader, source: str) -> RefreshResult:
        try:
            records = await loader()
        except REFRESH_ERRORS as e:
            console.print(f"[red]Refresh ({trigger}) failed: {e}[/red]")
            return RefreshResult(
                ok=False,
                trigger=trigger,
                error=e.message,
                error_type=type(e).__name__,
                finished_at=utc_now_iso(),
            )

        warning = None
        try:
            # The mirror write is blocking file I/O; keep it off the event loop
            await asyncio.to_thread(self.store.replace, records, source=source)
        except PersistenceError as e:
            # In-memory swap already happened; keep serving it
            console.print(f"[yellow]{e.message}[/yellow]")
            warning = e.message

        console.print(f"[green]Refresh ({trigger}) complete: {len(records)} runes[/green]")
        return RefreshResult(
            ok=True,
            trigger=trigger,
            count=len(records),
            warning=warning,
            finished_at=self.store.last_loaded_at,
        )

    async def startup(self) -> Optional[str]:
        """Initial load: remote JSON if configured, else disk mirror, else empty.

        Returns the source that populated the store, or None.
        """
        if self.load_remote is not None:
            result = await self.reload(trigger="startup")
            if result.ok:
                return "remote"
            console.print("[yellow]Remote load failed, falling back to disk cache[/yellow]")

        if self.store.restore():
            return "disk"

        console.print("[red]No rune data available (remote and disk both failed); waiting for a manual refresh[/red]")
        return None

    def start_timer(self, interval: float) -> None:
        """Refresh every ``interval`` seconds in the background."""
        if interval <= 0 or self._timer is not None:
            return
        self._timer = asyncio.create_task(self._timer_loop(interval))
        console.print(f"[dim]Auto-refresh every {interval:g}s[/dim]")

    async def stop_timer(self) -> None:
        if self._timer is None:
            return
        self._timer.cancel()
        try:
            await self._timer
        except asyncio.CancelledError:
            pass
        self._timer = None

    async def _timer_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.refresh(trigger="timer")
            except Exception as e:
                # Keep ticking; the next tick is the retry
                console.print(f"[red]Timer refresh crashed: {e}[/red]")
