"""Remote authoritative runes.json (e.g. a raw GitHub file)."""

from typing import Optional

import httpx
from rich.console import Console

from rune_service.errors import NetworkError, RemoteSourceError
from rune_service.models import RecordSet
from rune_service.store import parse_records

console = Console()


async def fetch_remote_runes(
    url: str,
    timeout: float = 20.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> RecordSet:
    """Download and validate the remote rune array.

    Raises NetworkError on transport problems and RemoteSourceError if the
    body is not a non-empty JSON array of runes.
    """
    console.print(f"[cyan]Loading runes from {url}...[/cyan]")

    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.get(url, headers={"Cache-Control": "no-store"})
            response.raise_for_status()
    except httpx.TimeoutException:
        raise NetworkError(f"Timed out after {timeout:g}s", url=url)
    except httpx.HTTPStatusError as e:
        raise NetworkError(
            f"HTTP {e.response.status_code} {e.response.reason_phrase}",
            url=url,
            status=e.response.status_code,
        )
    except httpx.RequestError as e:
        raise NetworkError(f"Request failed: {type(e).__name__}", url=url)

    try:
        records = parse_records(response.json())
    except ValueError as e:
        raise RemoteSourceError(f"Invalid JSON format: {e}", {"url": url})

    if not records:
        raise RemoteSourceError("Remote rune list is empty", {"url": url})

    console.print(f"[green]Loaded {len(records)} runes from remote[/green]")
    return records
