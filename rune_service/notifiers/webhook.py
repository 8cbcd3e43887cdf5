"""Chat webhook delivery."""

from typing import Optional

import httpx

from rune_service.errors import NetworkError


async def send_webhook(
    url: str,
    text: str,
    room: Optional[str] = None,
    timeout: float = 10.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> None:
    """POST {"text": ...} (and "room" when given) to a chat endpoint."""
    payload = {"text": text}
    if room is not None:
        payload = {"room": room, "text": text}

    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.post(url, json=payload)
            response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise NetworkError(
            f"Webhook HTTP {e.response.status_code}",
            url=url,
            status=e.response.status_code,
        )
    except httpx.RequestError as e:
        raise NetworkError(f"Webhook request failed: {type(e).__name__}", url=url)
