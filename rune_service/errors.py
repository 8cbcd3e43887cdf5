"""Exceptions raised across the rune service.

Refresh-path errors (fetch, extraction, remote load) are caught by the
refresh controller and turned into a failed RefreshResult. Query-path
errors are turned into {"ok": false, "error": ...} by the HTTP routes.
"""

from typing import Optional


class RuneServiceError(Exception):
    """Base exception for all rune service errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(RuneServiceError):
    """Invalid or missing configuration value."""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message, {"key": key} if key else None)


# --- refresh path ---

class NetworkError(RuneServiceError):
    """Transport failure, timeout or non-2xx response."""

    def __init__(self, message: str, url: Optional[str] = None, status: Optional[int] = None):
        details = {}
        if url:
            details["url"] = url
        if status is not None:
            details["status"] = status
        super().__init__(message, details)
        self.url = url
        self.status = status


class BlockedError(RuneServiceError):
    """An anti-bot interstitial was served instead of the real page."""

    def __init__(self, url: str, marker: str):
        super().__init__(f"Blocked by anti-bot challenge at {url}", {"marker": marker})
        self.url = url
        self.marker = marker


class RenderTimeoutError(RuneServiceError):
    """The expected content marker never appeared in the rendered page."""

    def __init__(self, url: str, selector: str, timeout: float):
        super().__init__(
            f"Content marker '{selector}' did not appear within {timeout:g}s",
            {"url": url},
        )
        self.url = url
        self.selector = selector
        self.timeout = timeout


class EmptyResultError(RuneServiceError):
    """Extraction ran but produced no valid records (page layout probably changed)."""

    def __init__(self, candidates: int = 0):
        super().__init__(
            "No rune data found; the page structure may have changed",
            {"candidates": candidates},
        )
        self.candidates = candidates


class RemoteSourceError(RuneServiceError):
    """The remote authoritative JSON could not be loaded or is malformed."""


class PersistenceError(RuneServiceError):
    """Writing the disk mirror failed."""


# --- query path ---

class InvalidRequestError(RuneServiceError):
    """A required request parameter is missing or empty."""


class StoreEmptyError(RuneServiceError):
    """No record set has been loaded yet."""

    def __init__(self):
        super().__init__("No rune data loaded yet; trigger a refresh first")


class NotFoundError(RuneServiceError):
    """Query had no match."""

    def __init__(self, query: str):
        super().__init__("Not found", {"query": query})
        self.query = query


# Errors a refresh reports instead of propagating
REFRESH_ERRORS = (
    NetworkError,
    BlockedError,
    RenderTimeoutError,
    EmptyResultError,
    RemoteSourceError,
)
