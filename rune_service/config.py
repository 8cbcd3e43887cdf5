"""Service configuration from environment variables."""

import os
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field, ValidationError

from rune_service.errors import ConfigurationError

DEFAULT_SOURCE_URL = "https://mabimobi.life/runes?t=search"
DEFAULT_CACHE_FILE = "runes.json"
DEFAULT_RELAY_TARGET = "http://192.168.0.3:8080/send"

FETCH_MODES = ("http", "browser")

# env var -> Settings field
ENV_VARS = {
    "RUNE_SOURCE_URL": "source_url",
    "RUNE_FETCH_MODE": "fetch_mode",
    "RUNE_CACHE_FILE": "cache_file",
    "RUNE_JSON_URL": "remote_json_url",
    "RUNE_REFRESH_INTERVAL": "refresh_interval",
    "RUNE_HTTP_TIMEOUT": "http_timeout",
    "RUNE_RENDER_TIMEOUT": "render_timeout",
    "RUNE_SETTLE_DELAY": "settle_delay",
    "RUNE_HEADLESS": "headless",
    "GEMINI_API_KEY": "gemini_api_key",
    "GEMINI_MODEL": "gemini_model",
    "RELAY_TARGET_URL": "relay_target_url",
    "STATUS_URL": "status_url",
    "STATUS_SELECTOR": "status_selector",
    "STATUS_POLL_INTERVAL": "status_poll_interval",
    "WEBHOOK_URLS": "webhook_urls",
    "HOST": "host",
    "PORT": "port",
}


class Settings(BaseModel):
    """Runtime settings. Build with Settings.from_env() at process start."""

    # Scraping
    source_url: str = DEFAULT_SOURCE_URL
    fetch_mode: str = "http"
    http_timeout: float = 20.0
    render_timeout: float = 45.0
    settle_delay: float = 0.0  # > 0 means wait fixed time instead of marker
    headless: bool = True

    # Cache
    cache_file: Path = Path(DEFAULT_CACHE_FILE)
    remote_json_url: Optional[str] = None
    refresh_interval: float = 0.0  # seconds, 0 = no timer

    # Collaborators
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    relay_target_url: str = DEFAULT_RELAY_TARGET
    status_url: Optional[str] = None
    status_selector: Optional[str] = None
    status_poll_interval: float = 60.0
    webhook_urls: list[str] = Field(default_factory=list)

    # Server
    host: str = "0.0.0.0"
    port: int = 10000

    @property
    def source_origin(self) -> str:
        """Scheme + host of the scraped page, used to absolutize image paths."""
        parsed = urlparse(self.source_url)
        return f"{parsed.scheme}://{parsed.netloc}"

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "Settings":
        """Read settings from the environment. Empty values fall back to defaults."""
        environ = os.environ if environ is None else environ
        values: dict = {}
        for env_name, field in ENV_VARS.items():
            raw = environ.get(env_name, "").strip()
            if not raw:
                continue
            if field == "webhook_urls":
                values[field] = [u.strip() for u in raw.split(",") if u.strip()]
            else:
                values[field] = raw

        try:
            settings = cls.model_validate(values)
        except ValidationError as e:
            first = e.errors()[0]
            key = next(
                (k for k, f in ENV_VARS.items() if f == first["loc"][0]),
                None,
            )
            raise ConfigurationError(f"Invalid setting: {first['msg']}", key=key) from e

        if settings.fetch_mode not in FETCH_MODES:
            raise ConfigurationError(
                f"RUNE_FETCH_MODE must be one of {FETCH_MODES}, got '{settings.fetch_mode}'",
                key="RUNE_FETCH_MODE",
            )
        return settings
