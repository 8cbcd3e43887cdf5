"""HTTP API for the rune service."""

from rune_service.api.app import create_app, configure_logging

__all__ = ["create_app", "configure_logging"]
