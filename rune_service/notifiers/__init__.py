"""Chat notifications: webhook delivery and the status watcher."""

from rune_service.notifiers.status import StatusWatcher, read_status
from rune_service.notifiers.webhook import send_webhook

__all__ = ["StatusWatcher", "read_status", "send_webhook"]
