"""External integration adapters."""

from .expo_push import ExpoPushClient

__all__ = [
    "ExpoPushClient",
]
