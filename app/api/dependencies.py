"""Shared API dependencies."""
from app.core.clock import Clock, SystemClock
from app.core.security import get_current_user

_system_clock = SystemClock()


def get_clock() -> Clock:
    """Time source for request handlers; tests override this dependency."""
    return _system_clock


__all__ = ["get_clock", "get_current_user"]
