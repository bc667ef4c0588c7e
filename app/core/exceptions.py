"""Custom exception types for domain and API layers."""


class AppError(Exception):
    """Base app exception."""


class InvalidCycleKind(AppError, ValueError):
    """Billing cycle value outside weekly/monthly/yearly/custom."""

    def __init__(self, cycle: object):
        super().__init__(f"Unrecognized billing cycle: {cycle!r}")
        self.cycle = cycle


class NotificationServiceUnavailable(AppError):
    """Reminder scheduling is not permitted for the recipient."""


class PersistenceFailure(AppError):
    """A subscription record could not be written."""


class NotFoundError(AppError):
    """Requested record does not exist or is not owned by the caller."""


class ConflictError(AppError):
    """Record clashes with an existing one."""


class AuthenticationError(AppError):
    """Credentials were rejected."""
