"""
Domain exceptions for Deskbase.

Every failure the data-access service or the bridge reports maps to one
of these, so callers can tell the categories apart without parsing
messages.
"""


class DeskbaseError(RuntimeError):
    """Base exception for all Deskbase failures."""


class NotInitializedError(DeskbaseError):
    """Raised when a data operation runs before initialize() or after close()."""

    def __init__(self, message: str = "Database not initialized"):
        super().__init__(message)


class NotFoundError(DeskbaseError):
    """Raised when an update or delete targets a record that does not exist."""


class ConstraintViolationError(DeskbaseError):
    """Raised when the database rejects a write (unique or foreign key constraint)."""


class ConnectionFailureError(DeskbaseError):
    """Raised when the database cannot be opened or its schema synchronized."""


class UnknownChannelError(DeskbaseError):
    """Raised when the bridge is asked for a channel nobody registered."""


class InvalidArgumentsError(DeskbaseError):
    """Raised when bridge arguments do not fit the handler's signature."""
