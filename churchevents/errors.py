from __future__ import annotations


class ChurchEventsError(Exception):
    """Base class for errors raised by the event engine."""


class ValidationError(ChurchEventsError):
    """A staged form violates a constraint; blocks submission."""

    def __init__(self, field: str, reason: str):
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason


class PermissionDenied(ChurchEventsError):
    """The current user may not perform ``action``."""

    def __init__(self, action: str, reason: str = ""):
        super().__init__(reason or f"Not allowed to {action}")
        self.action = action
        self.reason = reason or f"Not allowed to {action}"


class PersistenceError(ChurchEventsError):
    """The event store rejected an operation.

    ``message`` is the store's own text, passed through unchanged.
    """

    def __init__(self, operation: str, message: str):
        super().__init__(message)
        self.operation = operation
        self.message = message


class UploadDegraded(ChurchEventsError):
    """Non-fatal: an image could not be uploaded and the local URI is kept.

    Returned to the caller rather than raised.
    """

    def __init__(self, warning: str, local_uri: str):
        super().__init__(warning)
        self.warning = warning
        self.local_uri = local_uri
