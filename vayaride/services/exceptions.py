"""Failures a single inbound event can end in.

Every exception carries the text shown to the conversation that caused it.
"""


class DispatchError(Exception):
    """Base class — ``str(exc)`` is the user-facing message."""
    pass


class ValidationError(DispatchError):
    """Malformed input (name, phone, PIN, file type, missing location)."""
    pass


class DuplicateConstraintError(DispatchError):
    """Value already registered to another driver."""
    pass


class ExternalIOError(DispatchError):
    """Telegram download or media store upload failed."""
    pass


class NotFoundError(DispatchError):
    """The record the action refers to does not exist."""
    pass


class RaceLossError(DispatchError):
    """Another driver accepted the trip first."""
    pass
