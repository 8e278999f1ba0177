"""Exceptions raised by the defect tracker."""


class TrackerError(Exception):
    """Base class for all tracker errors."""


class StorageError(TrackerError):
    """Raised when a store cannot persist or serialise tracker state."""


class RunStateError(TrackerError):
    """Raised when the recorder is driven out of order."""


class RunAlreadyOpenError(RunStateError):
    """Raised when starting a run while another one is still open."""


class RunNotOpenError(RunStateError):
    """Raised when reporting or completing without an open run."""


class InvalidTestIdentityError(TrackerError, ValueError):
    """Raised for an empty or malformed test identity."""
