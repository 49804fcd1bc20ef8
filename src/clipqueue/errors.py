"""Custom exceptions for clipqueue."""


class ClipQueueError(Exception):
    """Base exception for clipqueue."""

    pass


class InvalidJobError(ClipQueueError, ValueError):
    """Job rejected at enqueue time."""

    pass


class UnknownJobTypeError(InvalidJobError):
    """No handler is registered for the job type."""

    pass


class StorageError(ClipQueueError):
    """Snapshot storage read or write failed."""

    pass


class BatchJobError(ClipQueueError):
    """A child job of a batch failed."""

    pass


class HandlerConfigurationError(ClipQueueError):
    """Handler registration can never succeed."""

    pass
