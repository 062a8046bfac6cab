"""
Custom exceptions for order synchronization.
"""


class OrderSyncError(Exception):
    """Base exception for order synchronization errors."""
    pass


class ChannelBindingError(OrderSyncError):
    """Raised when an engine is attached to a channel while already bound."""
    pass


class InvalidEventPayload(OrderSyncError):
    """Raised when an inbound event cannot be turned into an order snapshot."""

    def __init__(self, event, errors, message=None):
        self.event = event
        self.errors = errors
        if message is None:
            message = f"Invalid {event} payload: {errors}"
        super().__init__(message)


class OrderValidationError(OrderSyncError):
    """Raised when a draft cannot be placed as an order."""

    def __init__(self, errors, message=None):
        self.errors = errors
        if message is None:
            message = f"Order cannot be placed: {errors}"
        super().__init__(message)


class SubmissionStateError(OrderSyncError):
    """Raised when a submission is started or resolved in the wrong state."""
    pass
