"""Typed errors raised by the gatepass services."""
from typing import Optional


class GatepassError(Exception):
    """Base class for lifecycle and persistence errors"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(GatepassError):
    """Submission is missing fields or has malformed values"""

    def __init__(self, message: str, errors: Optional[list[dict]] = None):
        super().__init__(message)
        self.errors = errors or []


class NotFoundError(GatepassError):
    """No request with the given identifier"""
    pass


class ConflictError(GatepassError):
    """Request exists but its status does not allow the requested transition.

    `request` is the record as currently stored, returned unchanged.
    """

    def __init__(self, message: str, request=None):
        super().__init__(message)
        self.request = request


class TransientError(GatepassError):
    """Store timed out or lost connectivity; safe to retry"""
    pass


class NotificationFailedError(GatepassError):
    """Notification delivery failed (logged, never fails a transition)"""
    pass
