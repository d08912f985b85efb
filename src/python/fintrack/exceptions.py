"""Custom exception types for FinTrack."""

from __future__ import annotations


class UnboundError(Exception):
    """Raised when an operation needs a bound user id and none is set."""

    def __init__(self, message: str = "No user is bound to the synchronizer") -> None:
        super().__init__(message)


class GatewayError(Exception):
    """Raised when a persistence gateway call fails."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


class ValidationError(ValueError):
    """Raised when input values are malformed or out of range."""


class NotAuthenticatedError(Exception):
    """Raised when login or registration is rejected."""


class InferenceError(Exception):
    """Raised when the chat completion endpoint fails."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
