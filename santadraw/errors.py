"""Custom exception classes for the application."""

from __future__ import annotations


class AppError(Exception):
    """Base application error class."""

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ValidationError(AppError):
    """Raised when user input fails validation."""

    def __init__(self, message="Validation failed."):
        """Initialize the error."""
        super().__init__(message, 400)


class NotFound(AppError):
    """Raised when a join code does not resolve to a group."""

    def __init__(self, message="No group found with that code."):
        """Initialize the error."""
        super().__init__(message, 404)


class AlreadyMember(AppError):
    """Raised when a user tries to join a group they already belong to."""

    def __init__(self, message="You are already part of that group."):
        """Initialize the error."""
        super().__init__(message, 409)


class IncompleteResponses(AppError):
    """Raised when required custom fields were left blank on join."""

    def __init__(self, missing_labels: list[str]):
        """Initialize the error with the labels of the blank fields."""
        self.missing_labels = list(missing_labels)
        super().__init__(
            "Please fill out all required fields: " + ", ".join(self.missing_labels),
            400,
        )


class Forbidden(AppError):
    """Raised when a non-organizer attempts an organizer-only action."""

    def __init__(self, message="Only the organizer can do that."):
        """Initialize the error."""
        super().__init__(message, 403)


class InsufficientMembers(AppError):
    """Raised when a draw is requested for fewer than two members."""

    def __init__(self, message="You need at least two members to run a draw."):
        """Initialize the error."""
        super().__init__(message, 400)


class StoreUnavailable(AppError):
    """Raised when the document store fails a read, write or subscription."""

    def __init__(self, message="The group store is unavailable right now."):
        """Initialize the error."""
        super().__init__(message, 503)


class AuthFailure(AppError):
    """Raised when the identity provider rejects a sign-in."""

    def __init__(self, message="We could not sign you in. Please try again."):
        """Initialize the error."""
        super().__init__(message, 401)
