from abc import ABC


class UserError(ABC, Exception):
    """Base class for user-related errors.

    All errors that inherit from UserError will have their messages
    displayed to the user. These errors should not contain any
    sensitive information such as credentials or variable values.
    """


class NotFoundError(UserError):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message)


class ValidationError(UserError):
    """Raised when user input fails validation."""


class InvalidOptionsError(ValidationError):
    """Raised when export or import options are malformed (nothing selected, unknown mode or format)."""


class PayloadParseError(ValidationError):
    """Raised when file content is not valid JSON or not a JSON object."""


class PayloadValidationError(ValidationError):
    """Raised when a payload violates entity schemas. The message aggregates every failure."""


class OperationCancelledError(UserError):
    """Raised when the user dismisses a file dialog."""

    def __init__(self, message: str = "Operation cancelled by user") -> None:
        super().__init__(message)


class FileOperationError(UserError):
    """Raised when a file cannot be read, written, or its path is unsafe."""
