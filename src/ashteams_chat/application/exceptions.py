"""Application-level exceptions.

These are business-logic errors, not HTTP errors. The presentation layer
translates ``ChatAppError`` subclasses into responses using the
``status_code`` each class carries. ``CompletionError`` subclasses are never
shown to a caller: the message-send flow replaces them with an apology.
"""

from __future__ import annotations


class ChatAppError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ChatAppError):
    """A required field is missing or empty."""

    status_code = 400


class DuplicateEmailError(ValidationError):
    """Raised when registering an email that already has an account."""

    def __init__(self, email: str) -> None:
        super().__init__("Email already registered")
        self.email = email


class UnauthorizedError(ChatAppError):
    """The caller presented no identity at all."""

    status_code = 401


class ForbiddenError(ChatAppError):
    """The caller's identity does not own the target resource."""

    status_code = 403


class NotFoundError(ChatAppError):
    status_code = 404


# ---------------------------------------------------------------------------
# Completion provider
# ---------------------------------------------------------------------------


class CompletionError(Exception):
    """Base class for failures talking to the completion provider."""


class ConfigurationError(CompletionError):
    """No provider credential is configured."""


class UpstreamError(CompletionError):
    """The provider answered with an error status or an unusable body."""

    def __init__(self, message: str, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
