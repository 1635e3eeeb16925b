from __future__ import annotations


class ValidationError(ValueError):
    """A required field is missing or malformed. Nothing was written."""

    def __init__(self, message: str = 'Validation failed', errors: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors or {}


class AuthorizationError(PermissionError):
    """The acting user's role does not allow the action on the record in its current state."""


class NotFoundError(LookupError):
    """No visible record. Absent and out-of-scope records are reported the same way."""


class StoreUnavailableError(RuntimeError):
    """The database call failed; nothing was committed and the caller may retry."""
