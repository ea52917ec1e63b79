"""
Exception classes for the HirePass system.

All exceptions inherit from HirePassError and provide structured
error information with codes, messages, and optional details.

Expected domain conditions (undo without history, deleting the last
service, selecting an unknown service) are never raised; they are
reported as refused outcomes by the registry.
"""

from typing import Optional


class HirePassError(Exception):
    """Base exception for all HirePass errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class RecurrenceError(HirePassError):
    """Raised when the recurrence cannot be evaluated (modulus <= 0)."""

    pass


class ValidationError(HirePassError):
    """Raised when boundary input (numbers, URLs, settings) is malformed."""

    pass


class PersistenceError(HirePassError):
    """Raised when persistence operations fail (file I/O, parsing)."""

    pass


class TamperingError(PersistenceError):
    """Raised when HMAC validation fails, indicating data tampering."""

    pass


class SubmissionError(HirePassError):
    """Raised when a form submission cannot be made."""

    pass
