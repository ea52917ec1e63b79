"""
Enumeration types for the HirePass system.

These enums provide type-safe constants for operation outcomes,
refusal reasons, submission status, and logging levels.
"""

from enum import Enum


class Outcome(Enum):
    """Result of a state transition."""

    APPLIED = "applied"
    REFUSED = "refused"
    NO_OP = "no_op"


class RefusalReason(Enum):
    """Why a transition was refused or had no effect."""

    INSUFFICIENT_HISTORY = "insufficient_history"
    ENTRY_NOT_FOUND = "entry_not_found"
    LAST_SERVICE = "last_service"
    UNKNOWN_SERVICE = "unknown_service"
    INVALID_MODULUS = "invalid_modulus"


class SubmissionStatus(Enum):
    """Outcome of an outbound form submission."""

    SUCCESS = "success"
    ERROR = "error"


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
