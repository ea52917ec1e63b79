"""
Data models for the HirePass system.

This module defines the service and history values driven by the password
state machine, the registry snapshot, the integration settings, and the
persisted document wrapper.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Callable, Optional

from .enums import Outcome, RefusalReason, SubmissionStatus


HISTORY_LIMIT = 50
SUBMISSION_LOG_LIMIT = 20

# Returns the current instant as an ISO 8601 string
Clock = Callable[[], str]


def utc_now() -> str:
    """Current UTC instant in ISO 8601 format."""
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class HistoryEntry:
    """A recorded (index, password) pair."""

    index: int
    password: int
    timestamp: str


@dataclass(frozen=True)
class Service:
    """
    An independently configured rolling-password sequence.

    The current pair is held in its own fields and is deliberately not
    derived from ``history[0]``: restore and manual override may leave the
    two apart.
    """

    id: str
    name: str
    current_index: int
    current_password: int
    multiplier: int
    addend: int
    modulus: int
    history: tuple[HistoryEntry, ...] = ()  # newest first


@dataclass(frozen=True)
class TransitionResult:
    """Result of applying one state machine transition to a service."""

    service: Service
    outcome: Outcome
    reason: Optional[RefusalReason] = None

    @property
    def applied(self) -> bool:
        return self.outcome is Outcome.APPLIED


@dataclass(frozen=True)
class RegistryResult:
    """Result of a registry operation, as seen by the presentation layer."""

    outcome: Outcome
    service: Optional[Service] = None
    reason: Optional[RefusalReason] = None

    @property
    def applied(self) -> bool:
        return self.outcome is Outcome.APPLIED


@dataclass(frozen=True)
class RegistrySnapshot:
    """Point-in-time view of the registry."""

    services: tuple[Service, ...]
    active_service_id: str

    @property
    def active_service(self) -> Service:
        for service in self.services:
            if service.id == self.active_service_id:
                return service
        return self.services[0]


@dataclass(frozen=True)
class FieldMappings:
    """Google Form entry identifiers (``entry.NNN``) for each record field."""

    hire_type: str = ""
    price: str = ""
    description: str = ""
    date_of_hire: str = ""
    time_of_hire: str = ""
    number_of_days: str = ""
    phone: str = ""

    @classmethod
    def field_names(cls) -> list[str]:
        """Record field names in form order."""
        return [f.name for f in fields(cls)]


@dataclass(frozen=True)
class GoogleFormConfig:
    """Outbound form target."""

    form_url: str = ""
    field_mappings: FieldMappings = field(default_factory=FieldMappings)


@dataclass
class HireRecord:
    """A hire record submitted to the configured form."""

    hire_type: str = ""
    price: str = ""
    description: str = ""
    date_of_hire: str = ""
    time_of_hire: str = ""
    number_of_days: str = ""
    phone: str = ""


@dataclass(frozen=True)
class SubmissionLogEntry:
    """One outbound submission outcome."""

    timestamp: str
    status: SubmissionStatus
    service_name: str


@dataclass(frozen=True)
class IntegrationSettings:
    """Form configuration, info sheet link, and the capped submission log."""

    google_form: Optional[GoogleFormConfig] = None
    info_sheet_url: Optional[str] = None
    submissions: tuple[SubmissionLogEntry, ...] = ()  # newest first


@dataclass
class StoredDocument:
    """
    Wrapper for all persisted data with HMAC protection.

    The HMAC is computed over ``version``, ``data`` and ``last_updated``.
    """

    version: int
    data: dict
    last_updated: str
    hmac: str
