"""
HirePass - rolling password registry for hire services.

Each service carries its own affine recurrence and a bounded, reversible
history of past codes. This package provides the password state machine,
the service registry that routes operations to it, HMAC-protected
persistence, and the Google Form integration ledger.
"""

__version__ = "0.1.0"
__author__ = "HirePass Team"

from hirepass.exceptions import (
    HirePassError,
    RecurrenceError,
    ValidationError,
    PersistenceError,
    TamperingError,
    SubmissionError,
)
from hirepass.enums import (
    Outcome,
    RefusalReason,
    SubmissionStatus,
    LogLevel,
)
from hirepass.config import (
    ServiceDefaults,
    PersistenceConfig,
    LoggingConfig,
    SubmissionConfig,
    SystemConfig,
)
from hirepass.models import (
    HISTORY_LIMIT,
    SUBMISSION_LOG_LIMIT,
    HistoryEntry,
    Service,
    TransitionResult,
    RegistryResult,
    RegistrySnapshot,
    FieldMappings,
    GoogleFormConfig,
    HireRecord,
    SubmissionLogEntry,
    IntegrationSettings,
    StoredDocument,
)
from hirepass.password_machine import (
    next_password,
    generate,
    can_undo,
    undo,
    restore_from_history,
    set_manual_state,
    reset_history,
)
from hirepass.registry import (
    ServiceRegistry,
    create_default_service,
)
from hirepass.state_store import (
    StateStore,
)
from hirepass.audit_logger import (
    AuditLogger,
    LogEntry,
)
from hirepass.integrations import (
    IntegrationLedger,
    ParsedFormLink,
    FormSubmitter,
    SubmissionResult,
    parse_google_form_link,
    build_submission_url,
    info_sheet_deep_link,
    submit_record,
)
from hirepass.i18n import (
    get_message,
    refusal_message,
    TRANSLATIONS,
    SUPPORTED_LANGUAGES,
    DEFAULT_LANGUAGE,
)
from hirepass.cli import (
    main as cli_main,
    create_parser,
    create_default_config,
    load_config_from_file,
    save_config_to_file,
)

__all__ = [
    # Exceptions
    "HirePassError",
    "RecurrenceError",
    "ValidationError",
    "PersistenceError",
    "TamperingError",
    "SubmissionError",
    # Enums
    "Outcome",
    "RefusalReason",
    "SubmissionStatus",
    "LogLevel",
    # Configuration
    "ServiceDefaults",
    "PersistenceConfig",
    "LoggingConfig",
    "SubmissionConfig",
    "SystemConfig",
    # Models
    "HISTORY_LIMIT",
    "SUBMISSION_LOG_LIMIT",
    "HistoryEntry",
    "Service",
    "TransitionResult",
    "RegistryResult",
    "RegistrySnapshot",
    "FieldMappings",
    "GoogleFormConfig",
    "HireRecord",
    "SubmissionLogEntry",
    "IntegrationSettings",
    "StoredDocument",
    # Password State Machine
    "next_password",
    "generate",
    "can_undo",
    "undo",
    "restore_from_history",
    "set_manual_state",
    "reset_history",
    # Registry
    "ServiceRegistry",
    "create_default_service",
    # State Store
    "StateStore",
    # Audit Logger
    "AuditLogger",
    "LogEntry",
    # Integrations
    "IntegrationLedger",
    "ParsedFormLink",
    "FormSubmitter",
    "SubmissionResult",
    "parse_google_form_link",
    "build_submission_url",
    "info_sheet_deep_link",
    "submit_record",
    # I18n
    "get_message",
    "refusal_message",
    "TRANSLATIONS",
    "SUPPORTED_LANGUAGES",
    "DEFAULT_LANGUAGE",
    # CLI
    "cli_main",
    "create_parser",
    "create_default_config",
    "load_config_from_file",
    "save_config_to_file",
]
