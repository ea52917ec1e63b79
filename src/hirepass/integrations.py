"""
Integration Ledger for the HirePass system.

Holds the outbound Google Form configuration, the info sheet link and a
capped log of submission outcomes. It reads nothing from the password
state machine except the name of the service a submission was made for.

The module also carries the thin boundary helpers around the form:
turning a prefilled form link into a ``formResponse`` target, building the
submission URL from a hire record, and sending it with an HTTP GET.
"""

import re
from dataclasses import dataclass, fields, replace
from typing import Optional, Union
from urllib.parse import parse_qsl, urlencode, urlsplit

import httpx

from .audit_logger import AuditLogger
from .config import SubmissionConfig
from .enums import LogLevel, SubmissionStatus
from .exceptions import SubmissionError, ValidationError
from .models import (
    SUBMISSION_LOG_LIMIT,
    Clock,
    FieldMappings,
    GoogleFormConfig,
    HireRecord,
    IntegrationSettings,
    SubmissionLogEntry,
    utc_now,
)
from .state_store import StateStore, decode_integrations, encode_integrations


COMPONENT = "integrations"

FORM_RESPONSE_SUFFIX = "/formResponse"
GOOGLE_FORMS_MARKER = "docs.google.com/forms"
GOOGLE_SHEETS_MARKER = "docs.google.com/spreadsheets"


class IntegrationLedger:
    """
    Integration settings with write-through persistence.

    Persisted independently of the service registry.
    """

    def __init__(
        self,
        settings: Optional[IntegrationSettings] = None,
        store: Optional[StateStore] = None,
        logger: Optional[AuditLogger] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._settings = settings or IntegrationSettings()
        self._store = store
        self._logger = logger
        self._clock = clock or utc_now

    @classmethod
    def open(
        cls,
        store: Optional[StateStore] = None,
        logger: Optional[AuditLogger] = None,
        clock: Optional[Clock] = None,
    ) -> "IntegrationLedger":
        """Load settings from the store, or start with empty settings."""
        settings = IntegrationSettings()
        if store is not None:
            document = store.load()
            if document is not None:
                settings = decode_integrations(document.data)
        return cls(settings=settings, store=store, logger=logger, clock=clock)

    @property
    def settings(self) -> IntegrationSettings:
        return self._settings

    @property
    def submissions(self) -> tuple[SubmissionLogEntry, ...]:
        return self._settings.submissions

    def log_submission(
        self,
        status: Union[SubmissionStatus, str],
        service_name: str,
    ) -> SubmissionLogEntry:
        """
        Record a submission outcome, keeping the newest SUBMISSION_LOG_LIMIT entries.

        Raises:
            ValidationError: If status is not 'success' or 'error'
        """
        try:
            status = SubmissionStatus(status)
        except ValueError:
            raise ValidationError(
                code="invalid_status",
                message=f"Unknown submission status: {status!r}",
                details={"status": status},
            )

        entry = SubmissionLogEntry(
            timestamp=self._clock(),
            status=status,
            service_name=service_name,
        )
        submissions = ((entry,) + self._settings.submissions)[:SUBMISSION_LOG_LIMIT]
        self._update(replace(self._settings, submissions=submissions))

        level = LogLevel.INFO if status is SubmissionStatus.SUCCESS else LogLevel.WARN
        self._log(level, "Submission logged", {"status": status.value, "service_name": service_name})
        return entry

    def update_google_form_config(self, config: GoogleFormConfig) -> IntegrationSettings:
        """
        Replace the form configuration.

        Raises:
            ValidationError: If config is not a GoogleFormConfig with string fields
        """
        if not isinstance(config, GoogleFormConfig) or not isinstance(config.form_url, str):
            raise ValidationError(
                code="invalid_form_config",
                message="Form configuration must be a GoogleFormConfig",
                details={},
            )
        mappings = config.field_mappings
        if not isinstance(mappings, FieldMappings) or not all(
            isinstance(getattr(mappings, name), str) for name in FieldMappings.field_names()
        ):
            raise ValidationError(
                code="invalid_form_config",
                message="Field mappings must be strings",
                details={},
            )

        self._update(replace(self._settings, google_form=config))
        self._log(LogLevel.INFO, "Google Form settings updated", {"form_url": config.form_url})
        return self._settings

    def update_info_sheet_url(self, url: str) -> IntegrationSettings:
        """
        Replace the info sheet link.

        Raises:
            ValidationError: If url is not a string
        """
        if not isinstance(url, str):
            raise ValidationError(
                code="invalid_url",
                message="Info sheet URL must be a string",
                details={},
            )

        self._update(replace(self._settings, info_sheet_url=url))
        self._log(LogLevel.INFO, "Info sheet URL updated", {"url": url})
        return self._settings

    def flush(self) -> None:
        if self._store is not None:
            self._store.save(encode_integrations(self._settings))

    def _update(self, settings: IntegrationSettings) -> None:
        # Adopt the new settings only once they are on disk
        if self._store is not None:
            self._store.save(encode_integrations(settings))
        self._settings = settings

    def _log(self, level: LogLevel, message: str, data: Optional[dict] = None) -> None:
        if self._logger:
            self._logger.log(level, COMPONENT, message, data)


# Form link parsing and submission


@dataclass(frozen=True)
class ParsedFormLink:
    """Form target derived from a prefilled link."""

    config: GoogleFormConfig
    fields_found: int


def parse_google_form_link(
    link: str,
    existing: Optional[FieldMappings] = None,
) -> ParsedFormLink:
    """
    Derive a form target from a Google Form viewform or prefill link.

    The action URL is the link without its query, with any ``/viewform`` or
    ``/prefill`` tail replaced by ``/formResponse``. The ``entry.*`` query
    keys are assigned, in order, to the record fields in form order; fields
    beyond the number of entries keep their existing mapping.

    Args:
        link: Link copied from the form's "get prefilled link" page
        existing: Current mappings to start from

    Returns:
        ParsedFormLink with the new configuration and how many fields were mapped

    Raises:
        ValidationError: If the link is empty or not an absolute URL
    """
    link = (link or "").strip()
    if not link:
        raise ValidationError(code="empty_input", message="Form link is empty", details={})

    parts = urlsplit(link)
    if not parts.scheme or not parts.netloc:
        raise ValidationError(
            code="invalid_url",
            message="Invalid URL",
            details={"link": link},
        )

    base_url = link.split("?", 1)[0]
    base_url = re.sub(r"/viewform.*", FORM_RESPONSE_SUFFIX, base_url)
    base_url = re.sub(r"/prefill.*", FORM_RESPONSE_SUFFIX, base_url)
    if not base_url.endswith(FORM_RESPONSE_SUFFIX) and GOOGLE_FORMS_MARKER in base_url:
        base_url = base_url.rstrip("/") + FORM_RESPONSE_SUFFIX

    entries: list[str] = []
    for key, _ in parse_qsl(parts.query, keep_blank_values=True):
        if key.startswith("entry.") and key not in entries:
            entries.append(key)

    mappings = existing or FieldMappings()
    names = FieldMappings.field_names()
    found = min(len(entries), len(names))
    mappings = replace(mappings, **dict(zip(names, entries[:found])))

    return ParsedFormLink(
        config=GoogleFormConfig(form_url=base_url, field_mappings=mappings),
        fields_found=found,
    )


def build_submission_url(config: GoogleFormConfig, record: HireRecord) -> str:
    """
    Build the GET URL for a record.

    Only fields with both a mapped entry id and a non-empty value are sent.
    """
    params = []
    for f in fields(HireRecord):
        entry_id = getattr(config.field_mappings, f.name)
        value = getattr(record, f.name)
        if entry_id and value:
            params.append((entry_id, value))

    if not params:
        return config.form_url
    return config.form_url + "?" + urlencode(params)


def info_sheet_deep_link(url: str) -> str:
    """Google Sheets links open in the Sheets app; anything else is unchanged."""
    if GOOGLE_SHEETS_MARKER in url:
        return url.replace("https://", "googlesheets://", 1)
    return url


@dataclass
class SubmissionResult:
    """Result of a form submission attempt."""

    success: bool
    url: str
    http_status_code: Optional[int] = None
    error: Optional[str] = None


class FormSubmitter:
    """Sends hire records to the configured form with an HTTP GET."""

    def __init__(
        self,
        timeout: float = 15.0,
        simulation_mode: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the submitter.

        Args:
            timeout: Request timeout in seconds
            simulation_mode: If True, no real network requests are made
            transport: Optional httpx transport (used by tests)
        """
        self._timeout = timeout
        self._simulation_mode = simulation_mode
        self._transport = transport

    @classmethod
    def from_config(cls, config: SubmissionConfig) -> "FormSubmitter":
        return cls(timeout=config.timeout_seconds, simulation_mode=config.simulation_mode)

    async def submit(self, config: GoogleFormConfig, record: HireRecord) -> SubmissionResult:
        """Send a record; transport failures are reported in the result."""
        url = build_submission_url(config, record)
        if self._simulation_mode:
            return SubmissionResult(success=True, url=url)

        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self._timeout),
            transport=self._transport,
            follow_redirects=True,
        ) as client:
            try:
                response = await client.get(url)
            except httpx.HTTPError as e:
                return SubmissionResult(success=False, url=url, error=str(e))

        if response.status_code >= 400:
            return SubmissionResult(
                success=False,
                url=url,
                http_status_code=response.status_code,
                error=f"HTTP {response.status_code}",
            )
        return SubmissionResult(success=True, url=url, http_status_code=response.status_code)


async def submit_record(
    ledger: IntegrationLedger,
    submitter: FormSubmitter,
    record: HireRecord,
    service_name: str,
) -> SubmissionResult:
    """
    Submit a hire record and log the outcome against service_name.

    Raises:
        SubmissionError: If no form is configured or the hire type is missing
    """
    config = ledger.settings.google_form
    if config is None or not config.form_url:
        raise SubmissionError(
            code="not_configured",
            message="Google Form is not configured",
            details={},
        )
    if not record.hire_type:
        raise SubmissionError(
            code="missing_hire_type",
            message="Hire type is required",
            details={},
        )

    result = await submitter.submit(config, record)
    ledger.log_submission(
        SubmissionStatus.SUCCESS if result.success else SubmissionStatus.ERROR,
        service_name,
    )
    return result
