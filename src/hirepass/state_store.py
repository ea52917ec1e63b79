"""
State Store module for persistent registry and integration state.

This module provides HMAC-protected JSON storage, ensuring data integrity
and detecting tampering, together with the codecs that turn services and
integration settings into plain JSON data and back.

The registry and the integration settings are written to separate files
by separate StateStore instances; there is no transaction spanning both.
"""

import hashlib
import hmac
import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .enums import SubmissionStatus
from .exceptions import PersistenceError, TamperingError
from .models import (
    FieldMappings,
    GoogleFormConfig,
    HistoryEntry,
    IntegrationSettings,
    Service,
    StoredDocument,
    SubmissionLogEntry,
)


class StateStore:
    """
    Persistent document storage with HMAC protection.

    Stores one JSON document to disk with an HMAC field so that edits made
    outside the application are detected on load.
    """

    VERSION = 1

    def __init__(self, file_path: Path, hmac_secret: str) -> None:
        """
        Initialize the state store.

        Args:
            file_path: Path to the state file (JSON format)
            hmac_secret: Secret key for HMAC computation
        """
        self._file_path = Path(file_path)
        self._hmac_secret = hmac_secret.encode("utf-8")
        self._document: Optional[StoredDocument] = None

    def load(self) -> Optional[StoredDocument]:
        """
        Load the document from file and validate its HMAC.

        Returns:
            StoredDocument if file exists and is valid, None if file doesn't exist

        Raises:
            TamperingError: If HMAC validation fails
            PersistenceError: If file cannot be read or parsed
        """
        if not self._file_path.exists():
            return None

        try:
            with open(self._file_path, "r", encoding="utf-8") as f:
                raw_data = json.load(f)
        except json.JSONDecodeError as e:
            raise PersistenceError(
                code="parse_error",
                message=f"Failed to parse state file: {e}",
                details={"file_path": str(self._file_path)},
            )
        except OSError as e:
            raise PersistenceError(
                code="io_error",
                message=f"Failed to read state file: {e}",
                details={"file_path": str(self._file_path)},
            )

        if not isinstance(raw_data, dict):
            raise PersistenceError(
                code="parse_error",
                message="State file does not contain a JSON object",
                details={"file_path": str(self._file_path)},
            )

        stored_hmac = raw_data.get("hmac", "")
        computed_hmac = self.compute_hmac({
            "version": raw_data.get("version"),
            "data": raw_data.get("data", {}),
            "last_updated": raw_data.get("last_updated"),
        })

        if not self.validate_hmac(stored_hmac, computed_hmac):
            raise TamperingError(
                code="hmac_mismatch",
                message="HMAC validation failed - data may have been tampered with",
                details={"file_path": str(self._file_path)},
            )

        self._document = StoredDocument(
            version=raw_data.get("version", self.VERSION),
            data=raw_data.get("data", {}),
            last_updated=raw_data.get("last_updated", ""),
            hmac=stored_hmac,
        )
        return self._document

    def save(self, data: dict) -> StoredDocument:
        """
        Write a document to file with HMAC protection.

        Args:
            data: JSON-serializable payload

        Returns:
            The document as written

        Raises:
            PersistenceError: If file cannot be written
        """
        now = datetime.now(timezone.utc).isoformat()
        computed_hmac = self.compute_hmac({
            "version": self.VERSION,
            "data": data,
            "last_updated": now,
        })
        output_data = {
            "version": self.VERSION,
            "data": data,
            "last_updated": now,
            "hmac": computed_hmac,
        }

        # The previous file stays intact until the new one is complete
        tmp_path = self._file_path.with_name(self._file_path.name + ".tmp")
        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(output_data, f, indent=2, sort_keys=True)
            os.replace(tmp_path, self._file_path)
        except OSError as e:
            if tmp_path.is_file():
                tmp_path.unlink()
            raise PersistenceError(
                code="io_error",
                message=f"Failed to write state file: {e}",
                details={"file_path": str(self._file_path)},
            )

        self._document = StoredDocument(
            version=self.VERSION,
            data=data,
            last_updated=now,
            hmac=computed_hmac,
        )
        return self._document

    def compute_hmac(self, data: dict) -> str:
        """
        Compute HMAC-SHA256 over serialized data.

        Args:
            data: Dictionary to compute HMAC over

        Returns:
            Hexadecimal HMAC string
        """
        serialized = json.dumps(data, sort_keys=True, separators=(",", ":"))
        return hmac.new(
            self._hmac_secret,
            serialized.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()

    def validate_hmac(self, stored_hmac: str, computed_hmac: str) -> bool:
        """Validate HMAC using constant-time comparison."""
        return hmac.compare_digest(stored_hmac, computed_hmac)

    @property
    def document(self) -> Optional[StoredDocument]:
        """Get the last loaded or saved document."""
        return self._document

    @property
    def file_path(self) -> Path:
        """Get the state file path."""
        return self._file_path


# Codecs


def encode_service(service: Service) -> dict:
    """Convert a Service to JSON data."""
    return {
        "id": service.id,
        "name": service.name,
        "current_index": service.current_index,
        "current_password": service.current_password,
        "multiplier": service.multiplier,
        "addend": service.addend,
        "modulus": service.modulus,
        "history": [
            {
                "index": entry.index,
                "password": entry.password,
                "timestamp": entry.timestamp,
            }
            for entry in service.history
        ],
    }


def decode_service(data: dict) -> Service:
    """Rebuild a Service from JSON data."""
    return Service(
        id=data["id"],
        name=data["name"],
        current_index=data["current_index"],
        current_password=data["current_password"],
        multiplier=data["multiplier"],
        addend=data["addend"],
        modulus=data["modulus"],
        history=tuple(
            HistoryEntry(
                index=entry["index"],
                password=entry["password"],
                timestamp=entry["timestamp"],
            )
            for entry in data.get("history", [])
        ),
    )


def encode_services(services: tuple[Service, ...]) -> dict:
    """Convert the ordered service collection to JSON data."""
    return {"services": [encode_service(service) for service in services]}


def decode_services(data: dict) -> tuple[Service, ...]:
    """
    Rebuild the ordered service collection.

    Raises:
        PersistenceError: If the data does not describe valid services
    """
    try:
        return tuple(decode_service(item) for item in data.get("services", []))
    except (KeyError, TypeError, AttributeError) as e:
        raise PersistenceError(
            code="schema_error",
            message=f"Stored services are malformed: {e}",
            details={},
        )


def encode_integrations(settings: IntegrationSettings) -> dict:
    """Convert IntegrationSettings to JSON data."""
    google_form = None
    if settings.google_form is not None:
        mappings = settings.google_form.field_mappings
        google_form = {
            "form_url": settings.google_form.form_url,
            "field_mappings": {
                name: getattr(mappings, name)
                for name in FieldMappings.field_names()
            },
        }

    return {
        "google_form": google_form,
        "info_sheet_url": settings.info_sheet_url,
        "submissions": [
            {
                "timestamp": entry.timestamp,
                "status": entry.status.value,
                "service_name": entry.service_name,
            }
            for entry in settings.submissions
        ],
    }


def decode_integrations(data: dict) -> IntegrationSettings:
    """
    Rebuild IntegrationSettings from JSON data.

    Raises:
        PersistenceError: If the data does not describe valid settings
    """
    try:
        google_form = None
        form_data = data.get("google_form")
        if form_data is not None:
            mapping_data = form_data.get("field_mappings", {})
            google_form = GoogleFormConfig(
                form_url=form_data.get("form_url", ""),
                field_mappings=FieldMappings(**{
                    name: mapping_data.get(name, "")
                    for name in FieldMappings.field_names()
                }),
            )

        return IntegrationSettings(
            google_form=google_form,
            info_sheet_url=data.get("info_sheet_url"),
            submissions=tuple(
                SubmissionLogEntry(
                    timestamp=entry["timestamp"],
                    status=SubmissionStatus(entry["status"]),
                    service_name=entry["service_name"],
                )
                for entry in data.get("submissions", [])
            ),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise PersistenceError(
            code="schema_error",
            message=f"Stored integration settings are malformed: {e}",
            details={},
        )
