"""
Configuration dataclasses for the HirePass system.

This module defines the configuration structures used throughout the
system: the seed values for new services, persistence locations,
logging, and outbound form submission.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


DEFAULT_DATA_DIR = Path.home() / ".hirepass"


@dataclass
class ServiceDefaults:
    """Seed values for the default service and for new services."""

    id: str = "default"
    name: str = "(G) Trailer"
    initial_password: int = 41378
    multiplier: int = 7
    addend: int = 386
    modulus: int = 100000


@dataclass
class PersistenceConfig:
    """Persistence and state storage configuration."""

    registry_file_path: Path = field(
        default_factory=lambda: DEFAULT_DATA_DIR / "services.json"
    )
    integrations_file_path: Path = field(
        default_factory=lambda: DEFAULT_DATA_DIR / "integrations.json"
    )
    hmac_secret: str = "default-secret-change-me"


@dataclass
class LoggingConfig:
    """Logging and audit configuration."""

    level: str = "info"
    audit_mode: bool = False
    audit_signing_key: Optional[str] = None
    output_format: str = "text"  # 'json', 'text', 'both'


@dataclass
class SubmissionConfig:
    """Outbound form submission configuration."""

    timeout_seconds: float = 15.0
    simulation_mode: bool = False


@dataclass
class SystemConfig:
    """Main system configuration combining all sub-configurations."""

    defaults: ServiceDefaults = field(default_factory=ServiceDefaults)
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    submission: SubmissionConfig = field(default_factory=SubmissionConfig)
    language: str = "en"  # 'en' or 'de'
