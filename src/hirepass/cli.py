"""
Command-line interface for the HirePass system.

This module provides the main CLI entry point with commands for:
- show / generate / undo / history / restore / set / reset-history:
  the rolling password of the selected service
- service: list, add, delete, rename and re-parameterize services
- form: Google Form link parsing, info sheet link, record submission
- config: configuration management
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .audit_logger import AuditLogger
from .config import (
    DEFAULT_DATA_DIR,
    LoggingConfig,
    PersistenceConfig,
    ServiceDefaults,
    SubmissionConfig,
    SystemConfig,
)
from .enums import Outcome, RefusalReason
from .exceptions import PersistenceError, SubmissionError, ValidationError
from .i18n import get_message, refusal_message
from .integrations import (
    FormSubmitter,
    IntegrationLedger,
    info_sheet_deep_link,
    parse_google_form_link,
    submit_record,
)
from .models import FieldMappings, HireRecord, HistoryEntry, RegistryResult, Service
from .registry import ServiceRegistry
from .state_store import StateStore


DEFAULT_CONFIG_PATH = DEFAULT_DATA_DIR / "config.json"


def create_default_config(
    language: str = "en",
    data_dir: Optional[Path] = None,
    hmac_secret: str = "default-secret-change-me",
) -> SystemConfig:
    """
    Create a default system configuration.

    Args:
        language: Output language ('en' or 'de')
        data_dir: Directory for the state files
        hmac_secret: Secret for HMAC protection
    """
    if data_dir is None:
        data_dir = DEFAULT_DATA_DIR

    return SystemConfig(
        defaults=ServiceDefaults(),
        persistence=PersistenceConfig(
            registry_file_path=data_dir / "services.json",
            integrations_file_path=data_dir / "integrations.json",
            hmac_secret=hmac_secret,
        ),
        logging=LoggingConfig(level="info", output_format="text"),
        submission=SubmissionConfig(),
        language=language,
    )


def load_config_from_file(config_path: Path) -> Optional[SystemConfig]:
    """
    Load configuration from a JSON file.

    Returns:
        SystemConfig if successful, None otherwise
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        base = create_default_config()

        defaults_data = data.get("defaults", {})
        defaults = ServiceDefaults(
            id=defaults_data.get("id", base.defaults.id),
            name=defaults_data.get("name", base.defaults.name),
            initial_password=int(defaults_data.get("initial_password", base.defaults.initial_password)),
            multiplier=int(defaults_data.get("multiplier", base.defaults.multiplier)),
            addend=int(defaults_data.get("addend", base.defaults.addend)),
            modulus=int(defaults_data.get("modulus", base.defaults.modulus)),
        )

        persistence_data = data.get("persistence", {})
        persistence = PersistenceConfig(
            registry_file_path=Path(
                persistence_data.get("registry_file_path", base.persistence.registry_file_path)
            ),
            integrations_file_path=Path(
                persistence_data.get("integrations_file_path", base.persistence.integrations_file_path)
            ),
            hmac_secret=persistence_data.get("hmac_secret", base.persistence.hmac_secret),
        )

        logging_data = data.get("logging", {})
        logging_config = LoggingConfig(
            level=logging_data.get("level", "info"),
            audit_mode=logging_data.get("audit_mode", False),
            audit_signing_key=logging_data.get("audit_signing_key"),
            output_format=logging_data.get("output_format", "text"),
        )

        submission_data = data.get("submission", {})
        submission = SubmissionConfig(
            timeout_seconds=float(submission_data.get("timeout_seconds", 15.0)),
            simulation_mode=submission_data.get("simulation_mode", False),
        )

        return SystemConfig(
            defaults=defaults,
            persistence=persistence,
            logging=logging_config,
            submission=submission,
            language=data.get("language", "en"),
        )

    except (json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return None
    except FileNotFoundError:
        return None


def save_config_to_file(config: SystemConfig, config_path: Path) -> bool:
    """
    Save configuration to a JSON file.

    Returns:
        True if successful, False otherwise
    """
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "defaults": {
                "id": config.defaults.id,
                "name": config.defaults.name,
                "initial_password": config.defaults.initial_password,
                "multiplier": config.defaults.multiplier,
                "addend": config.defaults.addend,
                "modulus": config.defaults.modulus,
            },
            "persistence": {
                "registry_file_path": str(config.persistence.registry_file_path),
                "integrations_file_path": str(config.persistence.integrations_file_path),
                "hmac_secret": config.persistence.hmac_secret,
            },
            "logging": {
                "level": config.logging.level,
                "audit_mode": config.logging.audit_mode,
                "audit_signing_key": config.logging.audit_signing_key,
                "output_format": config.logging.output_format,
            },
            "submission": {
                "timeout_seconds": config.submission.timeout_seconds,
                "simulation_mode": config.submission.simulation_mode,
            },
            "language": config.language,
        }

        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

        return True

    except (OSError, TypeError) as e:
        print(f"Error saving config: {e}", file=sys.stderr)
        return False


def parse_int(value: str) -> int:
    """
    Parse user-supplied integer input.

    Raises:
        ValidationError: If value is not an integer
    """
    try:
        return int(value.strip())
    except (ValueError, AttributeError):
        raise ValidationError(
            code="invalid_number",
            message=f"Not a valid number: {value!r}",
            details={"value": value},
        )


def format_password(password: int) -> str:
    return f"{password:05d}"


def resolve_config(args: argparse.Namespace) -> Optional[SystemConfig]:
    """Load the configuration named on the command line, or the default one."""
    if args.config:
        config = load_config_from_file(Path(args.config))
        if config is None:
            print(f"Error: Could not load config from {args.config}", file=sys.stderr)
            return None
    else:
        config = load_config_from_file(DEFAULT_CONFIG_PATH) or create_default_config()

    if args.language:
        config.language = args.language
    return config


class Session:
    """Registry, ledger and logger opened for one CLI invocation."""

    def __init__(self, config: SystemConfig, verbose: bool = False) -> None:
        self.config = config
        self.language = config.language
        self.logger = AuditLogger.from_config(config.logging) if verbose else None

        registry_store = StateStore(
            file_path=config.persistence.registry_file_path,
            hmac_secret=config.persistence.hmac_secret,
        )
        integrations_store = StateStore(
            file_path=config.persistence.integrations_file_path,
            hmac_secret=config.persistence.hmac_secret,
        )
        self.registry = ServiceRegistry.open(config, registry_store, self.logger)
        self.ledger = IntegrationLedger.open(integrations_store, self.logger)

    def select(self, service_ref: Optional[str]) -> bool:
        """Make the service named by id or display name active."""
        if not service_ref:
            return True
        service = self.registry.get(service_ref) or self.registry.find_by_name(service_ref)
        if service is None:
            print(refusal_message_for(service_ref, self.language), file=sys.stderr)
            return False
        self.registry.select(service.id)
        return True

    def close(self) -> None:
        self.registry.close()


def refusal_message_for(service_ref: str, language: str) -> str:
    return refusal_message(RefusalReason.UNKNOWN_SERVICE, language, service=service_ref)


def report(result: RegistryResult, language: str, key: str, **kwargs) -> int:
    """Print feedback for a registry result and return the exit code."""
    if result.outcome is Outcome.APPLIED:
        print(get_message(key, language, **kwargs))
        return 0
    print(refusal_message(result.reason, language, service=kwargs.get("service", "")), file=sys.stderr)
    return 1


def print_service(service: Service, language: str) -> None:
    print(get_message(
        "cli.current",
        language,
        name=service.name,
        index=service.current_index,
        password=format_password(service.current_password),
    ))
    print("  " + get_message(
        "cli.formula",
        language,
        multiplier=service.multiplier,
        addend=service.addend,
        modulus=service.modulus,
    ))


def run_session(args: argparse.Namespace, handler) -> int:
    """Open a session, run handler(session, args), and always flush."""
    config = resolve_config(args)
    if config is None:
        return 1

    try:
        session = Session(config, verbose=args.verbose)
    except PersistenceError as e:
        print(get_message("cli.state_error", config.language, error=e.message), file=sys.stderr)
        return 1

    try:
        try:
            if not session.select(args.service):
                return 1
            return handler(session, args)
        finally:
            session.close()
    except ValidationError as e:
        if e.code == "invalid_number":
            print(get_message("input.invalid_number", session.language), file=sys.stderr)
        else:
            print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except PersistenceError as e:
        print(get_message("cli.state_save_error", session.language, error=e.message), file=sys.stderr)
        return 1


# Password commands


def cmd_show(session: Session, args: argparse.Namespace) -> int:
    print_service(session.registry.active_service, session.language)
    return 0


def cmd_generate(session: Session, args: argparse.Namespace) -> int:
    result = session.registry.generate()
    service = result.service
    return report(
        result,
        session.language,
        "password.generated",
        index=service.current_index,
        password=format_password(service.current_password),
    )


def cmd_undo(session: Session, args: argparse.Namespace) -> int:
    result = session.registry.undo()
    return report(result, session.language, "password.undone", index=result.service.current_index)


def cmd_history(session: Session, args: argparse.Namespace) -> int:
    service = session.registry.active_service
    if not service.history:
        print(get_message("cli.history_empty", session.language))
        return 0
    for entry in service.history[: args.limit]:
        print(f"Index {entry.index:>6}  {format_password(entry.password)}  {entry.timestamp}")
    return 0


def cmd_restore(session: Session, args: argparse.Namespace) -> int:
    entry = HistoryEntry(
        index=parse_int(args.index),
        password=parse_int(args.password),
        timestamp="",
    )
    result = session.registry.restore_from_history(entry)
    return report(result, session.language, "password.restored", index=entry.index)


def cmd_set(session: Session, args: argparse.Namespace) -> int:
    index = parse_int(args.index)
    password = parse_int(args.password)
    result = session.registry.set_manual_state(index, password)
    return report(result, session.language, "password.manual_set", index=index)


def cmd_reset_history(session: Session, args: argparse.Namespace) -> int:
    return report(session.registry.reset_history(), session.language, "history.cleared")


# Service commands


def cmd_service(session: Session, args: argparse.Namespace) -> int:
    registry = session.registry
    language = session.language

    if args.action == "list":
        for service in registry.services:
            marker = "*" if service.id == registry.active_service_id else " "
            print(
                f"{marker} {service.id}  {service.name}  "
                f"index {service.current_index}  {format_password(service.current_password)}"
            )
        return 0

    if args.action == "add":
        result = registry.add_service(
            args.name,
            initial_password=parse_int(args.password) if args.password else None,
            multiplier=parse_int(args.multiplier) if args.multiplier else None,
            addend=parse_int(args.addend) if args.addend else None,
            modulus=parse_int(args.modulus) if args.modulus else None,
        )
        return report(result, language, "service.created", name=args.name)

    active_id = registry.active_service_id

    if args.action == "delete":
        return report(registry.delete_service(active_id), language, "service.deleted", service=active_id)

    if args.action == "rename":
        return report(
            registry.update_service_settings(active_id, name=args.name),
            language,
            "service.updated",
            service=active_id,
        )

    if args.action == "params":
        updates = {}
        for option, field_name in (
            ("password", "current_password"),
            ("index", "current_index"),
            ("multiplier", "multiplier"),
            ("addend", "addend"),
            ("modulus", "modulus"),
        ):
            value = getattr(args, option)
            if value is not None:
                updates[field_name] = parse_int(value)
        return report(
            registry.update_service_settings(active_id, **updates),
            language,
            "service.updated",
            service=active_id,
        )

    return 1


# Form commands


def cmd_form(session: Session, args: argparse.Namespace) -> int:
    ledger = session.ledger
    language = session.language
    settings = ledger.settings

    if args.action == "show":
        form = settings.google_form
        print(f"Form action URL: {form.form_url if form else '-'}")
        if form:
            for name in FieldMappings.field_names():
                print(f"  {name}: {getattr(form.field_mappings, name) or '-'}")
        if settings.info_sheet_url:
            print(f"Info sheet: {info_sheet_deep_link(settings.info_sheet_url)}")
        for entry in settings.submissions:
            print(f"  {entry.timestamp}  {entry.status.value:<7}  {entry.service_name}")
        return 0

    if args.action == "parse-link":
        existing = settings.google_form.field_mappings if settings.google_form else None
        parsed = parse_google_form_link(args.value, existing)
        ledger.update_google_form_config(parsed.config)
        print(get_message("form.link_parsed", language, count=parsed.fields_found))
        print(get_message("form.saved", language))
        return 0

    if args.action == "set-sheet":
        ledger.update_info_sheet_url(args.value)
        print(get_message("form.sheet_saved", language))
        return 0

    if args.action == "submit":
        record = HireRecord(
            hire_type=args.hire_type or "",
            price=args.price or "",
            description=args.description or "",
            date_of_hire=args.date or "",
            time_of_hire=args.time or "",
            number_of_days=args.days or "",
            phone=args.phone or "",
        )
        submitter = FormSubmitter.from_config(session.config.submission)
        service_name = session.registry.active_service.name
        try:
            result = asyncio.run(submit_record(ledger, submitter, record, service_name))
        except SubmissionError as e:
            print(get_message(f"form.{e.code}", language), file=sys.stderr)
            return 1
        if not result.success:
            print(get_message("form.submit_failed", language, error=result.error), file=sys.stderr)
            return 1
        print(get_message("form.submitted", language))
        return 0

    return 1


def cmd_config(args: argparse.Namespace) -> int:
    """Handle the 'config' command."""
    config_path = Path(args.path) if args.path else DEFAULT_CONFIG_PATH

    if args.action == "show":
        config = load_config_from_file(config_path)
        if config is None:
            print(f"No configuration found at: {config_path}")
            print("Use 'config init' to create a default configuration.")
            return 1

        print(f"Configuration from: {config_path}")
        print(f"  Language: {config.language}")
        print(f"  Default service: {config.defaults.name}")
        print(f"  Services file: {config.persistence.registry_file_path}")
        print(f"  Integrations file: {config.persistence.integrations_file_path}")
        print(f"  Log level: {config.logging.level}")
        print(f"  Audit mode: {config.logging.audit_mode}")
        return 0

    if args.action == "init":
        if config_path.exists() and not args.force:
            print(f"Configuration already exists at: {config_path}")
            print("Use --force to overwrite.")
            return 1

        config = create_default_config(language=args.language or "en")
        if save_config_to_file(config, config_path):
            print(f"Configuration created at: {config_path}")
            return 0
        return 1

    return 1


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config", "-c",
        help="Path to configuration file",
    )
    common.add_argument(
        "--language", "-l",
        choices=["en", "de"],
        help="Output language (default: from configuration)",
    )
    common.add_argument(
        "--service", "-s",
        help="Target service id or name (default: first service)",
    )
    common.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Write audit log entries to stderr",
    )

    parser = argparse.ArgumentParser(
        prog="hirepass",
        description="Rolling password registry for hire services",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    for name, handler, help_text in (
        ("show", cmd_show, "Show the current password"),
        ("generate", cmd_generate, "Generate the next password"),
        ("undo", cmd_undo, "Undo the last generation"),
        ("reset-history", cmd_reset_history, "Clear the password history"),
    ):
        sub = subparsers.add_parser(name, parents=[common], help=help_text)
        sub.set_defaults(func=handler, session=True)

    history_parser = subparsers.add_parser("history", parents=[common], help="List past passwords")
    history_parser.add_argument("--limit", "-n", type=int, default=50, help="Entries to show")
    history_parser.set_defaults(func=cmd_history, session=True)

    restore_parser = subparsers.add_parser(
        "restore",
        parents=[common],
        help="Revert to a history entry (newer entries are removed)",
    )
    restore_parser.add_argument("index")
    restore_parser.add_argument("password")
    restore_parser.set_defaults(func=cmd_restore, session=True)

    set_parser = subparsers.add_parser("set", parents=[common], help="Set index and password manually")
    set_parser.add_argument("index")
    set_parser.add_argument("password")
    set_parser.set_defaults(func=cmd_set, session=True)

    service_parser = subparsers.add_parser("service", parents=[common], help="Manage services")
    service_parser.add_argument("action", choices=["list", "add", "delete", "rename", "params"])
    service_parser.add_argument("name", nargs="?", help="Name for 'add' and 'rename'")
    service_parser.add_argument("--password", help="Current / initial password")
    service_parser.add_argument("--index", help="Current index ('params' only)")
    service_parser.add_argument("--multiplier")
    service_parser.add_argument("--addend")
    service_parser.add_argument("--modulus")
    service_parser.set_defaults(func=cmd_service, session=True)

    form_parser = subparsers.add_parser("form", parents=[common], help="Google Form integration")
    form_parser.add_argument("action", choices=["show", "parse-link", "set-sheet", "submit"])
    form_parser.add_argument("value", nargs="?", help="Link for 'parse-link' / URL for 'set-sheet'")
    form_parser.add_argument("--hire-type")
    form_parser.add_argument("--price")
    form_parser.add_argument("--description")
    form_parser.add_argument("--date", help="Date of hire")
    form_parser.add_argument("--time", help="Time of hire")
    form_parser.add_argument("--days", help="Number of days")
    form_parser.add_argument("--phone")
    form_parser.set_defaults(func=cmd_form, session=True)

    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_parser.add_argument("action", choices=["show", "init"])
    config_parser.add_argument("--path", "-p", help="Path to configuration file")
    config_parser.add_argument("--force", "-f", action="store_true", help="Overwrite existing configuration")
    config_parser.add_argument("--language", "-l", choices=["en", "de"], help="Language for new configuration")
    config_parser.set_defaults(func=cmd_config, session=False)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "service" and args.action in ("add", "rename") and not args.name:
        parser.error(f"service {args.action} requires a name")
    if args.command == "form" and args.action in ("parse-link", "set-sheet") and not args.value:
        parser.error(f"form {args.action} requires a value")

    if args.session:
        return run_session(args, args.func)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
