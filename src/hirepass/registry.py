"""
Service Registry for the HirePass system.

The registry owns the ordered collection of services and the active
selection pointer. It resolves the target service of every operation by
id, applies the password state machine transition, writes the full state
through to the store, and returns the outcome to the caller.

Expected domain conditions (undo without history, deleting the last
service, unknown ids) are returned as REFUSED or NO_OP results, never
raised. A failed write raises PersistenceError and leaves the registry
as it was before the operation.
"""

import uuid
from dataclasses import replace
from typing import Optional

from . import password_machine
from .audit_logger import AuditLogger
from .config import ServiceDefaults, SystemConfig
from .enums import LogLevel, Outcome, RefusalReason
from .exceptions import RecurrenceError
from .models import (
    Clock,
    HistoryEntry,
    RegistryResult,
    RegistrySnapshot,
    Service,
    TransitionResult,
    utc_now,
)
from .state_store import StateStore, decode_services, encode_services


UPDATABLE_FIELDS = frozenset({
    "name",
    "current_password",
    "current_index",
    "multiplier",
    "addend",
    "modulus",
})

COMPONENT = "registry"


def create_default_service(defaults: ServiceDefaults) -> Service:
    """Build the seeded service from configuration."""
    return Service(
        id=defaults.id,
        name=defaults.name,
        current_index=0,
        current_password=defaults.initial_password,
        multiplier=defaults.multiplier,
        addend=defaults.addend,
        modulus=defaults.modulus,
    )


class ServiceRegistry:
    """
    Ordered collection of services with an active selection.

    The registry is constructed explicitly and passed to whoever needs it;
    use ``open`` to load persisted state or seed the default service, and
    ``close`` for the final flush.
    """

    def __init__(
        self,
        services: tuple[Service, ...],
        defaults: Optional[ServiceDefaults] = None,
        state_store: Optional[StateStore] = None,
        logger: Optional[AuditLogger] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        """
        Initialize the registry.

        Args:
            services: Initial services in display order (at least one)
            defaults: Parameters used for services added without explicit values
            state_store: Optional store written after every mutation
            logger: Optional audit logger
            clock: Timestamp source for history entries
        """
        if not services:
            raise ValueError("A registry needs at least one service")

        self._services: list[Service] = list(services)
        self._active_id = self._services[0].id
        self._defaults = defaults or ServiceDefaults()
        self._state_store = state_store
        self._logger = logger
        self._clock = clock or utc_now

    @classmethod
    def open(
        cls,
        config: SystemConfig,
        state_store: Optional[StateStore] = None,
        logger: Optional[AuditLogger] = None,
        clock: Optional[Clock] = None,
    ) -> "ServiceRegistry":
        """
        Load the registry from the store, or seed it with the default service.

        Raises:
            PersistenceError: If the stored state cannot be read
            TamperingError: If the stored state fails HMAC validation
        """
        services: tuple[Service, ...] = ()
        if state_store is not None:
            document = state_store.load()
            if document is not None:
                services = decode_services(document.data)

        seeded = not services
        if seeded:
            services = (create_default_service(config.defaults),)

        registry = cls(
            services=services,
            defaults=config.defaults,
            state_store=state_store,
            logger=logger,
            clock=clock,
        )
        registry._log(
            LogLevel.INFO,
            "Registry seeded with default service" if seeded else "Registry loaded",
            {"service_count": len(services)},
        )
        if seeded:
            registry.flush()
        return registry

    # Read access

    @property
    def services(self) -> tuple[Service, ...]:
        return tuple(self._services)

    @property
    def active_service_id(self) -> str:
        return self._active_id

    @property
    def active_service(self) -> Service:
        service = self.get(self._active_id)
        if service is None:
            # Active service vanished; fall back to the head
            self._active_id = self._services[0].id
            return self._services[0]
        return service

    def get(self, service_id: str) -> Optional[Service]:
        for service in self._services:
            if service.id == service_id:
                return service
        return None

    def find_by_name(self, name: str) -> Optional[Service]:
        """First service with the given display name."""
        for service in self._services:
            if service.name == name:
                return service
        return None

    def snapshot(self) -> RegistrySnapshot:
        return RegistrySnapshot(
            services=self.services,
            active_service_id=self.active_service.id,
        )

    # Registry operations

    def add_service(
        self,
        name: str,
        initial_password: Optional[int] = None,
        multiplier: Optional[int] = None,
        addend: Optional[int] = None,
        modulus: Optional[int] = None,
    ) -> RegistryResult:
        """Append a new service (index 0, empty history) and make it active."""
        defaults = self._defaults
        service = Service(
            id=uuid.uuid4().hex,
            name=name,
            current_index=0,
            current_password=(
                defaults.initial_password if initial_password is None else initial_password
            ),
            multiplier=defaults.multiplier if multiplier is None else multiplier,
            addend=defaults.addend if addend is None else addend,
            modulus=defaults.modulus if modulus is None else modulus,
        )
        self._commit(self._services + [service])
        self._active_id = service.id

        self._log(LogLevel.INFO, "Service created", {"service_id": service.id, "name": name})
        return RegistryResult(outcome=Outcome.APPLIED, service=service)

    def delete_service(self, service_id: str) -> RegistryResult:
        """
        Remove a service.

        Refused when it is the only service left or the id is unknown. When
        the active service is removed, the new head becomes active.
        """
        if len(self._services) <= 1:
            return self._refuse(RefusalReason.LAST_SERVICE, service_id)

        target = self.get(service_id)
        if target is None:
            return self._refuse(RefusalReason.UNKNOWN_SERVICE, service_id)

        self._commit([s for s in self._services if s.id != service_id])
        if self._active_id == service_id:
            self._active_id = self._services[0].id

        self._log(LogLevel.INFO, "Service deleted", {"service_id": service_id})
        return RegistryResult(outcome=Outcome.APPLIED, service=target)

    def update_service_settings(self, service_id: str, **updates) -> RegistryResult:
        """
        Merge settings into a service without validation.

        Accepts any of name, current_password, current_index, multiplier,
        addend, modulus. A zero modulus is stored as given and only surfaces
        on the next generate.

        Raises:
            TypeError: If an unknown field name is passed
        """
        unknown = set(updates) - UPDATABLE_FIELDS
        if unknown:
            raise TypeError(f"Unknown service settings: {sorted(unknown)}")

        service = self.get(service_id)
        if service is None:
            return self._refuse(RefusalReason.UNKNOWN_SERVICE, service_id)

        updated = replace(service, **updates)
        self._store(updated)

        self._log(
            LogLevel.INFO,
            "Settings updated",
            {"service_id": service_id, "fields": sorted(updates)},
        )
        return RegistryResult(outcome=Outcome.APPLIED, service=updated)

    def select(self, service_id: str) -> RegistryResult:
        """Make a service active; unknown ids are refused and leave the pointer alone."""
        service = self.get(service_id)
        if service is None:
            return self._refuse(RefusalReason.UNKNOWN_SERVICE, service_id)

        self._active_id = service_id
        return RegistryResult(outcome=Outcome.APPLIED, service=service)

    # Password state machine routing

    def generate(self, service_id: Optional[str] = None) -> RegistryResult:
        """Advance the target service (the active one by default)."""
        service = self._resolve(service_id)
        if service is None:
            return self._refuse(RefusalReason.UNKNOWN_SERVICE, service_id)

        try:
            result = password_machine.generate(service, now=self._clock())
        except RecurrenceError as e:
            if self._logger:
                self._logger.log_error(
                    COMPONENT,
                    "Cannot generate password",
                    error=e,
                    additional_data={"service_id": service.id},
                )
            return RegistryResult(
                outcome=Outcome.REFUSED,
                service=service,
                reason=RefusalReason.INVALID_MODULUS,
            )
        return self._apply(result, "Password generated")

    def undo(self, service_id: Optional[str] = None) -> RegistryResult:
        service = self._resolve(service_id)
        if service is None:
            return self._refuse(RefusalReason.UNKNOWN_SERVICE, service_id)
        return self._apply(password_machine.undo(service), "Generation undone")

    def restore_from_history(
        self,
        entry: HistoryEntry,
        service_id: Optional[str] = None,
    ) -> RegistryResult:
        """Rewind to a history entry. Newer entries are discarded for good."""
        service = self._resolve(service_id)
        if service is None:
            return self._refuse(RefusalReason.UNKNOWN_SERVICE, service_id)
        return self._apply(
            password_machine.restore_from_history(service, entry),
            "Restored from history",
        )

    def set_manual_state(
        self,
        index: int,
        password: int,
        service_id: Optional[str] = None,
    ) -> RegistryResult:
        service = self._resolve(service_id)
        if service is None:
            return self._refuse(RefusalReason.UNKNOWN_SERVICE, service_id)
        return self._apply(
            password_machine.set_manual_state(service, index, password, now=self._clock()),
            "Manual state set",
        )

    def reset_history(self, service_id: Optional[str] = None) -> RegistryResult:
        service = self._resolve(service_id)
        if service is None:
            return self._refuse(RefusalReason.UNKNOWN_SERVICE, service_id)
        return self._apply(password_machine.reset_history(service), "History cleared")

    # Persistence

    def flush(self) -> None:
        """Write the full service collection to the store."""
        self._write(self._services)

    def close(self) -> None:
        """Final flush at the end of the registry's lifetime."""
        self.flush()
        self._log(LogLevel.DEBUG, "Registry closed", {"service_count": len(self._services)})

    def __enter__(self) -> "ServiceRegistry":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # Internals

    def _resolve(self, service_id: Optional[str]) -> Optional[Service]:
        if service_id is None:
            return self.active_service
        return self.get(service_id)

    def _store(self, service: Service) -> None:
        self._commit([service if s.id == service.id else s for s in self._services])

    def _commit(self, services: list[Service]) -> None:
        # Adopt the new collection only once it is on disk
        self._write(services)
        self._services = services

    def _write(self, services: list[Service]) -> None:
        if self._state_store is not None:
            self._state_store.save(encode_services(tuple(services)))

    def _apply(self, result: TransitionResult, message: str) -> RegistryResult:
        service = result.service
        if not result.applied:
            self._log(
                LogLevel.WARN,
                f"{message}: {result.outcome.value}",
                {"service_id": service.id, "reason": result.reason.value if result.reason else None},
            )
            return RegistryResult(outcome=result.outcome, service=service, reason=result.reason)

        self._store(service)
        self._log(
            LogLevel.INFO,
            message,
            {
                "service_id": service.id,
                "index": service.current_index,
                "password": service.current_password,
                "history_length": len(service.history),
            },
        )
        return RegistryResult(outcome=Outcome.APPLIED, service=service)

    def _refuse(self, reason: RefusalReason, service_id: Optional[str]) -> RegistryResult:
        self._log(
            LogLevel.WARN,
            "Operation refused",
            {"service_id": service_id, "reason": reason.value},
        )
        return RegistryResult(
            outcome=Outcome.REFUSED,
            service=self.get(service_id) if service_id else None,
            reason=reason,
        )

    def _log(self, level: LogLevel, message: str, data: Optional[dict] = None) -> None:
        if self._logger:
            self._logger.log(level, COMPONENT, message, data)
