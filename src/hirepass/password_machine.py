"""
Password state machine for a single service.

The state of a service is the triple (current index, current password,
history). The functions here are the only legal transitions on that
triple. Each is pure: it takes a Service value and returns a
TransitionResult carrying the new value; the input is never modified and
no other service is observed.

Recurrence:
    next = (password * multiplier + addend) mod modulus

Python's ``%`` follows the sign of the divisor, so for a positive modulus
the result always lies in [0, modulus) even when a manual override or
negative parameters make the product negative. That is the convention
pinned here; a modulus <= 0 raises RecurrenceError.
"""

from dataclasses import replace
from typing import Optional

from .enums import Outcome, RefusalReason
from .exceptions import RecurrenceError
from .models import HISTORY_LIMIT, HistoryEntry, Service, TransitionResult, utc_now


def next_password(password: int, multiplier: int, addend: int, modulus: int) -> int:
    """
    Apply one step of the recurrence.

    Args:
        password: Current password
        multiplier: Recurrence multiplier
        addend: Recurrence addend
        modulus: Recurrence modulus, must be positive

    Returns:
        The next password, in [0, modulus)

    Raises:
        RecurrenceError: If modulus is not positive
    """
    if modulus <= 0:
        raise RecurrenceError(
            code="invalid_modulus",
            message=f"Modulus must be positive, got {modulus}",
            details={"modulus": modulus},
        )
    return (password * multiplier + addend) % modulus


def _push(history: tuple[HistoryEntry, ...], entry: HistoryEntry) -> tuple[HistoryEntry, ...]:
    # Newest first; the oldest entries fall off the tail
    return ((entry,) + history)[:HISTORY_LIMIT]


def generate(service: Service, now: Optional[str] = None) -> TransitionResult:
    """
    Advance the service by one step of the recurrence.

    Args:
        service: Service to advance
        now: Timestamp for the new history entry (defaults to current UTC time)

    Returns:
        TransitionResult with the advanced service

    Raises:
        RecurrenceError: If the service modulus is not positive
    """
    password = next_password(
        service.current_password,
        service.multiplier,
        service.addend,
        service.modulus,
    )
    index = service.current_index + 1
    entry = HistoryEntry(index=index, password=password, timestamp=now or utc_now())

    return TransitionResult(
        service=replace(
            service,
            current_index=index,
            current_password=password,
            history=_push(service.history, entry),
        ),
        outcome=Outcome.APPLIED,
    )


def can_undo(service: Service) -> bool:
    """Undo needs the current head and one predecessor."""
    return len(service.history) >= 2


def undo(service: Service) -> TransitionResult:
    """
    Pop the most recent history entry and return to its predecessor.

    This does not invert the recurrence; the previous pair is read from
    history, so undo also works after manual overrides.
    """
    if not can_undo(service):
        return TransitionResult(
            service=service,
            outcome=Outcome.REFUSED,
            reason=RefusalReason.INSUFFICIENT_HISTORY,
        )

    previous = service.history[1]
    return TransitionResult(
        service=replace(
            service,
            current_index=previous.index,
            current_password=previous.password,
            history=service.history[1:],
        ),
        outcome=Outcome.APPLIED,
    )


def find_history_position(service: Service, index: int, password: int) -> Optional[int]:
    """Position of the newest entry matching both index and password."""
    for position, entry in enumerate(service.history):
        if entry.index == index and entry.password == password:
            return position
    return None


def restore_from_history(service: Service, entry: HistoryEntry) -> TransitionResult:
    """
    Rewind the service to a history entry, discarding everything newer.

    The entry is matched on both index and password. If no entry matches
    (already pruned, or dropped by an earlier restore) the service is
    returned unchanged with a NO_OP outcome.
    """
    position = find_history_position(service, entry.index, entry.password)
    if position is None:
        return TransitionResult(
            service=service,
            outcome=Outcome.NO_OP,
            reason=RefusalReason.ENTRY_NOT_FOUND,
        )

    return TransitionResult(
        service=replace(
            service,
            current_index=entry.index,
            current_password=entry.password,
            history=service.history[position:],
        ),
        outcome=Outcome.APPLIED,
    )


def set_manual_state(
    service: Service,
    index: int,
    password: int,
    now: Optional[str] = None,
) -> TransitionResult:
    """
    Force the current pair to the given values and record them in history.

    No range check is made against the modulus; out-of-range values are
    kept as given. The history cap applies here as it does for generate.
    """
    entry = HistoryEntry(index=index, password=password, timestamp=now or utc_now())
    return TransitionResult(
        service=replace(
            service,
            current_index=index,
            current_password=password,
            history=_push(service.history, entry),
        ),
        outcome=Outcome.APPLIED,
    )


def reset_history(service: Service) -> TransitionResult:
    """Clear history, leaving the current pair untouched."""
    return TransitionResult(
        service=replace(service, history=()),
        outcome=Outcome.APPLIED,
    )
