"""
Claim status machine.

    submitted -> under-review -> {approved, rejected}
    approved  -> paid

rejected and paid are terminal. History is append-only: a transition
builds a new list so previously stored entries are never edited.
"""

from datetime import datetime, timezone
from typing import Optional, Protocol, Union

from app.models.enums import ClaimStatus

ALLOWED_TRANSITIONS: dict[ClaimStatus, frozenset[ClaimStatus]] = {
    ClaimStatus.SUBMITTED: frozenset({ClaimStatus.UNDER_REVIEW}),
    ClaimStatus.UNDER_REVIEW: frozenset({ClaimStatus.APPROVED, ClaimStatus.REJECTED}),
    ClaimStatus.APPROVED: frozenset({ClaimStatus.PAID}),
    ClaimStatus.REJECTED: frozenset(),
    ClaimStatus.PAID: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, nxt in ALLOWED_TRANSITIONS.items() if not nxt)


class InvalidStatusTransition(Exception):
    """Raised when a status change is not allowed from the current status."""

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move claim from '{current}' to '{requested}'")


class HasStatus(Protocol):
    status: str
    status_history: list


def history_entry(
    status: Union[str, ClaimStatus], note: Optional[str] = None, now: Optional[datetime] = None
) -> dict:
    moment = now or datetime.now(timezone.utc)
    entry = {"status": ClaimStatus(status).value, "timestamp": moment.isoformat()}
    if note is not None:
        entry["notes"] = note
    return entry


def can_transition(current: Union[str, ClaimStatus], new: Union[str, ClaimStatus]) -> bool:
    return ClaimStatus(new) in ALLOWED_TRANSITIONS[ClaimStatus(current)]


def transition(
    claim: HasStatus,
    new_status: Union[str, ClaimStatus],
    note: Optional[str] = None,
    now: Optional[datetime] = None,
) -> HasStatus:
    """Append one history entry and overwrite ``status``."""
    target = ClaimStatus(new_status)
    if not can_transition(claim.status, target):
        raise InvalidStatusTransition(claim.status, target.value)

    claim.status_history = [*(claim.status_history or []), history_entry(target, note, now)]
    claim.status = target.value
    return claim
