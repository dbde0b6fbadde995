"""
Lifecycle State Machine.

Tournament status transitions plus the orthogonal, one-way prize pool lock.

    scheduled -> registration -> in_progress -> completed
                      ^               |
                      +---- pause ----+

    scheduled | registration | in_progress -> cancelled

``completed`` is only reachable through finalize. The lock forbids new
registrations, rebuy/add-on increases and new high-hand entries; it never
blocks eliminations, knockouts or high-hand awards.
"""

from typing import Dict, FrozenSet

from pokerclub.models.tournament import TournamentStatus
from pokerclub.utils.errors import (
    InvalidStatusTransitionError,
    LockIrreversibleError,
    PrizePoolLockedError,
)

ALLOWED_TRANSITIONS: Dict[TournamentStatus, FrozenSet[TournamentStatus]] = {
    TournamentStatus.SCHEDULED: frozenset(
        {TournamentStatus.REGISTRATION, TournamentStatus.CANCELLED}
    ),
    TournamentStatus.REGISTRATION: frozenset(
        {TournamentStatus.IN_PROGRESS, TournamentStatus.CANCELLED}
    ),
    TournamentStatus.IN_PROGRESS: frozenset(
        {
            TournamentStatus.REGISTRATION,
            TournamentStatus.COMPLETED,
            TournamentStatus.CANCELLED,
        }
    ),
    TournamentStatus.COMPLETED: frozenset(),
    TournamentStatus.CANCELLED: frozenset(),
}

FINALIZABLE: FrozenSet[TournamentStatus] = frozenset(
    {TournamentStatus.IN_PROGRESS, TournamentStatus.COMPLETED}
)

STATUS_LABELS: Dict[TournamentStatus, str] = {
    TournamentStatus.SCHEDULED: "Scheduled",
    TournamentStatus.REGISTRATION: "Registration Open",
    TournamentStatus.IN_PROGRESS: "In Progress",
    TournamentStatus.COMPLETED: "Completed",
    TournamentStatus.CANCELLED: "Cancelled",
}

# Operations gated by the prize pool lock
OP_REGISTRATION = "Registration"
OP_REBUY = "Rebuy"
OP_ADDON = "Add-on"
OP_HIGH_HAND_ENTRY = "Entering high hands"


def _status(value: str | TournamentStatus) -> TournamentStatus:
    return value if isinstance(value, TournamentStatus) else TournamentStatus(value)


def status_label(value: str | TournamentStatus) -> str:
    return STATUS_LABELS[_status(value)]


def can_transition(current: str | TournamentStatus, requested: str | TournamentStatus) -> bool:
    return _status(requested) in ALLOWED_TRANSITIONS[_status(current)]


def ensure_transition(
    current: str | TournamentStatus,
    requested: str | TournamentStatus,
) -> bool:
    """
    Validate a status change requested through a tournament update.

    Returns:
        True if the status changes, False for a same-state no-op

    Raises:
        InvalidStatusTransitionError: transition not allowed, or a direct
            request for ``completed`` (only finalize completes a tournament)
    """
    cur, req = _status(current), _status(requested)
    if cur == req:
        return False
    if req == TournamentStatus.COMPLETED or not can_transition(cur, req):
        raise InvalidStatusTransitionError(cur.value, req.value)
    return True


def ensure_finalizable(current: str | TournamentStatus) -> None:
    """Finalize runs from in_progress, or again from completed."""
    cur = _status(current)
    if cur not in FINALIZABLE:
        raise InvalidStatusTransitionError(cur.value, TournamentStatus.COMPLETED.value)


def ensure_lock_change(tournament_id: str, locked: bool, requested: bool) -> bool:
    """
    Validate a change of the prize pool lock.

    Returns:
        True if the pool becomes locked now

    Raises:
        LockIrreversibleError: attempt to unlock a locked pool
    """
    if locked and not requested:
        raise LockIrreversibleError(tournament_id)
    return requested and not locked


def ensure_unlocked(tournament_id: str, locked: bool, operation: str) -> None:
    """Reject a money-affecting mutation on a locked prize pool."""
    if locked:
        raise PrizePoolLockedError(tournament_id, operation)
