"""Custom exception classes for settlement and tournament management errors.

Provides structured error handling with error codes and caller-facing messages.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standard error codes."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"

    # Not found
    TOURNAMENT_NOT_FOUND = "TOURNAMENT_NOT_FOUND"
    REGISTRATION_NOT_FOUND = "REGISTRATION_NOT_FOUND"
    PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
    POINTS_SYSTEM_NOT_FOUND = "POINTS_SYSTEM_NOT_FOUND"
    PENDING_ACTION_NOT_FOUND = "PENDING_ACTION_NOT_FOUND"

    # Policy violations
    PRIZE_POOL_LOCKED = "PRIZE_POOL_LOCKED"
    PRIZE_POOL_LOCK_IRREVERSIBLE = "PRIZE_POOL_LOCK_IRREVERSIBLE"
    ALREADY_REGISTERED = "ALREADY_REGISTERED"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    HIGH_HAND_DISABLED = "HIGH_HAND_DISABLED"
    HIGH_HAND_NOT_ENTERED = "HIGH_HAND_NOT_ENTERED"
    HIGH_HAND_PAYOUTS_EXHAUSTED = "HIGH_HAND_PAYOUTS_EXHAUSTED"
    OVERLAPPING_ALLOCATION = "OVERLAPPING_ALLOCATION"

    # Validation errors
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INVALID_COUNT = "INVALID_COUNT"
    INVALID_PAYOUT_STRUCTURE = "INVALID_PAYOUT_STRUCTURE"


class SettlementError(Exception):
    """Base exception for tournament settlement and management errors.

    Attributes:
        code: Error code for programmatic handling
        message: Caller-facing error message
        details: Additional error details
    """

    def __init__(
        self,
        code: ErrorCode | str,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        self.code = code.value if isinstance(code, ErrorCode) else code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


# =============================================================================
# Not Found
# =============================================================================


class TournamentNotFoundError(SettlementError):
    """Raised when a tournament is not found."""

    def __init__(self, tournament_id: str):
        super().__init__(
            code=ErrorCode.TOURNAMENT_NOT_FOUND,
            message=f"Tournament not found: {tournament_id}",
            details={"tournamentId": tournament_id},
        )


class RegistrationNotFoundError(SettlementError):
    """Raised when a registration is not found."""

    def __init__(self, registration_id: str):
        super().__init__(
            code=ErrorCode.REGISTRATION_NOT_FOUND,
            message=f"Registration not found: {registration_id}",
            details={"registrationId": registration_id},
        )


class PlayerNotFoundError(SettlementError):
    """Raised when a player is not found."""

    def __init__(self, player_id: str):
        super().__init__(
            code=ErrorCode.PLAYER_NOT_FOUND,
            message=f"Player not found: {player_id}",
            details={"playerId": player_id},
        )


class PointsSystemNotFoundError(SettlementError):
    """Raised when a points system is not found."""

    def __init__(self, points_system_id: str):
        super().__init__(
            code=ErrorCode.POINTS_SYSTEM_NOT_FOUND,
            message=f"Points system not found: {points_system_id}",
            details={"pointsSystemId": points_system_id},
        )


class PendingActionNotFoundError(SettlementError):
    """Raised when a pending action is not found."""

    def __init__(self, action_id: str):
        super().__init__(
            code=ErrorCode.PENDING_ACTION_NOT_FOUND,
            message=f"Pending action not found: {action_id}",
            details={"actionId": action_id},
        )


# =============================================================================
# Policy Violations
# =============================================================================


class PrizePoolLockedError(SettlementError):
    """Raised when a money-affecting mutation is attempted after the prize pool lock."""

    def __init__(self, tournament_id: str, operation: str):
        super().__init__(
            code=ErrorCode.PRIZE_POOL_LOCKED,
            message=f"Prize pool is locked. {operation} is not allowed.",
            details={"tournamentId": tournament_id, "operation": operation},
        )


class LockIrreversibleError(SettlementError):
    """Raised when trying to unlock a locked prize pool."""

    def __init__(self, tournament_id: str):
        super().__init__(
            code=ErrorCode.PRIZE_POOL_LOCK_IRREVERSIBLE,
            message="Prize pool lock cannot be released once set",
            details={"tournamentId": tournament_id},
        )


class DuplicateRegistrationError(SettlementError):
    """Raised when a player is registered twice for the same tournament."""

    def __init__(self, tournament_id: str, player_id: str):
        super().__init__(
            code=ErrorCode.ALREADY_REGISTERED,
            message="Player is already registered for this tournament",
            details={"tournamentId": tournament_id, "playerId": player_id},
        )


class InvalidStatusTransitionError(SettlementError):
    """Raised when a tournament status change is not permitted."""

    def __init__(self, current: str, requested: str):
        super().__init__(
            code=ErrorCode.INVALID_STATUS_TRANSITION,
            message=f"Cannot change tournament status from {current} to {requested}",
            details={"current": current, "requested": requested},
        )


class HighHandError(SettlementError):
    """Raised for high-hand pool policy violations."""

    def __init__(self, code: ErrorCode, message: str, details: dict[str, Any] | None = None):
        super().__init__(code=code, message=message, details=details)


class OverlappingAllocationError(SettlementError):
    """Raised when a points allocation range overlaps an existing one."""

    def __init__(self, position: int, position_end: int, existing_id: str):
        super().__init__(
            code=ErrorCode.OVERLAPPING_ALLOCATION,
            message=f"Positions {position}-{position_end} overlap an existing allocation",
            details={
                "position": position,
                "positionEnd": position_end,
                "existingAllocationId": existing_id,
            },
        )


# =============================================================================
# Validation
# =============================================================================


class ValidationFailedError(SettlementError):
    """Raised when input values are malformed."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INVALID_REQUEST,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(code=code, message=message, details=details)


class InvalidPayoutStructureError(ValidationFailedError):
    """Raised when a payout structure name or custom table is invalid."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.INVALID_PAYOUT_STRUCTURE,
            details=details,
        )


def status_code_for(code: str) -> int:
    """Map an error code to its HTTP status code."""
    if code.endswith("NOT_FOUND"):
        return 404
    if code in {
        ErrorCode.INVALID_AMOUNT.value,
        ErrorCode.INVALID_COUNT.value,
        ErrorCode.INVALID_PAYOUT_STRUCTURE.value,
        ErrorCode.INVALID_REQUEST.value,
    }:
        return 422
    if code == ErrorCode.INTERNAL_ERROR.value:
        return 500
    return 409
