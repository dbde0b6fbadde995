"""Database models."""

from pokerclub.models.activity import ActivityEventType, ActivityLog
from pokerclub.models.base import Base, TimestampMixin, UUIDMixin
from pokerclub.models.pending_action import PendingAction, PendingActionType
from pokerclub.models.player import Player
from pokerclub.models.points import PointsAllocation, PointsSystem
from pokerclub.models.registration import Registration
from pokerclub.models.tournament import Tournament, TournamentStatus

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    # Players & tournaments
    "Player",
    "Tournament",
    "TournamentStatus",
    "Registration",
    # Points
    "PointsSystem",
    "PointsAllocation",
    # Player requests
    "PendingAction",
    "PendingActionType",
    # Activity
    "ActivityLog",
    "ActivityEventType",
]
