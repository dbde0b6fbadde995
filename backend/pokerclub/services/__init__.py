"""Business logic services."""

from pokerclub.services.activity import ActivityService
from pokerclub.services.pending_action import PendingActionService
from pokerclub.services.points import PointsService
from pokerclub.services.registration import RegistrationService
from pokerclub.services.tournament import TournamentService

__all__ = [
    "ActivityService",
    "PendingActionService",
    "PointsService",
    "RegistrationService",
    "TournamentService",
]
