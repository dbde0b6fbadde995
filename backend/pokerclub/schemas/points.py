"""Points system and leaderboard schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import Field

from pokerclub.schemas.common import BaseSchema


class AllocationCreateRequest(BaseSchema):
    position: int
    position_end: int | None = Field(None, description="Inclusive range end; null for a single position")
    points: int
    description: str | None = None


class PointsSystemCreateRequest(BaseSchema):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    participation_points: int = 0
    knockout_points: int = 0
    allocations: list[AllocationCreateRequest] = Field(default_factory=list)


class AllocationResponse(BaseSchema):
    id: str
    points_system_id: str
    position: int
    position_end: int | None = None
    points: int
    description: str | None = None


class PointsSystemResponse(BaseSchema):
    id: str
    season_id: str
    name: str
    description: str | None = None
    participation_points: int
    knockout_points: int
    allocations: list[AllocationResponse] = Field(default_factory=list)
    created_at: datetime


class LeaderboardEntryResponse(BaseSchema):
    rank: int
    player_id: str
    player_name: str
    total_points: int
    tournaments_played: int
    knockouts: int
    winnings: Decimal
    best_finish: int | None = None
