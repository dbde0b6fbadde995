"""Points system and season leaderboard endpoints."""

from fastapi import APIRouter, Query, status

from pokerclub.api.deps import DbSession
from pokerclub.schemas.common import ErrorResponse
from pokerclub.schemas.points import (
    AllocationCreateRequest,
    AllocationResponse,
    LeaderboardEntryResponse,
    PointsSystemCreateRequest,
    PointsSystemResponse,
)
from pokerclub.services.points import PointsService

router = APIRouter(tags=["Points"])


@router.post(
    "/seasons/{season_id}/points-systems",
    response_model=PointsSystemResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse, "description": "Overlapping allocations"}},
)
async def create_points_system(
    season_id: str,
    request: PointsSystemCreateRequest,
    db: DbSession,
):
    """Create a points system with optional position allocations."""
    points_system = await PointsService(db).create_points_system(
        season_id=season_id,
        name=request.name,
        description=request.description,
        participation_points=request.participation_points,
        knockout_points=request.knockout_points,
        allocations=[a.model_dump(by_alias=False) for a in request.allocations],
    )
    return PointsSystemResponse.model_validate(points_system)


@router.get(
    "/seasons/{season_id}/points-systems",
    response_model=list[PointsSystemResponse],
)
async def list_points_systems(season_id: str, db: DbSession):
    systems = await PointsService(db).list_points_systems(season_id)
    return [PointsSystemResponse.model_validate(s) for s in systems]


@router.get(
    "/points-systems/{points_system_id}",
    response_model=PointsSystemResponse,
    responses={404: {"model": ErrorResponse, "description": "Points system not found"}},
)
async def get_points_system(points_system_id: str, db: DbSession):
    points_system = await PointsService(db).get_points_system(points_system_id)
    return PointsSystemResponse.model_validate(points_system)


@router.post(
    "/points-systems/{points_system_id}/allocations",
    response_model=AllocationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"model": ErrorResponse, "description": "Points system not found"},
        409: {"model": ErrorResponse, "description": "Range overlaps an existing allocation"},
    },
)
async def add_allocation(
    points_system_id: str,
    request: AllocationCreateRequest,
    db: DbSession,
):
    allocation = await PointsService(db).add_allocation(
        points_system_id,
        position=request.position,
        points=request.points,
        position_end=request.position_end,
        description=request.description,
    )
    return AllocationResponse.model_validate(allocation)


@router.get(
    "/points-systems/{points_system_id}/allocations",
    response_model=list[AllocationResponse],
    responses={404: {"model": ErrorResponse, "description": "Points system not found"}},
)
async def list_allocations(points_system_id: str, db: DbSession):
    allocations = await PointsService(db).list_allocations(points_system_id)
    return [AllocationResponse.model_validate(a) for a in allocations]


@router.get(
    "/seasons/{season_id}/leaderboard",
    response_model=list[LeaderboardEntryResponse],
)
async def season_leaderboard(
    season_id: str,
    db: DbSession,
    limit: int = Query(default=100, ge=1, le=500),
):
    """Season standings by total points awarded."""
    entries = await PointsService(db).season_leaderboard(season_id, limit=limit)
    return [LeaderboardEntryResponse.model_validate(e) for e in entries]
