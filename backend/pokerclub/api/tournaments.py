"""Tournament lifecycle, prize pool and settlement endpoints."""

from fastapi import APIRouter, Query, status

from pokerclub.api.deps import DbSession
from pokerclub.models.tournament import TournamentStatus
from pokerclub.schemas.common import ErrorResponse
from pokerclub.schemas.tournament import (
    ActivityResponse,
    FinalizeResponse,
    PrizePoolResponse,
    StandingResponse,
    TournamentCreateRequest,
    TournamentResponse,
    TournamentUpdateRequest,
)
from pokerclub.services.activity import ActivityService
from pokerclub.services.tournament import TournamentService, get_tournament_or_raise

router = APIRouter(prefix="/tournaments", tags=["Tournaments"])


@router.post(
    "",
    response_model=TournamentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"model": ErrorResponse, "description": "Points system not found"},
        422: {"model": ErrorResponse, "description": "Invalid amount or payout structure"},
    },
)
async def create_tournament(request: TournamentCreateRequest, db: DbSession):
    """Create a tournament."""
    service = TournamentService(db)
    fields = request.model_dump(
        exclude={"name", "buy_in_amount"}, exclude_none=True, by_alias=False
    )
    tournament = await service.create_tournament(
        name=request.name,
        buy_in_amount=request.buy_in_amount,
        **fields,
    )
    return TournamentResponse.model_validate(tournament)


@router.get(
    "/{tournament_id}",
    response_model=TournamentResponse,
    responses={404: {"model": ErrorResponse, "description": "Tournament not found"}},
)
async def get_tournament(tournament_id: str, db: DbSession):
    tournament = await TournamentService(db).get_tournament(tournament_id)
    return TournamentResponse.model_validate(tournament)


@router.put(
    "/{tournament_id}",
    response_model=TournamentResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Tournament not found"},
        409: {"model": ErrorResponse, "description": "Transition or lock change not allowed"},
        422: {"model": ErrorResponse, "description": "Invalid amount or payout structure"},
    },
)
async def update_tournament(
    tournament_id: str,
    request: TournamentUpdateRequest,
    db: DbSession,
):
    """Update lifecycle fields.

    - ``status`` follows the lifecycle; ``completed`` only via finalize
    - ``prizePoolLocked`` can only go from false to true
    - ``manualPrizePool`` null removes the override
    """
    changes = request.model_dump(exclude_unset=True, by_alias=False)
    tournament = await TournamentService(db).update_tournament(tournament_id, **changes)
    return TournamentResponse.model_validate(tournament)


@router.post(
    "/{tournament_id}/finalize",
    response_model=FinalizeResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Tournament not found"},
        409: {"model": ErrorResponse, "description": "Tournament cannot be finalized"},
    },
)
async def finalize_tournament(tournament_id: str, db: DbSession):
    """Assign positions, prizes and points, then mark the tournament completed."""
    plan = await TournamentService(db).finalize(tournament_id)
    return FinalizeResponse.model_validate(
        {**plan.to_dict(), "status": TournamentStatus.COMPLETED.value}
    )


@router.get(
    "/{tournament_id}/prize-pool",
    response_model=PrizePoolResponse,
    responses={404: {"model": ErrorResponse, "description": "Tournament not found"}},
)
async def get_prize_pool(tournament_id: str, db: DbSession):
    """Revenue, rake per stream, pool and payout preview."""
    breakdown = await TournamentService(db).get_prize_pool(tournament_id)
    return PrizePoolResponse.model_validate(breakdown)


@router.get(
    "/{tournament_id}/standings",
    response_model=list[StandingResponse],
    responses={404: {"model": ErrorResponse, "description": "Tournament not found"}},
)
async def get_standings(tournament_id: str, db: DbSession):
    standings = await TournamentService(db).get_standings(tournament_id)
    return [StandingResponse.model_validate(s) for s in standings]


@router.get(
    "/{tournament_id}/activity",
    response_model=list[ActivityResponse],
    responses={404: {"model": ErrorResponse, "description": "Tournament not found"}},
)
async def get_activity(
    tournament_id: str,
    db: DbSession,
    limit: int = Query(default=50, ge=1, le=200),
):
    """Activity feed, newest first."""
    await get_tournament_or_raise(db, tournament_id)
    entries = await ActivityService(db).list_for_tournament(tournament_id, limit=limit)
    return [ActivityResponse.model_validate(e) for e in entries]
