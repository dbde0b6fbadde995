"""Registration endpoints."""

from fastapi import APIRouter, status

from pokerclub.api.deps import DbSession
from pokerclub.schemas.common import ErrorResponse
from pokerclub.schemas.registration import (
    CountRequest,
    EliminateRequest,
    HighHandAwardRequest,
    RegistrationCreateRequest,
    RegistrationResponse,
    RegistrationUpdateRequest,
)
from pokerclub.services.registration import RegistrationService

router = APIRouter(tags=["Registrations"])

LOCKED_RESPONSES = {
    404: {"model": ErrorResponse, "description": "Registration not found"},
    409: {"model": ErrorResponse, "description": "Prize pool locked"},
    422: {"model": ErrorResponse, "description": "Invalid count"},
}


@router.get(
    "/tournaments/{tournament_id}/registrations",
    response_model=list[RegistrationResponse],
    responses={404: {"model": ErrorResponse, "description": "Tournament not found"}},
)
async def list_registrations(tournament_id: str, db: DbSession):
    registrations = await RegistrationService(db).list_registrations(tournament_id)
    return [RegistrationResponse.model_validate(r) for r in registrations]


@router.post(
    "/tournaments/{tournament_id}/registrations",
    response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"model": ErrorResponse, "description": "Tournament or player not found"},
        409: {"model": ErrorResponse, "description": "Locked, duplicate or high hand disabled"},
    },
)
async def register_player(
    tournament_id: str,
    request: RegistrationCreateRequest,
    db: DbSession,
):
    """Register a player for a tournament."""
    registration = await RegistrationService(db).register_player(
        tournament_id,
        request.player_id,
        entering_high_hands=request.entering_high_hands,
    )
    return RegistrationResponse.model_validate(registration)


@router.put(
    "/registrations/{registration_id}",
    response_model=RegistrationResponse,
    responses=LOCKED_RESPONSES,
)
async def update_registration(
    registration_id: str,
    request: RegistrationUpdateRequest,
    db: DbSession,
):
    """Update a registration.

    Counters are totals that may only grow. After the prize pool lock,
    rebuy/add-on increases and new high hand entries are rejected while
    eliminations, knockouts and high hand awards still succeed.
    """
    changes = request.model_dump(exclude_unset=True, by_alias=False)
    registration = await RegistrationService(db).update_registration(
        registration_id, **changes
    )
    return RegistrationResponse.model_validate(registration)


@router.post(
    "/registrations/{registration_id}/rebuys",
    response_model=RegistrationResponse,
    responses=LOCKED_RESPONSES,
)
async def add_rebuys(registration_id: str, request: CountRequest, db: DbSession):
    registration = await RegistrationService(db).add_rebuys(registration_id, request.count)
    return RegistrationResponse.model_validate(registration)


@router.post(
    "/registrations/{registration_id}/addons",
    response_model=RegistrationResponse,
    responses=LOCKED_RESPONSES,
)
async def add_addons(registration_id: str, request: CountRequest, db: DbSession):
    registration = await RegistrationService(db).add_addons(registration_id, request.count)
    return RegistrationResponse.model_validate(registration)


@router.post(
    "/registrations/{registration_id}/eliminate",
    response_model=RegistrationResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Registration not found"},
        422: {"model": ErrorResponse, "description": "Already eliminated or invalid eliminator"},
    },
)
async def eliminate_player(
    registration_id: str,
    db: DbSession,
    request: EliminateRequest | None = None,
):
    """Record an elimination, crediting the knockout to ``eliminatedBy``."""
    request = request or EliminateRequest()
    registration = await RegistrationService(db).eliminate(
        registration_id,
        eliminated_by=request.eliminated_by,
        elimination_time=request.elimination_time,
    )
    return RegistrationResponse.model_validate(registration)


@router.post(
    "/registrations/{registration_id}/restore",
    response_model=RegistrationResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Registration not found"},
        422: {"model": ErrorResponse, "description": "Player is not eliminated"},
    },
)
async def restore_player(registration_id: str, db: DbSession):
    registration = await RegistrationService(db).restore(registration_id)
    return RegistrationResponse.model_validate(registration)


@router.post(
    "/registrations/{registration_id}/high-hand",
    response_model=RegistrationResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Registration not found"},
        409: {"model": ErrorResponse, "description": "High hand not available"},
    },
)
async def award_high_hand(
    registration_id: str,
    db: DbSession,
    request: HighHandAwardRequest | None = None,
):
    amount = request.amount if request else None
    registration = await RegistrationService(db).award_high_hand(registration_id, amount)
    return RegistrationResponse.model_validate(registration)


@router.post(
    "/registrations/{registration_id}/confirm-payment",
    response_model=RegistrationResponse,
    responses={404: {"model": ErrorResponse, "description": "Registration not found"}},
)
async def confirm_payment(registration_id: str, db: DbSession):
    registration = await RegistrationService(db).confirm_payment(registration_id)
    return RegistrationResponse.model_validate(registration)
