"""Pending player action endpoints."""

from fastapi import APIRouter, status

from pokerclub.api.deps import DbSession
from pokerclub.schemas.common import ErrorResponse, SuccessResponse
from pokerclub.schemas.registration import (
    PendingActionCreateRequest,
    PendingActionResponse,
    RegistrationResponse,
)
from pokerclub.services.pending_action import PendingActionService

router = APIRouter(tags=["Pending Actions"])


@router.get(
    "/tournaments/{tournament_id}/pending-actions",
    response_model=list[PendingActionResponse],
    responses={404: {"model": ErrorResponse, "description": "Tournament not found"}},
)
async def list_pending_actions(tournament_id: str, db: DbSession):
    actions = await PendingActionService(db).list_for_tournament(tournament_id)
    return [PendingActionResponse.model_validate(a) for a in actions]


@router.post(
    "/tournaments/{tournament_id}/pending-actions",
    response_model=PendingActionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"model": ErrorResponse, "description": "Tournament or registration not found"},
        409: {"model": ErrorResponse, "description": "Prize pool locked"},
    },
)
async def submit_pending_action(
    tournament_id: str,
    request: PendingActionCreateRequest,
    db: DbSession,
):
    """Submit a rebuy, add-on or knockout request for staff confirmation."""
    action = await PendingActionService(db).submit(
        tournament_id,
        request.player_id,
        request.action_type,
        target_player_id=request.target_player_id,
    )
    return PendingActionResponse.model_validate(action)


@router.post(
    "/pending-actions/{action_id}/confirm",
    response_model=RegistrationResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Pending action not found"},
        409: {"model": ErrorResponse, "description": "Prize pool locked"},
    },
)
async def confirm_pending_action(action_id: str, db: DbSession):
    """Apply the request atomically and remove it from the queue."""
    registration = await PendingActionService(db).confirm(action_id)
    return RegistrationResponse.model_validate(registration)


@router.delete(
    "/pending-actions/{action_id}",
    response_model=SuccessResponse,
    responses={404: {"model": ErrorResponse, "description": "Pending action not found"}},
)
async def dismiss_pending_action(action_id: str, db: DbSession):
    await PendingActionService(db).dismiss(action_id)
    return SuccessResponse(message="Pending action dismissed")
