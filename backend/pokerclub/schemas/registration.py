"""Registration and pending action schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import Field

from pokerclub.models.pending_action import PendingActionType
from pokerclub.schemas.common import BaseSchema


# =============================================================================
# Request Schemas
# =============================================================================


class RegistrationCreateRequest(BaseSchema):
    player_id: str
    entering_high_hands: bool = False


class RegistrationUpdateRequest(BaseSchema):
    """Partial registration update.

    Counters are totals and may only grow; the difference is applied as an
    atomic increment.
    """

    rebuys: int | None = None
    addons: int | None = None
    knockouts: int | None = None
    is_eliminated: bool | None = None
    eliminated_by: str | None = None
    elimination_time: datetime | None = None
    entering_high_hands: bool | None = None
    high_hand_winner: bool | None = None
    high_hand_amount: Decimal | None = None
    payment_confirmed: bool | None = None


class CountRequest(BaseSchema):
    count: int = Field(1, description="Number of units to add")


class EliminateRequest(BaseSchema):
    eliminated_by: str | None = Field(None, description="Player ID credited with the knockout")
    elimination_time: datetime | None = None


class HighHandAwardRequest(BaseSchema):
    amount: Decimal | None = Field(None, description="Defaults to the per-winner share")


class PendingActionCreateRequest(BaseSchema):
    player_id: str
    action_type: PendingActionType
    target_player_id: str | None = None


# =============================================================================
# Response Schemas
# =============================================================================


class RegistrationResponse(BaseSchema):
    id: str
    tournament_id: str
    player_id: str
    registration_time: datetime
    buy_ins: int
    rebuys: int
    addons: int
    is_eliminated: bool
    elimination_time: datetime | None = None
    elimination_order: int | None = None
    eliminated_by: str | None = None
    knockouts: int
    final_position: int | None = None
    prize_amount: Decimal | None = None
    points_awarded: int | None = None
    entering_high_hands: bool
    high_hand_winner: bool
    high_hand_amount: Decimal | None = None
    payment_confirmed: bool


class PendingActionResponse(BaseSchema):
    id: str
    tournament_id: str
    player_id: str
    action_type: str
    target_player_id: str | None = None
    created_at: datetime
