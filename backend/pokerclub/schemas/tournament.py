"""Tournament, prize pool and settlement schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import Field

from pokerclub.models.tournament import TournamentStatus
from pokerclub.schemas.common import BaseSchema

RakeTypeName = Literal["none", "percentage", "fixed"]


# =============================================================================
# Request Schemas
# =============================================================================


class TournamentCreateRequest(BaseSchema):
    """Create a tournament with its money and points configuration."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    season_id: str | None = None
    points_system_id: str | None = None
    track_points: bool = True
    start_date_time: datetime | None = None
    max_players: int | None = Field(None, ge=1)

    buy_in_amount: Decimal = Field(..., ge=Decimal("0"))
    rebuy_amount: Decimal | None = Field(None, ge=Decimal("0"))
    addon_amount: Decimal | None = Field(None, ge=Decimal("0"))

    rake_type: RakeTypeName = "none"
    rake_amount: Decimal = Field(Decimal("0"), ge=Decimal("0"))
    rebuy_rake_type: RakeTypeName = "none"
    rebuy_rake_amount: Decimal = Field(Decimal("0"), ge=Decimal("0"))
    addon_rake_type: RakeTypeName = "none"
    addon_rake_amount: Decimal = Field(Decimal("0"), ge=Decimal("0"))

    payout_structure: str = Field("standard", description="standard, top3, top5, top8, top9 or custom")
    custom_payouts: list[Decimal] | None = Field(
        None, description="Percentages per position when payout_structure is custom"
    )

    enable_high_hand: bool = False
    high_hand_amount: Decimal | None = Field(None, ge=Decimal("0"))
    high_hand_rake_type: RakeTypeName = "none"
    high_hand_rake_amount: Decimal = Field(Decimal("0"), ge=Decimal("0"))
    high_hand_payouts: int = Field(1, ge=1)

    manual_prize_pool: Decimal | None = Field(None, ge=Decimal("0"))


class TournamentUpdateRequest(BaseSchema):
    """Partial update; only fields present in the request are applied."""

    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None
    start_date_time: datetime | None = None
    max_players: int | None = Field(None, ge=1)
    track_points: bool | None = None

    status: TournamentStatus | None = None
    prize_pool_locked: bool | None = None
    manual_prize_pool: Decimal | None = Field(None, description="null clears the override")
    payout_structure: str | None = None
    custom_payouts: list[Decimal] | None = None


# =============================================================================
# Response Schemas
# =============================================================================


class TournamentResponse(BaseSchema):
    """Tournament details."""

    id: str
    name: str
    description: str | None = None
    season_id: str | None = None
    points_system_id: str | None = None
    track_points: bool
    start_date_time: datetime | None = None
    max_players: int | None = None
    status: str

    buy_in_amount: Decimal
    rebuy_amount: Decimal | None = None
    addon_amount: Decimal | None = None
    rake_type: str
    rake_amount: Decimal
    rebuy_rake_type: str
    rebuy_rake_amount: Decimal
    addon_rake_type: str
    addon_rake_amount: Decimal

    payout_structure: str
    custom_payouts: list[Decimal] | None = None

    enable_high_hand: bool
    high_hand_amount: Decimal | None = None
    high_hand_rake_type: str
    high_hand_rake_amount: Decimal
    high_hand_payouts: int

    prize_pool_locked: bool
    prize_pool_locked_at: datetime | None = None
    manual_prize_pool: Decimal | None = None

    created_at: datetime
    updated_at: datetime


class RevenueResponse(BaseSchema):
    total_buy_ins: int
    total_rebuys: int
    total_addons: int
    buy_in_total: Decimal
    rebuy_total: Decimal
    addon_total: Decimal
    gross_total: Decimal


class RakeResponse(BaseSchema):
    buy_in: Decimal
    rebuy: Decimal
    addon: Decimal
    total: Decimal


class PayoutResponse(BaseSchema):
    position: int
    percentage: Decimal
    amount: Decimal


class HighHandPoolResponse(BaseSchema):
    enabled: bool
    entrants: int
    entry_amount: Decimal
    gross: Decimal
    rake: Decimal
    net: Decimal
    payout_count: int
    per_winner: Decimal
    winners: int
    remaining_payouts: int


class PrizePoolBreakdown(BaseSchema):
    """Revenue, rake and the resolved pool.

    ``calculated_pool`` is always reported; ``distributable`` is the
    manual override when one is set.
    """

    revenue: RevenueResponse
    rake: RakeResponse
    gross_total: Decimal
    calculated_pool: Decimal
    manual_prize_pool: Decimal | None = None
    distributable: Decimal
    is_manual: bool


class PrizePoolResponse(PrizePoolBreakdown):
    tournament_id: str
    prize_pool_locked: bool
    payout_structure: str
    payouts: list[PayoutResponse]
    high_hand: HighHandPoolResponse


class StandingResponse(BaseSchema):
    position: int
    registration_id: str
    player_id: str
    player_name: str | None = None
    is_eliminated: bool
    elimination_time: datetime | None = None
    knockouts: int
    rebuys: int
    addons: int
    projected_prize: Decimal | None = None
    projected_points: int | None = None


class SettlementLineResponse(BaseSchema):
    registration_id: str
    player_id: str
    position: int
    prize_amount: Decimal | None = None
    points_awarded: int | None = None


class FinalizeResponse(BaseSchema):
    """Result of settling a tournament."""

    tournament_id: str
    status: str
    payout_structure: str
    prize_pool: PrizePoolBreakdown
    payouts: list[PayoutResponse]
    total_paid: Decimal
    lines: list[SettlementLineResponse]


class ActivityResponse(BaseSchema):
    id: str
    tournament_id: str
    player_id: str | None = None
    event_type: str
    event_data: dict[str, Any] | None = None
    description: str
    created_at: datetime
