"""
Settlement Engine Data Models.

Immutable value objects consumed and produced by the settlement engine.
The engine never touches the database: services convert ORM rows into these
records (``from_record``) and write results back.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Optional, Tuple

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    """Coerce a stored amount to Decimal; missing values become ``default``."""
    if value is None or value == "":
        return default
    if isinstance(value, Decimal):
        return value
    try:
        # str() keeps floats like 0.1 from turning into binary noise
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f"Malformed amount: {value!r}")


class RakeType(str, Enum):
    """Rake policy applied to a revenue stream."""

    NONE = "none"
    PERCENTAGE = "percentage"
    FIXED = "fixed"  # per entry unit, not a flat deduction


class RevenueStream(str, Enum):
    """Chargeable entry events."""

    BUY_IN = "buy_in"
    REBUY = "rebuy"
    ADDON = "addon"


class PayoutStructure(str, Enum):
    """Supported payout tables."""

    STANDARD = "standard"
    TOP3 = "top3"
    TOP5 = "top5"
    TOP8 = "top8"
    TOP9 = "top9"
    CUSTOM = "custom"


@dataclass(frozen=True)
class RakePolicy:
    """Rake configuration for one stream."""

    type: RakeType = RakeType.NONE
    amount: Decimal = ZERO

    @classmethod
    def from_values(cls, rake_type: Optional[str], amount: Any) -> "RakePolicy":
        return cls(
            type=RakeType(rake_type or RakeType.NONE.value),
            amount=to_decimal(amount),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, "amount": str(self.amount)}


@dataclass(frozen=True)
class HighHandConfig:
    """High-hand side pool configuration."""

    enabled: bool = False
    entry_amount: Decimal = ZERO
    rake_type: RakeType = RakeType.NONE
    rake_amount: Decimal = ZERO
    payout_count: int = 1


@dataclass(frozen=True)
class TournamentConfig:
    """
    Money and points configuration of one tournament.

    Built from the tournament row at the moment of computation; every
    computation reads it fresh.
    """

    tournament_id: str
    buy_in_amount: Decimal = ZERO
    rebuy_amount: Decimal = ZERO
    addon_amount: Decimal = ZERO
    buy_in_rake: RakePolicy = field(default_factory=RakePolicy)
    rebuy_rake: RakePolicy = field(default_factory=RakePolicy)
    addon_rake: RakePolicy = field(default_factory=RakePolicy)
    payout_structure: str = PayoutStructure.STANDARD.value
    custom_payouts: Tuple[Decimal, ...] = ()
    manual_prize_pool: Optional[Decimal] = None
    track_points: bool = True
    high_hand: HighHandConfig = field(default_factory=HighHandConfig)

    @classmethod
    def from_record(cls, record: Any) -> "TournamentConfig":
        """Build from a tournament row (or any object with the same attributes)."""
        manual = getattr(record, "manual_prize_pool", None)
        return cls(
            tournament_id=str(record.id),
            buy_in_amount=to_decimal(record.buy_in_amount),
            rebuy_amount=to_decimal(getattr(record, "rebuy_amount", None)),
            addon_amount=to_decimal(getattr(record, "addon_amount", None)),
            buy_in_rake=RakePolicy.from_values(
                getattr(record, "rake_type", None), getattr(record, "rake_amount", None)
            ),
            rebuy_rake=RakePolicy.from_values(
                getattr(record, "rebuy_rake_type", None),
                getattr(record, "rebuy_rake_amount", None),
            ),
            addon_rake=RakePolicy.from_values(
                getattr(record, "addon_rake_type", None),
                getattr(record, "addon_rake_amount", None),
            ),
            payout_structure=getattr(record, "payout_structure", None)
            or PayoutStructure.STANDARD.value,
            custom_payouts=tuple(
                to_decimal(p) for p in (getattr(record, "custom_payouts", None) or ())
            ),
            manual_prize_pool=None if manual is None else to_decimal(manual),
            track_points=bool(getattr(record, "track_points", True)),
            high_hand=HighHandConfig(
                enabled=bool(getattr(record, "enable_high_hand", False)),
                entry_amount=to_decimal(getattr(record, "high_hand_amount", None)),
                rake_type=RakeType(
                    getattr(record, "high_hand_rake_type", None) or RakeType.NONE.value
                ),
                rake_amount=to_decimal(getattr(record, "high_hand_rake_amount", None)),
                payout_count=getattr(record, "high_hand_payouts", None) or 1,
            ),
        )

    def rake_policy(self, stream: RevenueStream) -> RakePolicy:
        return {
            RevenueStream.BUY_IN: self.buy_in_rake,
            RevenueStream.REBUY: self.rebuy_rake,
            RevenueStream.ADDON: self.addon_rake,
        }[stream]

    def unit_price(self, stream: RevenueStream) -> Decimal:
        return {
            RevenueStream.BUY_IN: self.buy_in_amount,
            RevenueStream.REBUY: self.rebuy_amount,
            RevenueStream.ADDON: self.addon_amount,
        }[stream]


@dataclass(frozen=True)
class EntryRecord:
    """Settlement-relevant snapshot of one registration."""

    registration_id: str
    player_id: str
    buy_ins: int = 1
    rebuys: int = 0
    addons: int = 0
    is_eliminated: bool = False
    elimination_time: Optional[datetime] = None
    elimination_order: Optional[int] = None
    knockouts: int = 0
    entering_high_hands: bool = False
    high_hand_winner: bool = False

    @classmethod
    def from_record(cls, record: Any) -> "EntryRecord":
        return cls(
            registration_id=str(record.id),
            player_id=str(record.player_id),
            buy_ins=record.buy_ins or 0,
            rebuys=record.rebuys or 0,
            addons=record.addons or 0,
            is_eliminated=bool(record.is_eliminated),
            elimination_time=record.elimination_time,
            elimination_order=getattr(record, "elimination_order", None),
            knockouts=record.knockouts or 0,
            entering_high_hands=bool(getattr(record, "entering_high_hands", False)),
            high_hand_winner=bool(getattr(record, "high_hand_winner", False)),
        )


@dataclass(frozen=True)
class StreamRevenue:
    """Unit count and dollar total of one revenue stream."""

    stream: RevenueStream
    units: int = 0
    unit_price: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.unit_price * self.units

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stream": self.stream.value,
            "units": self.units,
            "unit_price": str(self.unit_price),
            "total": str(self.total),
        }


@dataclass(frozen=True)
class RevenueSummary:
    """Aggregated revenue of a tournament."""

    buy_ins: StreamRevenue
    rebuys: StreamRevenue
    addons: StreamRevenue

    @property
    def streams(self) -> Tuple[StreamRevenue, ...]:
        return (self.buy_ins, self.rebuys, self.addons)

    @property
    def gross_total(self) -> Decimal:
        return sum((s.total for s in self.streams), ZERO)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_buy_ins": self.buy_ins.units,
            "total_rebuys": self.rebuys.units,
            "total_addons": self.addons.units,
            "buy_in_total": str(self.buy_ins.total),
            "rebuy_total": str(self.rebuys.total),
            "addon_total": str(self.addons.total),
            "gross_total": str(self.gross_total),
        }


@dataclass(frozen=True)
class RakeBreakdown:
    """Rake taken from each stream."""

    buy_in: Decimal = ZERO
    rebuy: Decimal = ZERO
    addon: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.buy_in + self.rebuy + self.addon

    def to_dict(self) -> Dict[str, Any]:
        return {
            "buy_in": str(self.buy_in),
            "rebuy": str(self.rebuy),
            "addon": str(self.addon),
            "total": str(self.total),
        }


@dataclass(frozen=True)
class PrizePool:
    """Resolved prize pool.

    ``calculated_pool`` is always reported; ``distributable`` is what payouts
    are computed from (the manual override when one is set).
    """

    revenue: RevenueSummary
    rake: RakeBreakdown
    manual_prize_pool: Optional[Decimal] = None

    @property
    def gross_total(self) -> Decimal:
        return self.revenue.gross_total

    @property
    def calculated_pool(self) -> Decimal:
        return self.gross_total - self.rake.total

    @property
    def is_manual(self) -> bool:
        return self.manual_prize_pool is not None

    @property
    def distributable(self) -> Decimal:
        if self.manual_prize_pool is not None:
            return self.manual_prize_pool
        return self.calculated_pool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "revenue": self.revenue.to_dict(),
            "rake": self.rake.to_dict(),
            "gross_total": str(self.gross_total),
            "calculated_pool": str(self.calculated_pool),
            "manual_prize_pool": None
            if self.manual_prize_pool is None
            else str(self.manual_prize_pool),
            "distributable": str(self.distributable),
            "is_manual": self.is_manual,
        }


@dataclass(frozen=True)
class Payout:
    """Prize for one finishing position."""

    position: int
    percentage: Decimal
    amount: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "position": self.position,
            "percentage": str(self.percentage * HUNDRED),
            "amount": str(self.amount),
        }


@dataclass(frozen=True)
class Standing:
    """Resolved finishing position of one entry."""

    position: int
    entry: EntryRecord


@dataclass(frozen=True)
class PointsRule:
    """Points for a position or inclusive position range."""

    position: int
    points: int
    position_end: Optional[int] = None

    @property
    def last_position(self) -> int:
        return self.position_end if self.position_end is not None else self.position

    def covers(self, position: int) -> bool:
        return self.position <= position <= self.last_position

    def overlaps(self, other: "PointsRule") -> bool:
        return (
            self.position <= other.last_position
            and other.position <= self.last_position
        )


@dataclass(frozen=True)
class PointsScheme:
    """Season points system as seen by the allocator."""

    participation_points: int = 0
    knockout_points: int = 0
    rules: Tuple[PointsRule, ...] = ()

    @classmethod
    def from_record(cls, record: Any) -> "PointsScheme":
        return cls(
            participation_points=record.participation_points or 0,
            knockout_points=record.knockout_points or 0,
            rules=tuple(
                PointsRule(
                    position=a.position,
                    points=a.points,
                    position_end=a.position_end,
                )
                for a in record.allocations
            ),
        )


@dataclass(frozen=True)
class PointsAward:
    """Breakdown of points awarded for one finish."""

    position_points: int = 0
    participation_points: int = 0
    knockout_points: int = 0

    @property
    def total(self) -> int:
        return self.position_points + self.participation_points + self.knockout_points


@dataclass(frozen=True)
class SettlementLine:
    """Values settlement writes onto one registration."""

    registration_id: str
    player_id: str
    position: int
    prize_amount: Optional[Decimal] = None
    points_awarded: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "registration_id": self.registration_id,
            "player_id": self.player_id,
            "position": self.position,
            "prize_amount": None if self.prize_amount is None else str(self.prize_amount),
            "points_awarded": self.points_awarded,
        }


@dataclass(frozen=True)
class SettlementPlan:
    """Complete, not yet applied, settlement of a tournament."""

    tournament_id: str
    prize_pool: PrizePool
    payout_structure: str
    payouts: Tuple[Payout, ...] = ()
    lines: Tuple[SettlementLine, ...] = ()

    @property
    def total_paid(self) -> Decimal:
        return sum(
            (line.prize_amount for line in self.lines if line.prize_amount is not None),
            ZERO,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tournament_id": self.tournament_id,
            "payout_structure": self.payout_structure,
            "prize_pool": self.prize_pool.to_dict(),
            "payouts": [p.to_dict() for p in self.payouts],
            "total_paid": str(self.total_paid),
            "lines": [line.to_dict() for line in self.lines],
        }