"""Tournament model."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pokerclub.models.base import Base, JSONType, TimestampMixin, UUIDMixin


class TournamentStatus(str, Enum):
    """Tournament lifecycle status."""

    SCHEDULED = "scheduled"
    REGISTRATION = "registration"  # Registration open (also the "paused" state)
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Tournament(Base, UUIDMixin, TimestampMixin):
    """Club tournament with its money and points configuration."""

    __tablename__ = "tournaments"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Season / points (seasons live outside this service)
    season_id: Mapped[str | None] = mapped_column(
        String(36),
        nullable=True,
        index=True,
    )
    points_system_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("points_systems.id", ondelete="SET NULL"),
        nullable=True,
    )
    track_points: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    start_date_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    max_players: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Status
    status: Mapped[str] = mapped_column(
        String(20),
        default=TournamentStatus.SCHEDULED.value,
        nullable=False,
        index=True,
    )

    # Entry prices
    buy_in_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    rebuy_amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    addon_amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)

    # Rake policy per stream (none / percentage / fixed)
    rake_type: Mapped[str] = mapped_column(String(20), default="none", nullable=False)
    rake_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), default=Decimal("0"), nullable=False
    )
    rebuy_rake_type: Mapped[str] = mapped_column(String(20), default="none", nullable=False)
    rebuy_rake_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), default=Decimal("0"), nullable=False
    )
    addon_rake_type: Mapped[str] = mapped_column(String(20), default="none", nullable=False)
    addon_rake_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), default=Decimal("0"), nullable=False
    )

    # Payouts
    payout_structure: Mapped[str] = mapped_column(
        String(20), default="standard", nullable=False
    )
    custom_payouts: Mapped[list | None] = mapped_column(JSONType, nullable=True)
    """
    Percentages for the "custom" structure, e.g. ["60", "40"]
    """

    # High hand side pool
    enable_high_hand: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    high_hand_amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    high_hand_rake_type: Mapped[str] = mapped_column(
        String(20), default="none", nullable=False
    )
    high_hand_rake_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), default=Decimal("0"), nullable=False
    )
    high_hand_payouts: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    # Prize pool lock (one-way) and manual override
    prize_pool_locked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    prize_pool_locked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    manual_prize_pool: Mapped[Decimal | None] = mapped_column(
        Numeric(10, 2), nullable=True
    )

    def __repr__(self) -> str:
        return f"<Tournament {self.name} ({self.status})>"

    @property
    def is_terminal(self) -> bool:
        return self.status in (
            TournamentStatus.COMPLETED.value,
            TournamentStatus.CANCELLED.value,
        )
