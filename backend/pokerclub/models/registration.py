"""Tournament registration model."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from pokerclub.models.base import Base, UUIDMixin, utcnow


class Registration(Base, UUIDMixin):
    """A player's entry into a tournament.

    Counters (buy_ins, rebuys, addons, knockouts) only ever grow and are
    changed with SQL-side increments, never by writing a client-supplied total.
    final_position, prize_amount and points_awarded are written by settlement.
    """

    __tablename__ = "tournament_registrations"
    __table_args__ = (
        UniqueConstraint("tournament_id", "player_id", name="uq_registration_player"),
        UniqueConstraint(
            "tournament_id", "final_position", name="uq_registration_final_position"
        ),
    )

    tournament_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("tournaments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    player_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("players.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    registration_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    # Entry counters
    buy_ins: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    rebuys: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    addons: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Elimination
    is_eliminated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    elimination_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    elimination_order: Mapped[int | None] = mapped_column(Integer, nullable=True)
    eliminated_by: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("players.id", ondelete="SET NULL"),
        nullable=True,
    )
    knockouts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Settlement results
    final_position: Mapped[int | None] = mapped_column(Integer, nullable=True)
    prize_amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    points_awarded: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # High hand
    entering_high_hands: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    high_hand_winner: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    high_hand_amount: Mapped[Decimal | None] = mapped_column(
        Numeric(10, 2), nullable=True
    )

    payment_confirmed: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    def __repr__(self) -> str:
        state = "out" if self.is_eliminated else "in"
        return f"<Registration {self.player_id[:8]} {state} pos={self.final_position}>"
