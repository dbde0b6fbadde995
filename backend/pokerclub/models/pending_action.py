"""Pending player action model."""

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from pokerclub.models.base import Base, UUIDMixin, utcnow


class PendingActionType(str, Enum):
    """Player-submitted requests awaiting staff confirmation."""

    REBUY = "rebuy"
    ADDON = "addon"
    KNOCKOUT = "knockout"


class PendingAction(Base, UUIDMixin):
    """Rebuy, add-on or knockout request submitted by a player."""

    __tablename__ = "pending_actions"

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
    )
    action_type: Mapped[str] = mapped_column(String(20), nullable=False)
    # Player knocked out (knockout requests only)
    target_player_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("players.id", ondelete="CASCADE"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<PendingAction {self.action_type} by={self.player_id[:8]}...>"
