"""Tournament activity log model."""

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pokerclub.models.base import Base, JSONType, UUIDMixin, utcnow


class ActivityEventType(str, Enum):
    """Activity event types."""

    REGISTRATION = "registration"
    REBUY = "rebuy"
    ADDON = "addon"
    ELIMINATION = "elimination"
    PLAYER_RESTORED = "player_restored"
    KNOCKOUT = "knockout"
    HIGH_HAND = "high_hand"
    STATUS_CHANGE = "status_change"
    PRIZE_POOL_LOCKED = "prize_pool_locked"
    PRIZE_POOL_OVERRIDE = "prize_pool_override"
    PAYMENT_CONFIRMED = "payment_confirmed"
    TOURNAMENT_FINALIZED = "tournament_finalized"


class ActivityLog(Base, UUIDMixin):
    """Audit trail of tournament events, shown as the live activity feed."""

    __tablename__ = "activity_log"

    tournament_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("tournaments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    player_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("players.id", ondelete="SET NULL"),
        nullable=True,
    )
    event_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    event_data: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    """
    Examples:
    {"eliminatedBy": "<player id>"}
    {"amount": "150.00"}
    {"from": "in_progress", "to": "completed"}
    """
    description: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<ActivityLog {self.event_type} tournament={self.tournament_id[:8]}...>"
