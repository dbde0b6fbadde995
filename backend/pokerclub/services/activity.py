"""Tournament activity log service."""

from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pokerclub.config import get_settings
from pokerclub.logging_config import get_logger
from pokerclub.models.activity import ActivityEventType, ActivityLog
from pokerclub.utils.json_utils import to_json_safe

logger = get_logger(__name__)


def format_money(amount: Decimal | int | None) -> str:
    """Render an amount for activity descriptions, e.g. ``$150.00``."""
    value = Decimal(str(amount or 0)).quantize(Decimal("0.01"))
    return f"{get_settings().currency_symbol}{value}"


def plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


class ActivityService:
    """Records and reads the per-tournament activity feed.

    Entries are written in the caller's transaction, so an operation that
    rolls back leaves no activity behind.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log(
        self,
        tournament_id: str,
        event_type: ActivityEventType,
        description: str,
        player_id: str | None = None,
        event_data: dict[str, Any] | None = None,
    ) -> ActivityLog:
        """Append an activity entry.

        Args:
            tournament_id: Tournament ID
            event_type: Activity event type
            description: Human readable description
            player_id: Player the event is about, if any
            event_data: Extra structured data (Decimals stored as strings)

        Returns:
            Created ActivityLog
        """
        entry = ActivityLog(
            tournament_id=tournament_id,
            player_id=player_id,
            event_type=event_type.value,
            event_data=to_json_safe(event_data) if event_data else None,
            description=description,
        )
        self.db.add(entry)
        await self.db.flush()

        logger.info(
            "activity_logged",
            tournament_id=tournament_id,
            event_type=event_type.value,
            player_id=player_id,
        )
        return entry

    async def list_for_tournament(
        self,
        tournament_id: str,
        limit: int = 50,
        event_type: ActivityEventType | None = None,
    ) -> list[ActivityLog]:
        """Newest entries first."""
        query = select(ActivityLog).where(ActivityLog.tournament_id == tournament_id)
        if event_type is not None:
            query = query.where(ActivityLog.event_type == event_type.value)
        query = query.order_by(ActivityLog.created_at.desc()).limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())
