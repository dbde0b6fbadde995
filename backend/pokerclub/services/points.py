"""Season points systems, allocations and leaderboard."""

from decimal import Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pokerclub.logging_config import get_logger
from pokerclub.models.player import Player
from pokerclub.models.points import PointsAllocation, PointsSystem
from pokerclub.models.registration import Registration
from pokerclub.models.tournament import Tournament
from pokerclub.tournament.models import PointsRule
from pokerclub.tournament.points import find_overlap
from pokerclub.utils.errors import (
    ErrorCode,
    OverlappingAllocationError,
    PointsSystemNotFoundError,
    ValidationFailedError,
)

logger = get_logger(__name__)


def _rule(position: int, points: int, position_end: int | None) -> PointsRule:
    if position < 1:
        raise ValidationFailedError(
            "position must be at least 1",
            details={"position": position},
        )
    if position_end is not None and position_end < position:
        raise ValidationFailedError(
            "position_end must not be before position",
            details={"position": position, "positionEnd": position_end},
        )
    if points < 0:
        raise ValidationFailedError(
            "points must be non-negative",
            code=ErrorCode.INVALID_COUNT,
            details={"points": points},
        )
    return PointsRule(position=position, points=points, position_end=position_end)


class PointsService:
    """Service for points systems and season standings."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_points_system(
        self,
        season_id: str,
        name: str,
        description: str | None = None,
        participation_points: int = 0,
        knockout_points: int = 0,
        allocations: list[dict[str, Any]] | None = None,
    ) -> PointsSystem:
        """Create a points system, optionally with its allocations.

        Raises:
            ValidationFailedError: Negative points or malformed range
            OverlappingAllocationError: Two allocations cover the same position
        """
        if participation_points < 0 or knockout_points < 0:
            raise ValidationFailedError(
                "participation_points and knockout_points must be non-negative",
                code=ErrorCode.INVALID_COUNT,
                details={
                    "participationPoints": participation_points,
                    "knockoutPoints": knockout_points,
                },
            )

        points_system = PointsSystem(
            season_id=season_id,
            name=name,
            description=description,
            participation_points=participation_points,
            knockout_points=knockout_points,
        )

        rules: list[PointsRule] = []
        for item in allocations or []:
            rule = _rule(item["position"], item["points"], item.get("position_end"))
            clash = find_overlap(rules, rule)
            if clash is not None:
                raise OverlappingAllocationError(
                    rule.position, rule.last_position, f"#{clash + 1}"
                )
            rules.append(rule)
            points_system.allocations.append(
                PointsAllocation(
                    position=rule.position,
                    position_end=rule.position_end,
                    points=rule.points,
                    description=item.get("description"),
                )
            )

        self.db.add(points_system)
        await self.db.flush()

        logger.info(
            "points_system_created",
            points_system_id=points_system.id,
            season_id=season_id,
            allocations=len(rules),
        )
        return points_system

    async def get_points_system(self, points_system_id: str) -> PointsSystem:
        points_system = await self.db.get(PointsSystem, points_system_id)
        if points_system is None:
            raise PointsSystemNotFoundError(points_system_id)
        return points_system

    async def list_points_systems(self, season_id: str) -> list[PointsSystem]:
        result = await self.db.execute(
            select(PointsSystem)
            .where(PointsSystem.season_id == season_id)
            .order_by(PointsSystem.created_at)
        )
        return list(result.scalars().all())

    async def add_allocation(
        self,
        points_system_id: str,
        position: int,
        points: int,
        position_end: int | None = None,
        description: str | None = None,
    ) -> PointsAllocation:
        """Add a position allocation, rejecting overlapping ranges.

        Raises:
            PointsSystemNotFoundError: Unknown points system
            OverlappingAllocationError: Range overlaps an existing allocation
        """
        points_system = await self.get_points_system(points_system_id)
        rule = _rule(position, points, position_end)

        for existing in points_system.allocations:
            existing_rule = PointsRule(
                position=existing.position,
                points=existing.points,
                position_end=existing.position_end,
            )
            if existing_rule.overlaps(rule):
                raise OverlappingAllocationError(position, rule.last_position, existing.id)

        allocation = PointsAllocation(
            position=position,
            position_end=position_end,
            points=points,
            description=description,
        )
        points_system.allocations.append(allocation)
        await self.db.flush()

        logger.info(
            "points_allocation_added",
            points_system_id=points_system_id,
            position=position,
            position_end=position_end,
            points=points,
        )
        return allocation

    async def list_allocations(self, points_system_id: str) -> list[PointsAllocation]:
        points_system = await self.get_points_system(points_system_id)
        return sorted(points_system.allocations, key=lambda a: (a.position, a.last_position))

    async def season_leaderboard(self, season_id: str, limit: int = 100) -> list[dict[str, Any]]:
        """Players ranked by total points awarded across the season."""
        total_points = func.coalesce(func.sum(Registration.points_awarded), 0)
        result = await self.db.execute(
            select(
                Registration.player_id,
                Player.name,
                total_points.label("total_points"),
                func.count(Registration.id).label("tournaments_played"),
                func.coalesce(func.sum(Registration.knockouts), 0).label("knockouts"),
                func.coalesce(func.sum(Registration.prize_amount), 0).label("winnings"),
                func.min(Registration.final_position).label("best_finish"),
            )
            .join(Tournament, Tournament.id == Registration.tournament_id)
            .join(Player, Player.id == Registration.player_id)
            .where(Tournament.season_id == season_id)
            .group_by(Registration.player_id, Player.name)
            .order_by(total_points.desc(), Player.name)
            .limit(limit)
        )

        return [
            {
                "rank": rank,
                "player_id": row.player_id,
                "player_name": row.name,
                "total_points": int(row.total_points),
                "tournaments_played": row.tournaments_played,
                "knockouts": int(row.knockouts),
                "winnings": Decimal(str(row.winnings)),
                "best_finish": row.best_finish,
            }
            for rank, row in enumerate(result.all(), start=1)
        ]
