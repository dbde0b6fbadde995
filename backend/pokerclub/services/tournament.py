"""Tournament lifecycle, prize pool and settlement service."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pokerclub.config import get_settings
from pokerclub.logging_config import get_logger
from pokerclub.models.activity import ActivityEventType
from pokerclub.models.player import Player
from pokerclub.models.points import PointsSystem
from pokerclub.models.registration import Registration
from pokerclub.models.tournament import Tournament, TournamentStatus
from pokerclub.services.activity import ActivityService, format_money
from pokerclub.tournament.high_hand import compute_high_hand_pool
from pokerclub.tournament.lifecycle import (
    ensure_finalizable,
    ensure_lock_change,
    ensure_transition,
    status_label,
)
from pokerclub.tournament.models import (
    EntryRecord,
    PointsScheme,
    RakeType,
    SettlementLine,
    SettlementPlan,
    TournamentConfig,
)
from pokerclub.tournament.payouts import validate_payout_structure
from pokerclub.tournament.settlement import build_settlement_plan
from pokerclub.utils.errors import (
    ErrorCode,
    PointsSystemNotFoundError,
    TournamentNotFoundError,
    ValidationFailedError,
)

logger = get_logger(__name__)

RAKE_FIELDS = (
    ("rake_type", "rake_amount"),
    ("rebuy_rake_type", "rebuy_rake_amount"),
    ("addon_rake_type", "addon_rake_amount"),
    ("high_hand_rake_type", "high_hand_rake_amount"),
)
AMOUNT_FIELDS = ("buy_in_amount", "rebuy_amount", "addon_amount", "high_hand_amount")
# Plain attributes an update may change without lifecycle rules
EDITABLE_FIELDS = ("name", "description", "start_date_time", "max_players", "track_points")
# NOT NULL columns; an explicit null is rejected
REQUIRED_FIELDS = ("name", "track_points")


async def get_tournament_or_raise(
    db: AsyncSession,
    tournament_id: str,
    lock: bool = False,
) -> Tournament:
    """Load a tournament, optionally with ``SELECT ... FOR UPDATE``.

    Lock-gated writes take the row lock first so the lock flag read here
    cannot change before the transaction commits.
    """
    query = select(Tournament).where(Tournament.id == tournament_id)
    if lock:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    tournament = result.scalar_one_or_none()
    if tournament is None:
        raise TournamentNotFoundError(tournament_id)
    return tournament


async def load_registrations(db: AsyncSession, tournament_id: str) -> list[Registration]:
    """Registrations in input order (registration time, then id)."""
    result = await db.execute(
        select(Registration)
        .where(Registration.tournament_id == tournament_id)
        .order_by(Registration.registration_time, Registration.id)
    )
    return list(result.scalars().all())


def _validate_amount(field: str, value: Any) -> Decimal:
    try:
        amount = Decimal(str(value))
    except ArithmeticError:
        raise ValidationFailedError(
            f"{field} is not a valid amount",
            code=ErrorCode.INVALID_AMOUNT,
            details={"field": field, "value": str(value)},
        )
    if not amount.is_finite() or amount < 0:
        raise ValidationFailedError(
            f"{field} must be a non-negative amount",
            code=ErrorCode.INVALID_AMOUNT,
            details={"field": field, "value": str(value)},
        )
    return amount


def _validate_rake_type(field: str, value: str) -> str:
    try:
        return RakeType(value).value
    except ValueError:
        raise ValidationFailedError(
            f"{field} must be one of none, percentage, fixed",
            code=ErrorCode.INVALID_REQUEST,
            details={"field": field, "value": value},
        )


class TournamentService:
    """Service for tournament lifecycle and settlement operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.activity = ActivityService(db)

    # =========================================================================
    # Create / read
    # =========================================================================

    async def create_tournament(self, name: str, buy_in_amount: Decimal, **fields: Any) -> Tournament:
        """Create a tournament.

        Money configuration is validated up front: amounts must be
        non-negative, rake types known, and the payout structure one of the
        supported tables (``custom`` with a list summing to 100).

        Raises:
            ValidationFailedError: Invalid amount, rake type or payout structure
            PointsSystemNotFoundError: Unknown points_system_id
        """
        values: dict[str, Any] = {"name": name, "buy_in_amount": buy_in_amount, **fields}

        for field in AMOUNT_FIELDS:
            if values.get(field) is not None:
                values[field] = _validate_amount(field, values[field])
        for type_field, amount_field in RAKE_FIELDS:
            if values.get(type_field) is not None:
                values[type_field] = _validate_rake_type(type_field, values[type_field])
            if values.get(amount_field) is not None:
                values[amount_field] = _validate_amount(amount_field, values[amount_field])
        if values.get("manual_prize_pool") is not None:
            values["manual_prize_pool"] = _validate_amount(
                "manual_prize_pool", values["manual_prize_pool"]
            )

        structure = validate_payout_structure(
            values.get("payout_structure") or "standard",
            values.get("custom_payouts"),
        )
        values["payout_structure"] = structure.value
        if values.get("custom_payouts") is not None:
            values["custom_payouts"] = [str(p) for p in values["custom_payouts"]]

        if values.get("points_system_id"):
            await self._ensure_points_system(values["points_system_id"])

        tournament = Tournament(**values)
        self.db.add(tournament)
        await self.db.flush()

        logger.info(
            "tournament_created",
            tournament_id=tournament.id,
            buy_in_amount=tournament.buy_in_amount,
            payout_structure=tournament.payout_structure,
        )
        return tournament

    async def get_tournament(self, tournament_id: str) -> Tournament:
        return await get_tournament_or_raise(self.db, tournament_id)

    async def _ensure_points_system(self, points_system_id: str) -> PointsSystem:
        points_system = await self.db.get(PointsSystem, points_system_id)
        if points_system is None:
            raise PointsSystemNotFoundError(points_system_id)
        return points_system

    # =========================================================================
    # Lifecycle updates
    # =========================================================================

    async def update_tournament(self, tournament_id: str, **changes: Any) -> Tournament:
        """Apply a partial update with lifecycle and lock rules.

        Only keys present in ``changes`` are considered; passing
        ``manual_prize_pool=None`` clears the override. Every change is
        validated before any attribute is written.

        Raises:
            TournamentNotFoundError: Unknown tournament
            InvalidStatusTransitionError: Status change not allowed
            LockIrreversibleError: Attempt to unlock the prize pool
            ValidationFailedError: Invalid amount or payout structure
        """
        tournament = await get_tournament_or_raise(self.db, tournament_id, lock=True)

        # Validate everything first
        for field in REQUIRED_FIELDS:
            if field in changes and changes[field] is None:
                raise ValidationFailedError(
                    f"{field} cannot be null",
                    details={"field": field},
                )

        status_changes = False
        if changes.get("status") is not None:
            status_changes = ensure_transition(tournament.status, changes["status"])

        locking = False
        if changes.get("prize_pool_locked") is not None:
            locking = ensure_lock_change(
                tournament.id, tournament.prize_pool_locked, changes["prize_pool_locked"]
            )

        override_changes = False
        new_override: Decimal | None = None
        if "manual_prize_pool" in changes:
            if changes["manual_prize_pool"] is not None:
                new_override = _validate_amount("manual_prize_pool", changes["manual_prize_pool"])
            override_changes = new_override != tournament.manual_prize_pool

        structure_changes = "payout_structure" in changes or "custom_payouts" in changes
        if structure_changes:
            name = changes.get("payout_structure") or tournament.payout_structure
            custom = changes.get("custom_payouts", tournament.custom_payouts)
            validate_payout_structure(name, custom)

        # Apply
        for field in EDITABLE_FIELDS:
            if field in changes:
                setattr(tournament, field, changes[field])

        if structure_changes:
            tournament.payout_structure = (
                changes.get("payout_structure") or tournament.payout_structure
            ).strip().lower()
            if "custom_payouts" in changes:
                custom = changes["custom_payouts"]
                tournament.custom_payouts = None if custom is None else [str(p) for p in custom]

        if status_changes:
            previous = tournament.status
            tournament.status = TournamentStatus(changes["status"]).value
            await self.activity.log(
                tournament.id,
                ActivityEventType.STATUS_CHANGE,
                f"Tournament status changed to {status_label(tournament.status)}",
                event_data={"from": previous, "to": tournament.status},
            )

        if locking:
            tournament.prize_pool_locked = True
            tournament.prize_pool_locked_at = datetime.now(timezone.utc)
            await self.activity.log(
                tournament.id,
                ActivityEventType.PRIZE_POOL_LOCKED,
                "Prize pool has been locked - no further registrations, rebuys, or addons allowed",
            )

        if override_changes:
            tournament.manual_prize_pool = new_override
            description = (
                f"Prize pool manually set to {format_money(new_override)}"
                if new_override is not None
                else "Manual prize pool override removed"
            )
            await self.activity.log(
                tournament.id,
                ActivityEventType.PRIZE_POOL_OVERRIDE,
                description,
                event_data={"amount": new_override},
            )

        await self.db.flush()

        logger.info(
            "tournament_updated",
            tournament_id=tournament.id,
            status=tournament.status,
            prize_pool_locked=tournament.prize_pool_locked,
            fields=sorted(changes),
        )
        return tournament

    # =========================================================================
    # Read models
    # =========================================================================

    async def _points_scheme(self, tournament: Tournament) -> PointsScheme | None:
        if not tournament.track_points or not tournament.points_system_id:
            return None
        points_system = await self.db.get(PointsSystem, tournament.points_system_id)
        if points_system is None:
            return None
        return PointsScheme.from_record(points_system)

    async def _plan(
        self,
        tournament: Tournament,
        registrations: list[Registration],
    ) -> SettlementPlan:
        return build_settlement_plan(
            TournamentConfig.from_record(tournament),
            [EntryRecord.from_record(r) for r in registrations],
            await self._points_scheme(tournament),
            default_structure=get_settings().default_payout_structure,
        )

    async def get_prize_pool(self, tournament_id: str) -> dict[str, Any]:
        """Prize pool breakdown with payout and high-hand preview."""
        tournament = await get_tournament_or_raise(self.db, tournament_id)
        registrations = await load_registrations(self.db, tournament_id)
        plan = await self._plan(tournament, registrations)
        config = TournamentConfig.from_record(tournament)
        high_hand = compute_high_hand_pool(
            config.high_hand, [EntryRecord.from_record(r) for r in registrations]
        )

        return {
            "tournament_id": tournament.id,
            "prize_pool_locked": tournament.prize_pool_locked,
            "payout_structure": plan.payout_structure,
            **plan.prize_pool.to_dict(),
            "payouts": [p.to_dict() for p in plan.payouts],
            "high_hand": high_hand.to_dict(),
        }

    async def get_standings(self, tournament_id: str) -> list[dict[str, Any]]:
        """Current ranking with projected prize and points."""
        tournament = await get_tournament_or_raise(self.db, tournament_id)
        registrations = await load_registrations(self.db, tournament_id)
        plan = await self._plan(tournament, registrations)

        by_id = {r.id: r for r in registrations}
        names = await self._player_names([r.player_id for r in registrations])

        standings = []
        for line in plan.lines:
            registration = by_id[line.registration_id]
            standings.append(
                {
                    "position": line.position,
                    "registration_id": registration.id,
                    "player_id": registration.player_id,
                    "player_name": names.get(registration.player_id),
                    "is_eliminated": registration.is_eliminated,
                    "elimination_time": registration.elimination_time,
                    "knockouts": registration.knockouts,
                    "rebuys": registration.rebuys,
                    "addons": registration.addons,
                    "projected_prize": line.prize_amount,
                    "projected_points": line.points_awarded,
                }
            )
        return standings

    async def _player_names(self, player_ids: list[str]) -> dict[str, str]:
        if not player_ids:
            return {}
        result = await self.db.execute(
            select(Player.id, Player.name).where(Player.id.in_(player_ids))
        )
        return {row.id: row.name for row in result.all()}

    # =========================================================================
    # Settlement
    # =========================================================================

    async def finalize(self, tournament_id: str) -> SettlementPlan:
        """Settle the tournament: positions, prizes, points, then completed.

        The whole plan is computed before any row changes. Applying it is
        all-or-nothing: on any failure the session is rolled back, leaving
        registrations and status as they were. Re-running on a completed
        tournament recomputes and overwrites positions, prizes and points.

        Raises:
            TournamentNotFoundError: Unknown tournament
            InvalidStatusTransitionError: Tournament is not in_progress or completed
        """
        tournament = await get_tournament_or_raise(self.db, tournament_id, lock=True)
        ensure_finalizable(tournament.status)

        registrations = await load_registrations(self.db, tournament_id)
        plan = await self._plan(tournament, registrations)
        previous_status = tournament.status

        try:
            by_id = {r.id: r for r in registrations}

            # Clear positions first so reassignment never collides with the
            # (tournament_id, final_position) unique constraint
            for registration in registrations:
                registration.final_position = None
            await self.db.flush()

            for line in plan.lines:
                self._apply_line(by_id[line.registration_id], line)
            await self.db.flush()

            tournament.status = TournamentStatus.COMPLETED.value
            await self.activity.log(
                tournament.id,
                ActivityEventType.TOURNAMENT_FINALIZED,
                "Tournament finalized - positions, prizes, and points assigned",
                event_data={
                    "previous_status": previous_status,
                    "registrations": len(plan.lines),
                    "prize_pool": plan.prize_pool.distributable,
                    "payout_structure": plan.payout_structure,
                },
            )
            await self.db.flush()
        except Exception as e:
            await self.db.rollback()
            logger.error(
                "tournament_finalize_failed",
                tournament_id=tournament_id,
                error=str(e),
            )
            raise

        logger.info(
            "tournament_finalized",
            tournament_id=tournament_id,
            registrations=len(plan.lines),
            prize_pool=plan.prize_pool.distributable,
            total_paid=plan.total_paid,
            recompute=previous_status == TournamentStatus.COMPLETED.value,
        )
        return plan

    def _apply_line(self, registration: Registration, line: SettlementLine) -> None:
        registration.final_position = line.position
        registration.prize_amount = line.prize_amount
        registration.points_awarded = line.points_awarded
