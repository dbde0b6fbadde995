"""Tournament registration service.

All counter changes (rebuys, addons, knockouts) are SQL-side increments
executed after the tournament row has been locked, so concurrent
confirmations never lose updates and the prize pool lock is re-checked in
the same transaction as the write.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pokerclub.logging_config import get_logger
from pokerclub.models.activity import ActivityEventType
from pokerclub.models.player import Player
from pokerclub.models.registration import Registration
from pokerclub.models.tournament import Tournament
from pokerclub.services.activity import ActivityService, format_money, plural
from pokerclub.services.tournament import get_tournament_or_raise, load_registrations
from pokerclub.tournament.high_hand import compute_high_hand_pool
from pokerclub.tournament.lifecycle import (
    OP_ADDON,
    OP_HIGH_HAND_ENTRY,
    OP_REBUY,
    OP_REGISTRATION,
    ensure_unlocked,
)
from pokerclub.tournament.models import EntryRecord, TournamentConfig
from pokerclub.utils.errors import (
    DuplicateRegistrationError,
    ErrorCode,
    HighHandError,
    PlayerNotFoundError,
    RegistrationNotFoundError,
    ValidationFailedError,
)

logger = get_logger(__name__)

COUNTER_COLUMNS = {
    "rebuys": Registration.rebuys,
    "addons": Registration.addons,
    "knockouts": Registration.knockouts,
}


class RegistrationService:
    """Service for registration mutations and reads."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.activity = ActivityService(db)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def get_registration(self, registration_id: str) -> Registration:
        registration = await self.db.get(Registration, registration_id)
        if registration is None:
            raise RegistrationNotFoundError(registration_id)
        return registration

    async def find_registration(self, tournament_id: str, player_id: str) -> Registration | None:
        result = await self.db.execute(
            select(Registration).where(
                Registration.tournament_id == tournament_id,
                Registration.player_id == player_id,
            )
        )
        return result.scalar_one_or_none()

    async def _locked_context(self, registration_id: str) -> tuple[Registration, Tournament]:
        """Lock the owning tournament row, then re-read the registration."""
        registration = await self.get_registration(registration_id)
        tournament = await get_tournament_or_raise(
            self.db, registration.tournament_id, lock=True
        )
        registration = await self.db.get(
            Registration, registration_id, populate_existing=True
        )
        if registration is None:
            raise RegistrationNotFoundError(registration_id)
        return registration, tournament

    async def _player_name(self, player_id: str | None) -> str:
        if player_id is None:
            return "Unknown player"
        player = await self.db.get(Player, player_id)
        return player.name if player else "Unknown player"

    async def _increment(self, registration_id: str, counter: str, delta: int) -> Registration:
        """Atomic ``counter = counter + delta`` and refreshed row."""
        column = COUNTER_COLUMNS[counter]
        await self.db.execute(
            update(Registration)
            .where(Registration.id == registration_id)
            .values({counter: column + delta})
            .execution_options(synchronize_session=False)
        )
        registration = await self.db.get(
            Registration, registration_id, populate_existing=True
        )
        return registration

    @staticmethod
    def _validate_count(count: int, field: str) -> None:
        if count < 1:
            raise ValidationFailedError(
                f"{field} count must be at least 1",
                code=ErrorCode.INVALID_COUNT,
                details={"field": field, "count": count},
            )

    # =========================================================================
    # Registration
    # =========================================================================

    async def register_player(
        self,
        tournament_id: str,
        player_id: str,
        entering_high_hands: bool = False,
    ) -> Registration:
        """Register a player for a tournament.

        Raises:
            TournamentNotFoundError: Unknown tournament
            PlayerNotFoundError: Unknown player
            PrizePoolLockedError: Prize pool is locked
            DuplicateRegistrationError: Player already registered
            HighHandError: High hand entry while the pool is disabled
            ValidationFailedError: Tournament finished or full
        """
        tournament = await get_tournament_or_raise(self.db, tournament_id, lock=True)
        ensure_unlocked(tournament.id, tournament.prize_pool_locked, OP_REGISTRATION)

        if tournament.is_terminal:
            raise ValidationFailedError(
                f"Tournament is {tournament.status} and not accepting registrations",
                details={"status": tournament.status},
            )

        player = await self.db.get(Player, player_id)
        if player is None:
            raise PlayerNotFoundError(player_id)

        if await self.find_registration(tournament_id, player_id) is not None:
            raise DuplicateRegistrationError(tournament_id, player_id)

        if entering_high_hands and not tournament.enable_high_hand:
            raise HighHandError(
                ErrorCode.HIGH_HAND_DISABLED,
                "High hand pool is not enabled for this tournament",
                details={"tournamentId": tournament_id},
            )

        if tournament.max_players:
            count = await self.db.scalar(
                select(func.count(Registration.id)).where(
                    Registration.tournament_id == tournament_id
                )
            )
            if count >= tournament.max_players:
                raise ValidationFailedError(
                    "Tournament is full",
                    details={"maxPlayers": tournament.max_players},
                )

        registration = Registration(
            tournament_id=tournament_id,
            player_id=player_id,
            entering_high_hands=entering_high_hands,
            registration_time=datetime.now(timezone.utc),
        )
        self.db.add(registration)
        try:
            await self.db.flush()
        except IntegrityError:
            # Concurrent registration won the unique constraint
            raise DuplicateRegistrationError(tournament_id, player_id)

        await self.activity.log(
            tournament_id,
            ActivityEventType.REGISTRATION,
            f"{player.name} registered for the tournament",
            player_id=player_id,
            event_data={"entering_high_hands": entering_high_hands},
        )

        logger.info(
            "player_registered",
            tournament_id=tournament_id,
            player_id=player_id,
            registration_id=registration.id,
        )
        return registration

    async def list_registrations(self, tournament_id: str) -> list[Registration]:
        await get_tournament_or_raise(self.db, tournament_id)
        return await load_registrations(self.db, tournament_id)

    # =========================================================================
    # Rebuys / add-ons
    # =========================================================================

    async def add_rebuys(self, registration_id: str, count: int = 1) -> Registration:
        """Atomically add ``count`` rebuys.

        Raises:
            PrizePoolLockedError: Prize pool is locked
            ValidationFailedError: count < 1
        """
        self._validate_count(count, "rebuys")
        registration, tournament = await self._locked_context(registration_id)
        ensure_unlocked(tournament.id, tournament.prize_pool_locked, OP_REBUY)

        registration = await self._increment(registration_id, "rebuys", count)
        name = await self._player_name(registration.player_id)
        await self.activity.log(
            tournament.id,
            ActivityEventType.REBUY,
            f"{name} made {plural(count, 're-buy')}",
            player_id=registration.player_id,
            event_data={"count": count, "total": registration.rebuys},
        )
        logger.info(
            "rebuys_added",
            registration_id=registration_id,
            count=count,
            total=registration.rebuys,
        )
        return registration

    async def add_addons(self, registration_id: str, count: int = 1) -> Registration:
        """Atomically add ``count`` add-ons."""
        self._validate_count(count, "addons")
        registration, tournament = await self._locked_context(registration_id)
        ensure_unlocked(tournament.id, tournament.prize_pool_locked, OP_ADDON)

        registration = await self._increment(registration_id, "addons", count)
        name = await self._player_name(registration.player_id)
        await self.activity.log(
            tournament.id,
            ActivityEventType.ADDON,
            f"{name} purchased {plural(count, 'add-on')}",
            player_id=registration.player_id,
            event_data={"count": count, "total": registration.addons},
        )
        logger.info(
            "addons_added",
            registration_id=registration_id,
            count=count,
            total=registration.addons,
        )
        return registration

    # =========================================================================
    # Elimination
    # =========================================================================

    async def eliminate(
        self,
        registration_id: str,
        eliminated_by: str | None = None,
        elimination_time: datetime | None = None,
    ) -> Registration:
        """Record an elimination and credit the knockout.

        Allowed after the prize pool lock. ``eliminated_by`` is a player id
        that must be registered in the same tournament.

        Raises:
            ValidationFailedError: Already eliminated, self-elimination, or
                eliminating player not registered
        """
        registration, tournament = await self._locked_context(registration_id)
        if registration.is_eliminated:
            raise ValidationFailedError(
                "Player is already eliminated",
                details={"registrationId": registration_id},
            )

        knocker: Registration | None = None
        if eliminated_by is not None:
            if eliminated_by == registration.player_id:
                raise ValidationFailedError(
                    "A player cannot eliminate themselves",
                    details={"playerId": eliminated_by},
                )
            knocker = await self.find_registration(tournament.id, eliminated_by)
            if knocker is None:
                raise ValidationFailedError(
                    "Eliminating player is not registered in this tournament",
                    details={"eliminatedBy": eliminated_by},
                )

        last_order = await self.db.scalar(
            select(func.max(Registration.elimination_order)).where(
                Registration.tournament_id == tournament.id
            )
        )
        registration.is_eliminated = True
        registration.elimination_time = elimination_time or datetime.now(timezone.utc)
        registration.elimination_order = (last_order or 0) + 1
        registration.eliminated_by = eliminated_by
        await self.db.flush()

        if knocker is not None:
            await self._increment(knocker.id, "knockouts", 1)

        name = await self._player_name(registration.player_id)
        if knocker is not None:
            description = f"{name} was eliminated by {await self._player_name(eliminated_by)}"
        else:
            description = f"{name} was eliminated"
        await self.activity.log(
            tournament.id,
            ActivityEventType.ELIMINATION,
            description,
            player_id=registration.player_id,
            event_data={
                "eliminatedBy": eliminated_by,
                "eliminationOrder": registration.elimination_order,
            },
        )

        logger.info(
            "player_eliminated",
            tournament_id=tournament.id,
            registration_id=registration_id,
            eliminated_by=eliminated_by,
            elimination_order=registration.elimination_order,
        )
        return registration

    async def restore(self, registration_id: str) -> Registration:
        """Undo an elimination; the crediting player loses the knockout."""
        registration, tournament = await self._locked_context(registration_id)
        if not registration.is_eliminated:
            raise ValidationFailedError(
                "Player is not eliminated",
                details={"registrationId": registration_id},
            )

        credited = registration.eliminated_by
        registration.is_eliminated = False
        registration.elimination_time = None
        registration.elimination_order = None
        registration.eliminated_by = None
        await self.db.flush()

        if credited is not None:
            knocker = await self.find_registration(tournament.id, credited)
            if knocker is not None and knocker.knockouts > 0:
                await self._increment(knocker.id, "knockouts", -1)

        name = await self._player_name(registration.player_id)
        await self.activity.log(
            tournament.id,
            ActivityEventType.PLAYER_RESTORED,
            f"{name} was restored to active",
            player_id=registration.player_id,
            event_data={"creditRemovedFrom": credited},
        )
        return registration

    # =========================================================================
    # High hand / payment
    # =========================================================================

    async def award_high_hand(
        self,
        registration_id: str,
        amount: Decimal | None = None,
    ) -> Registration:
        """Mark a registration as high-hand winner.

        The amount defaults to the per-winner share of the high-hand pool.
        Allowed after the prize pool lock.

        Raises:
            HighHandError: Pool disabled, player not entered, or all payouts taken
        """
        registration, tournament = await self._locked_context(registration_id)
        if not tournament.enable_high_hand:
            raise HighHandError(
                ErrorCode.HIGH_HAND_DISABLED,
                "High hand pool is not enabled for this tournament",
                details={"tournamentId": tournament.id},
            )
        if not registration.entering_high_hands:
            raise HighHandError(
                ErrorCode.HIGH_HAND_NOT_ENTERED,
                "Player is not entered in the high hand pool",
                details={"registrationId": registration_id},
            )

        registrations = await load_registrations(self.db, tournament.id)
        pool = compute_high_hand_pool(
            TournamentConfig.from_record(tournament).high_hand,
            [EntryRecord.from_record(r) for r in registrations],
        )
        if not registration.high_hand_winner and pool.remaining_payouts == 0:
            raise HighHandError(
                ErrorCode.HIGH_HAND_PAYOUTS_EXHAUSTED,
                "All high hand payouts have been awarded",
                details={"payoutCount": pool.payout_count, "winners": pool.winners},
            )

        if amount is None:
            amount = pool.per_winner
        elif amount < 0:
            raise ValidationFailedError(
                "High hand amount must be non-negative",
                code=ErrorCode.INVALID_AMOUNT,
                details={"amount": str(amount)},
            )

        registration.high_hand_winner = True
        registration.high_hand_amount = amount
        await self.db.flush()

        name = await self._player_name(registration.player_id)
        await self.activity.log(
            tournament.id,
            ActivityEventType.HIGH_HAND,
            f"{name} won high hand ({format_money(amount)})",
            player_id=registration.player_id,
            event_data={"amount": amount},
        )
        return registration

    async def revoke_high_hand(self, registration_id: str) -> Registration:
        """Take back a high-hand award, freeing the payout slot."""
        registration, tournament = await self._locked_context(registration_id)
        if not registration.high_hand_winner:
            return registration

        previous = registration.high_hand_amount
        registration.high_hand_winner = False
        registration.high_hand_amount = None
        await self.db.flush()

        name = await self._player_name(registration.player_id)
        await self.activity.log(
            tournament.id,
            ActivityEventType.HIGH_HAND,
            f"High hand award for {name} revoked",
            player_id=registration.player_id,
            event_data={"revoked_amount": previous},
        )
        return registration

    async def set_high_hand_entry(self, registration_id: str, entering: bool) -> Registration:
        """Opt in or out of the high-hand pool; opting in is lock-gated."""
        registration, tournament = await self._locked_context(registration_id)
        if entering == registration.entering_high_hands:
            return registration
        if entering:
            ensure_unlocked(tournament.id, tournament.prize_pool_locked, OP_HIGH_HAND_ENTRY)
            if not tournament.enable_high_hand:
                raise HighHandError(
                    ErrorCode.HIGH_HAND_DISABLED,
                    "High hand pool is not enabled for this tournament",
                    details={"tournamentId": tournament.id},
                )
        registration.entering_high_hands = entering
        await self.db.flush()
        return registration

    async def confirm_payment(self, registration_id: str) -> Registration:
        registration = await self.get_registration(registration_id)
        if registration.payment_confirmed:
            return registration

        registration.payment_confirmed = True
        await self.db.flush()

        name = await self._player_name(registration.player_id)
        await self.activity.log(
            registration.tournament_id,
            ActivityEventType.PAYMENT_CONFIRMED,
            f"Payment confirmed for {name}",
            player_id=registration.player_id,
        )
        return registration

    # =========================================================================
    # Generic update
    # =========================================================================

    async def update_registration(self, registration_id: str, **changes: Any) -> Registration:
        """Apply a partial update by routing each field to its operation.

        Counters are totals here but may only grow; the difference is
        applied as an atomic increment. Validation of every field happens
        before the first write.

        ``high_hand_amount`` on its own re-prices an existing award;
        ``high_hand_winner=False`` revokes it.

        Raises:
            ValidationFailedError: A counter would decrease, or a high hand
                amount is negative or set on a non-winner
            PrizePoolLockedError: A counter increase or high hand entry while locked
        """
        registration, tournament = await self._locked_context(registration_id)

        deltas: dict[str, int] = {}
        for counter in ("rebuys", "addons", "knockouts"):
            if changes.get(counter) is None:
                continue
            delta = changes[counter] - getattr(registration, counter)
            if delta < 0:
                raise ValidationFailedError(
                    f"{counter} cannot decrease",
                    code=ErrorCode.INVALID_COUNT,
                    details={
                        "field": counter,
                        "current": getattr(registration, counter),
                        "requested": changes[counter],
                    },
                )
            if delta:
                deltas[counter] = delta

        if "rebuys" in deltas:
            ensure_unlocked(tournament.id, tournament.prize_pool_locked, OP_REBUY)
        if "addons" in deltas:
            ensure_unlocked(tournament.id, tournament.prize_pool_locked, OP_ADDON)
        if changes.get("entering_high_hands") and not registration.entering_high_hands:
            ensure_unlocked(tournament.id, tournament.prize_pool_locked, OP_HIGH_HAND_ENTRY)

        # Amount alone re-prices an existing award
        new_amount = changes.get("high_hand_amount")
        winner = changes.get("high_hand_winner")
        if new_amount is not None:
            if winner is False or (winner is None and not registration.high_hand_winner):
                raise ValidationFailedError(
                    "High hand amount can only be set on a high hand winner",
                    details={"registrationId": registration_id},
                )
            if new_amount < 0:
                raise ValidationFailedError(
                    "High hand amount must be non-negative",
                    code=ErrorCode.INVALID_AMOUNT,
                    details={"amount": str(new_amount)},
                )

        if "rebuys" in deltas:
            registration = await self.add_rebuys(registration_id, deltas["rebuys"])
        if "addons" in deltas:
            registration = await self.add_addons(registration_id, deltas["addons"])
        if "knockouts" in deltas:
            registration = await self._increment(registration_id, "knockouts", deltas["knockouts"])
            name = await self._player_name(registration.player_id)
            await self.activity.log(
                tournament.id,
                ActivityEventType.KNOCKOUT,
                f"{name} credited with {plural(deltas['knockouts'], 'knockout')}",
                player_id=registration.player_id,
                event_data={"count": deltas["knockouts"], "total": registration.knockouts},
            )

        if changes.get("entering_high_hands") is not None:
            registration = await self.set_high_hand_entry(
                registration_id, changes["entering_high_hands"]
            )

        if changes.get("is_eliminated") is True and not registration.is_eliminated:
            registration = await self.eliminate(
                registration_id,
                eliminated_by=changes.get("eliminated_by"),
                elimination_time=changes.get("elimination_time"),
            )
        elif changes.get("is_eliminated") is False and registration.is_eliminated:
            registration = await self.restore(registration_id)

        if winner or (winner is None and new_amount is not None):
            registration = await self.award_high_hand(registration_id, new_amount)
        elif winner is False and registration.high_hand_winner:
            registration = await self.revoke_high_hand(registration_id)

        if changes.get("payment_confirmed"):
            registration = await self.confirm_payment(registration_id)

        return registration
