"""Tests for RegistrationService.

Registration rules, atomic counters, the prize pool lock, eliminations with
knockout credit and high hand awards.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import select

from pokerclub.models import ActivityEventType, ActivityLog
from pokerclub.services.registration import RegistrationService
from pokerclub.utils.errors import (
    DuplicateRegistrationError,
    ErrorCode,
    HighHandError,
    PlayerNotFoundError,
    PrizePoolLockedError,
    RegistrationNotFoundError,
    TournamentNotFoundError,
    ValidationFailedError,
)


async def descriptions(db, tournament_id: str, event_type: ActivityEventType) -> list[str]:
    result = await db.execute(
        select(ActivityLog.description).where(
            ActivityLog.tournament_id == tournament_id,
            ActivityLog.event_type == event_type.value,
        )
    )
    return list(result.scalars().all())


async def lock(db, tournament) -> None:
    tournament.prize_pool_locked = True
    await db.commit()


# =============================================================================
# Registration
# =============================================================================


class TestRegisterPlayer:
    @pytest.mark.asyncio
    async def test_register(self, test_db, make_tournament, make_player):
        tournament = await make_tournament(status="registration")
        player = await make_player("Dana")
        service = RegistrationService(test_db)

        registration = await service.register_player(tournament.id, player.id)

        assert registration.buy_ins == 1
        assert registration.rebuys == 0
        assert registration.is_eliminated is False
        assert await descriptions(test_db, tournament.id, ActivityEventType.REGISTRATION) == [
            "Dana registered for the tournament"
        ]

    @pytest.mark.asyncio
    async def test_duplicate_rejected(self, test_db, make_tournament, make_player):
        tournament = await make_tournament()
        player = await make_player()
        service = RegistrationService(test_db)
        await service.register_player(tournament.id, player.id)

        with pytest.raises(DuplicateRegistrationError):
            await service.register_player(tournament.id, player.id)

    @pytest.mark.asyncio
    async def test_locked_pool_rejects_registration(self, test_db, make_tournament, make_player):
        tournament = await make_tournament(prize_pool_locked=True)
        player = await make_player()

        with pytest.raises(PrizePoolLockedError) as exc_info:
            await RegistrationService(test_db).register_player(tournament.id, player.id)

        assert exc_info.value.details["operation"] == "Registration"

    @pytest.mark.asyncio
    async def test_unknown_player(self, test_db, make_tournament):
        tournament = await make_tournament()

        with pytest.raises(PlayerNotFoundError):
            await RegistrationService(test_db).register_player(tournament.id, "ghost")

    @pytest.mark.asyncio
    async def test_unknown_tournament(self, test_db, make_player):
        player = await make_player()

        with pytest.raises(TournamentNotFoundError):
            await RegistrationService(test_db).register_player("missing", player.id)

    @pytest.mark.asyncio
    async def test_high_hand_entry_requires_enabled_pool(
        self, test_db, make_tournament, make_player
    ):
        tournament = await make_tournament(enable_high_hand=False)
        player = await make_player()

        with pytest.raises(HighHandError) as exc_info:
            await RegistrationService(test_db).register_player(
                tournament.id, player.id, entering_high_hands=True
            )

        assert exc_info.value.code == ErrorCode.HIGH_HAND_DISABLED

    @pytest.mark.asyncio
    async def test_full_tournament(self, test_db, make_tournament, make_player, seed_registrations):
        tournament = await make_tournament(max_players=2)
        await seed_registrations(tournament, 2)
        player = await make_player()

        with pytest.raises(ValidationFailedError, match="full"):
            await RegistrationService(test_db).register_player(tournament.id, player.id)

    @pytest.mark.asyncio
    async def test_finished_tournament(self, test_db, make_tournament, make_player):
        tournament = await make_tournament(status="completed")
        player = await make_player()

        with pytest.raises(ValidationFailedError):
            await RegistrationService(test_db).register_player(tournament.id, player.id)


# =============================================================================
# Counters
# =============================================================================


class TestCounters:
    @pytest.mark.asyncio
    async def test_add_rebuys(self, test_db, make_tournament, seed_registrations):
        tournament = await make_tournament()
        (registration,) = await seed_registrations(tournament, 1)
        service = RegistrationService(test_db)

        await service.add_rebuys(registration.id, 2)
        updated = await service.add_rebuys(registration.id)

        assert updated.rebuys == 3
        assert sorted(await descriptions(test_db, tournament.id, ActivityEventType.REBUY)) == [
            "Player 1 made 1 re-buy",
            "Player 1 made 2 re-buys",
        ]

    @pytest.mark.asyncio
    async def test_add_addons(self, test_db, make_tournament, seed_registrations):
        tournament = await make_tournament()
        (registration,) = await seed_registrations(tournament, 1)

        updated = await RegistrationService(test_db).add_addons(registration.id, 1)

        assert updated.addons == 1
        assert await descriptions(test_db, tournament.id, ActivityEventType.ADDON) == [
            "Player 1 purchased 1 add-on"
        ]

    @pytest.mark.asyncio
    async def test_count_must_be_positive(self, test_db, make_tournament, seed_registrations):
        tournament = await make_tournament()
        (registration,) = await seed_registrations(tournament, 1)

        with pytest.raises(ValidationFailedError) as exc_info:
            await RegistrationService(test_db).add_rebuys(registration.id, 0)

        assert exc_info.value.code == ErrorCode.INVALID_COUNT

    @pytest.mark.asyncio
    async def test_unknown_registration(self, test_db):
        with pytest.raises(RegistrationNotFoundError):
            await RegistrationService(test_db).add_rebuys("missing", 1)

    @pytest.mark.asyncio
    async def test_increments_accumulate_across_transactions(
        self, test_db, make_tournament, seed_registrations
    ):
        tournament = await make_tournament()
        (registration,) = await seed_registrations(tournament, 1)
        service = RegistrationService(test_db)

        await service.add_rebuys(registration.id, 1)
        await test_db.commit()
        await service.add_rebuys(registration.id, 1)
        await test_db.commit()

        await test_db.refresh(registration)
        assert registration.rebuys == 2

    @pytest.mark.asyncio
    async def test_update_counts_cannot_decrease(
        self, test_db, make_tournament, seed_registrations
    ):
        tournament = await make_tournament()
        (registration,) = await seed_registrations(tournament, 1, rebuys=2)

        with pytest.raises(ValidationFailedError) as exc_info:
            await RegistrationService(test_db).update_registration(registration.id, rebuys=1)

        assert exc_info.value.code == ErrorCode.INVALID_COUNT

    @pytest.mark.asyncio
    async def test_update_applies_difference(self, test_db, make_tournament, seed_registrations):
        tournament = await make_tournament()
        (registration,) = await seed_registrations(tournament, 1, rebuys=1)

        updated = await RegistrationService(test_db).update_registration(
            registration.id, rebuys=3, addons=1, knockouts=2
        )

        assert (updated.rebuys, updated.addons, updated.knockouts) == (3, 1, 2)
        assert await descriptions(test_db, tournament.id, ActivityEventType.KNOCKOUT) == [
            "Player 1 credited with 2 knockouts"
        ]


# =============================================================================
# Prize pool lock
# =============================================================================


class TestPrizePoolLock:
    @pytest.mark.asyncio
    async def test_rebuys_and_addons_rejected(self, test_db, make_tournament, seed_registrations):
        tournament = await make_tournament()
        (registration,) = await seed_registrations(tournament, 1)
        await lock(test_db, tournament)
        service = RegistrationService(test_db)

        with pytest.raises(PrizePoolLockedError):
            await service.add_rebuys(registration.id, 1)
        with pytest.raises(PrizePoolLockedError):
            await service.add_addons(registration.id, 1)
        with pytest.raises(PrizePoolLockedError):
            await service.update_registration(registration.id, rebuys=5)

        await test_db.refresh(registration)
        assert registration.rebuys == 0
        assert registration.addons == 0

    @pytest.mark.asyncio
    async def test_locked_update_writes_nothing(
        self, test_db, make_tournament, seed_registrations
    ):
        tournament = await make_tournament()
        (registration,) = await seed_registrations(tournament, 1)
        await lock(test_db, tournament)

        with pytest.raises(PrizePoolLockedError):
            await RegistrationService(test_db).update_registration(
                registration.id, knockouts=1, addons=1
            )

        await test_db.refresh(registration)
        assert registration.knockouts == 0

    @pytest.mark.asyncio
    async def test_new_high_hand_entry_rejected(
        self, test_db, make_tournament, seed_registrations
    ):
        tournament = await make_tournament(enable_high_hand=True, high_hand_amount=Decimal("5"))
        (registration,) = await seed_registrations(tournament, 1)
        await lock(test_db, tournament)

        with pytest.raises(PrizePoolLockedError):
            await RegistrationService(test_db).set_high_hand_entry(registration.id, True)

    @pytest.mark.asyncio
    async def test_settlement_inputs_still_allowed(
        self, test_db, make_tournament, seed_registrations
    ):
        tournament = await make_tournament(
            enable_high_hand=True, high_hand_amount=Decimal("10")
        )
        winner, loser = await seed_registrations(tournament, 2, entering_high_hands=True)
        await lock(test_db, tournament)
        service = RegistrationService(test_db)

        eliminated = await service.eliminate(loser.id, eliminated_by=winner.player_id)
        awarded = await service.award_high_hand(winner.id)
        opted_out = await service.set_high_hand_entry(loser.id, False)

        assert eliminated.is_eliminated is True
        assert awarded.high_hand_winner is True
        assert opted_out.entering_high_hands is False
        await test_db.refresh(winner)
        assert winner.knockouts == 1


# =============================================================================
# Elimination
# =============================================================================


class TestElimination:
    @pytest.mark.asyncio
    async def test_eliminate_credits_knockout(self, test_db, make_tournament, seed_registrations):
        tournament = await make_tournament()
        hero, villain = await seed_registrations(tournament, 2)
        service = RegistrationService(test_db)

        registration = await service.eliminate(villain.id, eliminated_by=hero.player_id)

        assert registration.is_eliminated is True
        assert registration.elimination_time is not None
        assert registration.elimination_order == 1
        assert registration.eliminated_by == hero.player_id
        await test_db.refresh(hero)
        assert hero.knockouts == 1
        assert await descriptions(test_db, tournament.id, ActivityEventType.ELIMINATION) == [
            "Player 2 was eliminated by Player 1"
        ]

    @pytest.mark.asyncio
    async def test_elimination_order_increases(
        self, test_db, make_tournament, seed_registrations
    ):
        tournament = await make_tournament()
        regs = await seed_registrations(tournament, 3)
        service = RegistrationService(test_db)
        when = datetime(2026, 3, 14, 22, 0, tzinfo=timezone.utc)

        first = await service.eliminate(regs[2].id, elimination_time=when)
        second = await service.eliminate(regs[1].id, elimination_time=when)

        assert (first.elimination_order, second.elimination_order) == (1, 2)

    @pytest.mark.asyncio
    async def test_already_eliminated(self, test_db, make_tournament, seed_registrations):
        tournament = await make_tournament()
        (registration,) = await seed_registrations(tournament, 1)
        service = RegistrationService(test_db)
        await service.eliminate(registration.id)

        with pytest.raises(ValidationFailedError, match="already eliminated"):
            await service.eliminate(registration.id)

    @pytest.mark.asyncio
    async def test_self_elimination(self, test_db, make_tournament, seed_registrations):
        tournament = await make_tournament()
        (registration,) = await seed_registrations(tournament, 1)

        with pytest.raises(ValidationFailedError):
            await RegistrationService(test_db).eliminate(
                registration.id, eliminated_by=registration.player_id
            )

    @pytest.mark.asyncio
    async def test_eliminator_must_be_registered(
        self, test_db, make_tournament, make_player, seed_registrations
    ):
        tournament = await make_tournament()
        (registration,) = await seed_registrations(tournament, 1)
        outsider = await make_player("Rail Bird")

        with pytest.raises(ValidationFailedError, match="not registered"):
            await RegistrationService(test_db).eliminate(
                registration.id, eliminated_by=outsider.id
            )

    @pytest.mark.asyncio
    async def test_restore_removes_credit(self, test_db, make_tournament, seed_registrations):
        tournament = await make_tournament()
        hero, villain = await seed_registrations(tournament, 2)
        service = RegistrationService(test_db)
        await service.eliminate(villain.id, eliminated_by=hero.player_id)

        restored = await service.restore(villain.id)

        assert restored.is_eliminated is False
        assert restored.elimination_time is None
        assert restored.elimination_order is None
        assert restored.eliminated_by is None
        await test_db.refresh(hero)
        assert hero.knockouts == 0
        assert await descriptions(
            test_db, tournament.id, ActivityEventType.PLAYER_RESTORED
        ) == ["Player 2 was restored to active"]

    @pytest.mark.asyncio
    async def test_restore_active_player(self, test_db, make_tournament, seed_registrations):
        tournament = await make_tournament()
        (registration,) = await seed_registrations(tournament, 1)

        with pytest.raises(ValidationFailedError):
            await RegistrationService(test_db).restore(registration.id)

    @pytest.mark.asyncio
    async def test_update_routes_elimination(self, test_db, make_tournament, seed_registrations):
        tournament = await make_tournament()
        hero, villain = await seed_registrations(tournament, 2)

        updated = await RegistrationService(test_db).update_registration(
            villain.id, is_eliminated=True, eliminated_by=hero.player_id
        )

        assert updated.is_eliminated is True
        await test_db.refresh(hero)
        assert hero.knockouts == 1


# =============================================================================
# High hand and payment
# =============================================================================


class TestHighHand:
    @pytest.mark.asyncio
    async def test_award_defaults_to_share(self, test_db, make_tournament, seed_registrations):
        tournament = await make_tournament(
            enable_high_hand=True,
            high_hand_amount=Decimal("5"),
            high_hand_rake_type="fixed",
            high_hand_rake_amount=Decimal("2"),
        )
        regs = await seed_registrations(tournament, 4, entering_high_hands=True)

        awarded = await RegistrationService(test_db).award_high_hand(regs[0].id)

        assert awarded.high_hand_winner is True
        assert awarded.high_hand_amount == Decimal("18.00")
        assert await descriptions(test_db, tournament.id, ActivityEventType.HIGH_HAND) == [
            "Player 1 won high hand ($18.00)"
        ]

    @pytest.mark.asyncio
    async def test_explicit_amount(self, test_db, make_tournament, seed_registrations):
        tournament = await make_tournament(enable_high_hand=True, high_hand_amount=Decimal("5"))
        (registration,) = await seed_registrations(tournament, 1, entering_high_hands=True)

        awarded = await RegistrationService(test_db).award_high_hand(
            registration.id, Decimal("12.50")
        )

        assert awarded.high_hand_amount == Decimal("12.50")

    @pytest.mark.asyncio
    async def test_payouts_exhausted(self, test_db, make_tournament, seed_registrations):
        tournament = await make_tournament(
            enable_high_hand=True, high_hand_amount=Decimal("5"), high_hand_payouts=1
        )
        first, second = await seed_registrations(tournament, 2, entering_high_hands=True)
        service = RegistrationService(test_db)
        await service.award_high_hand(first.id)

        with pytest.raises(HighHandError) as exc_info:
            await service.award_high_hand(second.id)

        assert exc_info.value.code == ErrorCode.HIGH_HAND_PAYOUTS_EXHAUSTED

    @pytest.mark.asyncio
    async def test_not_entered(self, test_db, make_tournament, seed_registrations):
        tournament = await make_tournament(enable_high_hand=True, high_hand_amount=Decimal("5"))
        (registration,) = await seed_registrations(tournament, 1)

        with pytest.raises(HighHandError) as exc_info:
            await RegistrationService(test_db).award_high_hand(registration.id)

        assert exc_info.value.code == ErrorCode.HIGH_HAND_NOT_ENTERED

    @pytest.mark.asyncio
    async def test_disabled(self, test_db, make_tournament, seed_registrations):
        tournament = await make_tournament()
        (registration,) = await seed_registrations(tournament, 1)

        with pytest.raises(HighHandError) as exc_info:
            await RegistrationService(test_db).award_high_hand(registration.id)

        assert exc_info.value.code == ErrorCode.HIGH_HAND_DISABLED

    @pytest.mark.asyncio
    async def test_update_reprices_existing_award(
        self, test_db, make_tournament, seed_registrations
    ):
        tournament = await make_tournament(enable_high_hand=True, high_hand_amount=Decimal("5"))
        registration = (await seed_registrations(tournament, 4, entering_high_hands=True))[0]
        service = RegistrationService(test_db)
        await service.award_high_hand(registration.id)

        updated = await service.update_registration(
            registration.id, high_hand_amount=Decimal("75")
        )

        assert updated.high_hand_winner is True
        assert updated.high_hand_amount == Decimal("75")
        assert "Player 1 won high hand ($75.00)" in await descriptions(
            test_db, tournament.id, ActivityEventType.HIGH_HAND
        )

    @pytest.mark.asyncio
    async def test_update_amount_rules(self, test_db, make_tournament, seed_registrations):
        tournament = await make_tournament(enable_high_hand=True, high_hand_amount=Decimal("5"))
        winner, other = await seed_registrations(tournament, 2, entering_high_hands=True)
        service = RegistrationService(test_db)
        await service.award_high_hand(winner.id)

        with pytest.raises(ValidationFailedError) as exc_info:
            await service.update_registration(winner.id, high_hand_amount=Decimal("-1"))
        assert exc_info.value.code == ErrorCode.INVALID_AMOUNT

        with pytest.raises(ValidationFailedError):
            await service.update_registration(other.id, high_hand_amount=Decimal("40"))

        with pytest.raises(ValidationFailedError):
            await service.update_registration(
                winner.id, high_hand_winner=False, high_hand_amount=Decimal("40")
            )

    @pytest.mark.asyncio
    async def test_update_revokes_award(self, test_db, make_tournament, seed_registrations):
        tournament = await make_tournament(
            enable_high_hand=True, high_hand_amount=Decimal("5"), high_hand_payouts=1
        )
        first, second = await seed_registrations(tournament, 2, entering_high_hands=True)
        service = RegistrationService(test_db)
        await service.award_high_hand(first.id)

        revoked = await service.update_registration(first.id, high_hand_winner=False)

        assert revoked.high_hand_winner is False
        assert revoked.high_hand_amount is None
        assert "High hand award for Player 1 revoked" in await descriptions(
            test_db, tournament.id, ActivityEventType.HIGH_HAND
        )
        awarded = await service.award_high_hand(second.id)
        assert awarded.high_hand_winner is True

    @pytest.mark.asyncio
    async def test_confirm_payment_once(self, test_db, make_tournament, seed_registrations):
        tournament = await make_tournament()
        (registration,) = await seed_registrations(tournament, 1)
        service = RegistrationService(test_db)

        await service.confirm_payment(registration.id)
        confirmed = await service.confirm_payment(registration.id)

        assert confirmed.payment_confirmed is True
        assert await descriptions(
            test_db, tournament.id, ActivityEventType.PAYMENT_CONFIRMED
        ) == ["Payment confirmed for Player 1"]
