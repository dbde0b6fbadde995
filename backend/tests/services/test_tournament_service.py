"""Tests for TournamentService.

Creation validation, lifecycle updates, prize pool read model and
finalize (including rollback on a mid-settlement failure).
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy import select

from pokerclub.models import ActivityEventType, ActivityLog, Registration, TournamentStatus
from pokerclub.services.points import PointsService
from pokerclub.services.registration import RegistrationService
from pokerclub.services.tournament import TournamentService
from pokerclub.utils.errors import (
    ErrorCode,
    InvalidPayoutStructureError,
    InvalidStatusTransitionError,
    LockIrreversibleError,
    PointsSystemNotFoundError,
    TournamentNotFoundError,
    ValidationFailedError,
)

START = datetime(2026, 3, 14, 20, 0, tzinfo=timezone.utc)


async def eliminate_in_order(db, registrations, count: int) -> None:
    """Eliminate the first ``count`` registrations, one minute apart."""
    service = RegistrationService(db)
    for i, registration in enumerate(registrations[:count]):
        await service.eliminate(registration.id, elimination_time=START + timedelta(minutes=i))
    await db.commit()


async def activity_types(db, tournament_id: str) -> list[str]:
    result = await db.execute(
        select(ActivityLog.event_type).where(ActivityLog.tournament_id == tournament_id)
    )
    return list(result.scalars().all())


# =============================================================================
# Create
# =============================================================================


class TestCreateTournament:
    @pytest.mark.asyncio
    async def test_create_with_defaults(self, test_db):
        service = TournamentService(test_db)

        tournament = await service.create_tournament("Sunday Special", Decimal("100"))

        assert tournament.id is not None
        assert tournament.status == TournamentStatus.SCHEDULED.value
        assert tournament.payout_structure == "standard"
        assert tournament.prize_pool_locked is False

    @pytest.mark.asyncio
    async def test_custom_structure_is_stored(self, test_db):
        service = TournamentService(test_db)

        tournament = await service.create_tournament(
            "Custom",
            Decimal("20"),
            payout_structure="custom",
            custom_payouts=[Decimal("70"), Decimal("30")],
        )

        assert tournament.payout_structure == "custom"
        assert tournament.custom_payouts == ["70", "30"]

    @pytest.mark.asyncio
    async def test_unknown_structure_rejected(self, test_db):
        service = TournamentService(test_db)

        with pytest.raises(InvalidPayoutStructureError):
            await service.create_tournament("Bad", Decimal("20"), payout_structure="top4")

    @pytest.mark.asyncio
    async def test_custom_not_summing_to_100_rejected(self, test_db):
        service = TournamentService(test_db)

        with pytest.raises(InvalidPayoutStructureError):
            await service.create_tournament(
                "Bad", Decimal("20"), payout_structure="custom", custom_payouts=[50, 40]
            )

    @pytest.mark.asyncio
    async def test_negative_amount_rejected(self, test_db):
        service = TournamentService(test_db)

        with pytest.raises(ValidationFailedError) as exc_info:
            await service.create_tournament("Bad", Decimal("-5"))
        assert exc_info.value.code == ErrorCode.INVALID_AMOUNT

    @pytest.mark.asyncio
    async def test_unknown_rake_type_rejected(self, test_db):
        service = TournamentService(test_db)

        with pytest.raises(ValidationFailedError) as exc_info:
            await service.create_tournament("Bad", Decimal("20"), rake_type="sliding")
        assert exc_info.value.details["field"] == "rake_type"

    @pytest.mark.asyncio
    async def test_unknown_points_system_rejected(self, test_db):
        service = TournamentService(test_db)

        with pytest.raises(PointsSystemNotFoundError):
            await service.create_tournament(
                "Bad", Decimal("20"), points_system_id="00000000-0000-0000-0000-000000000000"
            )

    @pytest.mark.asyncio
    async def test_get_unknown_tournament(self, test_db):
        with pytest.raises(TournamentNotFoundError):
            await TournamentService(test_db).get_tournament("missing")


# =============================================================================
# Lifecycle updates
# =============================================================================


class TestUpdateTournament:
    @pytest.mark.asyncio
    async def test_status_change_logs_activity(self, test_db, make_tournament):
        tournament = await make_tournament(status="scheduled")
        service = TournamentService(test_db)

        updated = await service.update_tournament(tournament.id, status="registration")

        assert updated.status == "registration"
        entries = await service.activity.list_for_tournament(tournament.id)
        assert entries[0].event_type == ActivityEventType.STATUS_CHANGE.value
        assert entries[0].description == "Tournament status changed to Registration Open"

    @pytest.mark.asyncio
    async def test_pause_back_to_registration(self, test_db, make_tournament):
        tournament = await make_tournament(status="in_progress")

        updated = await TournamentService(test_db).update_tournament(
            tournament.id, status="registration"
        )

        assert updated.status == "registration"

    @pytest.mark.asyncio
    async def test_completed_rejected_through_update(self, test_db, make_tournament):
        tournament = await make_tournament(status="in_progress")

        with pytest.raises(InvalidStatusTransitionError):
            await TournamentService(test_db).update_tournament(
                tournament.id, status="completed"
            )

    @pytest.mark.asyncio
    async def test_same_status_is_noop(self, test_db, make_tournament):
        tournament = await make_tournament(status="in_progress")
        service = TournamentService(test_db)

        await service.update_tournament(tournament.id, status="in_progress")

        assert await activity_types(test_db, tournament.id) == []

    @pytest.mark.asyncio
    async def test_lock_is_one_way(self, test_db, make_tournament):
        tournament = await make_tournament()
        service = TournamentService(test_db)

        locked = await service.update_tournament(tournament.id, prize_pool_locked=True)
        await test_db.commit()

        assert locked.prize_pool_locked is True
        assert locked.prize_pool_locked_at is not None
        assert ActivityEventType.PRIZE_POOL_LOCKED.value in await activity_types(
            test_db, tournament.id
        )

        with pytest.raises(LockIrreversibleError):
            await service.update_tournament(tournament.id, prize_pool_locked=False)

    @pytest.mark.asyncio
    async def test_relock_does_not_log_again(self, test_db, make_tournament):
        tournament = await make_tournament(prize_pool_locked=True)

        await TournamentService(test_db).update_tournament(tournament.id, prize_pool_locked=True)

        assert await activity_types(test_db, tournament.id) == []

    @pytest.mark.asyncio
    async def test_manual_override_set_and_removed(self, test_db, make_tournament):
        tournament = await make_tournament()
        service = TournamentService(test_db)

        await service.update_tournament(tournament.id, manual_prize_pool=Decimal("500"))
        await test_db.commit()
        assert tournament.manual_prize_pool == Decimal("500")

        await service.update_tournament(tournament.id, manual_prize_pool=None)
        await test_db.commit()
        assert tournament.manual_prize_pool is None

        descriptions = {
            e.description for e in await service.activity.list_for_tournament(tournament.id)
        }
        assert descriptions == {
            "Prize pool manually set to $500.00",
            "Manual prize pool override removed",
        }

    @pytest.mark.asyncio
    async def test_invalid_change_leaves_tournament_untouched(self, test_db, make_tournament):
        tournament = await make_tournament(status="scheduled")
        service = TournamentService(test_db)

        with pytest.raises(InvalidPayoutStructureError):
            await service.update_tournament(
                tournament.id, status="registration", payout_structure="nope"
            )

        assert tournament.status == "scheduled"

    @pytest.mark.asyncio
    async def test_switch_to_custom_structure(self, test_db, make_tournament):
        tournament = await make_tournament()

        updated = await TournamentService(test_db).update_tournament(
            tournament.id, payout_structure="Custom", custom_payouts=[60, 40]
        )

        assert updated.payout_structure == "custom"
        assert updated.custom_payouts == ["60", "40"]


# =============================================================================
# Read models
# =============================================================================


class TestPrizePoolReadModel:
    @pytest.mark.asyncio
    async def test_breakdown(self, test_db, make_tournament, seed_registrations):
        tournament = await make_tournament(
            rebuy_amount=Decimal("50"),
            rake_type="percentage",
            rake_amount=Decimal("10"),
            rebuy_rake_type="fixed",
            rebuy_rake_amount=Decimal("5"),
        )
        await seed_registrations(tournament, 8)
        registrations = await seed_registrations(tournament, 2, rebuys=1)

        breakdown = await TournamentService(test_db).get_prize_pool(tournament.id)

        assert breakdown["revenue"]["total_buy_ins"] == 10
        assert breakdown["revenue"]["total_rebuys"] == 2
        assert Decimal(breakdown["gross_total"]) == Decimal("600")
        assert Decimal(breakdown["rake"]["buy_in"]) == Decimal("50")
        assert Decimal(breakdown["rake"]["rebuy"]) == Decimal("10")
        assert Decimal(breakdown["calculated_pool"]) == Decimal("540")
        assert [Decimal(p["amount"]) for p in breakdown["payouts"]] == [
            Decimal("270"),
            Decimal("162"),
            Decimal("108"),
        ]
        assert breakdown["prize_pool_locked"] is False
        assert len(registrations) == 2

    @pytest.mark.asyncio
    async def test_manual_override_visible_next_to_calculated(
        self, test_db, make_tournament, seed_registrations
    ):
        tournament = await make_tournament(manual_prize_pool=Decimal("1000"))
        await seed_registrations(tournament, 4)

        breakdown = await TournamentService(test_db).get_prize_pool(tournament.id)

        assert breakdown["is_manual"] is True
        assert Decimal(breakdown["calculated_pool"]) == Decimal("200")
        assert Decimal(breakdown["distributable"]) == Decimal("1000")

    @pytest.mark.asyncio
    async def test_high_hand_section(self, test_db, make_tournament, seed_registrations):
        tournament = await make_tournament(
            enable_high_hand=True,
            high_hand_amount=Decimal("5"),
            high_hand_payouts=2,
        )
        await seed_registrations(tournament, 4, entering_high_hands=True)
        await seed_registrations(tournament, 2)

        breakdown = await TournamentService(test_db).get_prize_pool(tournament.id)

        assert breakdown["high_hand"]["entrants"] == 4
        assert Decimal(breakdown["high_hand"]["per_winner"]) == Decimal("10.00")

    @pytest.mark.asyncio
    async def test_standings_preview(self, test_db, make_tournament, seed_registrations):
        tournament = await make_tournament()
        registrations = await seed_registrations(tournament, 4)
        await eliminate_in_order(test_db, registrations, 2)

        standings = await TournamentService(test_db).get_standings(tournament.id)

        assert [s["registration_id"] for s in standings] == [
            registrations[2].id,
            registrations[3].id,
            registrations[1].id,
            registrations[0].id,
        ]
        assert standings[0]["projected_prize"] == Decimal("100")
        assert standings[3]["projected_prize"] is None
        assert standings[0]["player_name"] == "Player 3"


# =============================================================================
# Finalize
# =============================================================================


class TestFinalize:
    @pytest.mark.asyncio
    async def test_eight_player_settlement(self, test_db, make_tournament, seed_registrations):
        tournament = await make_tournament(rake_type="percentage", rake_amount=Decimal("10"))
        registrations = await seed_registrations(tournament, 8)
        await eliminate_in_order(test_db, registrations, 7)

        plan = await TournamentService(test_db).finalize(tournament.id)
        await test_db.commit()

        assert tournament.status == TournamentStatus.COMPLETED.value
        assert plan.prize_pool.distributable == Decimal("360.00")

        by_position = {r.final_position: r for r in registrations}
        assert sorted(by_position) == list(range(1, 9))
        assert by_position[1].id == registrations[7].id
        assert by_position[1].prize_amount == Decimal("180")
        assert by_position[2].prize_amount == Decimal("108")
        assert by_position[3].prize_amount == Decimal("72")
        assert all(by_position[p].prize_amount is None for p in range(4, 9))
        assert by_position[8].id == registrations[0].id

        assert ActivityEventType.TOURNAMENT_FINALIZED.value in await activity_types(
            test_db, tournament.id
        )

    @pytest.mark.asyncio
    async def test_points_written_when_tracked(self, test_db, make_tournament, seed_registrations):
        points_system = await PointsService(test_db).create_points_system(
            season_id="season-2026",
            name="Spring League",
            participation_points=10,
            knockout_points=5,
            allocations=[
                {"position": 1, "points": 100},
                {"position": 2, "points": 75},
                {"position": 4, "points": 50, "position_end": 10},
            ],
        )
        tournament = await make_tournament(points_system_id=points_system.id)
        registrations = await seed_registrations(tournament, 5)
        service = RegistrationService(test_db)
        # Player 1 knocks out players 5 and 4, then 3 and 2 bust unassisted
        await service.eliminate(
            registrations[4].id,
            eliminated_by=registrations[0].player_id,
            elimination_time=START,
        )
        await service.eliminate(
            registrations[3].id,
            eliminated_by=registrations[0].player_id,
            elimination_time=START + timedelta(minutes=1),
        )
        await service.eliminate(registrations[2].id, elimination_time=START + timedelta(minutes=2))
        await service.eliminate(registrations[1].id, elimination_time=START + timedelta(minutes=3))
        await test_db.commit()

        await TournamentService(test_db).finalize(tournament.id)
        await test_db.commit()

        points = {r.final_position: r.points_awarded for r in registrations}
        assert points == {1: 110, 2: 75, 3: 10, 4: 50, 5: 50}

    @pytest.mark.asyncio
    async def test_points_skipped_when_not_tracked(
        self, test_db, make_tournament, seed_registrations
    ):
        points_system = await PointsService(test_db).create_points_system(
            season_id="season-2026",
            name="League",
            participation_points=10,
        )
        tournament = await make_tournament(
            points_system_id=points_system.id, track_points=False
        )
        registrations = await seed_registrations(tournament, 3)

        await TournamentService(test_db).finalize(tournament.id)
        await test_db.commit()

        assert all(r.points_awarded is None for r in registrations)
        assert all(r.final_position is not None for r in registrations)

    @pytest.mark.asyncio
    async def test_refinalize_clears_points_when_tracking_stops(
        self, test_db, make_tournament, seed_registrations
    ):
        points_system = await PointsService(test_db).create_points_system(
            season_id="season-2026",
            name="League",
            participation_points=10,
        )
        tournament = await make_tournament(points_system_id=points_system.id)
        registrations = await seed_registrations(tournament, 3)
        service = TournamentService(test_db)

        await service.finalize(tournament.id)
        await test_db.commit()
        assert all(r.points_awarded == 10 for r in registrations)

        await service.update_tournament(tournament.id, track_points=False)
        await test_db.commit()
        await service.finalize(tournament.id)
        await test_db.commit()

        assert all(r.points_awarded is None for r in registrations)
        assert all(r.final_position is not None for r in registrations)

    @pytest.mark.asyncio
    async def test_zero_registrations(self, test_db, make_tournament):
        tournament = await make_tournament()

        plan = await TournamentService(test_db).finalize(tournament.id)

        assert plan.lines == ()
        assert plan.prize_pool.distributable == Decimal("0")
        assert tournament.status == TournamentStatus.COMPLETED.value

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["scheduled", "registration", "cancelled"])
    async def test_rejected_outside_play(self, test_db, make_tournament, status):
        tournament = await make_tournament(status=status)

        with pytest.raises(InvalidStatusTransitionError):
            await TournamentService(test_db).finalize(tournament.id)

    @pytest.mark.asyncio
    async def test_refinalize_recomputes(self, test_db, make_tournament, seed_registrations):
        tournament = await make_tournament(rake_type="percentage", rake_amount=Decimal("10"))
        registrations = await seed_registrations(tournament, 8)
        await eliminate_in_order(test_db, registrations, 7)
        service = TournamentService(test_db)

        await service.finalize(tournament.id)
        await test_db.commit()
        await service.update_tournament(tournament.id, manual_prize_pool=Decimal("1000"))
        await service.finalize(tournament.id)
        await test_db.commit()

        by_position = {r.final_position: r for r in registrations}
        assert sorted(by_position) == list(range(1, 9))
        assert by_position[1].prize_amount == Decimal("500")
        assert by_position[3].prize_amount == Decimal("200")
        assert tournament.status == TournamentStatus.COMPLETED.value

    @pytest.mark.asyncio
    async def test_failure_midway_rolls_everything_back(
        self, test_db, make_tournament, seed_registrations
    ):
        tournament = await make_tournament(rake_type="percentage", rake_amount=Decimal("10"))
        registrations = await seed_registrations(tournament, 6)
        await eliminate_in_order(test_db, registrations, 5)
        tournament_id = tournament.id

        service = TournamentService(test_db)
        apply_line = service._apply_line
        applied = []

        def fail_halfway(registration, line):
            if len(applied) == 3:
                raise RuntimeError("disk full")
            apply_line(registration, line)
            applied.append(line.registration_id)

        with patch.object(service, "_apply_line", side_effect=fail_halfway):
            with pytest.raises(RuntimeError, match="disk full"):
                await service.finalize(tournament_id)

        assert len(applied) == 3

        await test_db.refresh(tournament)
        assert tournament.status == TournamentStatus.IN_PROGRESS.value

        result = await test_db.execute(
            select(Registration).where(Registration.tournament_id == tournament_id)
        )
        rows = result.scalars().all()
        assert len(rows) == 6
        assert all(r.final_position is None for r in rows)
        assert all(r.prize_amount is None for r in rows)
        assert ActivityEventType.TOURNAMENT_FINALIZED.value not in await activity_types(
            test_db, tournament_id
        )

    @pytest.mark.asyncio
    async def test_failed_refinalize_keeps_previous_results(
        self, test_db, make_tournament, seed_registrations
    ):
        tournament = await make_tournament()
        registrations = await seed_registrations(tournament, 4)
        await eliminate_in_order(test_db, registrations, 3)
        tournament_id = tournament.id
        service = TournamentService(test_db)
        await service.finalize(tournament_id)
        await test_db.commit()
        before = {r.id: (r.final_position, r.prize_amount) for r in registrations}

        with patch.object(service, "_apply_line", side_effect=RuntimeError("boom")):
            with pytest.raises(RuntimeError):
                await service.finalize(tournament_id)

        result = await test_db.execute(
            select(Registration).where(Registration.tournament_id == tournament_id)
        )
        after = {r.id: (r.final_position, r.prize_amount) for r in result.scalars().all()}
        assert after == before

    @pytest.mark.asyncio
    async def test_unknown_tournament(self, test_db):
        with pytest.raises(TournamentNotFoundError):
            await TournamentService(test_db).finalize("missing")
