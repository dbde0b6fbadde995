"""
Tournament Settlement Planner.

Composes ranking, prize pool, payouts and points into a complete
settlement plan without touching storage. The orchestrating service
applies the plan in a single transaction.

Usage:
    plan = build_settlement_plan(config, entries, scheme)
    for line in plan.lines:
        ...
"""

import logging
from typing import Iterable, List, Optional

from .models import (
    EntryRecord,
    PointsScheme,
    SettlementLine,
    SettlementPlan,
    TournamentConfig,
)
from .payouts import distribute_payouts, resolve_payout_table
from .points import allocate_points
from .prize_pool import resolve_prize_pool
from .ranking import resolve_ranking

logger = logging.getLogger(__name__)


def build_settlement_plan(
    config: TournamentConfig,
    entries: Iterable[EntryRecord],
    scheme: Optional[PointsScheme] = None,
    default_structure: str = "standard",
) -> SettlementPlan:
    """
    Compute positions, prizes and points for every entry.

    Args:
        config: Tournament configuration read at settlement time
        entries: Registrations in input order (registration time, then id)
        scheme: Points system, or None when the tournament has none
        default_structure: Table used when the stored structure is unusable

    Returns:
        SettlementPlan with one line per entry. ``prize_amount`` is None for
        positions outside the payout table; ``points_awarded`` is None when
        points are not tracked.
    """
    entries = list(entries)
    pool = resolve_prize_pool(config, entries)
    structure, table = resolve_payout_table(
        config.payout_structure,
        config.custom_payouts,
        default=default_structure,
    )
    payouts = distribute_payouts(pool.distributable, table)
    prizes = {p.position: p.amount for p in payouts}

    standings = resolve_ranking(entries)
    award_points = config.track_points and scheme is not None

    lines: List[SettlementLine] = []
    for standing in standings:
        entry = standing.entry
        prize = prizes.get(standing.position)
        points = None
        if award_points:
            points = allocate_points(scheme, standing.position, entry.knockouts).total
        lines.append(
            SettlementLine(
                registration_id=entry.registration_id,
                player_id=entry.player_id,
                position=standing.position,
                prize_amount=prize if prize is not None and prize > 0 else None,
                points_awarded=points,
            )
        )

    logger.info(
        f"Settlement plan for {config.tournament_id}: {len(lines)} entries, "
        f"pool {pool.distributable}, structure {structure}"
    )

    return SettlementPlan(
        tournament_id=config.tournament_id,
        prize_pool=pool,
        payout_structure=structure,
        payouts=payouts,
        lines=tuple(lines),
    )
