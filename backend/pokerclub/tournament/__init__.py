"""
Tournament Settlement Engine.

Pure computation over plain records:
- Revenue aggregation and per-stream rake
- Prize pool resolution with manual override
- Payout tables and distribution
- Finishing-position ranking
- Season points allocation
- High-hand side pool
- Lifecycle transitions and prize pool lock rules
"""

from .high_hand import HighHandPool, compute_high_hand_pool
from .models import (
    EntryRecord,
    Payout,
    PayoutStructure,
    PointsRule,
    PointsScheme,
    PrizePool,
    RakePolicy,
    RakeType,
    SettlementLine,
    SettlementPlan,
    Standing,
    TournamentConfig,
)
from .payouts import distribute_payouts, resolve_payout_table, validate_payout_structure
from .points import allocate_points
from .prize_pool import resolve_prize_pool
from .ranking import resolve_ranking
from .settlement import build_settlement_plan

__all__ = [
    "EntryRecord",
    "HighHandPool",
    "Payout",
    "PayoutStructure",
    "PointsRule",
    "PointsScheme",
    "PrizePool",
    "RakePolicy",
    "RakeType",
    "SettlementLine",
    "SettlementPlan",
    "Standing",
    "TournamentConfig",
    "allocate_points",
    "build_settlement_plan",
    "compute_high_hand_pool",
    "distribute_payouts",
    "resolve_payout_table",
    "resolve_prize_pool",
    "resolve_ranking",
    "validate_payout_structure",
]
