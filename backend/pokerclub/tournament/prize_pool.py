"""
Revenue aggregation, rake and prize pool resolution.

Single source of the money math; read models, previews and settlement all
go through these functions.
"""

from decimal import Decimal
from typing import Iterable

from .models import (
    HUNDRED,
    ZERO,
    EntryRecord,
    PrizePool,
    RakeBreakdown,
    RakePolicy,
    RakeType,
    RevenueStream,
    RevenueSummary,
    StreamRevenue,
    TournamentConfig,
)


def _priced(config: TournamentConfig, stream: RevenueStream, units: int) -> StreamRevenue:
    return StreamRevenue(stream, units, config.unit_price(stream))


def aggregate_revenue(
    config: TournamentConfig,
    entries: Iterable[EntryRecord],
) -> RevenueSummary:
    """Sum unit counts per stream and price them with the tournament amounts."""
    buy_ins = rebuys = addons = 0
    for entry in entries:
        buy_ins += entry.buy_ins
        rebuys += entry.rebuys
        addons += entry.addons

    return RevenueSummary(
        buy_ins=_priced(config, RevenueStream.BUY_IN, buy_ins),
        rebuys=_priced(config, RevenueStream.REBUY, rebuys),
        addons=_priced(config, RevenueStream.ADDON, addons),
    )


def calculate_stream_rake(policy: RakePolicy, stream: StreamRevenue) -> Decimal:
    """Rake for one stream.

    percentage: dollar total x amount / 100
    fixed: unit count x amount (per entry, not a flat deduction)
    """
    if policy.type == RakeType.PERCENTAGE:
        return stream.total * policy.amount / HUNDRED
    if policy.type == RakeType.FIXED:
        return policy.amount * stream.units
    return ZERO


def calculate_rake(config: TournamentConfig, revenue: RevenueSummary) -> RakeBreakdown:
    return RakeBreakdown(
        *(calculate_stream_rake(config.rake_policy(s.stream), s) for s in revenue.streams)
    )


def resolve_prize_pool(
    config: TournamentConfig,
    entries: Iterable[EntryRecord],
) -> PrizePool:
    """Aggregate revenue, take rake and apply the manual override if set."""
    revenue = aggregate_revenue(config, entries)
    rake = calculate_rake(config, revenue)
    return PrizePool(
        revenue=revenue,
        rake=rake,
        manual_prize_pool=config.manual_prize_pool,
    )
