"""
High-hand side pool.

Funded by players entering the high-hand pool, independent of the main
prize pool. Rake here is a single flat deduction for ``fixed``.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable

from .models import HUNDRED, ZERO, EntryRecord, HighHandConfig, RakeType

CENT = Decimal("0.01")


@dataclass(frozen=True)
class HighHandPool:
    """High-hand pool figures for one tournament."""

    enabled: bool
    entrants: int
    entry_amount: Decimal
    gross: Decimal
    rake: Decimal
    payout_count: int
    winners: int

    @property
    def net(self) -> Decimal:
        return max(self.gross - self.rake, ZERO)

    @property
    def per_winner(self) -> Decimal:
        if self.payout_count <= 0:
            return ZERO
        return (self.net / self.payout_count).quantize(CENT, rounding=ROUND_HALF_UP)

    @property
    def remaining_payouts(self) -> int:
        return max(self.payout_count - self.winners, 0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "entrants": self.entrants,
            "entry_amount": str(self.entry_amount),
            "gross": str(self.gross),
            "rake": str(self.rake),
            "net": str(self.net),
            "payout_count": self.payout_count,
            "per_winner": str(self.per_winner),
            "winners": self.winners,
            "remaining_payouts": self.remaining_payouts,
        }


def high_hand_rake(config: HighHandConfig, gross: Decimal) -> Decimal:
    if config.rake_type == RakeType.PERCENTAGE:
        return gross * config.rake_amount / HUNDRED
    if config.rake_type == RakeType.FIXED:
        return config.rake_amount
    return ZERO


def compute_high_hand_pool(
    config: HighHandConfig,
    entries: Iterable[EntryRecord],
) -> HighHandPool:
    entrants = winners = 0
    for entry in entries:
        if entry.entering_high_hands:
            entrants += 1
        if entry.high_hand_winner:
            winners += 1

    gross = config.entry_amount * entrants
    return HighHandPool(
        enabled=config.enabled,
        entrants=entrants,
        entry_amount=config.entry_amount,
        gross=gross,
        rake=high_hand_rake(config, gross) if entrants else ZERO,
        payout_count=config.payout_count,
        winners=winners,
    )
