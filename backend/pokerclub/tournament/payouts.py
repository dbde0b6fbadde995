"""
Payout Distributor.

Maps the distributable prize pool to per-position prize amounts using a
payout table. Built-in tables are a closed set; ``custom`` carries its own
percentage list on the tournament.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Optional, Sequence, Tuple

from pokerclub.utils.errors import InvalidPayoutStructureError

from .models import HUNDRED, ZERO, Payout, PayoutStructure

logger = logging.getLogger(__name__)

WHOLE_UNIT = Decimal("1")


def _fractions(*percentages: int) -> Tuple[Decimal, ...]:
    return tuple(Decimal(p) / HUNDRED for p in percentages)


PAYOUT_TABLES: dict[PayoutStructure, Tuple[Decimal, ...]] = {
    PayoutStructure.STANDARD: _fractions(50, 30, 20),
    PayoutStructure.TOP3: _fractions(50, 30, 20),
    PayoutStructure.TOP5: _fractions(40, 25, 20, 10, 5),
    PayoutStructure.TOP8: _fractions(35, 22, 15, 12, 8, 4, 2, 2),
    PayoutStructure.TOP9: _fractions(30, 20, 15, 12, 9, 6, 4, 2, 2),
}


def parse_structure(name: Optional[str]) -> Optional[PayoutStructure]:
    """Return the structure for ``name`` or None when it is not recognised."""
    if not name:
        return None
    try:
        return PayoutStructure(name.strip().lower())
    except ValueError:
        return None


def validate_custom_payouts(percentages: Optional[Iterable]) -> Tuple[Decimal, ...]:
    """Validate a custom percentage list and return it as Decimals.

    Raises:
        InvalidPayoutStructureError: empty list, non-positive or malformed
            entry, or entries not summing to 100
    """
    if not percentages:
        raise InvalidPayoutStructureError(
            "Custom payout structure requires at least one percentage",
        )
    try:
        values = tuple(Decimal(str(p)) for p in percentages)
    except (InvalidOperation, ValueError):
        raise InvalidPayoutStructureError(
            "Custom payout percentages must be numbers",
            details={"custom_payouts": [str(p) for p in percentages]},
        )
    if any(v <= ZERO for v in values):
        raise InvalidPayoutStructureError(
            "Custom payout percentages must be positive",
            details={"custom_payouts": [str(v) for v in values]},
        )
    total = sum(values, ZERO)
    if total != HUNDRED:
        raise InvalidPayoutStructureError(
            f"Custom payout percentages must sum to 100, got {total}",
            details={"custom_payouts": [str(v) for v in values], "total": str(total)},
        )
    return values


def validate_payout_structure(
    name: str,
    custom_payouts: Optional[Sequence] = None,
) -> PayoutStructure:
    """Creation-time check: unknown names and bad custom lists are errors."""
    structure = parse_structure(name)
    if structure is None:
        raise InvalidPayoutStructureError(
            f"Unknown payout structure: {name}",
            details={
                "payout_structure": name,
                "supported": [s.value for s in PayoutStructure],
            },
        )
    if structure == PayoutStructure.CUSTOM:
        validate_custom_payouts(custom_payouts)
    return structure


def resolve_payout_table(
    name: Optional[str],
    custom_payouts: Sequence[Decimal] = (),
    default: str = PayoutStructure.STANDARD.value,
) -> Tuple[str, Tuple[Decimal, ...]]:
    """
    Look up the payout table for a stored structure name.

    Settlement never fails on configuration: an unrecognised name, or a
    custom list that does not validate, falls back to ``default``.

    Returns:
        (structure name actually used, fractions per position)
    """
    structure = parse_structure(name)

    if structure == PayoutStructure.CUSTOM:
        try:
            values = validate_custom_payouts(custom_payouts)
            return structure.value, tuple(v / HUNDRED for v in values)
        except InvalidPayoutStructureError as e:
            logger.warning(f"Invalid custom payouts, using {default}: {e.message}")
            structure = None
    elif structure is None:
        logger.warning(f"Unknown payout structure {name!r}, using {default}")

    if structure is None:
        structure = parse_structure(default) or PayoutStructure.STANDARD
        if structure == PayoutStructure.CUSTOM:
            structure = PayoutStructure.STANDARD

    return structure.value, PAYOUT_TABLES[structure]


def round_prize(amount: Decimal) -> Decimal:
    """Ordinary rounding to whole currency units (half away from zero)."""
    return amount.quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP)


def distribute_payouts(
    pool: Decimal,
    table: Sequence[Decimal],
) -> Tuple[Payout, ...]:
    """
    Per-position prize amounts.

    Each amount is rounded independently; rounding slack is not
    redistributed. A pool <= 0 pays nothing.
    """
    if pool <= ZERO:
        return ()

    return tuple(
        Payout(position=i, percentage=fraction, amount=round_prize(pool * fraction))
        for i, fraction in enumerate(table, start=1)
    )
