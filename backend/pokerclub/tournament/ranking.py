"""
Ranking Resolver.

Orders registrations into finishing positions:

1. Active (not eliminated) entries finish ahead of every eliminated entry.
2. Active entries keep their input order.
3. Eliminated entries: later elimination_time first, then higher
   elimination_order, then input order. A missing time counts as earliest.

Positions start at 1 and have no gaps or ties.
"""

from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Tuple

from .models import EntryRecord, Standing

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _as_utc(value: datetime | None) -> datetime:
    if value is None:
        return _EPOCH
    # SQLite returns naive datetimes for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _sort_key(item: Tuple[int, EntryRecord]) -> tuple:
    index, entry = item
    if not entry.is_eliminated:
        return (0, timedelta(0), 0, index)
    eliminated_at = _as_utc(entry.elimination_time)
    # Negate so that a later elimination sorts first
    return (
        1,
        _EPOCH - eliminated_at,
        -(entry.elimination_order or 0),
        index,
    )


def resolve_ranking(entries: Iterable[EntryRecord]) -> List[Standing]:
    """Assign finishing positions to ``entries`` (given in input order)."""
    ordered = sorted(enumerate(entries), key=_sort_key)
    return [
        Standing(position=position, entry=entry)
        for position, (_, entry) in enumerate(ordered, start=1)
    ]
