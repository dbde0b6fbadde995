"""
Points Allocator.

Converts a finishing position and knockout count into season points:
position points from the matching allocation (or the flat participation
award when none matches) plus ``knockouts x knockout_points``.
"""

from typing import Iterable, Optional, Sequence

from .models import PointsAward, PointsRule, PointsScheme


def ordered_rules(rules: Iterable[PointsRule]) -> list[PointsRule]:
    """Precedence order: lowest start position, then lowest end."""
    return sorted(rules, key=lambda r: (r.position, r.last_position))


def match_rule(rules: Iterable[PointsRule], position: int) -> Optional[PointsRule]:
    """First rule covering ``position`` in precedence order."""
    for rule in ordered_rules(rules):
        if rule.covers(position):
            return rule
    return None


def find_overlap(
    rules: Sequence[PointsRule],
    candidate: PointsRule,
) -> Optional[int]:
    """Index into ``rules`` of the first rule overlapping ``candidate``."""
    for i, rule in enumerate(rules):
        if rule.overlaps(candidate):
            return i
    return None


def allocate_points(
    scheme: PointsScheme,
    position: int,
    knockouts: int = 0,
) -> PointsAward:
    rule = match_rule(scheme.rules, position)
    position_points = participation = 0
    if rule is not None:
        position_points = rule.points
    elif scheme.participation_points > 0:
        participation = scheme.participation_points

    return PointsAward(
        position_points=position_points,
        participation_points=participation,
        knockout_points=knockouts * scheme.knockout_points,
    )
