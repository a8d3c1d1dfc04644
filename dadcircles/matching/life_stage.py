"""
Life stage classification.

All functions take the reference time explicitly so results are
reproducible; nothing in this module reads the clock.
"""

from datetime import datetime
from typing import Optional, Sequence

from dadcircles.matching.models import Child, ChildType, LifeStage

NEWBORN_MAX_MONTHS = 6
INFANT_MAX_MONTHS = 18
TODDLER_MAX_MONTHS = 36


def age_in_months(child: Child, now: datetime) -> int:
    """Whole calendar months between the child's birth month and ``now``."""
    return (now.year - child.birth_year) * 12 + (now.month - child.birth_month)


def due_month_index(child: Child) -> int:
    """Absolute month number of the due date, usable for ordering and gaps."""
    return child.birth_year * 12 + (child.birth_month - 1)


def classify(children: Sequence[Child], now: datetime) -> Optional[LifeStage]:
    """
    Classify a household by its first listed child.

    Returns None when there is no child or the child is older than
    TODDLER_MAX_MONTHS.
    """
    if not children:
        return None

    primary = children[0]
    if primary.type == ChildType.EXPECTING:
        return LifeStage.EXPECTING

    months = age_in_months(primary, now)
    if months <= NEWBORN_MAX_MONTHS:
        return LifeStage.NEWBORN
    if months <= INFANT_MAX_MONTHS:
        return LifeStage.INFANT
    if months <= TODDLER_MAX_MONTHS:
        return LifeStage.TODDLER
    return None


def age_sort_key(child: Child, life_stage: LifeStage, now: datetime) -> int:
    """Ordering key within a bucket: due month for Expecting, age otherwise."""
    if life_stage == LifeStage.EXPECTING:
        return due_month_index(child)
    return age_in_months(child, now)


def describe_child(children: Sequence[Child], now: datetime) -> str:
    """Short human description of the first child for introduction emails."""
    if not children:
        return "Dad"

    child = children[0]
    if child.type == ChildType.EXPECTING:
        return f"Expecting {child.birth_month}/{child.birth_year}"

    months = age_in_months(child, now)
    if months <= NEWBORN_MAX_MONTHS:
        return f"{months}mo old"
    if months <= TODDLER_MAX_MONTHS:
        return f"{months // 12}y {months % 12}mo old"
    return f"{months // 12}y old"
