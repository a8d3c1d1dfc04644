"""
Matching statistics aggregation service.

Reports how many eligible users are matched, overall and per location.
Read-only; safe to call at any time.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, Optional

from dadcircles.matching.life_stage import classify
from dadcircles.matching.models import LifeStage, UserRecord
from dadcircles.matching.repository import MatchingRepository

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _empty_location_stats() -> Dict[str, Any]:
    return {
        "total": 0,
        "matched": 0,
        "unmatched": 0,
        "by_life_stage": {stage.value: 0 for stage in LifeStage},
    }


def compute_matching_stats(users: Iterable[UserRecord], now: datetime) -> Dict[str, Any]:
    """
    Aggregate matched/unmatched counts for eligible users.

    Users without a location count towards the totals only. Users whose
    child is past the Toddler stage count towards their location totals
    but no life stage.
    """
    total = 0
    matched = 0
    by_location: Dict[str, Dict[str, Any]] = {}

    for user in users:
        if not user.matching_eligible:
            continue

        total += 1
        if user.is_matched:
            matched += 1

        if user.location is None:
            continue

        entry = by_location.setdefault(user.location.label, _empty_location_stats())
        entry["total"] += 1
        if user.is_matched:
            entry["matched"] += 1
        else:
            entry["unmatched"] += 1

        stage = classify(user.children, now)
        if stage is not None:
            entry["by_life_stage"][stage.value] += 1

    return {
        "total_users": total,
        "matched_users": matched,
        "unmatched_users": total - matched,
        "by_location": by_location,
    }


class MatchingStatsService:
    """
    Computes matching statistics from current user state.
    """

    def __init__(
        self,
        repository: MatchingRepository,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Initialize MatchingStatsService.

        Args:
            repository: Matching repository
            clock: Source of the current time
        """
        self._repository = repository
        self._clock = clock

    async def get_matching_stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Stats over every eligible user, not just the latest run."""
        users = await self._repository.find_eligible_users()
        stats = compute_matching_stats(users, now or self._clock())

        logger.info(
            f"Matching stats: {stats['matched_users']} matched, "
            f"{stats['unmatched_users']} unmatched across "
            f"{len(stats['by_location'])} locations"
        )
        return stats
