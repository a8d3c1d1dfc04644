"""
Group formation pipeline.

Pure functions that turn a snapshot of users into candidate groups:

    filter_unmatched -> bucket_users -> sort_bucket -> chunk_bucket

Nothing here touches storage; committing the accepted chunks is the
job of GroupCommitter.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from common.utils.exceptions import ValidationException
from dadcircles.matching.life_stage import age_sort_key, classify
from dadcircles.matching.models import LifeStage, Location, UserRecord

logger = logging.getLogger(__name__)

Buckets = Dict[Location, Dict[LifeStage, List[UserRecord]]]


@dataclass
class GroupingPolicy:
    """Size bounds and per-stage maximum age gap (months) for a group."""

    min_size: int = 4
    max_size: int = 6
    max_gap_months: Dict[LifeStage, int] = field(default_factory=lambda: {
        LifeStage.EXPECTING: 4,
        LifeStage.NEWBORN: 4,
        LifeStage.INFANT: 6,
        LifeStage.TODDLER: 6,
    })

    @classmethod
    def from_settings(cls, settings) -> "GroupingPolicy":
        thresholds = settings.get_matching_thresholds()
        return cls(
            min_size=settings.MATCHING_MIN_GROUP_SIZE,
            max_size=settings.MATCHING_MAX_GROUP_SIZE,
            max_gap_months={stage: thresholds[stage.value] for stage in LifeStage},
        )


@dataclass
class ChunkResult:
    """Outcome of chunking one sorted bucket."""

    accepted: List[List[UserRecord]] = field(default_factory=list)
    unmatched: List[UserRecord] = field(default_factory=list)


def resolve_location_filter(
    city: Optional[str],
    state_code: Optional[str],
) -> Optional[Location]:
    """
    Turn an optional city/state pair into a Location filter.

    Raises:
        ValidationException: If only one of city/state_code is given
    """
    if city and not state_code:
        raise ValidationException(
            message="stateCode is required when city is provided",
            code="INVALID_LOCATION_FILTER",
        )
    if state_code and not city:
        raise ValidationException(
            message="city is required when stateCode is provided",
            code="INVALID_LOCATION_FILTER",
        )
    if city and state_code:
        return Location(city=city, state_code=state_code)
    return None


def filter_unmatched(users: Iterable[UserRecord]) -> List[UserRecord]:
    """Eligible users that do not belong to a group."""
    return [u for u in users if u.matching_eligible and u.group_id is None]


def bucket_users(users: Iterable[UserRecord], now: datetime) -> Buckets:
    """
    Partition users by exact location, then by life stage.

    Users without a location or a resolvable life stage are skipped.
    Insertion order is preserved at both levels.
    """
    buckets: Buckets = {}

    for user in users:
        if user.location is None:
            logger.warning(f"User {user.id} has no location data, skipping")
            continue

        stage = classify(user.children, now)
        if stage is None:
            logger.warning(f"User {user.id} has no valid life stage, skipping")
            continue

        buckets.setdefault(user.location, {}).setdefault(stage, []).append(user)

    return buckets


def sort_bucket(
    users: List[UserRecord],
    life_stage: LifeStage,
    now: datetime,
) -> List[UserRecord]:
    """Order a bucket by due date (Expecting) or child age, youngest first."""
    return sorted(users, key=lambda u: age_sort_key(u.children[0], life_stage, now))


def age_gap(chunk: List[UserRecord], life_stage: LifeStage, now: datetime) -> int:
    """Spread in months between the first and last members of a chunk."""
    keys = [age_sort_key(u.children[0], life_stage, now) for u in chunk]
    return max(keys) - min(keys)


def chunk_bucket(
    sorted_users: List[UserRecord],
    life_stage: LifeStage,
    now: datetime,
    policy: GroupingPolicy,
) -> ChunkResult:
    """
    Greedy single pass over a sorted bucket.

    Takes consecutive slices of up to ``policy.max_size`` users. A slice
    smaller than ``policy.min_size`` or wider than the stage's maximum
    age gap is rejected and its members stay unmatched; the pass then
    continues with the next slice. There is no rebalancing.
    """
    result = ChunkResult()
    max_gap = policy.max_gap_months[life_stage]

    for start in range(0, len(sorted_users), policy.max_size):
        chunk = sorted_users[start:start + policy.max_size]

        if len(chunk) < policy.min_size:
            logger.info(
                f"Remaining {len(chunk)} {life_stage.value} users insufficient for a group"
            )
            result.unmatched.extend(chunk)
            continue

        gap = age_gap(chunk, life_stage, now)
        if gap > max_gap:
            logger.warning(
                f"Rejected {life_stage.value} chunk of {len(chunk)}: "
                f"age gap {gap} months exceeds {max_gap}"
            )
            result.unmatched.extend(chunk)
            continue

        result.accepted.append(chunk)

    return result
