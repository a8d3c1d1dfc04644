"""
Matching run orchestration.

One call to run_matching is a self-contained batch over a snapshot of
eligible users: filter, bucket, sort, chunk, commit, notify. Nothing is
kept in memory between runs, so a run can be retried from scratch.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from dadcircles.matching.grouping import (
    GroupingPolicy,
    bucket_users,
    chunk_bucket,
    filter_unmatched,
    resolve_location_filter,
    sort_bucket,
)
from dadcircles.matching.models import Group
from dadcircles.matching.repository import MatchingRepository
from dadcircles.matching.services.group_committer import GroupCommitter
from dadcircles.matching.services.notification_service import GroupNotifier

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_group_summary(group: Group) -> Dict[str, Any]:
    """Group as reported in a run result."""
    return {
        "id": group.id,
        "name": group.name,
        "location": group.location.model_dump(),
        "life_stage": group.life_stage.value,
        "member_count": len(group.member_ids),
        "test_mode": group.test_mode,
        "created_at": group.created_at,
    }


class MatchingService:
    """
    Forms local life-stage groups from unmatched eligible users.
    """

    def __init__(
        self,
        repository: MatchingRepository,
        policy: Optional[GroupingPolicy] = None,
        notifier: Optional[GroupNotifier] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Initialize MatchingService.

        Args:
            repository: Matching repository
            policy: Group size and age gap rules
            notifier: Sends introduction emails; None disables them
            clock: Source of the current time
        """
        self._repository = repository
        self._policy = policy or GroupingPolicy()
        self._committer = GroupCommitter(repository, self._policy)
        self._notifier = notifier
        self._clock = clock

    @property
    def policy(self) -> GroupingPolicy:
        return self._policy

    async def run_matching(
        self,
        city: Optional[str] = None,
        state_code: Optional[str] = None,
        test_mode: bool = False,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Run one matching pass, optionally scoped to a single city.

        Args:
            city: City to match (requires state_code)
            state_code: State code to match (requires city)
            test_mode: Mark created groups as test groups
            now: Reference time for life stages and timestamps

        Returns:
            dict with groups_created, users_matched, users_unmatched,
            summary and groups

        Raises:
            ValidationException: If only one of city/state_code is given
        """
        location = resolve_location_filter(city, state_code)
        now = now or self._clock()

        scope = location.label if location else "all locations"
        logger.info(f"Starting matching run for {scope} (test_mode={test_mode})")

        users = await self._repository.find_eligible_users(location)
        candidates = filter_unmatched(users)
        logger.info(f"Found {len(candidates)} unmatched eligible users")

        if not candidates:
            return {
                "groups_created": 0,
                "users_matched": 0,
                "users_unmatched": 0,
                "summary": "No unmatched users found",
                "groups": [],
            }

        buckets = bucket_users(candidates, now)
        logger.info(f"Organized users into {len(buckets)} location buckets")

        created: List[Group] = []

        for bucket_location, stages in buckets.items():
            for life_stage, members in stages.items():
                logger.info(
                    f"Processing {bucket_location.label} - {life_stage.value}: "
                    f"{len(members)} users"
                )

                if len(members) < self._policy.min_size:
                    logger.info(
                        f"{bucket_location.label} - {life_stage.value}: only {len(members)} "
                        f"users (need {self._policy.min_size}+ for a group)"
                    )
                    continue

                ordered = sort_bucket(members, life_stage, now)
                chunks = chunk_bucket(ordered, life_stage, now, self._policy)
                if not chunks.accepted:
                    continue

                sequence = await self._repository.count_groups(bucket_location, life_stage) + 1
                for chunk in chunks.accepted:
                    group = await self._committer.commit(
                        chunk,
                        location=bucket_location,
                        life_stage=life_stage,
                        sequence=sequence,
                        test_mode=test_mode,
                        now=now,
                    )
                    if group is None:
                        continue

                    created.append(group)
                    sequence += 1
                    logger.info(f"Created group \"{group.name}\" with {len(group.member_ids)} members")

        if created and self._notifier:
            mode = "TEST MODE" if test_mode else "PRODUCTION"
            logger.info(f"Sending introduction emails for {len(created)} groups ({mode})")
            for group in created:
                await self._notifier.notify_group(group, test_mode=test_mode, now=now)

        users_matched = sum(len(g.member_ids) for g in created)
        users_unmatched = len(candidates) - users_matched

        if created:
            summary = (
                f"Created {len(created)} groups, matched {users_matched} users, "
                f"{users_unmatched} remain unmatched"
            )
        else:
            summary = (
                f"No groups created: no location and life stage bucket produced a "
                f"group of {self._policy.min_size}-{self._policy.max_size} users within "
                f"the age gap limit ({users_unmatched} users remain unmatched)"
            )
        logger.info(f"Matching complete: {summary}")

        return {
            "groups_created": len(created),
            "users_matched": users_matched,
            "users_unmatched": users_unmatched,
            "summary": summary,
            "groups": [format_group_summary(g) for g in created],
        }

    async def has_matchable_bucket(
        self,
        city: str,
        state_code: str,
        now: Optional[datetime] = None,
    ) -> bool:
        """True when some life stage in the city has at least min_size unmatched users."""
        location = resolve_location_filter(city, state_code)
        now = now or self._clock()

        users = await self._repository.find_eligible_users(location)
        buckets = bucket_users(filter_unmatched(users), now)
        return any(
            len(members) >= self._policy.min_size
            for stages in buckets.values()
            for members in stages.values()
        )
