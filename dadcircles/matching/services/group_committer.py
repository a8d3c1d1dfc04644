"""
Group commit service.

Persists accepted chunks as groups. A chunk either becomes a group with
every member assigned, or nothing is written and its members stay
unmatched for the next run.
"""

import logging
from datetime import datetime
from typing import List, Optional

from bson import ObjectId
from pymongo.errors import PyMongoError

from common.utils.exceptions import ConflictException
from dadcircles.matching.grouping import GroupingPolicy
from dadcircles.matching.models import Group, GroupStatus, LifeStage, Location, UserRecord
from dadcircles.matching.repository import MatchingRepository

logger = logging.getLogger(__name__)


def format_group_name(location: Location, life_stage: LifeStage, sequence: int) -> str:
    """e.g. "Austin Infant Dads - Group 2"."""
    return f"{location.city} {life_stage.value} Dads - Group {sequence}"


class GroupCommitter:
    """
    Atomically creates groups and assigns their members.
    """

    def __init__(self, repository: MatchingRepository, policy: GroupingPolicy):
        """
        Initialize GroupCommitter.

        Args:
            repository: Matching repository
            policy: Grouping policy used to enforce the size bound
        """
        self._repository = repository
        self._policy = policy

    async def commit(
        self,
        chunk: List[UserRecord],
        location: Location,
        life_stage: LifeStage,
        sequence: int,
        test_mode: bool,
        now: datetime,
    ) -> Optional[Group]:
        """
        Commit one chunk as a pending group.

        Args:
            chunk: Members in age order
            location: Shared location of the members
            life_stage: Shared life stage of the members
            sequence: Group number used in the display name
            test_mode: Whether the group is created by a test run
            now: Run timestamp, used for created_at and matched_at

        Returns:
            The committed Group, or None if the chunk was rejected or the
            write failed
        """
        if not self._policy.min_size <= len(chunk) <= self._policy.max_size:
            logger.error(
                f"Refusing to commit chunk of {len(chunk)} members "
                f"(allowed {self._policy.min_size}-{self._policy.max_size})"
            )
            return None

        group = Group(
            id=str(ObjectId()),
            name=format_group_name(location, life_stage, sequence),
            location=location,
            life_stage=life_stage,
            member_ids=[u.id for u in chunk],
            status=GroupStatus.PENDING,
            test_mode=test_mode,
            created_at=now,
        )

        try:
            return await self._repository.commit_group(group, matched_at=now)
        except ConflictException as e:
            logger.warning(f"Chunk for \"{group.name}\" rejected: {e.message}")
        except PyMongoError as e:
            logger.error(f"Failed to commit group \"{group.name}\": {e}")

        return None
