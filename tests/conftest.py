"""Shared test fixtures for DadCircles backend tests."""

from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest
from pymongo.errors import OperationFailure

from common.utils.exceptions import ConflictException, NotFoundException
from dadcircles.matching.grouping import GroupingPolicy
from dadcircles.matching.models import (
    Child,
    Group,
    GroupStatus,
    LifeStage,
    Location,
    UserRecord,
)
from dadcircles.matching.repository import MatchingRepository


NOW = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)


def shift_month(now: datetime, offset: int):
    """(month, year) that is ``offset`` months away from ``now``."""
    index = now.year * 12 + (now.month - 1) + offset
    return index % 12 + 1, index // 12


def make_user(
    user_id: str,
    city: Optional[str] = "Austin",
    state_code: Optional[str] = "TX",
    age_months: Optional[int] = None,
    due: Optional[tuple] = None,
    eligible: bool = True,
    group_id: Optional[str] = None,
    email: Optional[str] = "",
    now: datetime = NOW,
) -> UserRecord:
    """
    Build a UserRecord.

    Pass ``age_months`` for an existing child, or ``due=(month, year)``
    for an expecting one.
    """
    children = []
    if due is not None:
        children.append(Child(type="expecting", birth_month=due[0], birth_year=due[1]))
    elif age_months is not None:
        month, year = shift_month(now, -age_months)
        children.append(Child(type="existing", birth_month=month, birth_year=year))

    location = Location(city=city, state_code=state_code) if city and state_code else None

    return UserRecord(
        id=user_id,
        email=f"{user_id}@example.com" if email == "" else email,
        location=location,
        children=children,
        matching_eligible=eligible,
        group_id=group_id,
    )


class InMemoryMatchingRepository(MatchingRepository):
    """In-memory fake with the same commit semantics as the Mongo repository."""

    def __init__(self, users: Optional[List[UserRecord]] = None):
        self.users: Dict[str, UserRecord] = {}
        self.groups: Dict[str, Group] = {}
        self.commit_attempts = 0
        self.fail_commits_for: set = set()
        self.before_commit = None
        for user in users or []:
            self.add_user(user)

    def add_user(self, user: UserRecord) -> None:
        self.users[user.id] = user.model_copy(deep=True)

    async def find_eligible_users(self, location: Optional[Location] = None) -> List[UserRecord]:
        return [
            u.model_copy(deep=True)
            for u in self.users.values()
            if u.matching_eligible and (location is None or u.location == location)
        ]

    async def get_users(self, user_ids: List[str]) -> List[UserRecord]:
        return [self.users[uid].model_copy(deep=True) for uid in user_ids if uid in self.users]

    async def count_groups(self, location: Location, life_stage: LifeStage) -> int:
        return sum(
            1 for g in self.groups.values()
            if g.location == location and g.life_stage == life_stage
        )

    async def commit_group(self, group: Group, matched_at: datetime) -> Group:
        self.commit_attempts += 1
        if self.before_commit:
            self.before_commit(group)

        if group.name in self.fail_commits_for:
            raise OperationFailure("simulated write failure")

        stale = [
            uid for uid in group.member_ids
            if uid not in self.users
            or not self.users[uid].matching_eligible
            or self.users[uid].group_id is not None
        ]
        if stale:
            raise ConflictException(
                message=f"{len(stale)} of {len(group.member_ids)} members are no longer unmatched",
                code="MEMBER_ALREADY_MATCHED",
            )

        for uid in group.member_ids:
            self.users[uid].group_id = group.id
            self.users[uid].matched_at = matched_at
        self.groups[group.id] = group.model_copy(deep=True)
        return group

    async def get_group(self, group_id: str) -> Optional[Group]:
        group = self.groups.get(group_id)
        return group.model_copy(deep=True) if group else None

    async def list_groups(self, status: Optional[GroupStatus] = None) -> List[Group]:
        groups = [g for g in self.groups.values() if status is None or g.status == status]
        return sorted(groups, key=lambda g: g.created_at, reverse=True)

    async def find_groups_awaiting_introduction(self, limit: int) -> List[Group]:
        pending = [
            g for g in self.groups.values()
            if g.status == GroupStatus.PENDING and g.introduction_email_sent_at is None
        ]
        return sorted(pending, key=lambda g: g.created_at)[:limit]

    async def record_introduction(self, group_id: str, emailed_member_ids: List[str], sent_at: datetime) -> None:
        if not emailed_member_ids:
            return
        group = self.groups[group_id]
        for uid in emailed_member_ids:
            if uid not in group.emailed_member_ids:
                group.emailed_member_ids.append(uid)
        group.introduction_email_sent_at = sent_at
        if group.status == GroupStatus.PENDING:
            group.status = GroupStatus.ACTIVE

    async def deactivate_group(self, group_id: str) -> Group:
        group = self.groups.get(group_id)
        if not group:
            raise NotFoundException(message="Group not found", code="GROUP_NOT_FOUND")
        group.status = GroupStatus.INACTIVE
        for user in self.users.values():
            if user.group_id == group_id:
                user.group_id = None
                user.matched_at = None
        return group.model_copy(deep=True)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def policy():
    return GroupingPolicy()


@pytest.fixture
def repository():
    return InMemoryMatchingRepository()
