"""Unit tests for GroupCommitter."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from pymongo.errors import OperationFailure

from common.utils.exceptions import ConflictException
from dadcircles.matching.models import GroupStatus, LifeStage, Location
from dadcircles.matching.services.group_committer import GroupCommitter, format_group_name

from conftest import NOW, make_user

AUSTIN = Location(city="Austin", state_code="TX")


def test_format_group_name():
    assert format_group_name(AUSTIN, LifeStage.TODDLER, 3) == "Austin Toddler Dads - Group 3"


class TestGroupCommitter:
    @pytest.fixture
    def committer(self, repository, policy):
        return GroupCommitter(repository, policy)

    @pytest.fixture
    def chunk(self, repository):
        users = [make_user(f"u{i}", age_months=9) for i in range(5)]
        for user in users:
            repository.add_user(user)
        return users

    @pytest.mark.asyncio
    async def test_commit_assigns_every_member(self, committer, repository, chunk):
        group = await committer.commit(
            chunk, location=AUSTIN, life_stage=LifeStage.INFANT,
            sequence=1, test_mode=False, now=NOW,
        )

        assert group is not None
        assert group.status == GroupStatus.PENDING
        assert group.member_ids == [u.id for u in chunk]
        assert group.name == "Austin Infant Dads - Group 1"
        assert group.id in repository.groups
        for user in chunk:
            stored = repository.users[user.id]
            assert stored.group_id == group.id
            assert stored.matched_at == NOW

    @pytest.mark.asyncio
    async def test_each_commit_gets_a_new_id(self, committer, repository):
        for i in range(8):
            repository.add_user(make_user(f"u{i}", age_months=9))
        users = [repository.users[f"u{i}"] for i in range(8)]

        first = await committer.commit(users[:4], AUSTIN, LifeStage.INFANT, 1, False, NOW)
        second = await committer.commit(users[4:], AUSTIN, LifeStage.INFANT, 2, False, NOW)

        assert first.id != second.id

    @pytest.mark.asyncio
    async def test_chunk_outside_size_bounds_is_refused(self, committer, repository):
        users = [make_user(f"u{i}", age_months=9) for i in range(7)]
        for user in users:
            repository.add_user(user)

        assert await committer.commit(users[:3], AUSTIN, LifeStage.INFANT, 1, False, NOW) is None
        assert await committer.commit(users, AUSTIN, LifeStage.INFANT, 1, False, NOW) is None
        assert repository.commit_attempts == 0

    @pytest.mark.asyncio
    async def test_conflict_leaves_everyone_unmatched(self, committer, repository, chunk):
        repository.users["u2"].group_id = "other-group"

        group = await committer.commit(chunk, AUSTIN, LifeStage.INFANT, 1, False, NOW)

        assert group is None
        assert repository.groups == {}
        assert all(repository.users[f"u{i}"].group_id is None for i in (0, 1, 3, 4))

    @pytest.mark.asyncio
    async def test_storage_error_is_logged_and_swallowed(self, policy, chunk):
        repo = MagicMock()
        repo.commit_group = AsyncMock(side_effect=OperationFailure("write conflict"))
        committer = GroupCommitter(repo, policy)

        group = await committer.commit(chunk, AUSTIN, LifeStage.INFANT, 1, False, NOW)

        assert group is None
        repo.commit_group.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_conflict_from_repository_is_swallowed(self, policy, chunk):
        repo = MagicMock()
        repo.commit_group = AsyncMock(
            side_effect=ConflictException(message="taken", code="MEMBER_ALREADY_MATCHED")
        )
        committer = GroupCommitter(repo, policy)

        assert await committer.commit(chunk, AUSTIN, LifeStage.INFANT, 1, False, NOW) is None

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self, policy, chunk):
        repo = MagicMock()
        repo.commit_group = AsyncMock(side_effect=RuntimeError("boom"))
        committer = GroupCommitter(repo, policy)

        with pytest.raises(RuntimeError):
            await committer.commit(chunk, AUSTIN, LifeStage.INFANT, 1, False, NOW)
