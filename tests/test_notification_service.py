"""Unit tests for GroupNotifier."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from dadcircles.matching.models import Group, GroupStatus, LifeStage, Location
from dadcircles.matching.services.notification_service import GroupNotifier

from conftest import NOW, make_user

AUSTIN = Location(city="Austin", state_code="TX")


def make_group(group_id="g1", member_ids=None, test_mode=False, status=GroupStatus.PENDING):
    return Group(
        id=group_id,
        name="Austin Infant Dads - Group 1",
        location=AUSTIN,
        life_stage=LifeStage.INFANT,
        member_ids=member_ids or ["a", "b", "c", "d"],
        status=status,
        test_mode=test_mode,
        created_at=NOW,
    )


@pytest.fixture
def email_service():
    service = MagicMock()
    service.send_group_introduction_email = AsyncMock(
        side_effect=lambda group_name, members, test_mode: [m["userId"] for m in members]
    )
    return service


@pytest.fixture
def seeded(repository):
    for uid in ("a", "b", "c"):
        repository.add_user(make_user(uid, age_months=9, group_id="g1"))
    repository.add_user(make_user("d", age_months=9, group_id="g1", email=None))
    repository.groups["g1"] = make_group()
    return repository


class TestBuildContacts:
    @pytest.mark.asyncio
    async def test_members_without_email_are_skipped(self, seeded, email_service):
        notifier = GroupNotifier(seeded, email_service)

        contacts = await notifier.build_contacts(make_group(), NOW)

        assert [c["userId"] for c in contacts] == ["a", "b", "c"]
        assert contacts[0] == {
            "userId": "a",
            "email": "a@example.com",
            "name": "a",
            "childInfo": "0y 9mo old",
        }


class TestNotifyGroup:
    @pytest.mark.asyncio
    async def test_records_emailed_members_and_activates(self, seeded, email_service):
        notifier = GroupNotifier(seeded, email_service)

        emailed = await notifier.notify_group(make_group(), now=NOW)

        assert emailed == ["a", "b", "c"]
        group = seeded.groups["g1"]
        assert group.status == GroupStatus.ACTIVE
        assert group.emailed_member_ids == ["a", "b", "c"]
        assert group.introduction_email_sent_at == NOW

    @pytest.mark.asyncio
    async def test_test_mode_defaults_to_group_flag(self, seeded, email_service):
        notifier = GroupNotifier(seeded, email_service)

        await notifier.notify_group(make_group(test_mode=True), now=NOW)

        assert email_service.send_group_introduction_email.await_args.kwargs["test_mode"] is True

    @pytest.mark.asyncio
    async def test_explicit_test_mode_wins(self, seeded, email_service):
        notifier = GroupNotifier(seeded, email_service)

        await notifier.notify_group(make_group(test_mode=True), test_mode=False, now=NOW)

        assert email_service.send_group_introduction_email.await_args.kwargs["test_mode"] is False

    @pytest.mark.asyncio
    async def test_email_failure_keeps_group_pending(self, seeded):
        email_service = MagicMock()
        email_service.send_group_introduction_email = AsyncMock(side_effect=RuntimeError("provider down"))
        notifier = GroupNotifier(seeded, email_service)

        emailed = await notifier.notify_group(make_group(), now=NOW)

        assert emailed == []
        assert seeded.groups["g1"].status == GroupStatus.PENDING
        assert seeded.groups["g1"].member_ids == ["a", "b", "c", "d"]

    @pytest.mark.asyncio
    async def test_nothing_delivered_keeps_group_pending(self, seeded):
        email_service = MagicMock()
        email_service.send_group_introduction_email = AsyncMock(return_value=[])
        notifier = GroupNotifier(seeded, email_service)

        assert await notifier.notify_group(make_group(), now=NOW) == []
        assert seeded.groups["g1"].status == GroupStatus.PENDING
        assert seeded.groups["g1"].introduction_email_sent_at is None

    @pytest.mark.asyncio
    async def test_group_without_reachable_members(self, repository, email_service):
        for uid in ("a", "b", "c", "d"):
            repository.add_user(make_user(uid, age_months=9, group_id="g1", email=None))
        repository.groups["g1"] = make_group()
        notifier = GroupNotifier(repository, email_service)

        assert await notifier.notify_group(make_group(), now=NOW) == []
        email_service.send_group_introduction_email.assert_not_called()


class TestSendPendingIntroductions:
    @pytest.mark.asyncio
    async def test_sweeps_pending_groups(self, seeded, email_service):
        for uid in ("e", "f", "g", "h"):
            seeded.add_user(make_user(uid, age_months=9, group_id="g2", email=None))
        seeded.groups["g2"] = make_group("g2", member_ids=["e", "f", "g", "h"])
        seeded.groups["g3"] = make_group("g3", status=GroupStatus.INACTIVE)
        notifier = GroupNotifier(seeded, email_service, clock=lambda: NOW)

        results = await notifier.send_pending_introductions(limit=10)

        assert results == {"processed": 2, "sent": 1, "failed": 1}
        assert seeded.groups["g1"].status == GroupStatus.ACTIVE
        assert seeded.groups["g2"].status == GroupStatus.PENDING

    @pytest.mark.asyncio
    async def test_nothing_pending(self, repository, email_service):
        notifier = GroupNotifier(repository, email_service)

        assert await notifier.send_pending_introductions() == {"processed": 0, "sent": 0, "failed": 0}
