"""
Group introduction notifications.

Hands newly formed groups to the email service and records which
members were reached. Notification never affects group membership.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from dadcircles.matching.life_stage import describe_child
from dadcircles.matching.models import Group
from dadcircles.matching.repository import MatchingRepository
from dadcircles.services.email.email_service import EmailService

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GroupNotifier:
    """
    Sends introduction emails for groups and tracks delivery.
    """

    def __init__(
        self,
        repository: MatchingRepository,
        email_service: EmailService,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Initialize GroupNotifier.

        Args:
            repository: Matching repository
            email_service: Email delivery
            clock: Source of the current time
        """
        self._repository = repository
        self._email_service = email_service
        self._clock = clock

    async def build_contacts(self, group: Group, now: datetime) -> List[Dict[str, str]]:
        """Members with an email address, in group order."""
        members = await self._repository.get_users(group.member_ids)
        return [
            {
                "userId": member.id,
                "email": member.email,
                "name": member.email.split("@")[0],
                "childInfo": describe_child(member.children, now),
            }
            for member in members
            if member.email
        ]

    async def notify_group(
        self,
        group: Group,
        test_mode: Optional[bool] = None,
        now: Optional[datetime] = None,
    ) -> List[str]:
        """
        Send the introduction email for one group.

        Failures are logged and reported as an empty result; the group is
        left pending so the pending sweep can retry it.

        Args:
            group: Group to introduce
            test_mode: Overrides the group's own test_mode flag
            now: Reference time for child descriptions and sent_at

        Returns:
            Member ids that were successfully emailed
        """
        now = now or self._clock()
        test_mode = group.test_mode if test_mode is None else test_mode

        logger.info(
            f"Sending group introduction emails for \"{group.name}\" "
            f"({len(group.member_ids)} members, test_mode={test_mode})"
        )

        try:
            contacts = await self.build_contacts(group, now)
            if not contacts:
                logger.warning(f"No members with email addresses found for group {group.id}")
                return []

            emailed = await self._email_service.send_group_introduction_email(
                group_name=group.name,
                members=contacts,
                test_mode=test_mode,
            )
            await self._repository.record_introduction(group.id, emailed, now)

        except Exception as e:
            logger.error(f"Error sending group introduction emails for {group.id}: {e}")
            return []

        if emailed:
            logger.info(f"Group {group.id} introduced to {len(emailed)} members")
        else:
            logger.warning(f"No introduction emails delivered for group {group.id}")

        return emailed

    async def send_pending_introductions(self, limit: int = 10) -> Dict[str, Any]:
        """
        Retry introductions for pending groups that were never emailed.

        Returns:
            dict with processed, sent and failed counts
        """
        groups = await self._repository.find_groups_awaiting_introduction(limit)

        if not groups:
            logger.info("No pending groups found for email sending")
            return {"processed": 0, "sent": 0, "failed": 0}

        logger.info(f"Processing {len(groups)} pending groups")

        sent = 0
        failed = 0
        for group in groups:
            emailed = await self.notify_group(group)
            if emailed:
                sent += 1
            else:
                failed += 1

        logger.info(f"Pending group email job completed: {sent} sent, {failed} failed")
        return {"processed": len(groups), "sent": sent, "failed": failed}
