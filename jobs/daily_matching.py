"""
Daily matching background job.

Sweeps every city with unmatched users, runs matching where some life
stage has enough people for a group, then retries introduction emails
for groups still pending. This job should be run daily via CRON.

Usage:
    Run via CRON:
        0 3 * * * cd /path/to/project && python -m jobs.daily_matching

    Or run directly:
        python -m jobs.daily_matching
"""

import asyncio
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from common.database import MongoDB
from dadcircles.config import settings
from dadcircles.dependencies import build_email_service
from dadcircles.matching.grouping import GroupingPolicy, filter_unmatched
from dadcircles.matching.models import Location
from dadcircles.matching.repository import MatchingRepository, MongoMatchingRepository
from dadcircles.matching.services.matching_service import MatchingService
from dadcircles.matching.services.notification_service import GroupNotifier

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


class DailyMatchingJob:
    """
    Runs matching city by city.

    Actions performed:
    1. Collects (city, state) pairs of unmatched eligible users
    2. For each pair with a matchable life stage bucket, runs matching
    3. Sends introduction emails for pending groups not yet introduced
    """

    def __init__(
        self,
        repository: MatchingRepository,
        matching_service: MatchingService,
        notifier: Optional[GroupNotifier] = None,
        pending_email_batch_size: int = 10,
    ):
        """
        Initialize the daily matching job.

        Args:
            repository: Matching repository
            matching_service: Service that performs a matching run
            notifier: Introduction email sender; None skips the email sweep
            pending_email_batch_size: Max pending groups emailed per run
        """
        self._repository = repository
        self._matching_service = matching_service
        self._notifier = notifier
        self._pending_email_batch_size = pending_email_batch_size

    async def run(self) -> Dict[str, Any]:
        """
        Execute the daily matching job.

        Returns:
            Dict with job results including counts and any errors
        """
        logger.info("Starting daily matching job")
        start_time = datetime.now(timezone.utc)

        results: Dict[str, Any] = {
            "startTime": start_time.isoformat(),
            "citiesChecked": 0,
            "citiesMatched": 0,
            "groupsCreated": 0,
            "usersMatched": 0,
            "emailsSent": 0,
            "emailsFailed": 0,
            "errors": [],
        }

        try:
            locations = await self._get_locations_with_unmatched_users()
            logger.info(f"Found {len(locations)} cities with unmatched users")

            for location in locations:
                results["citiesChecked"] += 1
                try:
                    if not await self._matching_service.has_matchable_bucket(
                        location.city, location.state_code
                    ):
                        logger.info(f"{location.label} doesn't have enough users for matching yet")
                        continue

                    logger.info(f"Running matching for {location.label}")
                    run = await self._matching_service.run_matching(
                        city=location.city,
                        state_code=location.state_code,
                        test_mode=False,
                    )
                    results["citiesMatched"] += 1
                    results["groupsCreated"] += run["groups_created"]
                    results["usersMatched"] += run["users_matched"]

                except Exception as e:
                    error_msg = f"Failed to match {location.label}: {str(e)}"
                    logger.error(error_msg)
                    results["errors"].append(error_msg)

            if self._notifier:
                email_results = await self._notifier.send_pending_introductions(
                    limit=self._pending_email_batch_size
                )
                results["emailsSent"] = email_results["sent"]
                results["emailsFailed"] = email_results["failed"]

        except Exception as e:
            error_msg = f"Job failed: {str(e)}"
            logger.error(error_msg)
            results["errors"].append(error_msg)

        results["endTime"] = datetime.now(timezone.utc).isoformat()
        results["durationSeconds"] = (
            datetime.now(timezone.utc) - start_time
        ).total_seconds()

        logger.info(
            f"Daily matching job completed. "
            f"Cities matched: {results['citiesMatched']}/{results['citiesChecked']}, "
            f"Groups: {results['groupsCreated']}, "
            f"Errors: {len(results['errors'])}"
        )

        return results

    async def _get_locations_with_unmatched_users(self) -> List[Location]:
        """Distinct locations of unmatched eligible users, in first-seen order."""
        users = filter_unmatched(await self._repository.find_eligible_users())
        seen: Dict[Location, None] = {}
        for user in users:
            if user.location is not None:
                seen.setdefault(user.location, None)
        return list(seen)


async def main():
    """Main entry point for the daily matching job."""
    settings.validate_required()

    db = MongoDB()
    await db.connect(uri=settings.MONGODB_URI, database_name=settings.MONGODB_DATABASE)

    try:
        repository = MongoMatchingRepository(db.db)
        notifier = GroupNotifier(repository, build_email_service(settings))
        matching_service = MatchingService(
            repository,
            policy=GroupingPolicy.from_settings(settings),
            notifier=notifier if settings.MATCHING_SEND_EMAILS else None,
        )

        job = DailyMatchingJob(
            repository=repository,
            matching_service=matching_service,
            notifier=notifier if settings.MATCHING_SEND_EMAILS else None,
            pending_email_batch_size=settings.PENDING_EMAIL_BATCH_SIZE,
        )
        results = await job.run()
    finally:
        await db.disconnect()

    if results["errors"]:
        logger.warning(f"Job completed with {len(results['errors'])} errors")
        sys.exit(1)

    sys.exit(0)


if __name__ == "__main__":
    asyncio.run(main())
