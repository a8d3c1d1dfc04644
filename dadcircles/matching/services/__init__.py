"""Matching services."""

from dadcircles.matching.services.group_committer import GroupCommitter
from dadcircles.matching.services.matching_service import MatchingService
from dadcircles.matching.services.notification_service import GroupNotifier
from dadcircles.matching.services.stats_service import MatchingStatsService

__all__ = [
    "GroupCommitter",
    "MatchingService",
    "GroupNotifier",
    "MatchingStatsService",
]
