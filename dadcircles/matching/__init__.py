"""
Matching System

Forms small local peer groups from onboarded users, bucketed by city and
the life stage of their first child.
"""

from dadcircles.matching.models import (
    Child,
    ChildType,
    Group,
    GroupStatus,
    LifeStage,
    Location,
    UserRecord,
)
from dadcircles.matching.repository import MatchingRepository, MongoMatchingRepository
from dadcircles.matching.services import (
    GroupCommitter,
    GroupNotifier,
    MatchingService,
    MatchingStatsService,
)

__all__ = [
    "Child",
    "ChildType",
    "Group",
    "GroupStatus",
    "LifeStage",
    "Location",
    "UserRecord",
    "MatchingRepository",
    "MongoMatchingRepository",
    "GroupCommitter",
    "GroupNotifier",
    "MatchingService",
    "MatchingStatsService",
]
