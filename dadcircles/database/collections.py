"""
DadCircles collection accessors.

Uses the centralized MongoDB singleton from common.database.
"""

import logging

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from common.database import get_main_database

logger = logging.getLogger(__name__)


def get_profiles_collection():
    """Get the profiles collection from main database."""
    return get_main_database().get_collection("profiles")


def get_groups_collection():
    """Get the groups collection from main database."""
    return get_main_database().get_collection("groups")


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """Create the indexes the matching queries rely on."""
    await db["profiles"].create_index(
        [("matching_eligible", ASCENDING), ("location.city", ASCENDING), ("location.state_code", ASCENDING)]
    )
    await db["profiles"].create_index([("group_id", ASCENDING)])
    await db["groups"].create_index(
        [("location.city", ASCENDING), ("location.state_code", ASCENDING), ("life_stage", ASCENDING)]
    )
    await db["groups"].create_index([("status", ASCENDING), ("created_at", DESCENDING)])
    logger.info("Matching indexes ensured")
