#!/usr/bin/env python3
"""
Seed script that inserts demo profiles for local matching runs.

This script:
1. Builds eligible profiles in a few cities across all four life stages
2. Adds one lone user in Miami, FL who can never be matched
3. Upserts them into the 'profiles' collection keyed by session_id

Usage:
    python -m scripts.seed_profiles

Environment variables:
    MONGODB_URI - MongoDB connection string
    MONGODB_DATABASE - Database name (default: dadcircles)
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple

from dotenv import load_dotenv

from common.database import MongoDB, set_main_database
from dadcircles.config import settings
from dadcircles.database import get_profiles_collection

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# (city, state_code, child type, months from now; negative = already born)
SEED_PLAN: List[Tuple[str, str, str, List[int]]] = [
    ("Austin", "TX", "existing", [-2, -3, -3, -4, -5, -6, -1]),
    ("Austin", "TX", "expecting", [1, 2, 3, 4]),
    ("Denver", "CO", "existing", [-8, -9, -10, -11, -12, -13]),
    ("Denver", "CO", "existing", [-19, -20, -21, -22, -36]),
    ("Miami", "FL", "existing", [-10]),
]


def _shift_month(now: datetime, offset: int) -> Tuple[int, int]:
    """(month, year) that is ``offset`` months away from ``now``."""
    index = now.year * 12 + (now.month - 1) + offset
    return index % 12 + 1, index // 12


def build_seed_profiles(now: datetime) -> List[Dict[str, Any]]:
    """Profile documents for the seed plan, relative to ``now``."""
    profiles = []
    counter = 1

    for city, state_code, child_type, offsets in SEED_PLAN:
        for offset in offsets:
            month, year = _shift_month(now, offset)
            session_id = f"seed-{city.lower()}-{counter:03d}"
            profiles.append({
                "_id": session_id,
                "session_id": session_id,
                "email": f"{session_id}@example.com",
                "onboarded": True,
                "onboarding_step": "complete",
                "location": {"city": city, "state_code": state_code},
                "children": [{
                    "type": child_type,
                    "birth_month": month,
                    "birth_year": year,
                }],
                "matching_eligible": True,
                "group_id": None,
                "matched_at": None,
                "last_updated": now,
            })
            counter += 1

    return profiles


async def seed_profiles():
    """Upsert the demo profiles."""
    db = MongoDB()
    await db.connect(uri=settings.MONGODB_URI, database_name=settings.MONGODB_DATABASE)
    set_main_database(db)

    try:
        profiles_collection = get_profiles_collection()
        profiles = build_seed_profiles(datetime.now(timezone.utc))

        for profile in profiles:
            await profiles_collection.replace_one({"_id": profile["_id"]}, profile, upsert=True)
            logger.info(f"Created profile: {profile['session_id']}")

        logger.info(f"Seeded {len(profiles)} profiles")
    finally:
        await db.disconnect()


if __name__ == "__main__":
    asyncio.run(seed_profiles())
