"""
Storage access for the matching engine.

MatchingRepository is the only seam between the engine and the document
store. The MongoDB implementation normalizes raw documents into
UserRecord / Group models, so callers never see the difference between
an absent and a null ``group_id``.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError

from common.utils.exceptions import ConflictException, NotFoundException
from dadcircles.matching.models import (
    Child,
    Group,
    GroupStatus,
    LifeStage,
    Location,
    UserRecord,
)

logger = logging.getLogger(__name__)


class MatchingRepository(ABC):
    """Users and groups as seen by the matching engine."""

    @abstractmethod
    async def find_eligible_users(
        self,
        location: Optional[Location] = None,
    ) -> List[UserRecord]:
        """All users with matching_eligible set, matched or not."""

    @abstractmethod
    async def get_users(self, user_ids: List[str]) -> List[UserRecord]:
        """Users by id, in the order given; unknown ids are skipped."""

    @abstractmethod
    async def count_groups(self, location: Location, life_stage: LifeStage) -> int:
        """Number of groups ever created for a location and life stage."""

    @abstractmethod
    async def commit_group(self, group: Group, matched_at: datetime) -> Group:
        """
        Create the group and assign every member in one atomic step.

        Implementations must re-check, as part of the same atomic write,
        that no member already has a group_id.

        Raises:
            ConflictException: If any member is already matched or missing.
                Nothing is written in that case.
        """

    @abstractmethod
    async def get_group(self, group_id: str) -> Optional[Group]:
        """Group by id, or None."""

    @abstractmethod
    async def list_groups(self, status: Optional[GroupStatus] = None) -> List[Group]:
        """Groups, newest first, optionally filtered by status."""

    @abstractmethod
    async def find_groups_awaiting_introduction(self, limit: int) -> List[Group]:
        """Pending groups whose introduction email has not gone out yet."""

    @abstractmethod
    async def record_introduction(
        self,
        group_id: str,
        emailed_member_ids: List[str],
        sent_at: datetime,
    ) -> None:
        """
        Store members confirmed by the email provider.

        When at least one member was notified, sets
        introduction_email_sent_at and moves a pending group to active.
        """

    @abstractmethod
    async def deactivate_group(self, group_id: str) -> Group:
        """
        Mark a group inactive and clear group_id/matched_at on its members.

        Raises:
            NotFoundException: If the group does not exist
        """


# ─────────────────────────────────────────────────────────────────
# MongoDB implementation
# ─────────────────────────────────────────────────────────────────


def _profile_ids(user_ids: List[str]) -> List[Any]:
    """
    Raw `_id` values for user ids.

    Profiles may be keyed by a string session id or by an ObjectId; both
    forms are matched so every id produced by _to_user can be found again.
    """
    ids: List[Any] = []
    for uid in user_ids:
        ids.append(uid)
        if ObjectId.is_valid(uid):
            ids.append(ObjectId(uid))
    return ids


def _parse_location(doc: Dict[str, Any]) -> Optional[Location]:
    raw = doc.get("location")
    if not raw:
        return None
    try:
        return Location.model_validate(raw)
    except ValidationError:
        logger.warning(f"Profile {doc['_id']} has an invalid location, ignoring it")
        return None


def _parse_children(doc: Dict[str, Any]) -> List[Child]:
    try:
        return [Child.model_validate(child) for child in doc.get("children") or []]
    except ValidationError:
        logger.warning(f"Profile {doc['_id']} has invalid child data, ignoring it")
        return []


def _to_user(doc: Dict[str, Any]) -> UserRecord:
    """
    Normalize a profile document.

    The id is always `str(_id)`. A malformed location or child list is
    dropped rather than failing the read, so the Bucketer skips the user.
    """
    return UserRecord(
        id=str(doc["_id"]),
        email=doc.get("email"),
        location=_parse_location(doc),
        children=_parse_children(doc),
        matching_eligible=bool(doc.get("matching_eligible")),
        group_id=str(doc["group_id"]) if doc.get("group_id") else None,
        matched_at=doc.get("matched_at"),
    )


def _to_group(doc: Dict[str, Any]) -> Group:
    return Group(
        id=doc.get("group_id") or str(doc["_id"]),
        name=doc["name"],
        location=doc["location"],
        life_stage=doc["life_stage"],
        member_ids=doc.get("member_ids", []),
        status=doc.get("status", GroupStatus.PENDING.value),
        test_mode=bool(doc.get("test_mode")),
        created_at=doc["created_at"],
        emailed_member_ids=doc.get("emailed_member_ids") or [],
        introduction_email_sent_at=doc.get("introduction_email_sent_at"),
    )


def _group_to_doc(group: Group) -> Dict[str, Any]:
    doc = group.model_dump(mode="python")
    doc["_id"] = group.id
    doc["group_id"] = doc.pop("id")
    doc["location"] = group.location.model_dump()
    doc["life_stage"] = group.life_stage.value
    doc["status"] = group.status.value
    return doc


class MongoMatchingRepository(MatchingRepository):
    """
    MongoDB-backed repository over the ``profiles`` and ``groups`` collections.

    Group commits and deactivations run in a multi-document transaction,
    which requires a replica set deployment.
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        """
        Initialize MongoMatchingRepository.

        Args:
            db: MongoDB database connection
        """
        self._db = db
        self._profiles_collection = db["profiles"]
        self._groups_collection = db["groups"]

    async def find_eligible_users(
        self,
        location: Optional[Location] = None,
    ) -> List[UserRecord]:
        query: Dict[str, Any] = {"matching_eligible": True}
        if location:
            query["location.city"] = location.city
            query["location.state_code"] = location.state_code

        docs = await self._profiles_collection.find(query).to_list(length=None)
        return [_to_user(doc) for doc in docs]

    async def get_users(self, user_ids: List[str]) -> List[UserRecord]:
        docs = await self._profiles_collection.find(
            {"_id": {"$in": _profile_ids(user_ids)}}
        ).to_list(length=None)
        by_id = {str(doc["_id"]): _to_user(doc) for doc in docs}
        return [by_id[uid] for uid in user_ids if uid in by_id]

    async def count_groups(self, location: Location, life_stage: LifeStage) -> int:
        return await self._groups_collection.count_documents({
            "location.city": location.city,
            "location.state_code": location.state_code,
            "life_stage": life_stage.value,
        })

    async def commit_group(self, group: Group, matched_at: datetime) -> Group:
        member_ids = list(group.member_ids)

        async with await self._db.client.start_session() as session:
            async with session.start_transaction():
                # group_id: None matches both null and absent fields
                result = await self._profiles_collection.update_many(
                    {
                        "_id": {"$in": _profile_ids(member_ids)},
                        "matching_eligible": True,
                        "group_id": None,
                    },
                    {
                        "$set": {
                            "group_id": group.id,
                            "matched_at": matched_at,
                            "last_updated": matched_at,
                        }
                    },
                    session=session,
                )

                if result.matched_count != len(member_ids):
                    # Raising inside the transaction block aborts it
                    raise ConflictException(
                        message=(
                            f"{len(member_ids) - result.matched_count} of "
                            f"{len(member_ids)} members are no longer unmatched"
                        ),
                        code="MEMBER_ALREADY_MATCHED",
                    )

                await self._groups_collection.insert_one(
                    _group_to_doc(group), session=session
                )

        logger.info(f"Group {group.id} committed with {len(member_ids)} members")
        return group

    async def get_group(self, group_id: str) -> Optional[Group]:
        doc = await self._groups_collection.find_one({"_id": group_id})
        return _to_group(doc) if doc else None

    async def list_groups(self, status: Optional[GroupStatus] = None) -> List[Group]:
        query: Dict[str, Any] = {}
        if status:
            query["status"] = status.value

        cursor = self._groups_collection.find(query).sort("created_at", -1)
        docs = await cursor.to_list(length=None)
        return [_to_group(doc) for doc in docs]

    async def find_groups_awaiting_introduction(self, limit: int) -> List[Group]:
        cursor = self._groups_collection.find({
            "status": GroupStatus.PENDING.value,
            "introduction_email_sent_at": None,
        }).sort("created_at", 1).limit(limit)
        docs = await cursor.to_list(length=limit)
        return [_to_group(doc) for doc in docs]

    async def record_introduction(
        self,
        group_id: str,
        emailed_member_ids: List[str],
        sent_at: datetime,
    ) -> None:
        if not emailed_member_ids:
            return

        # sent_at, emailed ids and the pending -> active move are one write
        await self._groups_collection.update_one(
            {"_id": group_id},
            [
                {
                    "$set": {
                        "emailed_member_ids": {
                            "$setUnion": [
                                {"$ifNull": ["$emailed_member_ids", []]},
                                emailed_member_ids,
                            ]
                        },
                        "introduction_email_sent_at": sent_at,
                        "status": {
                            "$cond": [
                                {"$eq": ["$status", GroupStatus.PENDING.value]},
                                GroupStatus.ACTIVE.value,
                                "$status",
                            ]
                        },
                    }
                }
            ],
        )

    async def deactivate_group(self, group_id: str) -> Group:
        async with await self._db.client.start_session() as session:
            async with session.start_transaction():
                doc = await self._groups_collection.find_one_and_update(
                    {"_id": group_id},
                    {"$set": {"status": GroupStatus.INACTIVE.value}},
                    session=session,
                )
                if not doc:
                    raise NotFoundException(message="Group not found", code="GROUP_NOT_FOUND")

                await self._profiles_collection.update_many(
                    {"group_id": group_id},
                    {"$set": {"group_id": None, "matched_at": None}},
                    session=session,
                )

        doc["status"] = GroupStatus.INACTIVE.value
        logger.info(f"Group {group_id} deactivated, members released")
        return _to_group(doc)
