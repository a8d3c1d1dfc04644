"""
Domain models for the matching system.

These are the normalized shapes the matching engine works with. Raw
profile and group documents are converted into these models at the
repository boundary.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LifeStage(str, Enum):
    """Life stage bucket derived from the first child's birth or due date."""
    EXPECTING = "Expecting"
    NEWBORN = "Newborn"
    INFANT = "Infant"
    TODDLER = "Toddler"


class ChildType(str, Enum):
    EXPECTING = "expecting"
    EXISTING = "existing"


class GroupStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"


class Child(BaseModel):
    """A child record; for expecting children the month/year are the due date."""
    type: ChildType
    birth_month: int = Field(..., ge=1, le=12)
    birth_year: int = Field(..., ge=1900)
    gender: Optional[str] = None


class Location(BaseModel):
    """City and state code, compared exactly as stored."""
    model_config = ConfigDict(frozen=True)

    city: str
    state_code: str

    @property
    def label(self) -> str:
        """Display key, e.g. "Austin, TX"."""
        return f"{self.city}, {self.state_code}"


class UserRecord(BaseModel):
    """An onboarded user as seen by the matching engine."""
    id: str
    email: Optional[str] = None
    location: Optional[Location] = None
    children: List[Child] = Field(default_factory=list)
    matching_eligible: bool = False
    group_id: Optional[str] = None
    matched_at: Optional[datetime] = None

    @field_validator("group_id", mode="before")
    @classmethod
    def _blank_group_id_is_none(cls, value):
        return value or None

    @property
    def is_matched(self) -> bool:
        return self.group_id is not None


class Group(BaseModel):
    """A committed peer group."""
    id: str
    name: str
    location: Location
    life_stage: LifeStage
    member_ids: List[str]
    status: GroupStatus = GroupStatus.PENDING
    test_mode: bool = False
    created_at: datetime
    emailed_member_ids: List[str] = Field(default_factory=list)
    introduction_email_sent_at: Optional[datetime] = None

    @field_validator("member_ids")
    @classmethod
    def _members_unique(cls, value: List[str]) -> List[str]:
        if len(set(value)) != len(value):
            raise ValueError("member_ids must be unique")
        return value
