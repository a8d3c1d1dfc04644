"""
Pydantic models for Matching system request/response validation.
"""

from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, Field


class RunMatchingRequest(BaseModel):
    """Request body for a matching run."""
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    stateCode: Optional[str] = Field(None, min_length=2, max_length=10)
    testMode: bool = False


class LocationResponse(BaseModel):
    city: str
    state_code: str


class GroupSummaryResponse(BaseModel):
    """Group as reported in a matching run result."""
    id: str
    name: str
    location: LocationResponse
    life_stage: str
    member_count: int
    test_mode: bool
    created_at: datetime


class RunMatchingResponse(BaseModel):
    """Result of a matching run."""
    groups_created: int
    users_matched: int
    users_unmatched: int
    summary: str
    groups: List[GroupSummaryResponse]


class LocationStatsResponse(BaseModel):
    total: int
    matched: int
    unmatched: int
    by_life_stage: Dict[str, int]


class MatchingStatsResponse(BaseModel):
    """Matched/unmatched counts across eligible users."""
    total_users: int
    matched_users: int
    unmatched_users: int
    by_location: Dict[str, LocationStatsResponse]


class GroupResponse(BaseModel):
    """Group in API responses."""
    id: str
    name: str
    location: LocationResponse
    life_stage: str
    member_ids: List[str]
    status: str
    test_mode: bool
    created_at: datetime
    emailed_member_ids: List[str]
    introduction_email_sent_at: Optional[datetime] = None


class SendIntroductionResponse(BaseModel):
    """Result of (re)sending a group introduction."""
    groupId: str
    emailedMemberIds: List[str]
