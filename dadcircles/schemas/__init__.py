"""
Pydantic schemas for request/response validation.
"""

from dadcircles.schemas.matching import (
    GroupResponse,
    MatchingStatsResponse,
    RunMatchingRequest,
    RunMatchingResponse,
    SendIntroductionResponse,
)

__all__ = [
    "GroupResponse",
    "MatchingStatsResponse",
    "RunMatchingRequest",
    "RunMatchingResponse",
    "SendIntroductionResponse",
]
