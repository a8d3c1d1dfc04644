"""
FastAPI router for Matching system endpoints.

Used by the admin dashboard and the external scheduler.
"""

import logging
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Query

from common.utils.exceptions import NotFoundException, ValidationException
from dadcircles.dependencies import (
    get_group_notifier,
    get_matching_repository,
    get_matching_service,
    get_stats_service,
    require_admin,
)
from dadcircles.matching.models import Group, GroupStatus
from dadcircles.matching.repository import MatchingRepository
from dadcircles.matching.services.matching_service import MatchingService
from dadcircles.matching.services.notification_service import GroupNotifier
from dadcircles.matching.services.stats_service import MatchingStatsService
from dadcircles.schemas.matching import (
    GroupResponse,
    MatchingStatsResponse,
    RunMatchingRequest,
    RunMatchingResponse,
    SendIntroductionResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/matching",
    tags=["matching"],
    dependencies=[Depends(require_admin)],
)


def _format_group(group: Group) -> dict:
    """Format group for response."""
    return {
        "id": group.id,
        "name": group.name,
        "location": group.location.model_dump(),
        "life_stage": group.life_stage.value,
        "member_ids": group.member_ids,
        "status": group.status.value,
        "test_mode": group.test_mode,
        "created_at": group.created_at,
        "emailed_member_ids": group.emailed_member_ids,
        "introduction_email_sent_at": group.introduction_email_sent_at,
    }


async def _get_group_or_404(repository: MatchingRepository, group_id: str) -> Group:
    group = await repository.get_group(group_id)
    if not group:
        raise NotFoundException(message="Group not found", code="GROUP_NOT_FOUND")
    return group


@router.post("/run", response_model=RunMatchingResponse)
async def run_matching(
    body: RunMatchingRequest,
    matching_service: Annotated[MatchingService, Depends(get_matching_service)],
):
    """Run the matching algorithm, optionally for a single city."""
    return await matching_service.run_matching(
        city=body.city,
        state_code=body.stateCode,
        test_mode=body.testMode,
    )


@router.get("/stats", response_model=MatchingStatsResponse)
async def get_matching_stats(
    stats_service: Annotated[MatchingStatsService, Depends(get_stats_service)],
):
    """Get matched/unmatched counts by location and life stage."""
    return await stats_service.get_matching_stats()


@router.get("/groups", response_model=List[GroupResponse])
async def list_groups(
    repository: Annotated[MatchingRepository, Depends(get_matching_repository)],
    status: Optional[GroupStatus] = Query(None, description="pending | active | inactive"),
):
    """List groups, newest first."""
    groups = await repository.list_groups(status=status)
    return [_format_group(g) for g in groups]


@router.get("/groups/{group_id}", response_model=GroupResponse)
async def get_group(
    group_id: str,
    repository: Annotated[MatchingRepository, Depends(get_matching_repository)],
):
    """Get a single group."""
    group = await _get_group_or_404(repository, group_id)
    return _format_group(group)


@router.post("/groups/{group_id}/send-introduction", response_model=SendIntroductionResponse)
async def send_group_introduction(
    group_id: str,
    repository: Annotated[MatchingRepository, Depends(get_matching_repository)],
    notifier: Annotated[GroupNotifier, Depends(get_group_notifier)],
):
    """Send (or resend) the introduction email for a group."""
    group = await _get_group_or_404(repository, group_id)

    if group.status == GroupStatus.INACTIVE:
        raise ValidationException(
            message="Cannot send introductions for an inactive group",
            code="GROUP_INACTIVE",
        )

    emailed = await notifier.notify_group(group)
    return {"groupId": group.id, "emailedMemberIds": emailed}


@router.post("/groups/{group_id}/deactivate", response_model=GroupResponse)
async def deactivate_group(
    group_id: str,
    repository: Annotated[MatchingRepository, Depends(get_matching_repository)],
):
    """Deactivate a group and release its members for future matching."""
    group = await repository.deactivate_group(group_id)
    logger.info(f"Group {group_id} deactivated by admin")
    return _format_group(group)
