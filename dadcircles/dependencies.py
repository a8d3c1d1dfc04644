"""
FastAPI dependencies for DadCircles.

Provides dependency injection for matching services and admin access.
"""

import secrets
from typing import Optional

from fastapi import Header
from motor.motor_asyncio import AsyncIOMotorDatabase

from common.utils.exceptions import UnauthorizedException
from dadcircles.config import Settings, settings
from dadcircles.matching.grouping import GroupingPolicy
from dadcircles.matching.repository import MatchingRepository, MongoMatchingRepository
from dadcircles.matching.services.matching_service import MatchingService
from dadcircles.matching.services.notification_service import GroupNotifier
from dadcircles.matching.services.stats_service import MatchingStatsService
from dadcircles.services.email.email_service import EmailService


_repository: Optional[MatchingRepository] = None
_matching_service: Optional[MatchingService] = None
_stats_service: Optional[MatchingStatsService] = None
_notifier: Optional[GroupNotifier] = None


def build_email_service(app_settings: Settings) -> EmailService:
    """Email service configured from settings."""
    return EmailService(
        mode=app_settings.EMAIL_MODE,
        resend_api_key=app_settings.RESEND_API_KEY,
        from_email=app_settings.SMTP_FROM_EMAIL,
        from_name=app_settings.SMTP_FROM_NAME,
        smtp_host=app_settings.SMTP_HOST,
        smtp_port=app_settings.SMTP_PORT,
        smtp_user=app_settings.SMTP_USER,
        smtp_password=app_settings.SMTP_PASSWORD,
    )


def init_matching_services(
    db: Optional[AsyncIOMotorDatabase] = None,
    app_settings: Settings = settings,
    repository: Optional[MatchingRepository] = None,
    email_service: Optional[EmailService] = None,
) -> None:
    """
    Initialize matching services.

    Called once at application startup. Tests pass a repository and email
    service directly instead of a database.

    Args:
        db: MongoDB database connection
        app_settings: Application settings
        repository: Repository override
        email_service: Email service override
    """
    global _repository, _matching_service, _stats_service, _notifier

    if repository is None:
        if db is None:
            raise RuntimeError("Either db or repository is required.")
        repository = MongoMatchingRepository(db=db)

    _repository = repository
    _notifier = GroupNotifier(
        repository=repository,
        email_service=email_service or build_email_service(app_settings),
    )
    _matching_service = MatchingService(
        repository=repository,
        policy=GroupingPolicy.from_settings(app_settings),
        notifier=_notifier if app_settings.MATCHING_SEND_EMAILS else None,
    )
    _stats_service = MatchingStatsService(repository=repository)


def get_matching_repository() -> MatchingRepository:
    """Get matching repository instance."""
    if _repository is None:
        raise RuntimeError("Matching services not initialized.")
    return _repository


def get_matching_service() -> MatchingService:
    """Get matching service instance."""
    if _matching_service is None:
        raise RuntimeError("Matching services not initialized.")
    return _matching_service


def get_stats_service() -> MatchingStatsService:
    """Get matching stats service instance."""
    if _stats_service is None:
        raise RuntimeError("Matching services not initialized.")
    return _stats_service


def get_group_notifier() -> GroupNotifier:
    """Get group notifier instance."""
    if _notifier is None:
        raise RuntimeError("Matching services not initialized.")
    return _notifier


async def require_admin(
    x_admin_key: Optional[str] = Header(default=None, alias="X-Admin-Key"),
) -> None:
    """
    Dependency that requires the admin API key.

    Usage:
        @router.post("/run", dependencies=[Depends(require_admin)])
    """
    expected = settings.ADMIN_API_KEY
    if not expected:
        if settings.is_production():
            raise UnauthorizedException(
                message="Admin access is not configured",
                code="ADMIN_KEY_NOT_CONFIGURED",
            )
        return

    if not x_admin_key or not secrets.compare_digest(x_admin_key, expected):
        raise UnauthorizedException(message="Invalid admin key", code="INVALID_ADMIN_KEY")
