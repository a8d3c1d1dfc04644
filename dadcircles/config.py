"""
DadCircles application settings.

Extends the base settings with matching and email configuration.
"""

from typing import Dict, Optional
from common.config import BaseAppSettings


class Settings(BaseAppSettings):
    """DadCircles-specific settings."""

    # ==========================================================================
    # Matching
    # ==========================================================================
    MATCHING_MIN_GROUP_SIZE: int = 4
    MATCHING_MAX_GROUP_SIZE: int = 6

    # Maximum age spread (months) allowed inside one group, per life stage
    MATCHING_MAX_GAP_EXPECTING: int = 4
    MATCHING_MAX_GAP_NEWBORN: int = 4
    MATCHING_MAX_GAP_INFANT: int = 6
    MATCHING_MAX_GAP_TODDLER: int = 6

    # Send introduction emails right after groups are formed
    MATCHING_SEND_EMAILS: bool = True

    # Groups processed per run of the pending email sweep
    PENDING_EMAIL_BATCH_SIZE: int = 10

    # ==========================================================================
    # Email Settings
    # ==========================================================================
    EMAIL_MODE: str = "console"  # console, smtp, resend
    RESEND_API_KEY: Optional[str] = None
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 465
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_FROM_EMAIL: str = "onboarding@resend.dev"
    SMTP_FROM_NAME: str = "DadCircles"

    def get_matching_thresholds(self) -> Dict[str, int]:
        """Per-life-stage maximum age gap in months, keyed by stage name."""
        return {
            "Expecting": self.MATCHING_MAX_GAP_EXPECTING,
            "Newborn": self.MATCHING_MAX_GAP_NEWBORN,
            "Infant": self.MATCHING_MAX_GAP_INFANT,
            "Toddler": self.MATCHING_MAX_GAP_TODDLER,
        }

    def validate_required(self) -> None:
        """Validate base settings plus matching bounds."""
        super().validate_required()

        if self.MATCHING_MIN_GROUP_SIZE < 2:
            raise ValueError("MATCHING_MIN_GROUP_SIZE must be at least 2")
        if self.MATCHING_MAX_GROUP_SIZE < self.MATCHING_MIN_GROUP_SIZE:
            raise ValueError("MATCHING_MAX_GROUP_SIZE must be >= MATCHING_MIN_GROUP_SIZE")


# Global settings instance
settings = Settings()
