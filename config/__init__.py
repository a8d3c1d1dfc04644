"""
Configuration module - Fixed app-specific constants.
"""

from config.email_config import (
    RESEND_API_URL,
    EMAIL_DEFAULTS,
    GROUP_INTRO_SEND_DELAY_SECONDS,
)

__all__ = ["RESEND_API_URL", "EMAIL_DEFAULTS", "GROUP_INTRO_SEND_DELAY_SECONDS"]
