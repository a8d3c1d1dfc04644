"""
Email service configuration constants.

These are fixed values that don't change per environment.
Environment-specific values (API keys, URLs) are loaded from env vars.
"""

# Resend API endpoint
RESEND_API_URL = "https://api.resend.com/emails"

# Pause between per-member sends (Resend allows ~2 requests/second)
GROUP_INTRO_SEND_DELAY_SECONDS = 0.6

# Default values (can be overridden by env vars)
EMAIL_DEFAULTS = {
    "mode": "console",
    "from_email": "onboarding@resend.dev",
    "from_name": "DadCircles",
    "team_name": "The DadCircles Team",
}
