"""
Email service for sending transactional emails.

Supports SMTP, Resend API, and console logging modes.
"""

import asyncio
import html as html_lib
import logging
import os
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Dict, List, Optional

import httpx
import aiosmtplib

from config.email_config import (
    RESEND_API_URL,
    EMAIL_DEFAULTS,
    GROUP_INTRO_SEND_DELAY_SECONDS,
)

logger = logging.getLogger(__name__)


class EmailService:
    """
    Email service with multi-mode support.

    Modes:
        - console: Log emails to console (development)
        - smtp: Send via SMTP
        - resend: Send via Resend HTTP API
    """

    def __init__(
        self,
        mode: Optional[str] = None,
        resend_api_key: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
        team_name: Optional[str] = None,
        smtp_host: Optional[str] = None,
        smtp_port: Optional[int] = None,
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
        send_delay: float = GROUP_INTRO_SEND_DELAY_SECONDS,
    ):
        """
        Initialize email service.

        Args:
            mode: "console", "smtp", or "resend" (default from EMAIL_MODE env var)
            resend_api_key: Resend API key (default from RESEND_API_KEY env var)
            from_email: Sender email address
            from_name: Sender display name
            team_name: Team name for email signatures
            smtp_host: SMTP server host
            smtp_port: SMTP server port
            smtp_user: SMTP username
            smtp_password: SMTP password
            send_delay: Pause in seconds between consecutive per-member sends
        """
        self._mode = mode or os.environ.get("EMAIL_MODE", EMAIL_DEFAULTS["mode"])
        self._from_email = from_email or os.environ.get("SMTP_FROM_EMAIL", EMAIL_DEFAULTS["from_email"])
        self._from_name = from_name or os.environ.get("SMTP_FROM_NAME", EMAIL_DEFAULTS["from_name"])
        self._team_name = team_name or os.environ.get("EMAIL_TEAM_NAME", EMAIL_DEFAULTS["team_name"])
        self._send_delay = send_delay

        self._resend_api_key = resend_api_key or os.environ.get("RESEND_API_KEY")

        self._smtp_host = smtp_host or os.environ.get("SMTP_HOST")
        self._smtp_port = smtp_port or int(os.environ.get("SMTP_PORT", "465"))
        self._smtp_user = smtp_user or os.environ.get("SMTP_USER")
        self._smtp_password = smtp_password or os.environ.get("SMTP_PASSWORD")

        if self._mode == "resend" and not self._resend_api_key:
            logger.warning("Resend API key not configured, falling back to console mode")
            self._mode = "console"
        elif self._mode == "smtp" and not self._smtp_host:
            logger.warning("SMTP host not configured, falling back to console mode")
            self._mode = "console"

        logger.info(f"Email service initialized in {self._mode} mode")

    @property
    def mode(self) -> str:
        return self._mode

    async def send_group_introduction_email(
        self,
        group_name: str,
        members: List[Dict[str, str]],
        test_mode: bool = False,
    ) -> List[str]:
        """
        Introduce group members to each other, one email per member.

        Args:
            group_name: Display name of the group
            members: List of {userId, email, name, childInfo}
            test_mode: Mark the email as a test (subject suffix and banner)

        Returns:
            userIds of members whose email was accepted by the provider
        """
        subject = f"Meet Your DadCircles Group: {group_name}{' (TEST)' if test_mode else ''}"
        html_content = self._render_group_introduction_html(group_name, members, test_mode)
        text_content = self._render_group_introduction_text(group_name, members, test_mode)

        emailed: List[str] = []

        for index, member in enumerate(members):
            result = await self._send(member["email"], subject, html_content, text_content)

            if result.get("success"):
                emailed.append(member["userId"])
            else:
                logger.error(f"Failed to send group introduction to {member['email']}: {result.get('error')}")

            if self._mode != "console" and self._send_delay and index < len(members) - 1:
                await asyncio.sleep(self._send_delay)

        logger.info(f"Group introduction for \"{group_name}\": {len(emailed)}/{len(members)} sent")
        return emailed

    def _render_group_introduction_html(
        self,
        group_name: str,
        members: List[Dict[str, str]],
        test_mode: bool,
    ) -> str:
        members_list = "".join(
            f"<li><strong>{html_lib.escape(m['name'])}</strong> - {html_lib.escape(m['childInfo'])}</li>"
            for m in members
        )
        banner = (
            '<div style="background: #fef3c7; border: 2px solid #f59e0b; padding: 12px; '
            'text-align: center; color: #92400e; font-weight: bold;">'
            "THIS IS A TEST EMAIL - No real group has been formed</div>"
            if test_mode else ""
        )

        return f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Meet Your DadCircles Group</title>
</head>
<body style="margin: 0; padding: 0; background-color: #f8fafc; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif; line-height: 1.6; color: #374151;">
    {banner}
    <table role="presentation" width="100%" cellpadding="0" cellspacing="0" style="background-color: #f8fafc;">
        <tr>
            <td align="center" style="padding: 20px 0;">
                <table role="presentation" width="600" cellpadding="0" cellspacing="0" style="background-color: #ffffff; max-width: 600px;">
                    <tr>
                        <td align="center" bgcolor="#8b5cf6" style="background-color: #8b5cf6; padding: 40px 20px;">
                            <h1 style="margin: 0; font-size: 28px; color: #ffffff; font-weight: 600;">Meet Your Group!</h1>
                        </td>
                    </tr>
                    <tr>
                        <td style="padding: 40px 20px;">
                            <h2 style="color: #1a1a1a;">Welcome to {html_lib.escape(group_name)}!</h2>
                            <p>Great news! We've matched you with other dads in your area who are at a similar stage in their parenting journey.</p>
                            <h3 style="color: #374151;">Group Members:</h3>
                            <ul>{members_list}</ul>
                            <p><strong>What's next?</strong></p>
                            <ul>
                                <li>Reply all to this email to introduce yourself to the group</li>
                                <li>Share a bit about yourself and what you're looking forward to</li>
                                <li>Start planning your first meetup or playdate</li>
                            </ul>
                            <p><strong>{html_lib.escape(self._team_name)}</strong></p>
                        </td>
                    </tr>
                    <tr>
                        <td align="center" style="background: #f8fafc; padding: 20px; color: #718096; font-size: 14px;">
                            DadCircles - Connecting fathers, building community
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>
"""

    def _render_group_introduction_text(
        self,
        group_name: str,
        members: List[Dict[str, str]],
        test_mode: bool,
    ) -> str:
        lines = []
        if test_mode:
            lines.append("THIS IS A TEST EMAIL - No real group has been formed")
            lines.append("")
        lines.append(f"Welcome to {group_name}!")
        lines.append("")
        lines.append(
            "We've matched you with other dads in your area who are at a similar "
            "stage in their parenting journey."
        )
        lines.append("")
        lines.append("Group Members:")
        lines.extend(f"- {m['name']} - {m['childInfo']}" for m in members)
        lines.append("")
        lines.append("Reply all to this email to say hi!")
        lines.append("")
        lines.append(self._team_name)
        return "\n".join(lines)

    async def _send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str,
    ) -> dict:
        """
        Send email via configured provider.

        Returns:
            dict with success status and details
        """
        if self._mode == "console":
            return self._send_console(to, subject, html, text)
        elif self._mode == "smtp":
            return await self._send_smtp(to, subject, html, text)
        elif self._mode == "resend":
            return await self._send_resend(to, subject, html, text)
        else:
            logger.error(f"Unknown email mode: {self._mode}")
            return {"success": False, "error": f"Unknown email mode: {self._mode}"}

    def _send_console(
        self,
        to: str,
        subject: str,
        html: str,
        text: str,
    ) -> dict:
        """Log email to console (development mode)."""
        logger.info("=" * 60)
        logger.info("EMAIL (console mode)")
        logger.info(f"To: {to}")
        logger.info(f"Subject: {subject}")
        logger.info("-" * 60)
        logger.info(text)
        logger.info("=" * 60)

        return {
            "success": True,
            "mode": "console",
            "message": "Email logged to console",
        }

    async def _send_smtp(
        self,
        to: str,
        subject: str,
        html: str,
        text: str,
    ) -> dict:
        """Send email via SMTP."""
        try:
            message = MIMEMultipart("alternative")
            message["Subject"] = subject
            message["From"] = f"{self._from_name} <{self._from_email}>"
            message["To"] = to

            message.attach(MIMEText(text, "plain"))
            message.attach(MIMEText(html, "html"))

            # SSL on 465, STARTTLS otherwise
            use_tls = self._smtp_port == 465

            await aiosmtplib.send(
                message,
                hostname=self._smtp_host,
                port=self._smtp_port,
                username=self._smtp_user,
                password=self._smtp_password,
                use_tls=use_tls,
                start_tls=not use_tls,
            )

            logger.info(f"Email sent via SMTP to {to}")
            return {
                "success": True,
                "mode": "smtp",
                "message": "Email sent via SMTP",
            }

        except Exception as e:
            logger.error(f"Failed to send email via SMTP: {e}")
            return {
                "success": False,
                "error": str(e),
            }

    async def _send_resend(
        self,
        to: str,
        subject: str,
        html: str,
        text: str,
    ) -> dict:
        """Send email via Resend API."""
        if not self._resend_api_key:
            return {"success": False, "error": "Resend API key not configured"}

        async with httpx.AsyncClient() as client:
            try:
                response = await client.post(
                    RESEND_API_URL,
                    headers={
                        "Authorization": f"Bearer {self._resend_api_key}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "from": f"{self._from_name} <{self._from_email}>",
                        "to": [to],
                        "subject": subject,
                        "html": html,
                        "text": text,
                    },
                    timeout=30.0,
                )

                if response.status_code == 200:
                    data = response.json()
                    return {
                        "success": True,
                        "mode": "resend",
                        "messageId": data.get("id"),
                    }
                else:
                    error_data = response.json()
                    error_msg = error_data.get("message", "Unknown error")
                    logger.error(f"Resend API error: {error_msg}")
                    return {
                        "success": False,
                        "error": error_msg,
                    }

            except Exception as e:
                logger.error(f"Failed to send email via Resend: {e}")
                return {
                    "success": False,
                    "error": str(e),
                }
