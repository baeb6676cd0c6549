"""
Outbound notifications: e-mail through SMTP and in-app alert rows.

Both are best-effort side effects. They run after the primary operation has
committed, failures are logged and swallowed, and nothing is retried.
"""

import asyncio
import logging
import smtplib
from datetime import timedelta
from email.message import EmailMessage
from typing import Optional

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from staffops.config import Settings
from staffops.models.alert import Alert
from staffops.utils.time import utcnow

logger = logging.getLogger(__name__)


class EmailNotifier:
    """Fire-and-forget SMTP sender configured once at startup."""

    def __init__(self, config: Settings):
        self.host = config.SMTP_HOST
        self.port = config.SMTP_PORT
        self.username = config.SMTP_USERNAME
        self.password = config.SMTP_PASSWORD
        self.use_tls = config.SMTP_TLS
        self.mail_from = config.MAIL_FROM
        self.admin_email = config.ADMIN_EMAIL
        self._pending: set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return bool(self.host and self.mail_from)

    def _send_sync(self, to: str, subject: str, html: str) -> None:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.mail_from
        msg["To"] = to
        msg.set_content("This message requires an HTML capable mail client.")
        msg.add_alternative(html, subtype="html")
        with smtplib.SMTP(self.host, self.port, timeout=15) as s:
            if self.use_tls:
                s.starttls()
            if self.username and self.password:
                s.login(self.username, self.password)
            s.send_message(msg)

    async def send(self, to: Optional[str], subject: str, html: str) -> bool:
        """Deliver one message. Returns False instead of raising on any failure."""
        if not to:
            logger.warning("Email %r skipped: no recipient", subject)
            return False
        if not self.enabled:
            logger.info("Email disabled, dropping %r to %s", subject, to)
            return False
        try:
            await asyncio.to_thread(self._send_sync, to, subject, html)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Email %r to %s failed: %s", subject, to, e)
            return False
        logger.info("Email %r sent to %s", subject, to)
        return True

    def dispatch(self, to: Optional[str], subject: str, html: str) -> None:
        """Schedule ``send`` in the background; the caller never waits for SMTP."""
        task = asyncio.get_running_loop().create_task(self.send(to, subject, html))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def close(self) -> None:
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)


def get_notifier(request: Request) -> EmailNotifier:
    return request.app.state.notifier


async def create_system_alert(
    db: AsyncSession,
    alert_type: str,
    user_id: int,
    title: str,
    message: str,
    *,
    priority: str = "medium",
    action_required: bool = False,
    action_url: Optional[str] = None,
    related_id: Optional[int] = None,
    related_model: Optional[str] = None,
    expires_in_days: int = 7,
) -> Optional[Alert]:
    """Insert and commit one alert. Returns None (and rolls back) on failure."""
    alert = Alert(
        type=alert_type,
        user_id=user_id,
        title=title[:100],
        message=message[:500],
        priority=priority,
        action_required=action_required,
        action_url=action_url,
        related_id=related_id,
        related_model=related_model,
        expires_at=utcnow() + timedelta(days=expires_in_days),
    )
    db.add(alert)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Failed to create %s alert for user %s: %s", alert_type, user_id, e)
        return None
    return alert


# ── Templates ───────────────────────────────────────────────────────
def _wrap(heading: str, body: str) -> str:
    return (
        "<div style=\"font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;\">"
        f"<h2 style=\"color: #333;\">{heading}</h2>{body}"
        "<p style=\"color: #888; font-size: 12px;\">This is an automated message from StaffOps.</p>"
        "</div>"
    )


def leave_application_email(name: str, department: str, leave_date: str, leave_type: str, reason: str) -> tuple[str, str]:
    subject = f"Leave Application - {name} ({leave_date})"
    body = (
        f"<p><strong>{name}</strong> ({department}) applied for leave.</p>"
        f"<ul><li>Date: {leave_date}</li><li>Type: {leave_type}</li><li>Reason: {reason}</li></ul>"
        "<p>Please review it from the admin dashboard.</p>"
    )
    return subject, _wrap("New Leave Application", body)


def leave_status_email(name: str, leave_date: str, leave_type: str, approved: bool, notes: Optional[str]) -> tuple[str, str]:
    verdict = "Approved" if approved else "Rejected"
    subject = f"Leave {verdict} - {leave_date}"
    body = (
        f"<p>Hello {name},</p>"
        f"<p>Your {leave_type} leave for <strong>{leave_date}</strong> was <strong>{verdict.lower()}</strong>.</p>"
        f"<p>Notes: {notes or 'None'}</p>"
    )
    return subject, _wrap(f"Leave {verdict}", body)


def performance_warning_email(name: str, level: str, reason: str, month: str) -> tuple[str, str]:
    pretty_level = level.replace("_", " ").upper()
    subject = f"Performance Warning - {pretty_level}"
    body = (
        f"<p>Hello {name},</p>"
        f"<p>A <strong>{pretty_level}</strong> has been recorded for {month}.</p>"
        f"<p>Reason: {reason}</p>"
        "<p>Please review your performance dashboard and acknowledge this warning.</p>"
    )
    return subject, _wrap("Performance Warning", body)


def verification_code_email(username: str, code: str, ttl_minutes: int) -> tuple[str, str]:
    body = (
        f"<p>Hello {username},</p>"
        f"<p>Your verification code is <strong style=\"font-size: 20px;\">{code}</strong>.</p>"
        f"<p>It expires in {ttl_minutes} minutes.</p>"
    )
    return "Verify your email", _wrap("Email Verification", body)


def password_reset_email(username: str, token: str) -> tuple[str, str]:
    body = (
        f"<p>Hello {username},</p>"
        "<p>Use the token below to reset your password. It expires in one hour.</p>"
        f"<p><code>{token}</code></p>"
    )
    return "Password reset", _wrap("Password Reset", body)
