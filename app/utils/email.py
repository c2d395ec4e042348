"""Email utility: transactional emails over SMTP (TLS)."""
from __future__ import annotations

import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from app.core.config import settings
from app.errors.exceptions import EmailDeliveryError

logger = logging.getLogger(__name__)


def _build_smtp_connection() -> smtplib.SMTP:
    """Open an authenticated SMTP TLS connection."""
    conn = smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=15)
    conn.ehlo()
    conn.starttls()
    conn.ehlo()
    conn.login(settings.SMTP_USER, settings.SMTP_PASS)
    return conn


def send_email(to: str, html_body: str, subject: str, plain_body: str = "") -> None:
    """
    Send a transactional email.

    Raises EmailDeliveryError when SMTP is not configured or delivery fails;
    callers decide whether that is fatal.
    """
    if not settings.SMTP_HOST or not settings.SMTP_USER:
        raise EmailDeliveryError("SMTP is not configured")

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = f"NoteIt <{settings.EMAIL_FROM}>"
    msg["To"] = to

    if plain_body:
        msg.attach(MIMEText(plain_body, "plain", "utf-8"))
    msg.attach(MIMEText(
        f'<div style="font-family: Arial, sans-serif; font-size: 16px; color: #222;">{html_body}</div>',
        "html",
        "utf-8",
    ))

    try:
        with _build_smtp_connection() as conn:
            conn.sendmail(settings.EMAIL_FROM, [to], msg.as_string())
    except (smtplib.SMTPException, OSError) as exc:
        logger.error(f"[Email] Failed to send '{subject}' to {to}: {exc}")
        raise EmailDeliveryError(str(exc)) from exc

    logger.info(f"[Email] Sent '{subject}' → {to}")


# ── Convenience senders ───────────────────────────────────────────────────────

def build_verification_link(token: str) -> str:
    return f"{settings.BASE_URL}{settings.API_PREFIX}/auth/verify-email?token={token}"


def send_verification_email(to: str, username: str, verification_link: str) -> None:
    """Send the welcome email carrying the email verification link."""
    subject = "Welcome to the Markdown Note-Taking"
    html_body = f"""
  <h1>Hi {html.escape(username)},</h1>
  <p>Welcome to NoteIt! We're excited to have you on board.</p>
  <p>Please verify your email by clicking the link below.
     The link expires in <strong>1 hour</strong>.</p>
  <p><a href="{verification_link}">Verify Email</a></p>
  <p>Or copy and paste this link into your browser:<br>{verification_link}</p>
  <p>Happy jotting!<br>The NoteIt Team</p>
"""
    plain_body = (
        f"Hi {username},\n\n"
        f"Welcome to NoteIt! Verify your email within 1 hour:\n{verification_link}\n\n"
        f"Happy jotting!\nThe NoteIt Team"
    )
    send_email(to, html_body, subject, plain_body)
