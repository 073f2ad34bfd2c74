# app/services/mailer.py
"""
Outbound email via SendGrid.

send_otp_email    — never raises; reports {sent, reason}. Without an API key
                    the code is logged instead (development aid).
send_reply_email  — raises ServiceUnavailable when email is not configured and
                    ServiceError(502) when SendGrid rejects the message.
"""

import asyncio

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail, MailSettings, SandBoxMode

from app.config import settings
from app.errors import ServiceError, ServiceUnavailable
from app.utils.logger import get_logger

logger = get_logger(__name__)

OTP_SUBJECTS = {
    "login": "Your login code",
    "signup": "Verify your account",
    "reset": "Reset your account access",
}


def email_enabled() -> bool:
    return bool(settings.SENDGRID_API_KEY)


def _build(to: str, sender: str, subject: str, text: str, html: str = None) -> Mail:
    msg = Mail(from_email=sender, to_emails=to, subject=subject,
               plain_text_content=text, html_content=html)
    if settings.SENDGRID_SANDBOX:
        msg.mail_settings = MailSettings(sandbox_mode=SandBoxMode(True))
    return msg


async def _send(msg: Mail):
    client = SendGridAPIClient(settings.SENDGRID_API_KEY)
    return await asyncio.to_thread(client.send, msg)


async def send_otp_email(to: str, code: str, purpose: str) -> dict:
    subject = OTP_SUBJECTS.get(purpose, "Your one-time code")
    ttl = settings.OTP_TTL_MINUTES
    text = f"Your OTP code is {code}. It will expire in {ttl} minutes."
    html = (f"<div style=\"font-family:Arial,sans-serif\"><h2>{subject}</h2>"
            f"<p>Your OTP code is:</p><div style=\"font-size:28px;font-weight:bold\">{code}</div>"
            f"<p>This code will expire in {ttl} minutes.</p></div>")

    if not email_enabled():
        logger.info(f"[MAIL] SendGrid disabled, OTP for {to} ({purpose}): {code}")
        return {"sent": False, "reason": "sendgrid_disabled"}

    try:
        await _send(_build(to, settings.SENDER_EMAIL, subject, text, html))
    except Exception as e:
        logger.error(f"[MAIL] OTP email to {to} failed: {e}")
        return {"sent": False, "reason": "send_failed"}
    logger.info(f"[MAIL] OTP email sent to {to}")
    return {"sent": True, "reason": None}


async def send_reply_email(to: str, reply_text: str):
    if not email_enabled():
        raise ServiceUnavailable("Email service not configured (missing SENDGRID_API_KEY)",
                                 reason="email_not_configured")
    sender = settings.SUPPORT_EMAIL or settings.SENDER_EMAIL
    if not sender:
        raise ServiceUnavailable("Email sender not configured", reason="email_sender_missing")

    try:
        await _send(_build(to, sender, "Re: Your message", reply_text))
    except Exception as e:
        logger.error(f"[MAIL] Reply to {to} failed: {e}")
        raise ServiceError("Failed to send email", reason="email_send_failed", status_code=502)
    logger.info(f"[MAIL] Reply sent to {to}")
