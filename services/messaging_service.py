# services/messaging_service.py
import asyncio
import logging
import smtplib
from email.message import EmailMessage

import httpx

from core.config import settings

logger = logging.getLogger(__name__)


class MessagingError(Exception):
    """Raised when a provider refuses or cannot deliver a message."""


async def send_email(to: str, subject: str, body: str) -> None:
    provider = settings.EMAIL_PROVIDER
    if provider == "smtp":
        await asyncio.to_thread(_send_smtp, to, subject, body)
    else:
        # development
        logger.info(f"[EMAIL] to={to} subject={subject!r}\n{body}")
        return
    logger.info(f"Email sent to {to}: {subject}")


def _send_smtp(to: str, subject: str, body: str) -> None:
    if not settings.SMTP_HOST:
        raise MessagingError("SMTP_HOST is not configured")

    msg = EmailMessage()
    msg["From"] = settings.EMAIL_SENDER
    msg["To"] = to
    msg["Subject"] = subject
    msg.set_content(body)

    try:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as server:
            server.starttls()
            if settings.SMTP_USERNAME:
                server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD or "")
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"SMTP delivery to {to} failed: {e}")
        raise MessagingError(str(e)) from e


async def send_sms(phone: str, message: str) -> None:
    provider = settings.SMS_PROVIDER
    if provider == "twilio":
        await _send_twilio(phone, message)
    else:
        logger.info(f"[SMS] {phone} -> {message}")
        return
    logger.info(f"SMS sent to {phone}")


async def _send_twilio(phone: str, message: str) -> None:
    sid = settings.TWILIO_ACCOUNT_SID
    if not sid or not settings.TWILIO_AUTH_TOKEN or not settings.TWILIO_PHONE_NUMBER:
        raise MessagingError("Twilio credentials are not configured")

    async with httpx.AsyncClient(timeout=15) as client:
        try:
            response = await client.post(
                f"https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json",
                data={"To": phone, "From": settings.TWILIO_PHONE_NUMBER, "Body": message},
                auth=(sid, settings.TWILIO_AUTH_TOKEN),
            )
        except httpx.HTTPError as e:
            logger.error(f"Twilio request failed: {e}")
            raise MessagingError(str(e)) from e

    if response.status_code >= 400:
        logger.error(f"Twilio error: {response.text}")
        raise MessagingError(f"Twilio returned {response.status_code}")


# ---------- message bodies ----------

def verification_email(first_name: str, code: str, link_token: str) -> str:
    link = f"{settings.FRONTEND_BASE_URL}/verify-email?token={link_token}"
    return (
        f"Hello {first_name},\n\n"
        f"Your RUNACOSS verification code is: {code}\n"
        f"This code will expire in {settings.VERIFICATION_CODE_EXPIRE_MINUTES} minutes.\n\n"
        f"You can also confirm your email address by opening this link:\n{link}\n"
        f"The link will expire in {settings.EMAIL_TOKEN_EXPIRE_HOURS} hours.\n\n"
        "If you did not create an account, please ignore this email."
    )


def password_reset_email(first_name: str, token: str) -> str:
    link = f"{settings.FRONTEND_BASE_URL}/reset-password?token={token}"
    return (
        f"Hello {first_name},\n\n"
        f"You requested to reset your password. Open this link to proceed:\n{link}\n\n"
        "This link will expire in 1 hour.\n"
        "If you did not request a password reset, please ignore this email."
    )


def two_fa_reset_email(first_name: str, code: str) -> str:
    return (
        f"Hello {first_name},\n\n"
        "You requested a password reset with two-factor authentication.\n"
        f"Your email verification code is: {code}\n\n"
        f"This code will expire in {settings.VERIFICATION_CODE_EXPIRE_MINUTES} minutes.\n"
        "You will also receive an SMS with a phone verification code."
    )


def two_fa_reset_sms(code: str) -> str:
    return (
        f"Your RUNACOSS verification code is {code}. "
        f"It expires in {settings.VERIFICATION_CODE_EXPIRE_MINUTES} minutes."
    )
