"""
Outgoing mail for one-time login codes.

With no SMTP_HOST configured the code is written to the log instead, which is
how codes are read during local development.
"""

import smtplib
from email.message import EmailMessage

from fastapi import HTTPException, status
from starlette.concurrency import run_in_threadpool

from macsync.core.config import get_settings
from macsync.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


def _send_message(message: EmailMessage) -> None:
    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10) as smtp:
        smtp.starttls()
        if settings.SMTP_USER:
            smtp.login(settings.SMTP_USER, settings.SMTP_PASSWORD or "")
        smtp.send_message(message)


async def send_verification_code(email: str, code: str) -> None:
    if not settings.SMTP_HOST:
        logger.info("verification_code_not_mailed", email=email, code=code)
        return

    message = EmailMessage()
    message["Subject"] = f"Your {settings.APP_NAME} login code"
    message["From"] = settings.EMAIL_FROM or settings.SMTP_USER or f"no-reply@{settings.ALLOWED_EMAIL_DOMAIN}"
    message["To"] = email
    message.set_content(
        f"Your login code is {code}.\n\n"
        f"It expires in {settings.VERIFICATION_CODE_EXPIRE_MINUTES} minutes."
    )

    try:
        await run_in_threadpool(_send_message, message)
    except (smtplib.SMTPException, OSError) as e:
        logger.error("verification_email_failed", email=email, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Could not send verification code",
        )

    logger.info("verification_email_sent", email=email)
