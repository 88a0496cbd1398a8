import logging
import secrets
import smtplib
from collections.abc import Iterable
from email.message import EmailMessage

from advo.core.config import settings

logger = logging.getLogger(__name__)

# First digit of a US zip code to a representative state.
ZIP_PREFIX_STATES = {
    "0": "NY",
    "1": "NY",
    "2": "VA",
    "3": "FL",
    "4": "MI",
    "5": "TX",
    "6": "IL",
    "7": "TX",
    "8": "CO",
    "9": "CA",
}


def derive_state_from_zipcode(zipcode: str | None) -> str | None:
    if not zipcode:
        return None
    return ZIP_PREFIX_STATES.get(zipcode.strip()[:1])


def values_overlap(stored: Iterable[str] | None, wanted: Iterable[str]) -> bool:
    """Case-insensitive "has some" test between a stored list column and filter values."""
    stored_set = {str(v).strip().lower() for v in (stored or []) if str(v).strip()}
    return any(str(w).strip().lower() in stored_set for w in wanted)


def generate_otp() -> str:
    return f"{secrets.randbelow(900000) + 100000}"


def send_email(*, email_to: str, subject: str, text: str, html: str | None = None) -> None:
    if not settings.emails_enabled:
        raise RuntimeError("No SMTP host or sender address configured")
    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = f"{settings.EMAILS_FROM_NAME} <{settings.EMAILS_FROM_EMAIL}>"
    message["To"] = email_to
    message.set_content(text)
    if html:
        message.add_alternative(html, subtype="html")

    smtp_cls = smtplib.SMTP_SSL if settings.SMTP_SSL else smtplib.SMTP
    with smtp_cls(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as server:
        if settings.SMTP_TLS and not settings.SMTP_SSL:
            server.starttls()
        if settings.SMTP_USER and settings.SMTP_PASSWORD:
            server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
        server.send_message(message)
    logger.info("Sent '%s' email to %s", subject, email_to)


def send_otp_email(*, email_to: str, otp: str) -> bool:
    minutes = settings.OTP_EXPIRE_MINUTES
    text = f"Your verification code is: {otp}. It will expire in {minutes} minutes."
    html = (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        '<h2 style="text-align: center;">Your Verification Code</h2>'
        f'<h1 style="font-size: 32px; letter-spacing: 5px; text-align: center;">{otp}</h1>'
        f'<p style="text-align: center;">This code will expire in {minutes} minutes.</p>'
        '<p style="text-align: center; font-size: 12px;">'
        "If you didn't request this code, please ignore this email.</p>"
        "</div>"
    )
    try:
        send_email(email_to=email_to, subject="Your Verification Code", text=text, html=html)
    except (OSError, smtplib.SMTPException, RuntimeError) as e:
        logger.error("Error sending OTP email to %s: %s", email_to, e)
        return False
    return True
