import logging
import smtplib
import ssl
from datetime import datetime
from email.mime.text import MIMEText

from booking_backend.core import config

logger = logging.getLogger(__name__)


def _open_smtp_connection() -> smtplib.SMTP:
    if config.SMTP_PORT == 465:
        server = smtplib.SMTP_SSL(config.SMTP_HOST, config.SMTP_PORT, context=ssl.create_default_context(), timeout=10)
    else:
        server = smtplib.SMTP(config.SMTP_HOST, config.SMTP_PORT, timeout=10)
        if config.SMTP_USE_TLS:
            server.starttls(context=ssl.create_default_context())

    if config.SMTP_USERNAME and config.SMTP_PASSWORD:
        server.login(config.SMTP_USERNAME, config.SMTP_PASSWORD)

    return server


def send_email(to: str | None, subject: str, text: str) -> bool:
    """Send a plain-text email. Returns False instead of raising on failure."""
    if not to:
        logger.info('Skipping email "%s": recipient has no address', subject)
        return False

    if not config.SMTP_HOST:
        logger.info('SMTP_HOST not configured; email to %s not sent: %s', to, subject)
        return False

    message = MIMEText(text, 'plain', 'utf-8')
    message['Subject'] = subject
    message['From'] = config.EMAIL_FROM_ADDRESS
    message['To'] = to

    try:
        with _open_smtp_connection() as server:
            server.sendmail(config.EMAIL_FROM_ADDRESS, [to], message.as_string())
    except (smtplib.SMTPException, OSError):
        logger.exception('Failed to send email to %s', to)
        return False

    logger.info('Email sent to %s: %s', to, subject)
    return True


def _format_when(start_time: datetime) -> str:
    return start_time.strftime('%Y-%m-%d at %H:%M')


def notify_appointment_approved(to: str | None, service_name: str, start_time: datetime) -> bool:
    return send_email(
        to,
        'Your appointment has been approved',
        f'Your appointment for {service_name} on {_format_when(start_time)} has been approved.',
    )


def notify_appointment_cancelled(
    to: str | None,
    service_name: str,
    start_time: datetime,
    reason: str | None = None,
) -> bool:
    text = f'Your appointment for {service_name} on {_format_when(start_time)} has been cancelled.'
    if reason:
        text += f' Reason: {reason}'
    return send_email(to, 'Your appointment has been cancelled', text)
