# commerce/core/email_client.py
"""
SMTP transport for order notification mails.

Configuration comes from Settings (SMTP_* in .env):

    SMTP_HOST=smtp.example.com
    SMTP_PORT=587
    SMTP_USERNAME=orders@example.com
    SMTP_PASSWORD=<app password>
    SMTP_FROM_EMAIL=orders@example.com
    SMTP_FROM_NAME=Catalogue Orders
    SMTP_USE_TLS=true
    SMTP_USE_SSL=false
"""
from __future__ import annotations

import smtplib
from email.message import EmailMessage

from commerce.core.config import Settings, get_settings


def is_configured(settings: Settings | None = None) -> bool:
    settings = settings or get_settings()
    return bool(settings.SMTP_HOST and settings.SMTP_USERNAME and settings.SMTP_PASSWORD)


def sender_address(settings: Settings | None = None) -> str:
    """
    "Catalogue Orders <orders@example.com>"; the bare username when no
    SMTP_FROM_EMAIL is set.
    """
    settings = settings or get_settings()
    from_email = settings.SMTP_FROM_EMAIL or settings.SMTP_USERNAME or ""
    if settings.SMTP_FROM_EMAIL:
        return f"{settings.SMTP_FROM_NAME} <{from_email}>"
    return from_email


def build_order_message(
    to_email: str,
    subject: str,
    text_body: str,
    settings: Settings | None = None,
) -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = sender_address(settings)
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(text_body)
    return msg


def _create_smtp_client(settings: Settings) -> smtplib.SMTP:
    """
      - SMTP_USE_SSL  -> smtplib.SMTP_SSL (commonly port 465)
      - otherwise     -> smtplib.SMTP, upgraded with STARTTLS if SMTP_USE_TLS
    """
    if settings.SMTP_USE_SSL:
        return smtplib.SMTP_SSL(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30)

    server = smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30)
    if settings.SMTP_USE_TLS:
        server.starttls()
    return server


def send_order_email(
    to_email: str,
    subject: str,
    text_body: str,
    settings: Settings | None = None,
) -> None:
    """
    Send one order notification.

    Raises
    ------
    RuntimeError:
        If SMTP_HOST, SMTP_USERNAME or SMTP_PASSWORD is missing.
    smtplib.SMTPException:
        If the connection or the send fails.
    """
    settings = settings or get_settings()
    if not is_configured(settings):
        raise RuntimeError(
            "SMTP is not configured. Set SMTP_HOST, SMTP_USERNAME and SMTP_PASSWORD in .env."
        )

    msg = build_order_message(to_email, subject, text_body, settings)
    server = _create_smtp_client(settings)
    try:
        server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)  # type: ignore[arg-type]
        server.send_message(msg)
    finally:
        try:
            server.quit()
        except smtplib.SMTPException:
            pass
