import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr

from flask import current_app

logger = logging.getLogger(__name__)


def email_configured() -> bool:
    return bool(current_app.config.get("SMTP_HOST") and
                (current_app.config.get("SMTP_FROM_EMAIL") or current_app.config.get("SMTP_USERNAME")))


def send_email(to_email: str, subject: str, body: str, html: str = None, sender_name: str = None):
    host = current_app.config.get("SMTP_HOST")
    port = current_app.config.get("SMTP_PORT", 587)
    username = current_app.config.get("SMTP_USERNAME")
    password = current_app.config.get("SMTP_PASSWORD")
    from_email = current_app.config.get("SMTP_FROM_EMAIL") or username
    use_tls = current_app.config.get("SMTP_USE_TLS", True)
    sender_name = sender_name or current_app.config.get("SMTP_FROM_NAME")

    if not host or not from_email:
        return False, "Email not configured"

    msg = EmailMessage()
    msg["From"] = formataddr((sender_name, from_email)) if sender_name else from_email
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(body)
    if html:
        msg.add_alternative(html, subtype="html")

    try:
        with smtplib.SMTP(host, port, timeout=10) as server:
            if use_tls:
                server.starttls()
            if username and password:
                server.login(username, password)
            server.send_message(msg)
        logger.info("Email '%s' sent to %s", subject, to_email)
        return True, None
    except (smtplib.SMTPException, OSError) as exc:
        logger.error("Email '%s' to %s failed: %s", subject, to_email, exc)
        return False, str(exc)
