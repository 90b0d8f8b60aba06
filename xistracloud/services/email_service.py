"""
Email service for XistraCloud.

Sends transactional emails (team invitations for now) over SMTP. Messages
go out from a background thread so the request never waits on the mail
server; a missing MAIL_USERNAME / MAIL_PASSWORD just logs and skips.

Usage:
    from xistracloud.services.email_service import send_email

    send_email(
        to="user@example.com",
        subject="You're invited",
        template="emails/team_invite.html",
        context={"invite_url": url},
    )
"""

import logging
import smtplib
import threading
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from flask import current_app, render_template

logger = logging.getLogger(__name__)


def _send_smtp(app, msg):
    """Deliver a prepared message. Runs inside its own app context."""
    with app.app_context():
        host = app.config.get("MAIL_SMTP_HOST", "smtp.gmail.com")
        port = app.config.get("MAIL_SMTP_PORT", 587)
        username = app.config.get("MAIL_USERNAME")
        password = app.config.get("MAIL_PASSWORD")

        if not username or not password:
            logger.warning("Email not sent: MAIL_USERNAME or MAIL_PASSWORD not configured.")
            return False

        try:
            with smtplib.SMTP(host, port, timeout=30) as server:
                server.ehlo()
                server.starttls()
                server.ehlo()
                server.login(username, password)
                server.send_message(msg)
            logger.info(f"Email sent to {msg['To']}: {msg['Subject']}")
            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {msg['To']}: {e}")
            return False


def build_message(to, subject, template, context=None, reply_to=None):
    app = current_app._get_current_object()
    from_name = app.config.get("MAIL_FROM_NAME", "XistraCloud")
    from_email = app.config.get("MAIL_FROM_ADDRESS") or app.config.get("MAIL_USERNAME") or ""

    html_body = render_template(template, **(context or {}))

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = f"{from_name} <{from_email}>"
    msg["To"] = to if isinstance(to, str) else ", ".join(to)
    if reply_to:
        msg["Reply-To"] = reply_to
    msg.attach(MIMEText(html_body, "html"))
    return msg


def send_email(to, subject, template, context=None, reply_to=None):
    """Render ``template`` and send it in a background thread."""
    app = current_app._get_current_object()
    msg = build_message(to, subject, template, context, reply_to)

    thread = threading.Thread(target=_send_smtp, args=(app, msg))
    thread.daemon = True
    thread.start()
