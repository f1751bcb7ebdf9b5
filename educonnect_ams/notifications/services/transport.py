"""
notifications/services/transport.py

Email transport. Uses the configured Django email backend (SMTP in
production, console in development, locmem in tests).
"""

import logging
from smtplib import SMTPException

from django.conf import settings
from django.core.mail import BadHeaderError, EmailMultiAlternatives

from reminders.exceptions import TransportError

logger = logging.getLogger(__name__)


def send_email(*, recipient, subject, body_text, body_html="", from_email=None):
    """
    Send one email. Any backend failure is raised as TransportError
    so the delivery queue can retry it.
    """
    message = EmailMultiAlternatives(
        subject=subject,
        body=body_text,
        from_email=from_email or settings.DEFAULT_FROM_EMAIL,
        to=[recipient],
    )
    if body_html:
        message.attach_alternative(body_html, "text/html")

    try:
        sent = message.send(fail_silently=False)
    except (SMTPException, BadHeaderError, OSError) as exc:
        raise TransportError(f"{exc.__class__.__name__}: {exc}") from exc

    if sent != 1:
        raise TransportError("email backend accepted no message")

    logger.info("Email sent to %s (%s)", recipient, subject)
