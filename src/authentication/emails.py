"""Transactional emails: account verification and password reset."""

import logging

from django.conf import settings
from django.core.mail import send_mail

logger = logging.getLogger(__name__)

VERIFICATION_SUBJECT = "StoryNest - Email Verification"
RESET_SUBJECT = "StoryNest - Password Reset"

_VERIFICATION_HTML = """\
<div style="font-family: sans-serif; padding: 20px;">
  <h2>Welcome to StoryNest!</h2>
  <p>Thank you for registering. Please click the button below to verify your email address:</p>
  <a href="{url}" target="_blank" style="background-color: #ca8a04; color: white; padding: 12px 24px; text-decoration: none; border-radius: 5px; display: inline-block; font-size: 16px;">
    Verify My Email
  </a>
  <p style="margin-top: 20px;">This link will expire in 24 hours.</p>
  <p>If you did not create this account, please ignore this email.</p>
</div>
"""

_VERIFICATION_TEXT = """\
Welcome to StoryNest!
Please copy and paste the following URL into your browser to verify your email address:

{url}

This link will expire in 24 hours.
"""

_RESET_HTML = """\
<div style="font-family: sans-serif; padding: 20px;">
  <h2>Reset your StoryNest password</h2>
  <p>You requested a password reset. Click the button below to choose a new password:</p>
  <a href="{url}" target="_blank" style="background-color: #ca8a04; color: white; padding: 12px 24px; text-decoration: none; border-radius: 5px; display: inline-block; font-size: 16px;">
    Reset Password
  </a>
  <p style="margin-top: 20px;">This link will expire in 10 minutes.</p>
  <p>If you did not request this, please ignore this email.</p>
</div>
"""

_RESET_TEXT = """\
You requested a password reset. Open the following URL to choose a new password:

{url}

This link will expire in 10 minutes.
"""


def verification_url(token: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/verify-email/{token}"


def reset_password_url(token: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/reset-password/{token}"


def _deliver(recipient: str, subject: str, text: str, html: str) -> None:
    """Send a plain-text message with an HTML alternative; errors propagate."""
    send_mail(
        subject,
        text,
        settings.DEFAULT_FROM_EMAIL,
        [recipient],
        html_message=html,
        fail_silently=False,
    )
    logger.info("Sent '%s' email to %s", subject, recipient)


def send_verification_email(user, token: str) -> None:
    url = verification_url(token)
    _deliver(user.email, VERIFICATION_SUBJECT, _VERIFICATION_TEXT.format(url=url), _VERIFICATION_HTML.format(url=url))


def send_password_reset_email(user, token: str) -> None:
    url = reset_password_url(token)
    _deliver(user.email, RESET_SUBJECT, _RESET_TEXT.format(url=url), _RESET_HTML.format(url=url))


__all__ = [
    "send_verification_email",
    "send_password_reset_email",
    "verification_url",
    "reset_password_url",
]
