"""
Transactional email.

Mail goes through Django's ``send_mail`` with whatever ``EMAIL_BACKEND``
is configured (console by default). Delivery problems are logged and
reported as ``False``; they never fail the request that triggered them.
"""
from __future__ import annotations

import logging
import re
import smtplib

from django.conf import settings
from django.core.mail import send_mail

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')


def validate_email_format(email: str) -> bool:
    return bool(email) and bool(_EMAIL_RE.match(email))


def _send(to: str, subject: str, body: str) -> bool:
    if not validate_email_format(to):
        logger.warning('Refusing to send "%s" to invalid address %r', subject, to)
        return False
    try:
        send_mail(subject, body, settings.FROM_EMAIL, [to], fail_silently=False)
    except (smtplib.SMTPException, OSError) as e:
        logger.warning('Email "%s" to %s failed: %s', subject, to, e)
        return False
    return True


def send_verification_email(user, token: str) -> bool:
    link = f'{settings.FRONTEND_URL}/verify-email/{token}'
    body = (
        f'Hi {user.full_name},\n\n'
        'Welcome to Blood Warriors! Please confirm your email address:\n\n'
        f'{link}\n\n'
        f'This link expires in {settings.EMAIL_VERIFICATION_HOURS} hours.\n'
    )
    return _send(user.email, 'Verify your Blood Warriors account', body)


def send_password_reset_email(user, token: str) -> bool:
    link = f'{settings.FRONTEND_URL}/reset-password?token={token}'
    body = (
        f'Hi {user.full_name},\n\n'
        'We received a request to reset your password. Use the link below:\n\n'
        f'{link}\n\n'
        f'This link expires in {settings.PASSWORD_RESET_MINUTES} minutes. '
        'If you did not ask for a reset you can ignore this email.\n'
    )
    return _send(user.email, 'Reset your Blood Warriors password', body)


def send_password_changed_email(user) -> bool:
    body = (
        f'Hi {user.full_name},\n\n'
        'Your password was just changed and all other sessions were signed out.\n'
        'If this was not you, reset your password immediately.\n'
    )
    return _send(user.email, 'Your Blood Warriors password was changed', body)


def send_login_notification(user, *, ip=None, user_agent: str = '') -> bool:
    body = (
        f'Hi {user.full_name},\n\n'
        f'New sign-in to your account from {ip or "an unknown address"} ({user_agent or "unknown device"}).\n'
    )
    return _send(user.email, 'New sign-in to Blood Warriors', body)


def send_security_alert(user, *, reason: str, ip=None) -> bool:
    body = (
        f'Hi {user.full_name},\n\n'
        f'Security alert: {reason}.\n'
        f'Source address: {ip or "unknown"}.\n'
        'If this was not you, reset your password.\n'
    )
    return _send(user.email, 'Blood Warriors security alert', body)
