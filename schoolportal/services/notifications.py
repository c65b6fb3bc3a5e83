"""Registration confirmation email over the Resend HTTP API."""

import html
import logging

import httpx

from schoolportal.core import config

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 10.0


def render_registration_email(first_name: str, last_name: str, role: str) -> str:
    school = html.escape(config.SCHOOL_NAME)
    first = html.escape(first_name)
    last = html.escape(last_name)
    role_label = html.escape(role.replace('_', ' '))
    return (
        '<!DOCTYPE html><html><body>'
        f'<h1>{school}</h1>'
        f'<h2>Thank You for Registering, {first}!</h2>'
        f'<p>Dear {first} {last},</p>'
        f'<p>We have successfully received your registration application as a <strong>{role_label}</strong>.</p>'
        '<p>Our administration team is currently reviewing your application. '
        'This process typically takes 1-3 business days.</p>'
        '<p>You can log in to check your application status at any time.</p>'
        '</body></html>'
    )


def send_registration_email(email: str, first_name: str, last_name: str, role: str) -> bool:
    """Best effort; returns whether the provider accepted the message."""
    if not config.RESEND_API_KEY:
        logger.info('RESEND_API_KEY not configured, skipping registration email')
        return False

    payload = {
        'from': config.REGISTRATION_EMAIL_FROM,
        'to': [email],
        'subject': f'Registration Received - {config.SCHOOL_NAME}',
        'html': render_registration_email(first_name, last_name, role),
    }
    try:
        response = httpx.post(
            config.RESEND_API_URL,
            json=payload,
            headers={'Authorization': f'Bearer {config.RESEND_API_KEY}'},
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
    except httpx.HTTPError:
        logger.exception('Registration email to %s failed', email)
        return False

    logger.info('Registration email sent to %s', email)
    return True
