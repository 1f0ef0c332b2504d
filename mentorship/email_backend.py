import logging

import requests
from django.conf import settings
from django.core.mail.backends.base import BaseEmailBackend

logger = logging.getLogger(__name__)


class ResendEmailBackend(BaseEmailBackend):
    """
    Django email backend delivering through the Resend HTTP API.

    Without RESEND_API_KEY nothing is sent; a warning is logged instead so
    local setups keep working.
    """

    def send_messages(self, email_messages):
        if not email_messages:
            return 0

        api_key = settings.RESEND_API_KEY
        if not api_key:
            logger.warning("RESEND_API_KEY not set, email service not configured; skipping delivery")
            return 0

        sent = 0
        for message in email_messages:
            payload = {
                'from': message.from_email or settings.DEFAULT_FROM_EMAIL,
                'to': list(message.to),
                'subject': message.subject,
                'text': message.body,
            }
            for content, mimetype in getattr(message, 'alternatives', []):
                if mimetype == 'text/html':
                    payload['html'] = content
            if message.cc:
                payload['cc'] = list(message.cc)
            if message.reply_to:
                payload['reply_to'] = list(message.reply_to)

            try:
                response = requests.post(
                    settings.RESEND_API_URL,
                    json=payload,
                    headers={'Authorization': f'Bearer {api_key}'},
                    timeout=settings.OUTBOUND_TIMEOUT_SECONDS,
                )
                response.raise_for_status()
            except requests.RequestException as e:
                logger.error(f"Resend delivery to {message.to} failed: {e}")
                if not self.fail_silently:
                    raise
                continue

            logger.info(f"Email '{message.subject}' sent to {message.to} (id: {response.json().get('id')})")
            sent += 1
        return sent
