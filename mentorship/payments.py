import hashlib
import hmac
import logging

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


class PaymentGatewayError(Exception):
    pass


def _auth():
    if not settings.RAZORPAY_KEY_ID or not settings.RAZORPAY_KEY_SECRET:
        raise PaymentGatewayError("Razorpay is not configured")
    return settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET


def _request(method, path, **kwargs):
    url = f"{settings.RAZORPAY_API_URL}{path}"
    try:
        response = requests.request(
            method, url, auth=_auth(), timeout=settings.OUTBOUND_TIMEOUT_SECONDS, **kwargs
        )
        response.raise_for_status()
    except requests.RequestException as e:
        logger.error(f"Razorpay {method} {path} failed: {e}")
        raise PaymentGatewayError("Payment gateway request failed") from e
    return response.json()


def create_order(amount, receipt, notes=None, currency='INR'):
    """amount is in paise."""
    order = _request('POST', '/orders', json={
        'amount': amount,
        'currency': currency,
        'receipt': receipt,
        'notes': notes or {},
    })
    logger.info(f"Razorpay order {order.get('id')} created for {amount} {currency} ({receipt})")
    return order


def fetch_payment(payment_id):
    return _request('GET', f'/payments/{payment_id}')


def _signature(secret, body):
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def verify_payment_signature(order_id, payment_id, signature):
    if not (order_id and payment_id and signature and settings.RAZORPAY_KEY_SECRET):
        return False
    expected = _signature(settings.RAZORPAY_KEY_SECRET, f"{order_id}|{payment_id}".encode())
    return hmac.compare_digest(expected, signature)


def verify_webhook_signature(body, signature):
    if not (signature and settings.RAZORPAY_WEBHOOK_SECRET):
        return False
    expected = _signature(settings.RAZORPAY_WEBHOOK_SECRET, body)
    return hmac.compare_digest(expected, signature)
