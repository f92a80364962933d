"""
Razorpay gateway access
Client construction and the two signature checks Razorpay relies on
"""

import hashlib
import hmac
import logging
from typing import Optional

import razorpay
from razorpay.errors import SignatureVerificationError

from examprep.core import config

logger = logging.getLogger(__name__)

_client: Optional[razorpay.Client] = None


def get_razorpay_client() -> razorpay.Client:
    """FastAPI dependency; one client per process"""
    global _client
    if _client is None:
        _client = razorpay.Client(auth=(config.RAZORPAY_KEY_ID, config.RAZORPAY_KEY_SECRET))
    return _client


def _hmac_sha256(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def sign_payment(order_id: str, payment_id: str, secret: Optional[str] = None) -> str:
    """Checkout signature: HMAC-SHA256(key_secret, "<order_id>|<payment_id>")"""
    secret = config.RAZORPAY_KEY_SECRET if secret is None else secret
    return _hmac_sha256(secret, f"{order_id}|{payment_id}".encode())


def verify_payment_signature(order_id: str, payment_id: str, signature: str) -> bool:
    if not config.RAZORPAY_KEY_SECRET:
        logger.error("RAZORPAY_KEY_SECRET is not configured; rejecting payment signature")
        return False
    expected = sign_payment(order_id, payment_id)
    return hmac.compare_digest(expected, signature or "")


def verify_webhook_signature(client: razorpay.Client, body: bytes, signature: str) -> bool:
    """Webhook signature: HMAC-SHA256(webhook_secret, raw request body), checked by razorpay's utility"""
    if not config.RAZORPAY_WEBHOOK_SECRET:
        logger.error("RAZORPAY_WEBHOOK_SECRET is not configured; rejecting webhook")
        return False
    try:
        client.utility.verify_webhook_signature(
            body.decode(errors="replace"),
            signature or "",
            config.RAZORPAY_WEBHOOK_SECRET
        )
    except SignatureVerificationError as e:
        logger.warning("Webhook signature verification failed: %s", e)
        return False
    return True
