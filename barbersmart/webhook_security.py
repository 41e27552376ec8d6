"""
Webhook Security Module

Signature checks for the payment gateway webhooks (Stripe, Mercado Pago, Asaas).
"""

import hashlib
import hmac
import logging
import time
from typing import Optional

logger = logging.getLogger(__name__)

# Maximum age of webhook in seconds (5 minutes)
MAX_WEBHOOK_AGE_SECONDS = 300


def constant_time_compare(a: Optional[str], b: Optional[str]) -> bool:
    if not a or not b:
        return False
    return hmac.compare_digest(a, b)


def compute_hmac_sha256(secret: str, payload: bytes) -> str:
    """Compute HMAC-SHA256 signature of payload"""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def parse_signature_header(header: Optional[str]) -> dict[str, str]:
    """Split "t=123,v1=abc" style headers into a dict; later duplicates win"""
    parts = {}
    for item in (header or "").split(","):
        key, sep, value = item.strip().partition("=")
        if sep:
            parts[key.strip()] = value.strip()
    return parts


def verify_timestamp(
    timestamp: Optional[str], max_age: int = MAX_WEBHOOK_AGE_SECONDS, now: Optional[float] = None
) -> bool:
    """Reject missing, malformed or stale timestamps (seconds or milliseconds since epoch)"""
    if not timestamp:
        return False
    try:
        ts = int(timestamp)
    except (TypeError, ValueError):
        logger.warning(f"⚠️ Invalid webhook timestamp: {timestamp}")
        return False
    if ts > 10**12:
        ts //= 1000
    age = (now if now is not None else time.time()) - ts
    if abs(age) > max_age:
        logger.warning(f"⚠️ Webhook timestamp out of range: {age:.0f}s")
        return False
    return True


def verify_stripe_signature(body: bytes, header: Optional[str], secret: str, now: Optional[float] = None) -> bool:
    """Stripe signs "{t}.{body}" and sends it as Stripe-Signature: t=...,v1=..."""
    parts = parse_signature_header(header)
    timestamp = parts.get("t")
    if not verify_timestamp(timestamp, now=now):
        return False
    expected = compute_hmac_sha256(secret, f"{timestamp}.".encode("utf-8") + body)
    return constant_time_compare(expected, parts.get("v1"))


def verify_mercadopago_signature(
    header: Optional[str], request_id: Optional[str], data_id: Optional[str], secret: str
) -> bool:
    """Mercado Pago signs the manifest "id:{data.id};request-id:{x-request-id};ts:{ts};" """
    parts = parse_signature_header(header)
    timestamp = parts.get("ts")
    if not timestamp:
        return False
    manifest = ""
    if data_id:
        manifest += f"id:{str(data_id).lower()};"
    if request_id:
        manifest += f"request-id:{request_id};"
    manifest += f"ts:{timestamp};"
    expected = compute_hmac_sha256(secret, manifest.encode("utf-8"))
    return constant_time_compare(expected, parts.get("v1"))


def verify_asaas_token(received: Optional[str], expected: str) -> bool:
    """Asaas sends the configured token back in the asaas-access-token header"""
    return constant_time_compare(received, expected)
