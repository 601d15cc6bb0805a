"""Webhook signature verification (GitHub ``X-Hub-Signature-256`` scheme)."""

from __future__ import annotations

import hashlib
import hmac

SIGNATURE_HEADER = "X-Hub-Signature-256"
SIGNATURE_PREFIX = "sha256="


def sign_payload(payload: bytes, secret: str) -> str:
    """Return the ``sha256=<hex>`` header value for *payload* keyed by *secret*."""
    digest = hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(payload: bytes, signature: str, secret: str) -> bool:
    """Check *signature* against the HMAC-SHA256 of *payload*.

    Only the ``sha256=`` scheme is accepted; any other or missing prefix is
    rejected before hashing.  The comparison is constant-time and runs over
    bytes, so a header carrying non-ASCII characters is rejected instead of
    raising.
    """
    if not signature.startswith(SIGNATURE_PREFIX):
        return False
    claimed = signature[len(SIGNATURE_PREFIX) :]
    expected = hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()
    return hmac.compare_digest(claimed.encode(errors="replace"), expected.encode())
