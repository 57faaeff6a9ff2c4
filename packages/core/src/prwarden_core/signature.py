"""GitHub webhook signature verification."""

from __future__ import annotations

import hashlib
import hmac

from prwarden_core.errors import AuthenticationError

_PREFIX = "sha256="


def compute_signature(payload: bytes, secret: str) -> str:
    """Return the `sha256=<hex>` header value GitHub would send for this payload."""
    digest = hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()
    return _PREFIX + digest


def verify_signature(payload: bytes, signature: str | None, secret: str) -> bool:
    """Check an X-Hub-Signature-256 header against the raw request body.

    The payload must be the exact bytes received, before any JSON parsing:
    a re-serialised body differs in whitespace and key order and will not
    match. Never raises: a missing, malformed or wrong signature, or an empty
    secret, all yield False.
    """
    if not signature or not secret or not signature.startswith(_PREFIX):
        return False
    expected = compute_signature(payload, secret)
    # compare_digest rejects non-ASCII str input with TypeError; compare bytes instead.
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8", errors="replace"))


def require_signature(payload: bytes, signature: str | None, secret: str) -> None:
    """Raise AuthenticationError unless verify_signature accepts the request."""
    if not signature:
        raise AuthenticationError("Missing X-Hub-Signature-256 header")
    if not verify_signature(payload, signature, secret):
        raise AuthenticationError("Signature does not match payload")
