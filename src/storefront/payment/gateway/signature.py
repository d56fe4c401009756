"""HMAC-SHA256 webhook signatures.

The signature is the lowercase hex digest of HMAC-SHA256 over the exact raw
request body, keyed with the provider secret.
"""

import hashlib
import hmac


def sign(payload: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def verify_signature(payload: bytes, signature: str | None, secret: str | None) -> bool:
    """Constant-time check of ``signature`` against the body.

    Returns False when the header or the secret is missing.
    """
    if not signature or not secret:
        return False

    expected = sign(payload, secret)
    return hmac.compare_digest(expected.encode("ascii"), signature.strip().lower().encode("utf-8"))
