"""
Idempotency fingerprint for inbound messages.
"""
import hashlib

FINGERPRINT_BODY_PREFIX = 200


def fingerprint(subject: str, body: str) -> str:
    """
    SHA-256 hex digest of the subject followed by the first 200 body characters.

    The ledger uses it as an idempotency key, so it must only depend on
    (subject, body).
    """
    content = (subject or "") + (body or "")[:FINGERPRINT_BODY_PREFIX]
    return hashlib.sha256(content.encode("utf-8")).hexdigest()
