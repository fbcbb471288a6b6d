"""Webhook body signing.

Receivers recompute ``sha256=<hex>`` over the raw request body with the
shared secret and compare it to the ``X-Vinreg-Signature`` header.
"""

from __future__ import annotations

import hashlib
import hmac

SIGNATURE_HEADER = "X-Vinreg-Signature"
_PREFIX = "sha256="


def sign_body(secret: str, body: str) -> str:
    """Compute the signature header value for *body*.

    Parameters
    ----------
    secret : str
        Shared webhook secret.
    body : str
        Exact request body that will be sent.

    Returns
    -------
    str
        ``"sha256="`` followed by the lowercase hex HMAC-SHA256 digest.
    """
    digest = hmac.new(secret.encode("utf-8"), body.encode("utf-8"), hashlib.sha256).hexdigest()
    return _PREFIX + digest


def verify_signature(secret: str, body: str, signature: str) -> bool:
    """Constant-time check of a received signature header."""
    return hmac.compare_digest(sign_body(secret, body), signature.strip())
