"""Redaction of sink settings for debug logs.

Broker passwords, webhook secrets and credentials embedded in URLs must
never reach a log line.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import urlsplit, urlunsplit

REDACTED = "<redacted>"

_SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "mqtt_password",
        "secret",
        "webhook_secret",
        "token",
        "authorization",
        "x-vinreg-signature",
    }
)


def redact_url(url: str) -> str:
    """Drop user info, query string and fragment from *url*."""
    parts = urlsplit(url)
    if not parts.netloc:
        return url
    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    try:
        port = parts.port
    except ValueError:
        port = None
    netloc = f"{host}:{port}" if port is not None else host
    return urlunsplit((parts.scheme, netloc, parts.path, "", ""))


def redact_for_log(settings: Mapping[str, Any], *, max_string: int = 256) -> dict[str, Any]:
    """Return a copy of *settings* that is safe to log.

    Values under sensitive keys are replaced (``None`` stays ``None`` so
    "not configured" is still visible), ``*url`` values lose their
    credentials and long strings are truncated.
    """
    redacted: dict[str, Any] = {}
    for key, value in settings.items():
        name = str(key).lower()
        if value is None:
            redacted[key] = None
        elif name in _SENSITIVE_KEYS:
            redacted[key] = REDACTED
        elif isinstance(value, str):
            if name.endswith("url"):
                value = redact_url(value)
            redacted[key] = value if len(value) <= max_string else f"{value[:max_string]}…<truncated>"
        else:
            redacted[key] = value
    return redacted
