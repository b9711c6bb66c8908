"""Utilities for authenticating inbound webhook and Slack requests."""

from __future__ import annotations

import hmac
import time
from hashlib import sha256

from nest_notifier.models import AuthenticationError


SLACK_SIGNATURE_HEADER = "X-Slack-Signature"
SLACK_TIMESTAMP_HEADER = "X-Slack-Request-Timestamp"
WEBHOOK_SECRET_HEADER = "X-Webhook-Secret"
VERSION = "v0"
DEFAULT_TOLERANCE = 60 * 5  # five minutes


def constant_time_equals(expected: str, supplied: str) -> bool:
    """Compare two strings without short-circuiting on the first differing byte."""

    return hmac.compare_digest(expected.encode("utf-8"), supplied.encode("utf-8"))


def verify_webhook_secret(*, configured: str | None, supplied: str | None) -> None:
    """Raise :class:`AuthenticationError` unless *supplied* matches the configured secret."""

    if not configured:
        raise AuthenticationError("webhook secret is not configured")
    if not supplied:
        raise AuthenticationError("webhook secret header missing")
    if not constant_time_equals(configured, supplied):
        raise AuthenticationError("webhook secret mismatch")


def is_valid_webhook_secret(*, configured: str | None, supplied: str | None) -> bool:
    """Return True when the automation's shared secret checks out."""

    try:
        verify_webhook_secret(configured=configured, supplied=supplied)
    except AuthenticationError:
        return False
    return True


def compute_signature(signing_secret: str, timestamp: str, body: str) -> str:
    """Return Slack-compatible signature for the provided payload."""

    basestring = f"{VERSION}:{timestamp}:{body}".encode("utf-8")
    secret = signing_secret.encode("utf-8")
    digest = hmac.new(secret, basestring, sha256).hexdigest()
    return f"{VERSION}={digest}"


def verify_slack_request(
    *, signing_secret: str, timestamp: str, body: str, signature: str, tolerance: int = DEFAULT_TOLERANCE
) -> None:
    """Validate Slack signature and timestamp to guard against replay attacks.

    *body* must be the raw request body exactly as received; re-serialised
    form data will not match the signature.
    """

    if not signing_secret:
        raise AuthenticationError("signing secret is not configured")
    if not timestamp or not signature:
        raise AuthenticationError("signature headers missing")

    try:
        request_ts = int(timestamp)
    except (TypeError, ValueError) as exc:
        raise AuthenticationError("timestamp is not an integer") from exc

    current_ts = int(time.time())
    if abs(current_ts - request_ts) > tolerance:
        raise AuthenticationError("timestamp outside tolerance window")

    expected = compute_signature(signing_secret, timestamp, body)
    if not constant_time_equals(expected, signature):
        raise AuthenticationError("signature mismatch")


def is_valid_slack_request(
    *, signing_secret: str, timestamp: str, body: str, signature: str, tolerance: int = DEFAULT_TOLERANCE
) -> bool:
    """Return True when :func:`verify_slack_request` accepts the request."""

    try:
        verify_slack_request(
            signing_secret=signing_secret,
            timestamp=timestamp,
            body=body,
            signature=signature,
            tolerance=tolerance,
        )
    except AuthenticationError:
        return False
    return True
