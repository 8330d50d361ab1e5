"""URL presigning and verification.

Signs a full URI with an expiring HMAC-SHA256, for out-of-band delivery of
store objects. Query parameter names follow the AWS SigV4 query-string
naming scheme:

- X-Amx-Date: UTC signing instant, compact ISO 8601 (YYYYMMDDTHHMMSSZ)
- X-Amx-Expiration: validity window in seconds (at most 30 days)
- X-Amx-Signature: percent-encoded Base64 of the MAC

Canonical form: the URI with its query re-encoded in key order after the
date and expiration parameters are set, before the signature is added.

SECURITY: Never log signing keys or full signed URLs.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
from datetime import UTC, datetime, timedelta
from typing import Final
from urllib.parse import parse_qsl, quote_plus, unquote_plus, urlencode, urlsplit, urlunsplit

from filestore.errors import PresignError

SIGNATURE_QUERY_NAME: Final[str] = "X-Amx-Signature"
EXPIRATION_QUERY_NAME: Final[str] = "X-Amx-Expiration"
TIME_QUERY_NAME: Final[str] = "X-Amx-Date"
TIME_FORMAT: Final[str] = "%Y%m%dT%H%M%SZ"
MAX_EXPIRATION_SECONDS: Final[int] = 86400 * 30


def _as_key(signing_key: bytes | str) -> bytes:
    if isinstance(signing_key, str):
        return signing_key.encode("utf-8")
    return signing_key


def _parse_query(query: str) -> dict[str, list[str]]:
    values: dict[str, list[str]] = {}
    for name, value in parse_qsl(query, keep_blank_values=True):
        values.setdefault(name, []).append(value)
    return values


def _encode_query(values: dict[str, list[str]]) -> str:
    """Encode query values sorted by key, preserving per-key value order."""
    return urlencode([(name, v) for name in sorted(values) for v in values[name]])


def _serialize(parts: tuple[str, str, str, str, str], values: dict[str, list[str]]) -> str:
    scheme, netloc, path, _, fragment = parts
    return urlunsplit((scheme, netloc, path, _encode_query(values), fragment))


def compute_signature(data: bytes, signing_key: bytes | str) -> bytes:
    """Compute the raw HMAC-SHA256 of data."""
    return hmac.new(key=_as_key(signing_key), msg=data, digestmod=hashlib.sha256).digest()


def presign_object(
    uri: str,
    signing_key: bytes | str,
    expiration: int,
    *,
    now: datetime | None = None,
) -> str:
    """Sign a URI and return it with the signing parameters appended.

    Any X-Amx-* parameters already present in the URI are overwritten.

    Args:
        uri: Full URI, including query parameters.
        signing_key: HMAC-SHA256 key.
        expiration: Validity window in seconds.
        now: Signing instant (defaults to the current UTC time).

    Returns:
        The signed URI.

    Raises:
        PresignError: If expiration is negative or longer than 30 days, or the
            URI cannot be parsed.

    Example:
        >>> signed = presign_object("https://test.com/p?x=1", b"key", 60)
        >>> verify_signed_object(signed, b"key")
        True
    """
    if expiration > MAX_EXPIRATION_SECONDS:
        raise PresignError("Expiration time too long")
    if expiration < 0:
        raise PresignError("Expiration time must not be negative")

    try:
        parts = urlsplit(uri)
    except ValueError as e:
        raise PresignError(f"Unable to parse URI: {e}", cause=e) from e

    signed_at = (now or datetime.now(UTC)).astimezone(UTC)
    values = _parse_query(parts.query)
    values.pop(SIGNATURE_QUERY_NAME, None)
    values[TIME_QUERY_NAME] = [signed_at.strftime(TIME_FORMAT)]
    values[EXPIRATION_QUERY_NAME] = [str(expiration)]

    signature = compute_signature(_serialize(parts, values).encode("utf-8"), signing_key)
    encoded = quote_plus(base64.b64encode(signature).decode("ascii"))
    values[SIGNATURE_QUERY_NAME] = [encoded]

    return _serialize(parts, values)


def _verify_signature(parts: tuple[str, str, str, str, str], signing_key: bytes | str) -> bool:
    values = _parse_query(parts[3])
    url_signature = values.pop(SIGNATURE_QUERY_NAME, None)
    if not url_signature:
        return False
    try:
        signature = base64.b64decode(unquote_plus(url_signature[0]), validate=True)
    except (binascii.Error, ValueError):
        return False

    expected = compute_signature(_serialize(parts, values).encode("utf-8"), signing_key)
    return hmac.compare_digest(signature, expected)


def _verify_expiration(query: str, now: datetime) -> bool:
    values = _parse_query(query)
    try:
        signed_at = datetime.strptime(values[TIME_QUERY_NAME][0], TIME_FORMAT).replace(tzinfo=UTC)
        seconds = int(values[EXPIRATION_QUERY_NAME][0])
    except (KeyError, IndexError, ValueError):
        return False
    return signed_at + timedelta(seconds=seconds) > now


def verify_signed_object(
    uri: str,
    signing_key: bytes | str,
    *,
    now: datetime | None = None,
) -> bool:
    """Verify a URI produced by presign_object().

    The signature must match and the expiry (date + expiration seconds) must
    be strictly after now. Any parse, decode or absence failure yields False.

    Args:
        uri: Signed URI.
        signing_key: HMAC-SHA256 key used when signing.
        now: Verification instant (defaults to the current UTC time).

    Returns:
        True if both signature and expiration check out, False otherwise.
    """
    try:
        parts = urlsplit(uri)
    except ValueError:
        return False

    current = (now or datetime.now(UTC)).astimezone(UTC)
    signature_ok = _verify_signature(parts, signing_key)
    time_ok = _verify_expiration(parts.query, current)
    return signature_ok and time_ok
