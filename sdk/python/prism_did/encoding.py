"""Text encodings for identifier state and public keys.

- base64url (RFC 4648 section 5, unpadded) for the encoded DID state
- multibase base58btc (``z`` prefix) for displaying public keys
"""

import base64
import binascii
import re

import base58

from prism_did.errors import MalformedEncodingError

# Multibase prefix for base58btc
BASE58BTC_PREFIX = "z"

_BASE64URL_PATTERN = re.compile(r"^[A-Za-z0-9_-]*$")


def b64url_encode(data: bytes) -> str:
    """Encode bytes as unpadded base64url."""
    return base64.b64encode(bytes(data)).decode("ascii").replace("+", "-").replace("/", "_").rstrip("=")


def b64url_decode(value: str) -> bytes:
    """Decode an unpadded (or padded) base64url string.

    Raises:
        MalformedEncodingError: If the input uses characters outside the
            base64url alphabet or has an impossible length.
    """
    stripped = value.rstrip("=")
    if not _BASE64URL_PATTERN.match(stripped):
        raise MalformedEncodingError("characters outside the base64url alphabet")
    if len(stripped) % 4 == 1:
        raise MalformedEncodingError(f"length {len(stripped)} cannot be padded to a multiple of 4")

    standard = stripped.replace("-", "+").replace("_", "/")
    standard += "=" * (-len(standard) % 4)

    try:
        return base64.b64decode(standard, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedEncodingError(f"invalid base64: {exc}") from exc


def multibase_encode(data: bytes) -> str:
    """Encode bytes as multibase base58btc (``z`` prefix)."""
    return BASE58BTC_PREFIX + base58.b58encode(bytes(data)).decode("ascii")


def multibase_decode(value: str) -> bytes:
    """Decode a multibase base58btc string.

    Raises:
        MalformedEncodingError: If the prefix or base58 payload is invalid.
    """
    if not value.startswith(BASE58BTC_PREFIX):
        raise MalformedEncodingError("must use base58btc encoding (z prefix)")
    try:
        return base58.b58decode(value[1:])
    except ValueError as exc:
        raise MalformedEncodingError(f"invalid base58 encoding: {exc}") from exc
