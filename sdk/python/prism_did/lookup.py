"""Key lookups on DID strings.

The functions here take a DID string, parse it, and pick keys by usage and
curve. ``list_all_keys`` propagates parse errors; the ``extract_*`` helpers
log them and return None, so a caller can treat "unparseable" and "no such
key" alike.
"""

import logging
from dataclasses import dataclass

from prism_did.config import DEFAULT_SETTINGS, DecoderSettings
from prism_did.did import parse_long_form_did
from prism_did.errors import PrismDIDError
from prism_did.keys import (
    CURVE_ED25519,
    CURVE_X25519,
    KeyRecord,
    KeyUsage,
    Usage,
    find_key_by_usage_and_curve,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class KeyPairExtraction:
    """Signing and key-agreement keys found in one DID.

    Attributes:
        ed25519: Authentication key, if found.
        x25519: Key-agreement key, if found.
    """

    ed25519: KeyRecord | None
    x25519: KeyRecord | None

    @property
    def complete(self) -> bool:
        """True when both keys were found."""
        return self.ed25519 is not None and self.x25519 is not None

    def to_dict(self) -> dict:
        return {
            "ed25519": self.ed25519.to_dict() if self.ed25519 else None,
            "x25519": self.x25519.to_dict() if self.x25519 else None,
            "complete": self.complete,
        }


def list_all_keys(did_string: str, settings: DecoderSettings = DEFAULT_SETTINGS) -> list[KeyRecord]:
    """All keys in the DID, in order, including unrecognized usages.

    Raises:
        PrismDIDError: If the DID cannot be parsed.
    """
    return list(parse_long_form_did(did_string, settings=settings).keys)


def find_key(
    did_string: str,
    usage: Usage | int,
    curve: str,
    settings: DecoderSettings = DEFAULT_SETTINGS,
) -> KeyRecord | None:
    """Parse a DID and find a key by usage and curve.

    Raises:
        PrismDIDError: If the DID cannot be parsed.
    """
    return find_key_by_usage_and_curve(list_all_keys(did_string, settings), usage, curve)


def _extract(did_string: str, usage: KeyUsage, curve: str, settings: DecoderSettings) -> KeyRecord | None:
    try:
        parsed = parse_long_form_did(did_string, settings=settings)
    except PrismDIDError as exc:
        logger.error("Error extracting %s key: %s", curve, exc)
        return None

    key = parsed.find_key(usage, curve)
    if key is None:
        logger.warning(
            "No %s key found in DID. Available keys: %s",
            curve,
            [f"{k.id} ({k.usage_name}, {k.curve})" for k in parsed.keys],
        )
        return None

    logger.info("Found %s key %s (%s)", curve, key.id, key.usage_name)
    return key


def extract_x25519_key(did_string: str, settings: DecoderSettings = DEFAULT_SETTINGS) -> KeyRecord | None:
    """Key-agreement X25519 key, or any X25519 key, or None."""
    return _extract(did_string, KeyUsage.KEY_AGREEMENT_KEY, CURVE_X25519, settings)


def extract_ed25519_key(did_string: str, settings: DecoderSettings = DEFAULT_SETTINGS) -> KeyRecord | None:
    """Authentication Ed25519 key, or any Ed25519 key, or None."""
    return _extract(did_string, KeyUsage.AUTHENTICATION_KEY, CURVE_ED25519, settings)


def extract_key_pair_for_sensitive_operations(
    did_string: str,
    settings: DecoderSettings = DEFAULT_SETTINGS,
) -> KeyPairExtraction:
    """Look up both the Ed25519 and X25519 keys of a DID.

    Callers that exchange encrypted content require ``complete`` before
    proceeding. Never raises for a malformed DID; both keys are None instead.
    """
    result = KeyPairExtraction(
        ed25519=extract_ed25519_key(did_string, settings),
        x25519=extract_x25519_key(did_string, settings),
    )
    logger.info(
        "Key pair extraction: Ed25519=%s, X25519=%s",
        "found" if result.ed25519 else "missing",
        "found" if result.x25519 else "missing",
    )
    return result
