"""Public keys embedded in a PRISM DID.

Security:
- Only public material is ever decoded; nothing here touches secrets
- Conversions to key objects go through PyNaCl (libsodium bindings)
- Raw bytes are kept as-is; curve names are lowercased for comparison
"""

import enum
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from nacl.exceptions import CryptoError
from nacl.public import PublicKey
from nacl.signing import VerifyKey

from prism_did.encoding import b64url_encode, multibase_encode
from prism_did.errors import KeyConversionError

logger = logging.getLogger(__name__)

CURVE_ED25519 = "ed25519"
CURVE_X25519 = "x25519"
CURVE_SECP256K1 = "secp256k1"

# Curves whose public key is fully described by the x coordinate alone
SINGLE_COORDINATE_CURVES = frozenset({CURVE_ED25519, CURVE_X25519})

# Multicodec prefixes (varint-encoded) used for did:key style multibase
_MULTICODEC_PREFIXES = {
    CURVE_ED25519: bytes([0xED, 0x01]),
    CURVE_X25519: bytes([0xEC, 0x01]),
    CURVE_SECP256K1: bytes([0xE7, 0x01]),
}


class KeyUsage(enum.IntEnum):
    """Purpose assigned to a key in the DID creation state."""

    UNKNOWN_KEY = 0
    MASTER_KEY = 1
    ISSUING_KEY = 2
    KEY_AGREEMENT_KEY = 3
    AUTHENTICATION_KEY = 4
    REVOCATION_KEY = 5
    CAPABILITY_INVOCATION_KEY = 6
    CAPABILITY_DELEGATION_KEY = 7


@dataclass(frozen=True, slots=True)
class UnrecognizedUsage:
    """A usage value outside the KeyUsage enumeration."""

    value: int

    @property
    def name(self) -> str:
        return f"UNKNOWN({self.value})"

    def __int__(self) -> int:
        return self.value


Usage = KeyUsage | UnrecognizedUsage


def parse_usage(value: int) -> Usage:
    """Map a raw usage number to KeyUsage, preserving unknown values."""
    try:
        return KeyUsage(value)
    except ValueError:
        return UnrecognizedUsage(value)


def normalize_curve(curve: str | None) -> str | None:
    if curve is None:
        return None
    return curve.strip().lower()


@dataclass(frozen=True, slots=True)
class KeyRecord:
    """A public key decoded from a DID's creation state.

    Attributes:
        id: Key identifier within the DID (e.g. "auth-1").
        usage: Declared usage; unknown numbers stay as UnrecognizedUsage.
        curve: Lowercased curve name, if the entry carried one.
        public_key_bytes: Raw public key bytes.
    """

    id: str
    usage: Usage
    curve: str | None
    public_key_bytes: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "curve", normalize_curve(self.curve))
        object.__setattr__(self, "public_key_bytes", bytes(self.public_key_bytes))

    @property
    def usage_name(self) -> str:
        return self.usage.name

    @property
    def public_key(self) -> str:
        """Public key as unpadded base64url."""
        return b64url_encode(self.public_key_bytes)

    @property
    def public_key_hex(self) -> str:
        return self.public_key_bytes.hex()

    @property
    def public_key_multibase(self) -> str:
        """Multicodec-prefixed base58btc key, as used by did:key.

        Curves without a known multicodec are encoded without a prefix.
        """
        prefix = _MULTICODEC_PREFIXES.get(self.curve or "", b"")
        return multibase_encode(prefix + self.public_key_bytes)

    def matches_curve(self, curve: str) -> bool:
        """Case-insensitive curve comparison."""
        return self.curve is not None and self.curve == normalize_curve(curve)

    def to_verify_key(self) -> VerifyKey:
        """Get an Ed25519 verifying key for this record.

        Raises:
            KeyConversionError: If the key is not a 32-byte Ed25519 key.
        """
        if self.curve != CURVE_ED25519:
            raise KeyConversionError(f"{self.id} is a {self.curve} key, not {CURVE_ED25519}")
        try:
            return VerifyKey(self.public_key_bytes)
        except (CryptoError, ValueError, TypeError) as exc:
            raise KeyConversionError(f"{self.id}: {exc}") from exc

    def to_box_public_key(self) -> PublicKey:
        """Get an X25519 public key usable with nacl.public.Box.

        Raises:
            KeyConversionError: If the key is not a 32-byte X25519 key.
        """
        if self.curve != CURVE_X25519:
            raise KeyConversionError(f"{self.id} is a {self.curve} key, not {CURVE_X25519}")
        try:
            return PublicKey(self.public_key_bytes)
        except (CryptoError, ValueError, TypeError) as exc:
            raise KeyConversionError(f"{self.id}: {exc}") from exc

    def to_dict(self) -> dict:
        """JSON-friendly summary, without the raw bytes."""
        return {
            "id": self.id,
            "usage": int(self.usage),
            "usageName": self.usage_name,
            "curve": self.curve,
            "publicKey": self.public_key,
            "publicKeyHex": self.public_key_hex,
            "publicKeyMultibase": self.public_key_multibase,
        }

    def __repr__(self) -> str:
        fingerprint = self.public_key_hex[:8]
        return f"KeyRecord(id={self.id!r}, usage={self.usage_name}, curve={self.curve}, pubkey={fingerprint}...)"


def find_key_by_usage_and_curve(keys: Iterable[KeyRecord], usage: Usage | int, curve: str) -> KeyRecord | None:
    """Find the key with the given usage and curve.

    Real-world DIDs sometimes tag a correctly typed key with the wrong
    usage, so when no key matches both, the first key of the requested curve
    is returned instead.

    Args:
        keys: Keys in DID order.
        usage: Wanted usage (KeyUsage or raw number).
        curve: Wanted curve, compared case-insensitively.

    Returns:
        The matching key, or None if no key has the requested curve.
    """
    wanted = parse_usage(int(usage))
    candidates = [key for key in keys if key.matches_curve(curve)]

    for key in candidates:
        if key.usage == wanted:
            return key

    if candidates:
        fallback = candidates[0]
        logger.info(
            "No %s key tagged %s; using %s key %s (usage %s)",
            normalize_curve(curve),
            wanted.name,
            fallback.curve,
            fallback.id,
            fallback.usage_name,
        )
        return fallback

    return None
