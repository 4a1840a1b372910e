"""PRISM DID - Python SDK.

Decode long-form PRISM DIDs and extract the public keys embedded in them.

Example:
    >>> from prism_did import KeyUsage, parse_long_form_did
    >>> parsed = parse_long_form_did(did_string)
    >>> key = parsed.find_key(KeyUsage.KEY_AGREEMENT_KEY, "x25519")
    >>> key.public_key
    'hSDwCYkwp1R0i33ctD73Wg2_Og0mOBr066SpjqqbTmo'
"""

from prism_did.config import DEFAULT_SETTINGS, DecoderSettings
from prism_did.did import (
    ParsedIdentifier,
    PrismDid,
    build_long_form_did,
    compute_state_hash,
    is_long_form_did,
    parse_long_form_did,
)
from prism_did.encoding import b64url_decode, b64url_encode
from prism_did.errors import (
    DecodeError,
    InvalidSchemeError,
    KeyConversionError,
    MalformedEncodingError,
    NotLongFormError,
    PrismDIDError,
    SerializationError,
    TruncatedBufferError,
    VarintOverflowError,
)
from prism_did.keys import (
    KeyRecord,
    KeyUsage,
    UnrecognizedUsage,
    find_key_by_usage_and_curve,
    parse_usage,
)
from prism_did.lookup import (
    KeyPairExtraction,
    extract_ed25519_key,
    extract_key_pair_for_sensitive_operations,
    extract_x25519_key,
    find_key,
    list_all_keys,
)

__version__ = "0.1.0"

__all__ = [
    # Core
    "PrismDid",
    "ParsedIdentifier",
    "parse_long_form_did",
    "is_long_form_did",
    "build_long_form_did",
    "compute_state_hash",
    # Keys
    "KeyRecord",
    "KeyUsage",
    "UnrecognizedUsage",
    "parse_usage",
    # Lookup
    "KeyPairExtraction",
    "find_key",
    "find_key_by_usage_and_curve",
    "list_all_keys",
    "extract_ed25519_key",
    "extract_x25519_key",
    "extract_key_pair_for_sensitive_operations",
    # Encoding
    "b64url_decode",
    "b64url_encode",
    # Config
    "DecoderSettings",
    "DEFAULT_SETTINGS",
    # Errors
    "PrismDIDError",
    "InvalidSchemeError",
    "NotLongFormError",
    "MalformedEncodingError",
    "DecodeError",
    "TruncatedBufferError",
    "VarintOverflowError",
    "SerializationError",
    "KeyConversionError",
]
