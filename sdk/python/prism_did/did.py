"""Long-form PRISM DID handling.

Format: did:prism:<state-hash>:<base64url(AtalaOperation)>

- state-hash: hex SHA-256 of the encoded operation bytes
- the encoded operation is the DID's creation state, so a long-form DID can
  be read without resolving it against the ledger
"""

import hashlib
import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any, Self

import canonicaljson

from prism_did.config import DEFAULT_SETTINGS, DecoderSettings
from prism_did.encoding import b64url_decode, b64url_encode
from prism_did.errors import (
    InvalidSchemeError,
    MalformedEncodingError,
    NotLongFormError,
    SerializationError,
)
from prism_did.keys import KeyRecord, Usage, find_key_by_usage_and_curve
from prism_did.messages import decode_operation, encode_operation
from prism_did.wire import FieldHook

logger = logging.getLogger(__name__)

# Shorter encoded states cannot hold a create operation
_MIN_ENCODED_STATE_LENGTH = 10


def compute_state_hash(state: bytes) -> str:
    """Hex SHA-256 of the decoded state, as committed in the DID."""
    return hashlib.sha256(state).hexdigest()


@dataclass(frozen=True, slots=True)
class ParsedIdentifier:
    """A decoded long-form DID.

    Attributes:
        did: The identifier string that was parsed.
        state_hash: Commitment hash claimed by the identifier.
        state: Decoded binary creation state.
        keys: Public keys in the order they appear in the state.
        computed_hash: SHA-256 of ``state``, or None if not checked.
    """

    did: str
    state_hash: str
    state: bytes
    keys: tuple[KeyRecord, ...]
    computed_hash: str | None = None

    @property
    def hash_matches(self) -> bool:
        """True when the claimed hash equals the recomputed one."""
        return self.computed_hash is not None and self.computed_hash == self.state_hash

    def find_key(self, usage: Usage | int, curve: str) -> KeyRecord | None:
        """Find a key by usage and curve, falling back to curve only."""
        return find_key_by_usage_and_curve(self.keys, usage, curve)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to a JSON-serializable dictionary.

        Raw state and key bytes are left out; keys are described by id,
        usage, curve and encoded public key.
        """
        return {
            "did": self.did,
            "stateHash": self.state_hash,
            "hashMatches": self.hash_matches,
            "keys": [key.to_dict() for key in self.keys],
        }

    def to_canonical_json(self) -> bytes:
        """Canonical JSON of :meth:`to_dict`, stable across runs."""
        try:
            return canonicaljson.encode_canonical_json(self.to_dict())
        except Exception as exc:
            raise SerializationError(f"canonical JSON encoding failed: {exc}") from exc

    def __iter__(self) -> Iterator[KeyRecord]:
        return iter(self.keys)

    def __repr__(self) -> str:
        return f"ParsedIdentifier({self.state_hash[:16]}..., keys={len(self.keys)})"


@dataclass(frozen=True, slots=True)
class PrismDid:
    """The textual parts of a long-form PRISM DID.

    Attributes:
        state_hash: Commitment hash segment.
        encoded_state: base64url encoded creation state.
        scheme_prefix: Prefix the DID was parsed with.
    """

    state_hash: str
    encoded_state: str
    scheme_prefix: str = DEFAULT_SETTINGS.scheme_prefix

    @classmethod
    def split(cls, did_string: str, settings: DecoderSettings = DEFAULT_SETTINGS) -> Self:
        """Split a DID string into hash and encoded state.

        Raises:
            InvalidSchemeError: If the prefix is wrong or input is not a string.
            NotLongFormError: If there is no encoded state segment.
        """
        prefix = settings.scheme_prefix
        if not isinstance(did_string, str):
            raise InvalidSchemeError(f"expected a string, got {type(did_string).__name__}")
        if not did_string.startswith(prefix):
            raise InvalidSchemeError(f"must start with {prefix!r}")

        parts = did_string[len(prefix) :].split(":")
        if len(parts) < 2:
            raise NotLongFormError("missing encoded state")

        # extra segments belong to the encoded state
        encoded_state = ":".join(parts[1:])
        if not encoded_state:
            raise NotLongFormError("empty encoded state")

        return cls(state_hash=parts[0], encoded_state=encoded_state, scheme_prefix=prefix)

    @classmethod
    def parse(
        cls,
        did_string: str,
        settings: DecoderSettings = DEFAULT_SETTINGS,
        on_field: FieldHook | None = None,
    ) -> ParsedIdentifier:
        """Parse a long-form DID and decode its public keys.

        Args:
            did_string: A did:prism:<hash>:<state> string.
            settings: Decoder limits and conventions.
            on_field: Called with the field number of every field read.

        Returns:
            The decoded identifier.

        Raises:
            InvalidSchemeError: If the prefix is wrong.
            NotLongFormError: If the encoded state is missing.
            MalformedEncodingError: If the state is not valid base64url.
            TruncatedBufferError: If the outer operation is cut short.
        """
        parts = cls.split(did_string, settings)
        return parts.decode(settings=settings, on_field=on_field)

    def decode(
        self,
        settings: DecoderSettings = DEFAULT_SETTINGS,
        on_field: FieldHook | None = None,
    ) -> ParsedIdentifier:
        """Decode the encoded state. See :meth:`parse`."""
        did_string = str(self)
        if len(self.encoded_state) > settings.max_state_length:
            raise MalformedEncodingError(
                f"encoded state is {len(self.encoded_state)} characters, limit is {settings.max_state_length}"
            )

        # separators inside the encoded state are not part of the payload
        state = b64url_decode(self.encoded_state.replace(":", ""))

        computed_hash = None
        if settings.verify_state_hash:
            computed_hash = compute_state_hash(state)
            if computed_hash != self.state_hash:
                # mismatch is reported, not fatal
                logger.warning(
                    "State hash mismatch: expected %s, got %s",
                    self.state_hash,
                    computed_hash,
                )

        keys = decode_operation(state, on_field=on_field, settings=settings)
        logger.debug(
            "Decoded %d key(s) from %s...: %s",
            len(keys),
            did_string[:40],
            ", ".join(f"{key.id} ({key.usage_name}, {key.curve})" for key in keys),
        )

        return ParsedIdentifier(
            did=did_string,
            state_hash=self.state_hash,
            state=state,
            keys=tuple(keys),
            computed_hash=computed_hash,
        )

    def __str__(self) -> str:
        return f"{self.scheme_prefix}{self.state_hash}:{self.encoded_state}"


def parse_long_form_did(
    did_string: str,
    settings: DecoderSettings = DEFAULT_SETTINGS,
    on_field: FieldHook | None = None,
) -> ParsedIdentifier:
    """Parse a long-form DID. See :meth:`PrismDid.parse`."""
    return PrismDid.parse(did_string, settings=settings, on_field=on_field)


def is_long_form_did(did_string: object, settings: DecoderSettings = DEFAULT_SETTINGS) -> bool:
    """Check whether a value looks like a long-form DID. Never raises."""
    if not isinstance(did_string, str) or not did_string.startswith(settings.scheme_prefix):
        return False
    parts = did_string[len(settings.scheme_prefix) :].split(":")
    return len(parts) >= 2 and len(parts[1]) > _MIN_ENCODED_STATE_LENGTH


def build_long_form_did(
    keys: Iterable[KeyRecord],
    settings: DecoderSettings = DEFAULT_SETTINGS,
) -> str:
    """Build a long-form DID whose creation state holds ``keys``.

    Keys are written as compressed key data. The state hash is the SHA-256
    of the encoded state, so the result parses with a matching hash.
    """
    state = encode_operation(list(keys))
    did = PrismDid(
        state_hash=compute_state_hash(state),
        encoded_state=b64url_encode(state),
        scheme_prefix=settings.scheme_prefix,
    )
    return str(did)
