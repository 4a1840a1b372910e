"""Decoder configuration.

Defaults suit PRISM long-form DIDs. Each value can be overridden from the
environment:

- PRISM_DID_SCHEME_PREFIX: identifier prefix (default ``did:prism:``)
- PRISM_DID_MAX_VARINT_BYTES: longest accepted varint (default 10)
- PRISM_DID_MAX_STATE_LENGTH: longest accepted encoded state (default 65536)
- PRISM_DID_VERIFY_STATE_HASH: recompute the commitment hash (default true)
"""

import os
from dataclasses import dataclass
from typing import Self

DEFAULT_SCHEME_PREFIX = "did:prism:"

# 64-bit values need at most 10 base-128 groups
DEFAULT_MAX_VARINT_BYTES = 10

DEFAULT_MAX_STATE_LENGTH = 64 * 1024

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value < 1:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


@dataclass(frozen=True, slots=True)
class DecoderSettings:
    """Limits and conventions applied while decoding an identifier.

    Attributes:
        scheme_prefix: Prefix every identifier must start with.
        max_varint_bytes: Varints longer than this raise VarintOverflowError.
        max_state_length: Upper bound on the encoded state, in characters.
        verify_state_hash: Recompute and compare the commitment hash.
    """

    scheme_prefix: str = DEFAULT_SCHEME_PREFIX
    max_varint_bytes: int = DEFAULT_MAX_VARINT_BYTES
    max_state_length: int = DEFAULT_MAX_STATE_LENGTH
    verify_state_hash: bool = True

    def __post_init__(self) -> None:
        if not self.scheme_prefix:
            raise ValueError("scheme_prefix must not be empty")
        if self.max_varint_bytes < 1:
            raise ValueError(f"max_varint_bytes must be positive, got {self.max_varint_bytes}")
        if self.max_state_length < 1:
            raise ValueError(f"max_state_length must be positive, got {self.max_state_length}")

    @classmethod
    def from_env(cls) -> Self:
        """Build settings from PRISM_DID_* environment variables."""
        return cls(
            scheme_prefix=os.getenv("PRISM_DID_SCHEME_PREFIX") or DEFAULT_SCHEME_PREFIX,
            max_varint_bytes=_env_int("PRISM_DID_MAX_VARINT_BYTES", DEFAULT_MAX_VARINT_BYTES),
            max_state_length=_env_int("PRISM_DID_MAX_STATE_LENGTH", DEFAULT_MAX_STATE_LENGTH),
            verify_state_hash=_env_bool("PRISM_DID_VERIFY_STATE_HASH", True),
        )


DEFAULT_SETTINGS = DecoderSettings()
