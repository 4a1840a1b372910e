"""Error types for prism-did.

Structural problems with the identifier string surface as these exceptions.
Problems inside nested messages never do; they only reduce the set of keys
that a decode yields.
"""


class PrismDIDError(Exception):
    """Base exception for prism-did operations."""


class InvalidSchemeError(PrismDIDError):
    """Identifier does not start with the expected scheme prefix."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Invalid DID scheme: {message}")


class NotLongFormError(PrismDIDError):
    """Identifier carries no encoded state segment."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Not a long-form DID: {message}")


class MalformedEncodingError(PrismDIDError):
    """Encoded state is not valid base64url."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Malformed encoding: {message}")


class DecodeError(PrismDIDError):
    """Binary state could not be walked."""


class TruncatedBufferError(DecodeError):
    """A reader ran past the end of the available bytes."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Truncated buffer: {message}")


class VarintOverflowError(DecodeError):
    """A varint used more continuation bytes than allowed."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Varint overflow: {message}")


class SerializationError(PrismDIDError):
    """Serialization or canonicalization failed."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Serialization error: {message}")


class KeyConversionError(PrismDIDError):
    """Raw key bytes could not be turned into a key object."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Key error: {message}")
