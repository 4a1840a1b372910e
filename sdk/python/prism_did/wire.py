"""Protobuf wire-format primitives.

Only the two wire types used by PRISM operations are understood:

- varint (0): base-128, least significant group first, high bit = continue
- length-delimited (2): varint length followed by that many bytes

Readers take ``(buffer, offset)`` and return the decoded value together with
the number of bytes consumed, so callers advance their own cursor. Payloads
are returned as memoryview slices of the original buffer.
"""

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass

from prism_did.config import DEFAULT_SETTINGS, DecoderSettings
from prism_did.errors import DecodeError, TruncatedBufferError, VarintOverflowError

logger = logging.getLogger(__name__)

Buffer = bytes | bytearray | memoryview

LengthDelimitedHandler = Callable[[int, memoryview], None]
VarintHandler = Callable[[int, int], None]
FieldHook = Callable[[int], None]


class WireType(enum.IntEnum):
    VARINT = 0
    LENGTH_DELIMITED = 2


class StopReason(enum.Enum):
    """Why a message walk ended."""

    COMPLETE = "complete"
    UNSUPPORTED_WIRE_TYPE = "unsupported_wire_type"
    TRUNCATED = "truncated"
    OVERSIZED_VARINT = "oversized_varint"


@dataclass(frozen=True, slots=True)
class FieldTag:
    """A decoded field key: field number plus raw wire type."""

    field_number: int
    wire_type: int

    @classmethod
    def from_varint(cls, tag: int) -> "FieldTag":
        return cls(field_number=tag >> 3, wire_type=tag & 0x7)

    @property
    def supported(self) -> bool:
        return self.wire_type in (WireType.VARINT, WireType.LENGTH_DELIMITED)


@dataclass(frozen=True, slots=True)
class WalkResult:
    """Outcome of walking one message scope.

    Attributes:
        fields_read: Number of fields fully consumed.
        bytes_consumed: Offset reached before the walk stopped.
        stop_reason: COMPLETE when the whole scope was consumed.
    """

    fields_read: int
    bytes_consumed: int
    stop_reason: StopReason

    @property
    def complete(self) -> bool:
        return self.stop_reason is StopReason.COMPLETE


def read_varint(
    buffer: Buffer,
    offset: int = 0,
    max_bytes: int = DEFAULT_SETTINGS.max_varint_bytes,
) -> tuple[int, int]:
    """Read a varint starting at ``offset``.

    Returns:
        Tuple of (value, bytes_consumed).

    Raises:
        TruncatedBufferError: If the buffer ends before the last group.
        VarintOverflowError: If more than ``max_bytes`` groups are used.
    """
    result = 0
    shift = 0
    position = offset
    end = len(buffer)

    while True:
        if position >= end:
            raise TruncatedBufferError(f"varint at offset {offset} runs past end of {end}-byte buffer")
        if position - offset >= max_bytes:
            raise VarintOverflowError(f"varint at offset {offset} exceeds {max_bytes} bytes")
        byte = buffer[position]
        position += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result, position - offset
        shift += 7


def read_length_delimited(
    buffer: Buffer,
    offset: int = 0,
    max_varint_bytes: int = DEFAULT_SETTINGS.max_varint_bytes,
) -> tuple[memoryview, int]:
    """Read a length prefix and the payload that follows it.

    Returns:
        Tuple of (payload view, length prefix bytes + payload bytes).

    Raises:
        TruncatedBufferError: If the payload extends past the buffer.
    """
    length, prefix_size = read_varint(buffer, offset, max_varint_bytes)
    start = offset + prefix_size
    if start + length > len(buffer):
        raise TruncatedBufferError(
            f"field at offset {offset} declares {length} bytes, {len(buffer) - start} available"
        )
    view = memoryview(buffer)[start : start + length]
    return view, prefix_size + length


def encode_varint(value: int) -> bytes:
    """Encode a non-negative integer as a varint."""
    if value < 0:
        raise ValueError(f"varint value must be non-negative, got {value}")
    out = bytearray()
    while value >= 0x80:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value)
    return bytes(out)


def encode_tag(field_number: int, wire_type: WireType) -> bytes:
    return encode_varint((field_number << 3) | wire_type)


def encode_varint_field(field_number: int, value: int) -> bytes:
    """Encode a complete varint field (tag + value)."""
    return encode_tag(field_number, WireType.VARINT) + encode_varint(value)


def encode_length_delimited(field_number: int, payload: bytes | str) -> bytes:
    """Encode a complete length-delimited field (tag + length + payload)."""
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    payload = bytes(payload)
    return encode_tag(field_number, WireType.LENGTH_DELIMITED) + encode_varint(len(payload)) + payload


def walk_message(
    buffer: Buffer,
    on_length_delimited: LengthDelimitedHandler,
    *,
    on_varint: VarintHandler | None = None,
    on_field: FieldHook | None = None,
    strict: bool = False,
    settings: DecoderSettings = DEFAULT_SETTINGS,
) -> WalkResult:
    """Walk the fields of one message, dispatching to handlers.

    Length-delimited payloads go to ``on_length_delimited(field_number,
    payload)``. Varint values go to ``on_varint(field_number, value)`` when
    given and are skipped otherwise. ``on_field`` is called with the field
    number of every tag read.

    An unsupported wire type ends the walk. A truncated or oversized field
    ends the walk too, unless ``strict`` is set, in which case the
    DecodeError propagates. Fields handled before the stop remain valid.
    """
    offset = 0
    fields_read = 0
    end = len(buffer)
    max_bytes = settings.max_varint_bytes

    try:
        while offset < end:
            tag_value, tag_size = read_varint(buffer, offset, max_bytes)
            tag = FieldTag.from_varint(tag_value)
            if on_field is not None:
                on_field(tag.field_number)

            if not tag.supported:
                logger.warning(
                    "Unsupported wire type %d for field %d at offset %d",
                    tag.wire_type,
                    tag.field_number,
                    offset,
                )
                return WalkResult(fields_read, offset, StopReason.UNSUPPORTED_WIRE_TYPE)

            if tag.wire_type == WireType.LENGTH_DELIMITED:
                payload, consumed = read_length_delimited(buffer, offset + tag_size, max_bytes)
                offset += tag_size + consumed
                on_length_delimited(tag.field_number, payload)
            else:
                value, consumed = read_varint(buffer, offset + tag_size, max_bytes)
                offset += tag_size + consumed
                if on_varint is not None:
                    on_varint(tag.field_number, value)

            fields_read += 1
    except DecodeError as exc:
        if strict:
            raise
        logger.debug("Stopped walking message after %d fields: %s", fields_read, exc)
        if isinstance(exc, VarintOverflowError):
            return WalkResult(fields_read, offset, StopReason.OVERSIZED_VARINT)
        return WalkResult(fields_read, offset, StopReason.TRUNCATED)

    return WalkResult(fields_read, offset, StopReason.COMPLETE)
