"""Tests for protobuf wire primitives and the field walker."""

import logging

import pytest

from prism_did import DecoderSettings, TruncatedBufferError, VarintOverflowError
from prism_did.wire import (
    FieldTag,
    StopReason,
    WireType,
    encode_length_delimited,
    encode_tag,
    encode_varint,
    encode_varint_field,
    read_length_delimited,
    read_varint,
    walk_message,
)

VARINT_VECTORS = [
    (0, b"\x00"),
    (1, b"\x01"),
    (127, b"\x7f"),
    (128, b"\x80\x01"),
    (150, b"\x96\x01"),
    (300, b"\xac\x02"),
    (2**32 - 1, b"\xff\xff\xff\xff\x0f"),
    (2**64 - 1, b"\xff" * 9 + b"\x01"),
]


class TestVarint:
    @pytest.mark.parametrize(("value", "encoded"), VARINT_VECTORS)
    def test_encode(self, value: int, encoded: bytes) -> None:
        """Known varint encodings."""
        assert encode_varint(value) == encoded

    @pytest.mark.parametrize(("value", "encoded"), VARINT_VECTORS)
    def test_read(self, value: int, encoded: bytes) -> None:
        """Reading returns the value and the bytes consumed."""
        assert read_varint(encoded) == (value, len(encoded))

    def test_read_at_offset(self) -> None:
        """Reading starts at the given offset and ignores trailing bytes."""
        assert read_varint(b"\xff\x96\x01\x05", 1) == (150, 2)

    def test_encode_negative(self) -> None:
        """Negative values cannot be encoded."""
        with pytest.raises(ValueError, match="non-negative"):
            encode_varint(-1)

    def test_truncated(self) -> None:
        """A continuation bit at the end of the buffer is truncation."""
        with pytest.raises(TruncatedBufferError, match="offset 0"):
            read_varint(b"\x80\x80")

    def test_offset_past_end(self) -> None:
        """Reading at the end of the buffer is truncation."""
        with pytest.raises(TruncatedBufferError):
            read_varint(b"\x01", 1)

    def test_overflow(self) -> None:
        """More than ten groups is rejected rather than silently wrapped."""
        with pytest.raises(VarintOverflowError, match="exceeds 10 bytes"):
            read_varint(b"\xff" * 11)

    def test_custom_limit(self) -> None:
        """The byte limit is configurable."""
        with pytest.raises(VarintOverflowError, match="exceeds 2 bytes"):
            read_varint(b"\xff\xff\x01", max_bytes=2)


class TestLengthDelimited:
    def test_read(self) -> None:
        """Payload and header-plus-payload size are returned."""
        payload, consumed = read_length_delimited(b"\x03abcdef")

        assert bytes(payload) == b"abc"
        assert consumed == 4

    def test_read_at_offset(self) -> None:
        """Offset points at the length prefix."""
        payload, consumed = read_length_delimited(b"\x00\x02hi", 1)

        assert bytes(payload) == b"hi"
        assert consumed == 3

    def test_payload_is_view(self) -> None:
        """Payload is a view, not a copy."""
        payload, _ = read_length_delimited(b"\x01z")

        assert isinstance(payload, memoryview)

    def test_truncated_payload(self) -> None:
        """Declared length past the end of the buffer is truncation."""
        with pytest.raises(TruncatedBufferError, match="declares 5 bytes, 2 available"):
            read_length_delimited(b"\x05ab")

    def test_encode(self) -> None:
        """Strings are UTF-8 encoded behind tag and length."""
        assert encode_length_delimited(1, "auth-1") == b"\x0a\x06auth-1"


class TestFieldTag:
    def test_split(self) -> None:
        """Tag splits into field number and wire type."""
        tag = FieldTag.from_varint(0x4A)

        assert tag.field_number == 9
        assert tag.wire_type == WireType.LENGTH_DELIMITED
        assert tag.supported

    def test_unsupported(self) -> None:
        """Fixed-width wire types are recognized but unsupported."""
        assert not FieldTag.from_varint((3 << 3) | 5).supported

    def test_encode_multi_byte_tag(self) -> None:
        """Field 16 needs a two byte tag."""
        assert encode_tag(16, WireType.VARINT) == b"\x80\x01"


class TestWalkMessage:
    def test_dispatch(self) -> None:
        """Length-delimited and varint fields go to their handlers."""
        message = encode_length_delimited(1, b"x") + encode_varint_field(2, 150)
        payloads: list[tuple[int, bytes]] = []
        varints: list[tuple[int, int]] = []

        result = walk_message(
            message,
            lambda number, payload: payloads.append((number, bytes(payload))),
            on_varint=lambda number, value: varints.append((number, value)),
        )

        assert payloads == [(1, b"x")]
        assert varints == [(2, 150)]
        assert result.complete
        assert result.fields_read == 2
        assert result.bytes_consumed == len(message)

    def test_varint_skipped_without_handler(self) -> None:
        """Varint fields are consumed even when nobody wants them."""
        message = encode_varint_field(5, 2**40) + encode_length_delimited(1, b"after")
        payloads: list[bytes] = []

        result = walk_message(message, lambda number, payload: payloads.append(bytes(payload)))

        assert payloads == [b"after"]
        assert result.complete

    def test_field_hook(self) -> None:
        """The notification hook sees every field number."""
        message = encode_length_delimited(3, b"") + encode_varint_field(7, 1) + encode_length_delimited(1, b"a")
        seen: list[int] = []

        walk_message(message, lambda number, payload: None, on_field=seen.append)

        assert seen == [3, 7, 1]

    def test_empty(self) -> None:
        """An empty message is complete with no fields."""
        result = walk_message(b"", lambda number, payload: None)

        assert result.complete
        assert result.fields_read == 0

    def test_unsupported_wire_type_stops(self, caplog: pytest.LogCaptureFixture) -> None:
        """Unsupported wire types end the walk but keep earlier fields."""
        message = (
            encode_length_delimited(1, b"a")
            + bytes([(3 << 3) | 5])
            + b"\x00\x00\x00\x00"
            + encode_length_delimited(2, b"b")
        )
        payloads: list[int] = []

        with caplog.at_level(logging.WARNING, logger="prism_did.wire"):
            result = walk_message(message, lambda number, payload: payloads.append(number))

        assert payloads == [1]
        assert result.stop_reason is StopReason.UNSUPPORTED_WIRE_TYPE
        assert result.fields_read == 1
        assert "Unsupported wire type 5 for field 3" in caplog.text

    def test_truncated_stops(self) -> None:
        """Truncation ends a lenient walk with the fields read so far."""
        message = encode_length_delimited(1, b"a") + b"\x12\x05ab"
        payloads: list[int] = []

        result = walk_message(message, lambda number, payload: payloads.append(number))

        assert payloads == [1]
        assert result.stop_reason is StopReason.TRUNCATED
        assert result.bytes_consumed == 3

    def test_truncated_strict_raises(self) -> None:
        """Strict walks propagate truncation."""
        message = encode_length_delimited(1, b"a") + b"\x12\x05ab"

        with pytest.raises(TruncatedBufferError):
            walk_message(message, lambda number, payload: None, strict=True)

    def test_oversized_tag_stops(self) -> None:
        """An overlong varint tag ends a lenient walk."""
        settings = DecoderSettings(max_varint_bytes=3)
        message = encode_length_delimited(1, b"a") + b"\xff\xff\xff\xff\x01"

        result = walk_message(message, lambda number, payload: None, settings=settings)

        assert result.stop_reason is StopReason.OVERSIZED_VARINT
        assert result.fields_read == 1
