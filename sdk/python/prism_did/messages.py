"""Decoders for the PRISM create-DID operation.

Message layout (field numbers)::

    AtalaOperation {
      CreateDIDOperation create_did = 1 {
        DIDCreationData did_data = 1 {
          repeated PublicKey public_keys = 2;
          repeated Service services = 3;       // not decoded
        }
      }
    }

    PublicKey {
      string id = 1;
      KeyUsage usage = 2;
      ECKeyData ec_key_data = 8;                        // curve=1, x=2, y=3
      CompressedECKeyData compressed_ec_key_data = 9;  // curve=1, data=2
    }

Each decoder walks only its own message and hands nested payloads to the
next layer. Only the outer envelope is walked strictly; a damaged nested
message yields fewer keys instead of an error.
"""

import logging
from dataclasses import dataclass

from prism_did.config import DEFAULT_SETTINGS, DecoderSettings
from prism_did.errors import DecodeError
from prism_did.keys import SINGLE_COORDINATE_CURVES, KeyRecord, normalize_curve, parse_usage
from prism_did.wire import (
    Buffer,
    FieldHook,
    encode_length_delimited,
    encode_varint_field,
    walk_message,
)

logger = logging.getLogger(__name__)

OPERATION_CREATE_DID = 1
CREATE_DID_DATA = 1
CREATION_DATA_PUBLIC_KEYS = 2
CREATION_DATA_SERVICES = 3
PUBLIC_KEY_ID = 1
PUBLIC_KEY_USAGE = 2
PUBLIC_KEY_EC_KEY_DATA = 8
PUBLIC_KEY_COMPRESSED_EC_KEY_DATA = 9
KEY_DATA_CURVE = 1
KEY_DATA_X = 2
KEY_DATA_Y = 3

SEC1_UNCOMPRESSED_PREFIX = b"\x04"


@dataclass(frozen=True, slots=True)
class KeyMaterial:
    """Curve name and key bytes from a key-data sub-message."""

    curve: str | None
    data: bytes | None


def _decode_text(payload: memoryview) -> str | None:
    try:
        return bytes(payload).decode("utf-8")
    except UnicodeDecodeError:
        return None


def decode_compressed_key_data(
    buffer: Buffer,
    *,
    on_field: FieldHook | None = None,
    settings: DecoderSettings = DEFAULT_SETTINGS,
) -> KeyMaterial:
    """Decode CompressedECKeyData (curve at 1, key bytes at 2)."""
    curve: str | None = None
    data: bytes | None = None

    def handle(field_number: int, payload: memoryview) -> None:
        nonlocal curve, data
        if field_number == KEY_DATA_CURVE:
            curve = _decode_text(payload)
        elif field_number == KEY_DATA_X:
            data = bytes(payload)

    walk_message(buffer, handle, on_field=on_field, settings=settings)
    return KeyMaterial(curve=curve, data=data)


def decode_ec_key_data(
    buffer: Buffer,
    *,
    on_field: FieldHook | None = None,
    settings: DecoderSettings = DEFAULT_SETTINGS,
) -> KeyMaterial:
    """Decode legacy ECKeyData (curve at 1, x at 2, y at 3).

    For Ed25519/X25519 the x coordinate is the whole key and y is dropped.
    For other named curves with both coordinates the SEC1 uncompressed point
    (0x04 || x || y) is returned. Without a curve name x is returned as is.
    """
    curve: str | None = None
    x: bytes | None = None
    y: bytes | None = None

    def handle(field_number: int, payload: memoryview) -> None:
        nonlocal curve, x, y
        if field_number == KEY_DATA_CURVE:
            curve = _decode_text(payload)
        elif field_number == KEY_DATA_X:
            x = bytes(payload)
        elif field_number == KEY_DATA_Y:
            y = bytes(payload)

    walk_message(buffer, handle, on_field=on_field, settings=settings)

    if (
        x is not None
        and y is not None
        and curve is not None
        and normalize_curve(curve) not in SINGLE_COORDINATE_CURVES
    ):
        return KeyMaterial(curve=curve, data=SEC1_UNCOMPRESSED_PREFIX + x + y)
    return KeyMaterial(curve=curve, data=x)


def decode_public_key(
    buffer: Buffer,
    *,
    on_field: FieldHook | None = None,
    settings: DecoderSettings = DEFAULT_SETTINGS,
) -> KeyRecord | None:
    """Decode one PublicKey entry.

    Returns:
        A KeyRecord, or None when the id, usage or key bytes are missing.
    """
    key_id: str | None = None
    usage: int | None = None
    material = KeyMaterial(curve=None, data=None)
    bad_id = False

    def handle(field_number: int, payload: memoryview) -> None:
        nonlocal key_id, material, bad_id
        if field_number == PUBLIC_KEY_ID:
            key_id = _decode_text(payload)
            bad_id = key_id is None
        elif field_number == PUBLIC_KEY_COMPRESSED_EC_KEY_DATA:
            material = decode_compressed_key_data(payload, on_field=on_field, settings=settings)
        elif field_number == PUBLIC_KEY_EC_KEY_DATA:
            material = decode_ec_key_data(payload, on_field=on_field, settings=settings)

    def handle_varint(field_number: int, value: int) -> None:
        nonlocal usage
        if field_number == PUBLIC_KEY_USAGE:
            usage = value

    walk_message(buffer, handle, on_varint=handle_varint, on_field=on_field, settings=settings)

    if not key_id or usage is None or material.data is None:
        logger.debug(
            "Dropping incomplete public key entry (id=%r, usage=%r, curve=%r, has_data=%s, bad_id=%s)",
            key_id,
            usage,
            material.curve,
            material.data is not None,
            bad_id,
        )
        return None

    return KeyRecord(
        id=key_id,
        usage=parse_usage(usage),
        curve=material.curve,
        public_key_bytes=material.data,
    )


def decode_creation_data(
    buffer: Buffer,
    *,
    on_field: FieldHook | None = None,
    settings: DecoderSettings = DEFAULT_SETTINGS,
) -> list[KeyRecord]:
    """Decode DIDCreationData, returning its public keys in order.

    Service entries (CREATION_DATA_SERVICES) are skipped.
    """
    keys: list[KeyRecord] = []

    def handle(field_number: int, payload: memoryview) -> None:
        if field_number == CREATION_DATA_PUBLIC_KEYS:
            key = decode_public_key(payload, on_field=on_field, settings=settings)
            if key is not None:
                keys.append(key)

    walk_message(buffer, handle, on_field=on_field, settings=settings)
    return keys


def decode_create_operation(
    buffer: Buffer,
    *,
    on_field: FieldHook | None = None,
    settings: DecoderSettings = DEFAULT_SETTINGS,
) -> list[KeyRecord]:
    """Decode CreateDIDOperation."""
    keys: list[KeyRecord] = []

    def handle(field_number: int, payload: memoryview) -> None:
        if field_number == CREATE_DID_DATA:
            keys.extend(decode_creation_data(payload, on_field=on_field, settings=settings))

    walk_message(buffer, handle, on_field=on_field, settings=settings)
    return keys


def decode_operation(
    buffer: Buffer,
    *,
    on_field: FieldHook | None = None,
    settings: DecoderSettings = DEFAULT_SETTINGS,
) -> list[KeyRecord]:
    """Decode the outer AtalaOperation envelope.

    Damage after a complete create_did field ends the walk and keeps the keys
    already decoded.

    Raises:
        TruncatedBufferError: If the envelope is cut short before create_did
            could be read.
        VarintOverflowError: If an envelope tag or length is oversized before
            create_did could be read.
    """
    keys: list[KeyRecord] = []
    create_did_seen = False

    def handle(field_number: int, payload: memoryview) -> None:
        nonlocal create_did_seen
        if field_number == OPERATION_CREATE_DID:
            create_did_seen = True
            keys.extend(decode_create_operation(payload, on_field=on_field, settings=settings))

    try:
        walk_message(buffer, handle, on_field=on_field, strict=True, settings=settings)
    except DecodeError as exc:
        if not create_did_seen:
            raise
        logger.debug("Stopped walking operation after create_did: %s", exc)
    return keys


def encode_public_key(key: KeyRecord) -> bytes:
    """Encode a KeyRecord as a PublicKey entry with compressed key data."""
    key_data = b""
    if key.curve is not None:
        key_data += encode_length_delimited(KEY_DATA_CURVE, key.curve)
    key_data += encode_length_delimited(KEY_DATA_X, key.public_key_bytes)

    return (
        encode_length_delimited(PUBLIC_KEY_ID, key.id)
        + encode_varint_field(PUBLIC_KEY_USAGE, int(key.usage))
        + encode_length_delimited(PUBLIC_KEY_COMPRESSED_EC_KEY_DATA, key_data)
    )


def encode_operation(keys: list[KeyRecord]) -> bytes:
    """Encode an AtalaOperation that creates a DID holding ``keys``."""
    creation_data = b"".join(
        encode_length_delimited(CREATION_DATA_PUBLIC_KEYS, encode_public_key(key)) for key in keys
    )
    create_did = encode_length_delimited(CREATE_DID_DATA, creation_data)
    return encode_length_delimited(OPERATION_CREATE_DID, create_did)
