"""Shared fixtures: real Ed25519/X25519 public keys wrapped as KeyRecords."""

import pytest
from nacl.public import PrivateKey
from nacl.signing import SigningKey

from prism_did import KeyRecord, KeyUsage


@pytest.fixture
def ed25519_public_key() -> bytes:
    return bytes(SigningKey(b"1" * 32).verify_key)


@pytest.fixture
def x25519_public_key() -> bytes:
    return bytes(PrivateKey(b"2" * 32).public_key)


@pytest.fixture
def auth_key(ed25519_public_key: bytes) -> KeyRecord:
    return KeyRecord(
        id="auth-1",
        usage=KeyUsage.AUTHENTICATION_KEY,
        curve="ed25519",
        public_key_bytes=ed25519_public_key,
    )


@pytest.fixture
def agreement_key(x25519_public_key: bytes) -> KeyRecord:
    return KeyRecord(
        id="key-agreement-1",
        usage=KeyUsage.KEY_AGREEMENT_KEY,
        curve="x25519",
        public_key_bytes=x25519_public_key,
    )


@pytest.fixture
def master_key() -> KeyRecord:
    return KeyRecord(
        id="master0",
        usage=KeyUsage.MASTER_KEY,
        curve="secp256k1",
        public_key_bytes=b"\x02" + b"\x11" * 32,
    )
