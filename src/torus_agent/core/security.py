"""Wallet address and signature primitives.

Addresses use the Substrate SS58 format: base58 over a network prefix, the
32-byte public key and a two-byte BLAKE2b checksum. Wallet signatures are
sr25519 (the default for browser extension accounts) or Ed25519.
"""
from __future__ import annotations

import hashlib

import base58
import sr25519
from nacl.exceptions import BadSignatureError
from nacl.signing import VerifyKey

PUBKEY_LENGTH_BYTES = 32
SIGNATURE_LENGTH_BYTES = 64
_CHECKSUM_LENGTH = 2
_CHECKSUM_PREFIX = b"SS58PRE"
_RESERVED_FORMATS = frozenset({46, 47})
_MAX_FORMAT = 16383
_WRAP_START = b"<Bytes>"
_WRAP_END = b"</Bytes>"


def _checksum(data: bytes) -> bytes:
    return hashlib.blake2b(_CHECKSUM_PREFIX + data, digest_size=64).digest()[:_CHECKSUM_LENGTH]


def _encode_prefix(ss58_format: int) -> bytes:
    if ss58_format < 64:
        return bytes([ss58_format])
    first = ((ss58_format & 0b1111_1100) >> 2) | 0b0100_0000
    second = (ss58_format >> 8) | ((ss58_format & 0b0000_0011) << 6)
    return bytes([first, second])


def _decode_prefix(data: bytes) -> tuple[int, int]:
    """Return `(ss58_format, prefix_length)` for raw address bytes."""
    if data[0] & 0b0100_0000:
        if len(data) < 2:
            raise ValueError("Truncated SS58 prefix")
        ss58_format = ((data[0] & 0b0011_1111) << 2) | (data[1] >> 6) | ((data[1] & 0b0011_1111) << 8)
        return ss58_format, 2
    return data[0], 1


def ss58_encode(public_key: bytes, ss58_format: int = 42) -> str:
    """Encode a 32-byte public key as an SS58 address."""
    if len(public_key) != PUBKEY_LENGTH_BYTES:
        raise ValueError("Public keys must be 32 bytes")
    if not 0 <= ss58_format <= _MAX_FORMAT or ss58_format in _RESERVED_FORMATS:
        raise ValueError(f"Unsupported SS58 format: {ss58_format}")
    body = _encode_prefix(ss58_format) + public_key
    return base58.b58encode(body + _checksum(body)).decode("ascii")


def ss58_decode_with_format(address: str) -> tuple[bytes, int | None]:
    """Decode an address into its public key and SS58 format.

    A `0x`-prefixed hex public key is accepted as well; its format is None.

    Raises:
        ValueError: If the address is not a valid 32-byte account address.
    """
    cleaned = address.strip()
    if cleaned.startswith("0x"):
        try:
            key = bytes.fromhex(cleaned[2:])
        except ValueError as err:
            raise ValueError(f"Invalid hex public key: {address}") from err
        if len(key) != PUBKEY_LENGTH_BYTES:
            raise ValueError("Public keys must be 32 bytes")
        return key, None

    try:
        data = base58.b58decode(cleaned)
    except ValueError as err:
        raise ValueError(f"Invalid SS58 address: {address}") from err
    if not data:
        raise ValueError("Empty SS58 address")

    ss58_format, prefix_length = _decode_prefix(data)
    if ss58_format in _RESERVED_FORMATS:
        raise ValueError(f"Reserved SS58 format: {ss58_format}")
    if len(data) != prefix_length + PUBKEY_LENGTH_BYTES + _CHECKSUM_LENGTH:
        raise ValueError(f"Invalid SS58 address length: {address}")

    body, checksum = data[:-_CHECKSUM_LENGTH], data[-_CHECKSUM_LENGTH:]
    if _checksum(body) != checksum:
        raise ValueError(f"Invalid SS58 checksum: {address}")
    return body[prefix_length:], ss58_format


def ss58_decode(address: str) -> bytes:
    """Return the public key behind an SS58 (or hex) address."""
    public_key, _ = ss58_decode_with_format(address)
    return public_key


def is_ss58(value: str | None) -> bool:
    if not value:
        return False
    try:
        ss58_decode(value)
    except ValueError:
        return False
    return True


def canonicalize_address(address: str, ss58_format: int = 42) -> str:
    """Re-encode an address in the given network format.

    Raises:
        ValueError: If the address cannot be decoded or encoded.
    """
    return ss58_encode(ss58_decode(address), ss58_format)


def verify_sr25519(public_key: bytes, message: bytes, signature: bytes) -> bool:
    """Verify a Schnorrkel sr25519 signature; malformed input fails closed."""
    if len(public_key) != PUBKEY_LENGTH_BYTES or len(signature) != SIGNATURE_LENGTH_BYTES:
        return False
    try:
        return bool(sr25519.verify(signature, message, public_key))
    except (ValueError, TypeError):
        return False


def verify_signature(public_key: bytes, message: bytes, signature: bytes) -> bool:
    """Verify an Ed25519 signature.

    Args:
        public_key: Raw 32-byte public key.
        message: Exact bytes that were signed on the client.
        signature: Raw 64-byte signature.

    Returns:
        True if the signature is valid for `message` under `public_key`; False otherwise.
    """
    if len(public_key) != PUBKEY_LENGTH_BYTES or len(signature) != SIGNATURE_LENGTH_BYTES:
        return False
    try:
        VerifyKey(public_key).verify(message, signature)
        return True
    except (BadSignatureError, ValueError, TypeError):
        return False


def wrap_bytes(message: bytes) -> bytes:
    """Wrap a message the way browser wallet extensions do before signing."""
    if message.startswith(_WRAP_START) and message.endswith(_WRAP_END):
        return message
    return _WRAP_START + message + _WRAP_END


def verify_wallet_signature(address: str, message: bytes, signature: bytes) -> bool:
    """Check that `address` signed `message`, raw or `<Bytes>`-wrapped.

    The address does not say which scheme its key uses, so sr25519 is tried
    before Ed25519 for each message form. Malformed addresses fail closed.
    """
    try:
        public_key = ss58_decode(address)
    except ValueError:
        return False
    wrapped = wrap_bytes(message)
    candidates = [message] if wrapped == message else [message, wrapped]
    return any(
        verify(public_key, candidate, signature)
        for candidate in candidates
        for verify in (verify_sr25519, verify_signature)
    )
