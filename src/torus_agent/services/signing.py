"""Verification of wallet-signed payloads."""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from torus_agent.core.errors import InvalidSignatureError, MalformedPayloadError
from torus_agent.core.security import verify_wallet_signature
from torus_agent.schemas.auth import SignedPayload


@dataclass(frozen=True)
class VerifiedPayload:
    """A payload whose signature was checked against the claimed address."""

    document: dict[str, Any]
    address: str


def decode_hex(value: str) -> bytes:
    """Decode a hex string, with or without a `0x` prefix."""
    cleaned = value.strip()
    if cleaned[:2].lower() == "0x":
        cleaned = cleaned[2:]
    return bytes.fromhex(cleaned)


class SignatureVerifier:
    """Checks wallet signatures and decodes the signed JSON document."""

    def verify(self, signed: SignedPayload) -> VerifiedPayload:
        """Verify `signed` and return the decoded document.

        Raises:
            InvalidSignatureError: If the signature, or the address it is
                checked against, is invalid or malformed.
            MalformedPayloadError: If the payload is not hex encoded JSON object.
        """
        try:
            signature = decode_hex(signed.signature)
        except ValueError as err:
            raise InvalidSignatureError("Signature is not valid hex") from err
        try:
            payload = decode_hex(signed.payload)
        except ValueError as err:
            raise MalformedPayloadError("Payload is not valid hex") from err

        if not verify_wallet_signature(signed.address, payload, signature):
            raise InvalidSignatureError(f"Invalid signature for {signed.address}")

        return VerifiedPayload(document=self.decode(payload), address=signed.address)

    @staticmethod
    def decode(payload: bytes) -> dict[str, Any]:
        """Parse payload bytes as a JSON object."""
        try:
            document = json.loads(payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as err:
            raise MalformedPayloadError(f"Payload is not JSON: {err}") from err
        if not isinstance(document, dict):
            raise MalformedPayloadError("Payload must be a JSON object")
        return document
