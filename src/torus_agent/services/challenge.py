"""Protocol checks applied to signed authentication challenges."""

from __future__ import annotations

import json
import logging
import secrets
from datetime import datetime, timedelta

from pydantic import ValidationError

from torus_agent.core.errors import (
    InvalidIdentityFormatError,
    InvalidPayloadError,
    NonceReusedError,
    OriginMismatchError,
    StaleChallengeError,
)
from torus_agent.core.security import canonicalize_address
from torus_agent.core.settings import CLOCK_SKEW, NONCE_WINDOW
from torus_agent.schemas.auth import ChallengeDocument, SignedPayload
from torus_agent.services.replay import NonceReplayGuard
from torus_agent.services.signing import SignatureVerifier
from torus_agent.utils.time import ensure_utc, utcnow

logger = logging.getLogger(__name__)

NONCE_BYTES = 16
DEFAULT_STATEMENT = "Sign in to authenticate with this agent."


class ChallengeValidator:
    """Turns a signed challenge into a verified wallet identity.

    Checks run in a fixed order: signature, document shape, origin,
    freshness, nonce. The nonce is only consumed once every earlier check
    has passed, so a rejected challenge leaves no trace in the guard.
    """

    def __init__(
        self,
        verifier: SignatureVerifier,
        guard: NonceReplayGuard,
        *,
        ss58_format: int = 42,
        window: timedelta = NONCE_WINDOW,
        clock_skew: timedelta = CLOCK_SKEW,
    ) -> None:
        self.verifier = verifier
        self.guard = guard
        self.ss58_format = ss58_format
        self.window = window
        self.clock_skew = clock_skew

    def validate(
        self,
        signed: SignedPayload,
        expected_origin: str,
        now: datetime | None = None,
    ) -> tuple[str, ChallengeDocument]:
        """Validate a signed challenge.

        Args:
            signed: Payload, signature and claimed address sent by the client.
            expected_origin: Origin the challenge must have been created for.
            now: Verification time; defaults to the current UTC time.

        Returns:
            The canonical SS58 address of the signer and the challenge document.

        Raises:
            AuthenticationError: One of its subclasses, naming the failed check.
        """
        now = ensure_utc(now) if now is not None else utcnow()
        verified = self.verifier.verify(signed)

        try:
            document = ChallengeDocument.model_validate(verified.document)
        except ValidationError as err:
            raise InvalidPayloadError(f"Invalid payload: {err}") from err

        if document.uri != expected_origin:
            raise OriginMismatchError(f"Invalid origin: {document.uri}")

        age = now - document.created_at
        if age > self.window:
            raise StaleChallengeError(f"Challenge is too old: {age}")
        if -age > self.clock_skew:
            raise StaleChallengeError(f"Challenge is dated in the future: {document.created_at}")

        if not self.guard.claim(document.nonce, now):
            raise NonceReusedError(f"Nonce has been used before: {document.nonce}")

        try:
            identity = canonicalize_address(verified.address, self.ss58_format)
        except ValueError as err:
            raise InvalidIdentityFormatError(str(err)) from err

        logger.debug("Verified challenge from %s", identity)
        return identity, document


def build_challenge(
    uri: str,
    statement: str = DEFAULT_STATEMENT,
    now: datetime | None = None,
) -> ChallengeDocument:
    """Create a challenge document with a fresh random nonce."""
    return ChallengeDocument(
        statement=statement,
        uri=uri,
        nonce=secrets.token_hex(NONCE_BYTES),
        created_at=now or utcnow(),
    )


def encode_challenge(document: ChallengeDocument) -> bytes:
    """Serialise a challenge document into the bytes a wallet signs."""
    data = document.model_dump(mode="json", by_alias=True)
    return json.dumps(data, separators=(",", ":")).encode("utf-8")
