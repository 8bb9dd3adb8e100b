"""Issuing and validating bearer session tokens (HS256 JWTs)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import jwt
from jose.exceptions import JWTClaimsError, JWTError

from torus_agent.core.errors import (
    TokenExpiredError,
    TokenMalformedError,
    TokenSignatureError,
)
from torus_agent.core.settings import SESSION_TTL
from torus_agent.utils.time import ensure_utc, utcnow


@dataclass(frozen=True)
class SessionClaims:
    """Identity and validity period carried by a session token."""

    identity: str
    uri: str
    issued_at: datetime
    expires_at: datetime


def _timestamp(value: datetime) -> int:
    return int(ensure_utc(value).timestamp())


class SessionTokenService:
    """Mints and checks self-contained session tokens.

    The server keeps no session state: a token is valid while its signature
    matches `secret` and its expiry has not passed.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        ttl: timedelta = SESSION_TTL,
    ) -> None:
        if not secret:
            raise ValueError("A token secret is required")
        self._secret = secret
        self.algorithm = algorithm
        self.ttl = ttl

    def issue(self, identity: str, bound_uri: str, now: datetime | None = None) -> str:
        """Create a token for `identity`, bound to the origin it authenticated from."""
        issued_at = _timestamp(now or utcnow())
        claims: dict[str, Any] = {
            "sub": identity,
            "uri": bound_uri,
            "iat": issued_at,
            "exp": issued_at + int(self.ttl.total_seconds()),
        }
        token: str = jwt.encode(claims, self._secret, algorithm=self.algorithm)
        return token

    def validate(self, token: str, now: datetime | None = None) -> SessionClaims:
        """Check a token and return its claims.

        Raises:
            TokenMalformedError: If the token cannot be decoded.
            TokenSignatureError: If the token was not signed with this secret.
            TokenExpiredError: If `now` is past the token's expiry.
        """
        try:
            jwt.get_unverified_header(token)
        except JWTError as err:
            raise TokenMalformedError("Token cannot be decoded") from err

        # Expiry is compared against `now` below rather than the wall clock.
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except JWTClaimsError as err:
            raise TokenMalformedError(f"Invalid token claims: {err}") from err
        except JWTError as err:
            raise TokenSignatureError(f"Token rejected: {err}") from err

        identity = claims.get("sub")
        uri = claims.get("uri")
        issued_at = claims.get("iat")
        expires_at = claims.get("exp")
        if not isinstance(identity, str) or not identity or not isinstance(uri, str):
            raise TokenMalformedError("Token subject or uri missing")
        if not isinstance(issued_at, int) or not isinstance(expires_at, int):
            raise TokenMalformedError("Token timestamps missing")

        if _timestamp(now or utcnow()) > expires_at:
            raise TokenExpiredError("Token has expired")

        return SessionClaims(
            identity=identity,
            uri=uri,
            issued_at=datetime.fromtimestamp(issued_at, UTC),
            expires_at=datetime.fromtimestamp(expires_at, UTC),
        )
