"""Exception hierarchy shared by the agent components.

Registration errors are fatal and raised before a server starts. Every other
error is raised while serving a request and is converted into a JSON response
by the auth route or the dispatcher.
"""

from __future__ import annotations

from typing import Any


class AgentError(RuntimeError):
    """Base exception for every agent failure."""


# --- Registration --------------------------------------------------------------


class RegistrationError(AgentError):
    """Raised when a route cannot be added to the route table."""


class DuplicateRouteError(RegistrationError):
    """Raised when a route name is registered twice."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Route already registered: {name}")
        self.name = name


class InvalidRouteError(RegistrationError):
    """Raised when a route's schemas or handler are wired incorrectly."""


# --- Challenge authentication ----------------------------------------------------


class AuthenticationError(AgentError):
    """Base class for signed challenge failures.

    The concrete subclass is only ever logged; clients always receive the
    same generic message.
    """


class MalformedPayloadError(AuthenticationError):
    """The signed payload is not hex encoded JSON."""


class InvalidSignatureError(AuthenticationError):
    """The signature does not belong to the claimed address."""


class InvalidPayloadError(AuthenticationError):
    """The decoded payload is not a challenge document."""


class OriginMismatchError(AuthenticationError):
    """The challenge was issued for another origin."""


class StaleChallengeError(AuthenticationError):
    """The challenge timestamp is outside the freshness window."""


class NonceReusedError(AuthenticationError):
    """The challenge nonce was already consumed."""


class InvalidIdentityFormatError(AuthenticationError):
    """The verified address cannot be expressed in the chain format."""


# --- Session tokens --------------------------------------------------------------


class TokenError(AgentError):
    """Base class for bearer token failures."""


class MissingTokenError(TokenError):
    """No bearer token was presented."""


class TokenValidationError(TokenError):
    """A bearer token was presented but is not acceptable."""


class TokenMalformedError(TokenValidationError):
    """The token cannot be decoded."""


class TokenSignatureError(TokenValidationError):
    """The token was not signed with the configured secret."""


class TokenExpiredError(TokenValidationError):
    """The token's expiry lies in the past."""


# --- Request handling ------------------------------------------------------------


class RouteNotFoundError(AgentError):
    """No route is registered under the requested path."""


class MethodNotAllowedError(RouteNotFoundError):
    """The path exists but not for the requested HTTP verb."""


class InvalidInputError(AgentError):
    """The request body does not satisfy the route's input schema."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class ChainUnavailableError(AgentError):
    """No chain client is configured for transaction checks."""
