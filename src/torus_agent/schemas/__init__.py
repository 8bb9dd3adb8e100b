"""Pydantic schemas exchanged over the wire."""

from .auth import AuthTokenResponse, ChallengeDocument, SignedPayload
from .common import MessageResponse

__all__ = [
    "AuthTokenResponse",
    "ChallengeDocument",
    "MessageResponse",
    "SignedPayload",
]
