"""Authentication services used by the agent runtime."""

from .challenge import ChallengeValidator
from .replay import NonceReplayGuard
from .signing import SignatureVerifier
from .tokens import SessionTokenService

__all__ = [
    "ChallengeValidator",
    "NonceReplayGuard",
    "SessionTokenService",
    "SignatureVerifier",
]
