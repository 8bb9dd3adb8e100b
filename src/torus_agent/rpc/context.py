"""Per-request values handed to route handlers."""

from __future__ import annotations

from dataclasses import dataclass, field

from torus_agent.services.chain import TransactionChecker, unavailable_transaction_checker


@dataclass(frozen=True)
class AuthUser:
    """Wallet that authenticated the current request."""

    wallet_address: str


@dataclass(frozen=True)
class AuthContext:
    """Identity derived from a validated bearer token, if any."""

    identity: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None


@dataclass(frozen=True)
class CallContext:
    """Everything a handler may use besides its validated input."""

    auth: AuthContext = field(default_factory=AuthContext)
    agent_address: str = ""
    check_transaction: TransactionChecker = unavailable_transaction_checker

    @property
    def user(self) -> AuthUser | None:
        if self.auth.identity is None:
            return None
        return AuthUser(wallet_address=self.auth.identity)
