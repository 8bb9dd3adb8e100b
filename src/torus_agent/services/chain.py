"""Narrow interface to the chain client used by payment-checking handlers."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from torus_agent.core.errors import ChainUnavailableError


@dataclass(frozen=True)
class TransactionStatus:
    """Outcome of a finality check for an on-chain transaction."""

    is_valid: bool


TransactionChecker = Callable[[str], Awaitable[TransactionStatus]]


async def unavailable_transaction_checker(reference: str) -> TransactionStatus:
    """Default checker for agents started without a chain client."""
    raise ChainUnavailableError(f"No chain client configured to check {reference}")
