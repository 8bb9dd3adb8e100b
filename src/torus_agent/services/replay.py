"""Replay protection for challenge nonces."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from threading import Lock

from torus_agent.core.settings import CLOCK_SKEW, NONCE_GC_INTERVAL, NONCE_WINDOW
from torus_agent.utils.time import utcnow

logger = logging.getLogger(__name__)


class NonceReplayGuard:
    """In-memory registry of consumed challenge nonces.

    Each nonce is remembered from the moment it is first seen until it is
    older than `window`; by then any challenge carrying it fails the
    freshness check anyway. Stale entries are swept lazily from `record`
    at most once per `gc_interval`, so there is no background task.

    All public methods hold the same lock, which makes `claim` a single
    atomic check-and-record across concurrent handshakes.
    """

    def __init__(
        self,
        window: timedelta = NONCE_WINDOW + CLOCK_SKEW,
        gc_interval: timedelta = NONCE_GC_INTERVAL,
        *,
        now: datetime | None = None,
    ) -> None:
        if window <= timedelta(0):
            raise ValueError("Nonce window must be positive")
        self.window = window
        self.gc_interval = gc_interval
        self._seen: dict[str, datetime] = {}
        self._last_sweep = now or utcnow()
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)

    @property
    def last_sweep(self) -> datetime:
        return self._last_sweep

    def seen(self, nonce: str) -> bool:
        """Return True if the nonce was already recorded."""
        with self._lock:
            return nonce in self._seen

    def record(self, nonce: str, now: datetime | None = None) -> None:
        """Remember a nonce as consumed at `now`."""
        now = now or utcnow()
        with self._lock:
            self._seen.setdefault(nonce, now)
            self._maybe_sweep(now)

    def claim(self, nonce: str, now: datetime | None = None) -> bool:
        """Record the nonce unless already present.

        Returns:
            True if the nonce was unused and is now recorded; False on replay.
        """
        now = now or utcnow()
        with self._lock:
            if nonce in self._seen:
                return False
            self._seen[nonce] = now
            self._maybe_sweep(now)
            return True

    def sweep(self, now: datetime | None = None) -> int:
        """Drop entries older than the window and return how many were removed."""
        now = now or utcnow()
        with self._lock:
            return self._sweep(now)

    # --- Internal helpers (lock held) ------------------------------------------------
    def _maybe_sweep(self, now: datetime) -> None:
        if now - self._last_sweep > self.gc_interval:
            self._sweep(now)

    def _sweep(self, now: datetime) -> int:
        cutoff = now - self.window
        stale = [nonce for nonce, first_seen in self._seen.items() if first_seen < cutoff]
        for nonce in stale:
            del self._seen[nonce]
        self._last_sweep = now
        if stale:
            logger.debug("Swept %d expired nonces, %d remaining", len(stale), len(self._seen))
        return len(stale)
