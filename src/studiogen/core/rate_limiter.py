"""Per-identity admission control for the generation endpoint.

The limiter is a fixed-window counter: each identity gets ``capacity``
admissions per ``window_seconds``.  The first request of a window (or the
first after the window expired) resets the counter to one and starts a new
window; later requests increment the counter until it reaches capacity.

The ledger lives in process memory.  It is not shared between service
instances, so running N instances multiplies the effective quota by N.
:class:`AdmissionController` is the seam for a shared-store backend.

Identity
--------
:func:`client_identity` takes the first address in ``X-Forwarded-For``, then
``X-Real-IP``, and falls back to a single ``"unknown"`` bucket shared by all
callers that carry neither header.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass

logger = logging.getLogger(__name__)

UNKNOWN_IDENTITY = "unknown"


@dataclass(frozen=True)
class Admission:
    """Outcome of a single admission check."""

    allowed: bool
    remaining: int


@dataclass
class RateLimitEntry:
    """Counter state for one identity."""

    count: int
    reset_time: float


class AdmissionController(ABC):
    """Decides whether a request from an identity may proceed."""

    @abstractmethod
    def admit(self, identity: str) -> Admission:
        """Record an attempt for *identity* and return the decision."""


class FixedWindowRateLimiter(AdmissionController):
    """In-memory fixed-window counter keyed by client identity.

    The check-and-increment for an identity is atomic: it runs under a lock,
    so two simultaneous requests cannot both pass on the same pre-increment
    count.

    Args:
        capacity: Admissions per identity per window.
        window_seconds: Window length.
        clock: Returns the current time in seconds.  Injected in tests.
        max_entries: Once the ledger holds more identities than this,
            entries whose window has expired are pruned.
    """

    def __init__(
        self,
        capacity: int = 10,
        window_seconds: float = 3600.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        max_entries: int = 10_000,
    ) -> None:
        self.capacity = capacity
        self.window_seconds = window_seconds
        self._clock = clock
        self._max_entries = max_entries
        self._entries: dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()

    def admit(self, identity: str) -> Admission:
        with self._lock:
            now = self._clock()
            entry = self._entries.get(identity)

            if entry is None or now > entry.reset_time:
                if entry is None and len(self._entries) >= self._max_entries:
                    self._prune_expired(now)
                self._entries[identity] = RateLimitEntry(
                    count=1,
                    reset_time=now + self.window_seconds,
                )
                return Admission(allowed=True, remaining=self.capacity - 1)

            if entry.count >= self.capacity:
                return Admission(allowed=False, remaining=0)

            entry.count += 1
            return Admission(allowed=True, remaining=self.capacity - entry.count)

    def entry_for(self, identity: str) -> RateLimitEntry | None:
        """Return the current ledger entry for *identity*, if any."""
        with self._lock:
            return self._entries.get(identity)

    @property
    def size(self) -> int:
        """Number of identities currently tracked."""
        with self._lock:
            return len(self._entries)

    def _prune_expired(self, now: float) -> None:
        expired = [key for key, entry in self._entries.items() if now > entry.reset_time]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.info("Pruned %d expired rate-limit entries.", len(expired))


def client_identity(headers: Mapping[str, str]) -> str:
    """Derive the rate-limiting key from forwarded-address headers.

    Args:
        headers: Request headers.  Lookups use lowercase names, which
            Starlette's ``Headers`` resolves case-insensitively.

    Returns:
        The client address, or ``"unknown"`` when none is available.
    """
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = (headers.get("x-real-ip") or "").strip()
    return real_ip or UNKNOWN_IDENTITY
