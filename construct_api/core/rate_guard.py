"""
Per-client write throttle

Two independent limits per key:
  - at most `max_per_window` accepted attempts per window, counted from the
    first attempt; the counter resets once the window has elapsed
  - at least `min_interval_seconds` between accepted attempts

Denied attempts are not counted. Stale keys are swept opportunistically
during checks, no background timer.

InMemoryRateGuard is process-local; a shared implementation of RateGuard is
needed for multi-instance deployments.
"""
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from starlette.requests import Request


TOO_FREQUENT = "too_frequent"
QUOTA_EXHAUSTED = "quota_exhausted"

MESSAGES = {
    TOO_FREQUENT: "Too many submissions from this network. Please wait a minute before trying again.",
    QUOTA_EXHAUSTED: "Request limit reached for this network. Try again later or contact the organizers.",
}

MIN_SWEEP_INTERVAL = 5 * 60


@dataclass
class RateDecision:
    allowed: bool
    reason: Optional[str] = None

    @property
    def message(self) -> Optional[str]:
        return MESSAGES.get(self.reason) if self.reason else None


@dataclass
class _Entry:
    first_seen: float
    last_attempt: Optional[float] = None
    attempts: int = 0


class RateGuard(ABC):
    @abstractmethod
    def check(self, key: str) -> RateDecision:
        """Record an attempt for `key` if it is allowed"""


class InMemoryRateGuard(RateGuard):
    def __init__(
        self,
        window_seconds: float = 3600.0,
        max_per_window: int = 5,
        min_interval_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.window = window_seconds
        self.max_per_window = max_per_window
        self.min_interval = min_interval_seconds
        self.clock = clock
        self.sweep_interval = max(window_seconds, MIN_SWEEP_INTERVAL)
        self._entries: Dict[str, _Entry] = {}
        self._last_sweep = clock()
        # Handlers run on the event loop; the lock also covers threadpool callers
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def _sweep(self, now: float) -> None:
        if now - self._last_sweep < self.sweep_interval:
            return
        for key in [k for k, e in self._entries.items() if now - (e.last_attempt or e.first_seen) > self.window]:
            del self._entries[key]
        self._last_sweep = now

    def check(self, key: str) -> RateDecision:
        now = self.clock()
        with self._lock:
            self._sweep(now)

            entry = self._entries.get(key)
            if entry is None:
                entry = _Entry(first_seen=now)
            elif now - entry.first_seen > self.window:
                entry.first_seen = now
                entry.attempts = 0

            if entry.last_attempt is not None and now - entry.last_attempt < self.min_interval:
                return RateDecision(allowed=False, reason=TOO_FREQUENT)

            if entry.attempts >= self.max_per_window:
                return RateDecision(allowed=False, reason=QUOTA_EXHAUSTED)

            entry.attempts += 1
            entry.last_attempt = now
            self._entries[key] = entry
            return RateDecision(allowed=True)


def client_key(request: Request, trust_forwarded_for: bool = True) -> str:
    """
    Network identity of the caller

    First entry of X-Forwarded-For / CF-Connecting-IP / X-Real-IP when proxy
    headers are trusted, else the socket peer address.
    """
    if trust_forwarded_for:
        for header in ("x-forwarded-for", "cf-connecting-ip", "x-real-ip"):
            value = request.headers.get(header)
            if value:
                first = value.split(",")[0].strip()
                if first:
                    return first
    host = request.client.host if request.client else ""
    if host.startswith("::ffff:"):
        host = host[len("::ffff:"):]
    return host or "unknown"
