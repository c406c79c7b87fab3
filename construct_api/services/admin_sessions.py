"""In-memory admin sessions behind an opaque cookie token"""
import secrets
import threading
import time
from typing import Callable, Dict, Optional


class AdminSessionStore:
    def __init__(self, ttl_seconds: int = 12 * 60 * 60, clock: Callable[[], float] = time.time):
        self.ttl = ttl_seconds
        self.clock = clock
        self._sessions: Dict[str, Dict] = {}
        self._lock = threading.Lock()

    def _expired(self, entry: Dict, now: float) -> bool:
        return now - entry["created_at"] > self.ttl

    def _cleanup(self, now: float) -> None:
        for token in [t for t, e in self._sessions.items() if self._expired(e, now)]:
            del self._sessions[token]

    def create(self, user: str) -> str:
        token = secrets.token_hex(32)
        with self._lock:
            now = self.clock()
            self._cleanup(now)
            self._sessions[token] = {"user": user, "created_at": now}
        return token

    def get(self, token: Optional[str]) -> Optional[Dict]:
        if not token:
            return None
        with self._lock:
            now = self.clock()
            self._cleanup(now)
            return self._sessions.get(token)

    def destroy(self, token: Optional[str]) -> None:
        if not token:
            return
        with self._lock:
            self._sessions.pop(token, None)
