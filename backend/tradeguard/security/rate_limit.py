"""
Failed-attempt lockout for 2FA and PIN verification.

Counts failures per key (``"2fa:<user>"``, ``"pin:<user>"``) and locks the key
out once ``max_attempts`` failures accumulate within ``lockout`` of the last
one. Counters live behind an AttemptStore so several service instances can
share them (see DatabaseAttemptStore).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Callable, Dict, Optional, Protocol

from tradeguard.core.config import settings
from tradeguard.core.errors import LockedOutError

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 5
LOCKOUT_DURATION = timedelta(minutes=15)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AttemptState:
    failed_count: int
    last_attempt: datetime


@dataclass(frozen=True)
class AttemptCheck:
    allowed: bool
    remaining: int


class AttemptStore(Protocol):
    def get(self, key: str) -> Optional[AttemptState]:
        ...

    def increment(self, key: str, now: datetime, expired_before: datetime) -> AttemptState:
        """
        Atomically add one failure. A record whose last attempt is at or
        before ``expired_before`` restarts at 1.
        """
        ...

    def try_consume(
        self, key: str, now: datetime, expired_before: datetime, max_attempts: int
    ) -> Optional[AttemptState]:
        """
        Atomically charge one attempt unless ``max_attempts`` are already on
        record within the window. Returns None, without counting, when the
        key is locked.
        """
        ...

    def delete(self, key: str) -> None:
        ...

    def delete_if_stale(self, key: str, expired_before: datetime) -> None:
        ...


class InMemoryAttemptStore:
    """Process-local store. Counters are not shared between instances."""

    def __init__(self):
        self._attempts: Dict[str, AttemptState] = {}
        self._lock = Lock()

    def get(self, key: str) -> Optional[AttemptState]:
        with self._lock:
            return self._attempts.get(key)

    def increment(self, key: str, now: datetime, expired_before: datetime) -> AttemptState:
        with self._lock:
            entry = self._attempts.get(key)
            if entry is None or entry.last_attempt <= expired_before:
                entry = AttemptState(failed_count=1, last_attempt=now)
            else:
                entry = AttemptState(failed_count=entry.failed_count + 1, last_attempt=now)
            self._attempts[key] = entry
            return entry

    def try_consume(
        self, key: str, now: datetime, expired_before: datetime, max_attempts: int
    ) -> Optional[AttemptState]:
        with self._lock:
            entry = self._attempts.get(key)
            if entry is None or entry.last_attempt <= expired_before:
                entry = AttemptState(failed_count=1, last_attempt=now)
            elif entry.failed_count >= max_attempts:
                return None
            else:
                entry = AttemptState(failed_count=entry.failed_count + 1, last_attempt=now)
            self._attempts[key] = entry
            return entry

    def delete(self, key: str) -> None:
        with self._lock:
            self._attempts.pop(key, None)

    def delete_if_stale(self, key: str, expired_before: datetime) -> None:
        with self._lock:
            entry = self._attempts.get(key)
            if entry is not None and entry.last_attempt <= expired_before:
                del self._attempts[key]


class AttemptTracker:
    def __init__(
        self,
        store: AttemptStore,
        max_attempts: int = MAX_ATTEMPTS,
        lockout: timedelta = LOCKOUT_DURATION,
        clock: Clock = utcnow,
    ):
        self.store = store
        self.max_attempts = max_attempts
        self.lockout = lockout
        self.clock = clock

    @property
    def lockout_minutes(self) -> int:
        return int(self.lockout.total_seconds() // 60)

    def check_allowed(self, key: str) -> AttemptCheck:
        """
        Allowed unless ``max_attempts`` failures are on record within the
        lockout window. A record older than the window is dropped first.
        """
        expired_before = self.clock() - self.lockout
        state = self.store.get(key)

        if state is not None and state.last_attempt <= expired_before:
            self.store.delete_if_stale(key, expired_before)
            state = None

        if state is None:
            return AttemptCheck(allowed=True, remaining=self.max_attempts)
        if state.failed_count >= self.max_attempts:
            return AttemptCheck(allowed=False, remaining=0)
        return AttemptCheck(allowed=True, remaining=self.max_attempts - state.failed_count)

    def ensure_allowed(self, key: str) -> AttemptCheck:
        check = self.check_allowed(key)
        if not check.allowed:
            raise LockedOutError(self.lockout_minutes)
        return check

    def record_failure(self, key: str) -> AttemptState:
        now = self.clock()
        state = self.store.increment(key, now, now - self.lockout)
        if state.failed_count >= self.max_attempts:
            logger.warning("Attempt budget exhausted for %s; locked for %d minutes",
                           key, self.lockout_minutes)
        return state

    def charge(self, key: str) -> AttemptState:
        """
        Count an attempt before the code is checked, so concurrent requests
        cannot all be evaluated against the same remaining budget. Raises
        LockedOutError when the budget is spent; callers reset with
        record_success once the code matches.
        """
        now = self.clock()
        state = self.store.try_consume(key, now, now - self.lockout, self.max_attempts)
        if state is None:
            raise LockedOutError(self.lockout_minutes)
        if state.failed_count >= self.max_attempts:
            logger.warning("Attempt budget exhausted for %s; locked for %d minutes",
                           key, self.lockout_minutes)
        return state

    def record_success(self, key: str) -> None:
        self.store.delete(key)


def build_attempt_tracker(clock: Clock = utcnow) -> AttemptTracker:
    """Tracker configured from settings (store backend, limits)."""
    if settings.ATTEMPT_STORE == "database":
        from tradeguard.crud.attempts import DatabaseAttemptStore
        from tradeguard.db.session import SessionLocal

        store: AttemptStore = DatabaseAttemptStore(SessionLocal)
    else:
        store = InMemoryAttemptStore()

    return AttemptTracker(
        store,
        max_attempts=settings.MAX_FAILED_ATTEMPTS,
        lockout=timedelta(minutes=settings.LOCKOUT_MINUTES),
        clock=clock,
    )


# Global instance
_tracker: AttemptTracker | None = None


def get_attempt_tracker() -> AttemptTracker:
    """Get global attempt tracker instance."""
    global _tracker
    if _tracker is None:
        _tracker = build_attempt_tracker()
    return _tracker
