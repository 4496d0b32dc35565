"""
Login Attempt Tracking
======================

Client-local brute-force throttling keyed by normalized login name.

Each key holds the number of consecutive failures inside a sliding window,
the time of the last failure and, once the threshold is reached, the time
until which logins for the key are refused. The whole table is persisted
after every mutation.

This only slows guessing from this client; it keeps no shared state and
offers nothing against several clients attacking together.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Final, Mapping, Optional

from centraltruck.core.config import SecurityConfig
from centraltruck.db.local_store import ATTEMPTS_KEY, LocalKeyValueStore, load_json_mapping


MAX_LOGIN_ATTEMPTS: Final[int] = 5
ATTEMPT_WINDOW_SECONDS: Final[int] = 15 * 60
LOCKOUT_DURATION_SECONDS: Final[int] = 15 * 60


@dataclass
class AttemptRecord:
    """Failure counter for one login name. Timestamps are epoch seconds."""
    count: int
    last: float
    lock_until: Optional[float] = None

    def is_locked(self, now: float) -> bool:
        return self.lock_until is not None and now < self.lock_until

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"count": self.count, "last": self.last}
        if self.lock_until is not None:
            data["lockUntil"] = self.lock_until
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AttemptRecord":
        lock_until = data.get("lockUntil")
        return cls(
            count=int(data.get("count", 0)),
            last=float(data.get("last", 0.0)),
            lock_until=float(lock_until) if lock_until is not None else None,
        )


class AttemptTracker:
    """
    Failed-login counters with a sliding window and timed lockout.

    Usage:
        tracker = AttemptTracker(store)

        if tracker.check_locked("JOAO"):
            ...refuse without contacting the credential store...

        tracker.record_failure("JOAO")
        tracker.record_success("JOAO")

    Rules:
        - A failure more than ``window`` seconds after the previous one
          restarts the count at 1.
        - Reaching ``max_attempts`` inside the window locks the key for
          ``lockout`` seconds from that failure.
        - A success deletes the key's record.
    """

    __slots__ = ("_store", "_clock", "_max_attempts", "_window", "_lockout", "_log")

    def __init__(
        self,
        store: LocalKeyValueStore,
        clock: Callable[[], float] = time.time,
        max_attempts: int = MAX_LOGIN_ATTEMPTS,
        window_seconds: float = ATTEMPT_WINDOW_SECONDS,
        lockout_seconds: float = LOCKOUT_DURATION_SECONDS,
    ) -> None:
        self._store = store
        self._clock = clock
        self._max_attempts = max_attempts
        self._window = window_seconds
        self._lockout = lockout_seconds
        self._log = logging.getLogger("centraltruck.attempts")

    @classmethod
    def from_config(
        cls,
        store: LocalKeyValueStore,
        security: SecurityConfig,
        clock: Callable[[], float] = time.time,
    ) -> "AttemptTracker":
        return cls(
            store,
            clock=clock,
            max_attempts=security.max_login_attempts,
            window_seconds=security.attempt_window_seconds,
            lockout_seconds=security.lockout_duration_seconds,
        )

    def _load(self) -> dict[str, AttemptRecord]:
        table: dict[str, AttemptRecord] = {}
        for key, value in load_json_mapping(self._store, ATTEMPTS_KEY).items():
            if isinstance(value, dict):
                table[key] = AttemptRecord.from_dict(value)
        return table

    def _save(self, table: Mapping[str, AttemptRecord]) -> None:
        self._store.set(ATTEMPTS_KEY, {key: rec.to_dict() for key, rec in table.items()})

    def get(self, key: str) -> Optional[AttemptRecord]:
        """Current record for ``key``, if any."""
        return self._load().get(key)

    def check_locked(self, key: str) -> bool:
        """True while a lockout for ``key`` is in force."""
        record = self._load().get(key)
        return record is not None and record.is_locked(self._clock())

    def failure_count(self, key: str) -> int:
        """
        Failures counted in the current window.

        Returns 0 once the window since the last failure has elapsed.
        """
        record = self._load().get(key)
        if record is None or self._clock() - record.last > self._window:
            return 0
        return record.count

    def record_failure(self, key: str) -> AttemptRecord:
        """
        Count a failed login for ``key`` and persist the table.

        Returns:
            The updated record
        """
        table = self._load()
        now = self._clock()
        previous = table.get(key)

        if previous is None or now - previous.last > self._window:
            count = 1
            lock_until = None
        else:
            count = previous.count + 1
            lock_until = previous.lock_until

        if count >= self._max_attempts:
            lock_until = now + self._lockout
            self._log.warning(
                "Login name %s locked for %ds after %d failures", key, self._lockout, count
            )

        record = AttemptRecord(count=count, last=now, lock_until=lock_until)
        table[key] = record
        self._save(table)
        return record

    def record_success(self, key: str) -> None:
        """Delete the record for ``key``."""
        table = self._load()
        if table.pop(key, None) is not None:
            self._log.debug("Cleared failed attempts for %s", key)
        self._save(table)

    def clear(self) -> None:
        """Drop every record."""
        self._store.remove(ATTEMPTS_KEY)
