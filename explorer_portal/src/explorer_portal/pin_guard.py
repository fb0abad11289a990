"""
PIN attempt tracking for the tutoring portal.

Counts failed PIN entries per key (tutee id + client address) and locks the
key out once the limit is reached.
"""

import logging
import re
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

_PIN_RE = re.compile(r"[0-9]{4}")

LOCKED_MESSAGE = "Too many failed attempts. Please try again later."
INVALID_FORMAT_MESSAGE = "Please enter a 4-digit PIN"


@dataclass
class PinVerification:
    verified: bool
    remaining_attempts: int
    locked: bool = False
    message: str = ""


@dataclass
class _AttemptState:
    failures: int = 0
    last_failure: float = 0.0
    locked_until: Optional[float] = None


def is_valid_pin(pin: Optional[str]) -> bool:
    """Exactly four ASCII digits."""
    return bool(pin) and _PIN_RE.fullmatch(pin) is not None


@dataclass
class PinAttemptTracker:
    """
    In-process attempt counter.

    Only keys with recent failures are stored. An entry is dropped once its
    lockout ends, or once `lockout_seconds` pass without a further failure.

    Args:
        max_attempts: Failures allowed before lockout
        lockout_seconds: How long a locked key stays locked
        clock: Time source, seconds (overridable in tests)
    """
    max_attempts: int = 3
    lockout_seconds: int = 900
    clock: Callable[[], float] = time.monotonic
    _state: Dict[str, _AttemptState] = field(default_factory=dict, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @property
    def tracked_keys(self) -> int:
        return len(self._state)

    def _expired(self, state: _AttemptState, now: float) -> bool:
        if state.locked_until is not None:
            return now >= state.locked_until
        return now - state.last_failure >= self.lockout_seconds

    def _lookup(self, key: str) -> Optional[_AttemptState]:
        state = self._state.get(key)
        if state is not None and self._expired(state, self.clock()):
            del self._state[key]
            return None
        return state

    def _prune(self, now: float) -> None:
        for key in [k for k, s in self._state.items() if self._expired(s, now)]:
            del self._state[key]

    def is_locked(self, key: str) -> bool:
        with self._lock:
            state = self._lookup(key)
            return state is not None and state.locked_until is not None

    def reset(self, key: str) -> None:
        with self._lock:
            self._state.pop(key, None)

    def verify(self, key: str, expected_pin: str, supplied_pin: str) -> PinVerification:
        """Check a PIN and update the attempt counter for `key`."""
        with self._lock:
            state = self._lookup(key)

            if state is not None and state.locked_until is not None:
                return PinVerification(False, 0, locked=True, message=LOCKED_MESSAGE)

            failures = state.failures if state else 0
            if not is_valid_pin(supplied_pin):
                return PinVerification(False, self.max_attempts - failures, message=INVALID_FORMAT_MESSAGE)

            if supplied_pin == expected_pin:
                self._state.pop(key, None)
                return PinVerification(True, self.max_attempts, message="PIN verified")

            now = self.clock()
            self._prune(now)
            state = self._state.setdefault(key, _AttemptState())
            state.failures += 1
            state.last_failure = now
            remaining = self.max_attempts - state.failures
            if remaining <= 0:
                state.locked_until = now + self.lockout_seconds
                logger.warning(f"🔒 [PinAttemptTracker] Locked out {key} after {state.failures} failures")
                return PinVerification(False, 0, locked=True, message=LOCKED_MESSAGE)

            return PinVerification(
                False,
                remaining,
                message=f"Incorrect PIN. {remaining} attempt(s) remaining.",
            )
