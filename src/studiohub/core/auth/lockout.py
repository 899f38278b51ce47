"""Failed-login lockout state machine.

States: ``Unlocked(attempts)`` -> ``Locked(until)`` -> ``Unlocked(0)``.
Transitions return new ``LockoutState`` values; persisting them is the
caller's job.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from studiohub.core.auth.tokens import ensure_aware
from studiohub.core.auth.types import LockoutState

MAX_LOGIN_ATTEMPTS = 5
LOCK_DURATION = timedelta(minutes=30)


class LockoutGuard:
    """Tracks failed login attempts and decides when an account is locked."""

    def __init__(
        self,
        max_attempts: int = MAX_LOGIN_ATTEMPTS,
        lock_duration: timedelta = LOCK_DURATION,
    ) -> None:
        """Initialize the guard.

        Args:
            max_attempts: Failed attempts that trigger a lock.
            lock_duration: How long a lock lasts.
        """
        self.max_attempts = max_attempts
        self.lock_duration = lock_duration

    def is_blocked(self, state: LockoutState, now: datetime) -> bool:
        """True while a lock is in force."""
        return bool(
            state.is_locked
            and state.lock_until is not None
            and ensure_aware(state.lock_until) > now
        )

    def on_failed_attempt(self, state: LockoutState, now: datetime) -> LockoutState:
        """Record a failed attempt.

        A lapsed lock is cleared first, so the attempt counts as the first
        of a fresh series.
        """
        if state.lock_until is not None and ensure_aware(state.lock_until) <= now:
            state = self.on_success(state)

        attempts = state.login_attempts + 1
        if attempts >= self.max_attempts and not self.is_blocked(state, now):
            return LockoutState(
                is_locked=True,
                login_attempts=attempts,
                lock_until=now + self.lock_duration,
            )
        return state.model_copy(update={"login_attempts": attempts})

    def on_success(self, state: LockoutState) -> LockoutState:
        """Clear attempts and any lock."""
        return LockoutState(is_locked=False, login_attempts=0, lock_until=None)
