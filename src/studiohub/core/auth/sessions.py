"""Per-user registry of active refresh-token sessions.

The registry works on a copy of one user's embedded session list. It never
persists anything itself: callers hand the resulting ``entries`` to the
repository's conditional session write, which is what makes add, revoke and
rotate atomic against concurrent requests for the same user.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta

from studiohub.core.auth.tokens import ensure_aware
from studiohub.core.auth.types import DeviceInfo, SessionEntry, SessionView

MAX_SESSIONS = 5
SESSION_TTL = timedelta(days=7)


class SessionRegistry:
    """Bounded, expiry-aware list of a user's sessions.

    Entries keep insertion order. The cap evicts by position (oldest
    appended first), not by last use.
    """

    def __init__(
        self,
        entries: Iterable[SessionEntry],
        *,
        max_sessions: int = MAX_SESSIONS,
        ttl: timedelta = SESSION_TTL,
    ) -> None:
        """Initialize from a user's current session list.

        Args:
            entries: Stored sessions, in stored order.
            max_sessions: Cap on the number of sessions kept.
            ttl: Absolute lifetime of a new session.
        """
        self._entries = [entry.model_copy(deep=True) for entry in entries]
        self._max_sessions = max_sessions
        self._ttl = ttl

    @property
    def entries(self) -> list[SessionEntry]:
        """Current entries, in order."""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, session_id: str, device: DeviceInfo, now: datetime) -> SessionEntry:
        """Append a session and enforce the cap.

        Args:
            session_id: Refresh-token session id.
            device: Client metadata; ``last_used`` is set to ``now``.
            now: Current time.

        Returns:
            The stored entry.
        """
        entry = SessionEntry(
            session_id=session_id,
            device=device.model_copy(update={"last_used": now}),
            expires_at=now + self._ttl,
            created_at=now,
        )
        self._entries.append(entry)
        if len(self._entries) > self._max_sessions:
            self._entries = self._entries[-self._max_sessions :]
        return entry

    def find_active(self, session_id: str, now: datetime) -> SessionEntry | None:
        """Find a session that exists and has not expired.

        An expired entry that has not been pruned yet is treated as absent.
        """
        for entry in self._entries:
            if entry.session_id == session_id and ensure_aware(entry.expires_at) > now:
                return entry
        return None

    def prune_expired(self, now: datetime) -> int:
        """Drop every entry with ``expires_at <= now``.

        Returns:
            Number of entries removed.
        """
        before = len(self._entries)
        self._entries = [e for e in self._entries if ensure_aware(e.expires_at) > now]
        return before - len(self._entries)

    def revoke(self, session_id: str) -> bool:
        """Remove the matching entry. No-op when absent.

        Returns:
            True if an entry was removed.
        """
        before = len(self._entries)
        self._entries = [e for e in self._entries if e.session_id != session_id]
        return len(self._entries) != before

    def revoke_all(self) -> int:
        """Remove every entry.

        Returns:
            Number of entries removed.
        """
        removed = len(self._entries)
        self._entries = []
        return removed

    def list(self) -> list[SessionView]:
        """Project entries for display, without their session ids."""
        return [
            SessionView(
                device=entry.device,
                last_used=entry.device.last_used,
                created_at=entry.created_at,
            )
            for entry in self._entries
        ]
