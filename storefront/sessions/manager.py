"""Session manager: in-memory admin session store with expiry.

Handles issuance on login, lookup per request, and closing on logout.
For production this would sit on a shared store; the in-memory
implementation keeps the same interface and lifecycle rules.
"""

from __future__ import annotations

import logging
import threading
import time

from storefront.sessions.models import AdminSession, SessionStatus, create_session

logger = logging.getLogger(__name__)

_DEFAULT_TTL_SECONDS = 8 * 3600


class SessionManager:
    """Issue, look up, and close admin sessions."""

    def __init__(self, ttl_seconds: int = _DEFAULT_TTL_SECONDS):
        self._ttl_seconds = ttl_seconds
        self._sessions: dict[str, AdminSession] = {}
        self._lock = threading.Lock()

    def create(self, username: str) -> AdminSession:
        """Issue a new session for an authenticated admin.

        Expired sessions that were never looked up again are dropped here.
        """
        self.cleanup_expired()
        session = create_session(username=username, ttl_seconds=self._ttl_seconds)
        with self._lock:
            self._sessions[session.session_id] = session
        logger.info("Session created: %s (user=%s)", session.session_id[:8], username)
        return session

    def get(self, session_id: str | None) -> AdminSession | None:
        """Get an active session by ID. Returns None if unknown, closed or expired."""
        if not session_id:
            return None
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            return None

        if session.is_expired:
            with self._lock:
                self._sessions.pop(session_id, None)
            session.status = SessionStatus.EXPIRED
            logger.info("Session expired: %s", session_id[:8])
            return None
        if session.status != SessionStatus.ACTIVE:
            return None

        session.last_activity = time.time()
        return session

    def close(self, session_id: str | None) -> bool:
        """Close a session (logout). Unknown IDs are a no-op."""
        if not session_id:
            return False
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.status = SessionStatus.CLOSED
        logger.info("Session closed: %s", session_id[:8])
        return True

    def cleanup_expired(self) -> int:
        """Remove expired sessions. Returns count of removed sessions."""
        with self._lock:
            expired_ids = [sid for sid, s in self._sessions.items() if s.is_expired]
            for sid in expired_ids:
                del self._sessions[sid]
        if expired_ids:
            logger.info("Cleaned up %d expired sessions", len(expired_ids))
        return len(expired_ids)

    @property
    def active_count(self) -> int:
        """Count of active sessions."""
        with self._lock:
            return sum(1 for s in self._sessions.values() if s.is_active)
