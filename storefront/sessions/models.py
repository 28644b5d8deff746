"""Admin session data models.

Security contract:
- session_id is the bearer of authority (uuid4 hex, not guessable)
- Sessions carry no secrets; only the admin username they were issued to
- Expired or closed sessions never authorize a request
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from enum import Enum


class SessionStatus(str, Enum):
    """Admin session lifecycle states."""
    ACTIVE = "active"
    EXPIRED = "expired"  # Past TTL
    CLOSED = "closed"   # Logged out


@dataclass
class AdminSession:
    """An authenticated admin session keyed by its token."""
    session_id: str = ""
    username: str = ""
    status: SessionStatus = SessionStatus.ACTIVE
    created_at: float = 0.0
    last_activity: float = 0.0
    expires_at: float = 0.0

    @property
    def is_expired(self) -> bool:
        return time.time() > self.expires_at

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE and not self.is_expired


def create_session(username: str, ttl_seconds: int = 3600) -> AdminSession:
    """Create a new admin session.

    Args:
        username: Admin the session is issued to
        ttl_seconds: Session lifetime in seconds (default 1h)

    Returns:
        New AdminSession with generated session_id
    """
    now = time.time()
    return AdminSession(
        session_id=uuid.uuid4().hex,
        username=username,
        status=SessionStatus.ACTIVE,
        created_at=now,
        last_activity=now,
        expires_at=now + ttl_seconds,
    )
