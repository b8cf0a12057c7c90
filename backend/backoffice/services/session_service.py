# Overview: In-memory session token store for authenticated API clients.

"""
Session Token Management

Tokens are random hex strings from secrets.token_hex. Only their SHA-256
hash is kept, so a dump of the store cannot be replayed as a login.

Sessions expire after SESSION_TIMEOUT_MINUTES of inactivity. Expiry is
checked lazily on validate(); every successful validate() moves the
deadline forward again.

One SessionStore is created per app (app.extensions["session_store"]).
Sessions do not survive a restart.
"""
from __future__ import annotations

import hashlib
import secrets
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..entities import EmployeePK, User
from ..time_utils import utcnow

DEFAULT_TIMEOUT = timedelta(minutes=120)
DEFAULT_TOKEN_BYTES = 32


@dataclass
class SessionRecord:
    user: User
    expires_at: datetime


def hash_token(token: str) -> str:
    """Hash token for storage using SHA-256. Returns hex-encoded hash string."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class SessionStore:
    def __init__(
        self,
        timeout: timedelta = DEFAULT_TIMEOUT,
        token_bytes: int = DEFAULT_TOKEN_BYTES,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.timeout = timeout
        self.token_bytes = token_bytes
        self.clock = clock
        self._sessions: dict[str, SessionRecord] = {}
        self._lock = threading.Lock()

    def issue(self, user: User) -> str:
        """
        Create a session for the user and return the plaintext token.

        The password hash is dropped from the stored principal.
        """
        token = secrets.token_hex(self.token_bytes)
        record = SessionRecord(
            user=replace(user, password_hash=None),
            expires_at=self.clock() + self.timeout,
        )
        with self._lock:
            self._sessions[hash_token(token)] = record
        return token

    def validate(self, token: str) -> Optional[User]:
        """Return the session's user and prolong it, or None if unknown or expired."""
        key = hash_token(token)
        now = self.clock()
        with self._lock:
            record = self._sessions.get(key)
            if record is None:
                return None
            if record.expires_at <= now:
                del self._sessions[key]
                return None
            record.expires_at = now + self.timeout
            return record.user

    def revoke(self, token: str) -> bool:
        with self._lock:
            return self._sessions.pop(hash_token(token), None) is not None

    def revoke_user(self, user_id: EmployeePK) -> int:
        """
        Revoke every session of one user. Returns count of sessions revoked.

        Called when the employee is updated or deleted, so role and login
        changes take effect immediately.
        """
        with self._lock:
            keys = [k for k, record in self._sessions.items() if record.user.user_id == user_id]
            for k in keys:
                del self._sessions[k]
        return len(keys)

    def cleanup_expired(self) -> int:
        now = self.clock()
        with self._lock:
            keys = [k for k, record in self._sessions.items() if record.expires_at <= now]
            for k in keys:
                del self._sessions[k]
        return len(keys)

    def __len__(self) -> int:
        return len(self._sessions)
