"""
auth/sessions.py -- Session Authority: token issuance, resolution, revocation.

Tokens are HS256 JWTs (auth/tokens.py) whose jti names a row in the sessions
table. A token resolves to its subject only while all of these hold:
  - the signature verifies and the JWT has not expired,
  - the session row exists and is active,
  - the row's own expiry is in the future,
  - the row's user_id matches the token's subject.

Any number of sessions per subject may be active at once. invalidate() ends
the presenting session (logout); force_invalidate() ends every session of a
subject (kick-out, and after soft delete). Ended and expired rows stay in the
table until purge() deletes them; api/main.py runs it on a timer and the CLI
exposes it as `purge-sessions`.

Methods take the presented token explicitly. auth/dependencies.py pulls it
out of the request, which is the only "calling context" this layer knows.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from auth.errors import NotAuthenticated
from auth.models import Session
from auth.store import UserStore
from auth.tokens import create_access_token, decode_access_token

logger = logging.getLogger("gatekeeper.sessions")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionAuthority:
    """Issues and validates revocable session tokens."""

    def __init__(
        self,
        store: UserStore,
        expire_seconds: int,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.store = store
        self.expire_seconds = expire_seconds
        self._clock = clock

    def issue(self, subject_id: int) -> str:
        """Create a new session bound to subject_id and return its token."""
        now = self._clock()
        expires_at = now + timedelta(seconds=self.expire_seconds)
        jti = secrets.token_hex(16)
        self.store.create_session(
            Session(
                jti=jti,
                user_id=int(subject_id),
                created_at=now.isoformat(),
                expires_at=expires_at.isoformat(),
            )
        )
        logger.info("Session issued for user %s", subject_id)
        return create_access_token(int(subject_id), jti, expires_at)

    def resolve(self, token: str | None) -> int | None:
        """Return the subject id a token is bound to, or None if it is not live."""
        payload = decode_access_token(token)
        if payload is None:
            return None
        session = self.store.get_session(payload["jti"])
        if session is None or not session.is_active:
            return None
        if str(session.user_id) != str(payload["sub"]):
            return None
        if datetime.fromisoformat(session.expires_at) <= self._clock():
            return None
        return session.user_id

    def current_subject(self, token: str | None) -> int | None:
        return self.resolve(token)

    def is_authenticated(self, token: str | None) -> bool:
        return self.resolve(token) is not None

    def require_authenticated(self, token: str | None) -> int:
        """Return the subject id, or raise NotAuthenticated if the token is not live."""
        subject_id = self.resolve(token)
        if subject_id is None:
            raise NotAuthenticated()
        return subject_id

    def invalidate(self, token: str | None) -> bool:
        """End the session the token belongs to. Returns False if it was not active."""
        payload = decode_access_token(token)
        if payload is None:
            return False
        return self.store.revoke_session(payload["jti"])

    def force_invalidate(self, subject_id: int) -> int:
        """End every active session of a subject. Returns how many were ended."""
        count = self.store.revoke_sessions_for_user(int(subject_id))
        logger.info("Revoked %d session(s) for user %s", count, subject_id)
        return count

    def purge(self) -> int:
        """Delete revoked and expired session rows. Returns how many were removed.

        Neither kind can resolve again, so removing them changes no outcome.
        """
        removed = self.store.purge_sessions(self._clock().isoformat())
        if removed:
            logger.info("Purged %d dead session(s)", removed)
        return removed
