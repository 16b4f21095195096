"""Unit tests for auth/sessions.py -- Session Authority.

Covers:
- issue() returns a token that resolves back to its subject
- several concurrent sessions per subject are allowed
- invalidate() ends only the presented session
- force_invalidate() ends every session of one subject
- forged, garbage, expired and mismatched tokens do not resolve
- require_authenticated() raises NotAuthenticated
- purge() deletes revoked and expired rows and leaves live ones
"""

from datetime import datetime, timedelta, timezone

import pytest

from auth.errors import NotAuthenticated
from auth.models import Session
from auth.sessions import SessionAuthority
from auth.tokens import create_access_token


def test_issue_and_resolve(sessions):
    token = sessions.issue(7)
    assert sessions.current_subject(token) == 7
    assert sessions.is_authenticated(token) is True
    assert sessions.require_authenticated(token) == 7


def test_string_subject_is_coerced(sessions):
    token = sessions.issue("7")
    assert sessions.resolve(token) == 7


def test_multiple_sessions_per_subject(sessions):
    first = sessions.issue(7)
    second = sessions.issue(7)
    assert first != second
    assert sessions.resolve(first) == 7
    assert sessions.resolve(second) == 7


def test_invalidate_ends_only_presented_session(sessions):
    first = sessions.issue(7)
    second = sessions.issue(7)
    assert sessions.invalidate(first) is True
    assert sessions.resolve(first) is None
    assert sessions.resolve(second) == 7
    assert sessions.invalidate(first) is False


def test_force_invalidate_ends_all_sessions_of_subject(sessions):
    a1 = sessions.issue(7)
    a2 = sessions.issue(7)
    other = sessions.issue(8)
    assert sessions.force_invalidate(7) == 2
    assert sessions.resolve(a1) is None
    assert sessions.resolve(a2) is None
    assert sessions.resolve(other) == 8


@pytest.mark.parametrize("token", [None, "", "not-a-jwt", "a.b.c"])
def test_garbage_tokens_do_not_resolve(sessions, token):
    assert sessions.resolve(token) is None
    assert sessions.is_authenticated(token) is False
    assert sessions.invalidate(token) is False


def test_require_authenticated_raises(sessions):
    with pytest.raises(NotAuthenticated):
        sessions.require_authenticated(None)


def test_signed_token_without_session_row_is_rejected(sessions):
    expires = datetime.now(timezone.utc) + timedelta(hours=1)
    forged = create_access_token(7, "no-such-jti", expires)
    assert sessions.resolve(forged) is None


def test_subject_mismatch_is_rejected(store, sessions):
    expires = datetime.now(timezone.utc) + timedelta(hours=1)
    store.create_session(Session(jti="shared", user_id=7, expires_at=expires.isoformat()))
    token = create_access_token(8, "shared", expires)
    assert sessions.resolve(token) is None


def test_expired_session_row_is_rejected(store):
    now = datetime.now(timezone.utc)
    issuing = SessionAuthority(store, expire_seconds=60, clock=lambda: now)
    token = issuing.issue(7)
    later = SessionAuthority(store, expire_seconds=60, clock=lambda: now + timedelta(seconds=120))
    assert issuing.resolve(token) == 7
    assert later.resolve(token) is None


def test_purge_removes_logged_out_sessions(store, sessions):
    for _ in range(5):
        sessions.invalidate(sessions.issue(7))
    live = sessions.issue(7)
    assert sessions.purge() == 5
    assert sessions.purge() == 0
    assert sessions.resolve(live) == 7


def test_purge_removes_expired_sessions(store):
    now = datetime.now(timezone.utc)
    token = SessionAuthority(store, expire_seconds=60, clock=lambda: now).issue(7)
    later = SessionAuthority(store, expire_seconds=60, clock=lambda: now + timedelta(seconds=120))
    assert later.purge() == 1
    assert later.resolve(token) is None
