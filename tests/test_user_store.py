"""Unit tests for auth/store.py -- raw record store.

Covers:
- insert assigns ids; lookups by id/username/email/phone
- get_active_by_username() hides soft-deleted rows, get_by_username() does not
- UNIQUE(username) and UNIQUE(email) are enforced by the database itself
- session rows: create, lookup, single and per-user revocation, purge of dead rows
"""

import pytest
from sqlalchemy.exc import IntegrityError

from auth.models import Session, User

_TS = "2024-01-01T00:00:00+00:00"


def _user(username: str, email: str, **kwargs) -> User:
    return User(
        username=username,
        password="pw",
        email=email,
        created_at=_TS,
        updated_at=_TS,
        deleted=0,
        **kwargs,
    )


class TestUserRows:
    def test_insert_assigns_incrementing_ids(self, store):
        first = store.insert_user(_user("alice", "alice@example.com"))
        second = store.insert_user(_user("bob", "bob@example.com"))
        assert second > first
        assert store.get_by_id(first).username == "alice"

    def test_lookup_by_email_and_phone(self, store):
        store.insert_user(_user("alice", "alice@example.com", phone="555"))
        assert store.get_by_email("alice@example.com").username == "alice"
        assert store.get_by_phone("555").username == "alice"
        assert store.get_by_email("nobody@example.com") is None

    def test_phone_is_not_unique_and_oldest_wins(self, store):
        store.insert_user(_user("alice", "alice@example.com", phone="555"))
        store.insert_user(_user("bob", "bob@example.com", phone="555"))
        assert store.get_by_phone("555").username == "alice"

    def test_duplicate_username_rejected_by_database(self, store):
        store.insert_user(_user("alice", "alice@example.com"))
        with pytest.raises(IntegrityError):
            store.insert_user(_user("alice", "other@example.com"))

    def test_duplicate_email_rejected_by_database(self, store):
        store.insert_user(_user("alice", "alice@example.com"))
        with pytest.raises(IntegrityError):
            store.insert_user(_user("alice2", "alice@example.com"))

    def test_active_lookup_skips_soft_deleted(self, store):
        ghost = _user("ghost", "ghost@example.com")
        ghost.deleted = 1
        store.insert_user(ghost)
        assert store.get_active_by_username("ghost") is None
        assert store.get_by_username("ghost").deleted == 1
        assert store.exists_by_username("ghost") is True

    def test_null_deleted_counts_as_active(self, store):
        store.insert_user(User(username="legacy", email="l@example.com", deleted=None, created_at=_TS, updated_at=_TS))
        assert store.get_active_by_username("legacy") is not None

    def test_save_user_overwrites_full_record(self, store):
        uid = store.insert_user(_user("alice", "alice@example.com"))
        user = store.get_by_id(uid)
        user.phone = "999"
        user.deleted = 1
        assert store.save_user(user) is True
        reloaded = store.get_by_id(uid)
        assert reloaded.phone == "999"
        assert reloaded.deleted == 1

    def test_save_unknown_id_returns_false(self, store):
        ghost = _user("ghost", "ghost@example.com", id=4242)
        assert store.save_user(ghost) is False

    def test_list_and_count_include_deleted(self, store):
        store.insert_user(_user("alice", "alice@example.com"))
        uid = store.insert_user(_user("bob", "bob@example.com"))
        bob = store.get_by_id(uid)
        bob.deleted = 1
        store.save_user(bob)
        assert [u.username for u in store.list_users()] == ["alice", "bob"]
        assert store.count_users() == 2

    def test_ping(self, store):
        assert store.ping() is True


class TestSessionRows:
    def test_create_and_get_session(self, store):
        store.create_session(Session(jti="abc", user_id=1, expires_at=_TS))
        session = store.get_session("abc")
        assert session.user_id == 1
        assert session.is_active is True
        assert session.created_at

    def test_revoke_session_once(self, store):
        store.create_session(Session(jti="abc", user_id=1, expires_at=_TS))
        assert store.revoke_session("abc") is True
        assert store.revoke_session("abc") is False
        assert store.get_session("abc").is_active is False

    def test_revoke_sessions_for_user_only_touches_that_user(self, store):
        store.create_session(Session(jti="a1", user_id=1, expires_at=_TS))
        store.create_session(Session(jti="a2", user_id=1, expires_at=_TS))
        store.create_session(Session(jti="b1", user_id=2, expires_at=_TS))
        assert store.revoke_sessions_for_user(1) == 2
        assert store.get_session("a1").is_active is False
        assert store.get_session("a2").is_active is False
        assert store.get_session("b1").is_active is True

    def test_purge_removes_revoked_and_expired_rows(self, store):
        store.create_session(Session(jti="live", user_id=1, expires_at="2024-06-01T00:00:00+00:00"))
        store.create_session(Session(jti="ended", user_id=1, expires_at="2024-06-01T00:00:00+00:00"))
        store.create_session(Session(jti="stale", user_id=2, expires_at="2024-01-01T00:00:00+00:00"))
        store.revoke_session("ended")

        assert store.purge_sessions("2024-03-01T00:00:00+00:00") == 2
        assert store.get_session("live") is not None
        assert store.get_session("ended") is None
        assert store.get_session("stale") is None
        assert store.purge_sessions("2024-03-01T00:00:00+00:00") == 0
