"""
auth/directory.py -- User Directory Service.

Pattern: Service layer over the UserStore repository. This is the single
source of truth for user CRUD and the only place soft-delete visibility is
decided:

  find_by_*()    -> active users only. Blank input fails closed (None) without
                    touching the store. Used by authentication and policy.
  exists_by_*()  -> every record, soft-deleted included. Existence is global so
                    a deleted identity cannot be re-registered.
  get_record()   -> raw lookup by id for administrative inspection.
  list_all()     -> every record; callers filter and redact.

Timestamps: create() stamps created_at (when unset) and updated_at; every
other mutation refreshes updated_at. All stamps come from one clock so tests
can pin time.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import Conflict, UserNotFound
from auth.models import User
from auth.store import UserStore

logger = logging.getLogger("gatekeeper.directory")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _clean(value) -> str | None:
    """Trim a lookup key. Returns None for None, non-strings that stringify blank, and blank strings."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _as_id(value) -> int | None:
    """Parse a user id given as int or numeric string. None if it does not parse."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


class UserDirectory:
    """Account CRUD with input normalization, soft-delete filtering and timestamps."""

    def __init__(self, store: UserStore, clock: Callable[[], datetime] = _utc_now) -> None:
        self.store = store
        self._clock = clock

    def _now(self) -> str:
        return self._clock().isoformat()

    # ------------------------------------------------------------------
    # Active-user lookups
    # ------------------------------------------------------------------

    def find_by_username(self, username: str | None) -> User | None:
        name = _clean(username)
        if name is None:
            return None
        return self.store.get_active_by_username(name)

    def find_by_id(self, user_id: int | None) -> User | None:
        """Return the active user with this id, or None if missing or soft-deleted.

        The store returns the raw row; the deletion check happens here. An id
        that is not an integer or numeric string finds nothing.
        """
        user_id = _as_id(user_id)
        if user_id is None:
            return None
        user = self.store.get_by_id(user_id)
        if user is None or user.is_deleted:
            return None
        return user

    def find_by_email(self, email: str | None) -> User | None:
        value = _clean(email)
        if value is None:
            return None
        user = self.store.get_by_email(value)
        if user is None or user.is_deleted:
            return None
        return user

    def find_by_phone(self, phone: str | None) -> User | None:
        value = _clean(phone)
        if value is None:
            return None
        user = self.store.get_by_phone(value)
        if user is None or user.is_deleted:
            return None
        return user

    # ------------------------------------------------------------------
    # Global lookups (soft-deleted records included)
    # ------------------------------------------------------------------

    def exists_by_username(self, username: str | None) -> bool:
        name = _clean(username)
        if name is None:
            return False
        return self.store.exists_by_username(name)

    def exists_by_email(self, email: str | None) -> bool:
        value = _clean(email)
        if value is None:
            return False
        return self.store.exists_by_email(value)

    def get_record(self, user_id: int | None) -> User | None:
        """Raw lookup by id for admin inspection. Does not hide soft-deleted records."""
        user_id = _as_id(user_id)
        if user_id is None:
            return None
        return self.store.get_by_id(user_id)

    def get_record_by_username(self, username: str | None) -> User | None:
        """Raw lookup by username. Does not hide soft-deleted records."""
        name = _clean(username)
        if name is None:
            return None
        return self.store.get_by_username(name)

    def list_all(self) -> list[User]:
        """Every record, soft-deleted included. Callers redact passwords."""
        return self.store.list_users()

    def count(self) -> int:
        return self.store.count_users()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(self, user: User | None) -> User:
        """Persist a new user and return the stored record with its assigned id.

        created_at is kept if the caller set one in the past, otherwise it is
        now. updated_at is always now, so updated_at >= created_at holds.
        deleted defaults to 0 (active).

        Raises Conflict if the store's unique index rejects the username or
        email -- the path a concurrent duplicate registration takes after
        slipping past the exists_by_*() pre-check.
        """
        if user is None:
            raise ValueError("user is required")
        now = self._now()
        record = replace(
            user,
            id=None,
            created_at=user.created_at if user.created_at and user.created_at <= now else now,
            updated_at=now,
            deleted=0 if user.deleted is None else user.deleted,
        )
        try:
            user_id = self.store.insert_user(record)
        except IntegrityError as exc:
            logger.info("Rejected duplicate account %r", record.username)
            raise Conflict("Username or email already exists.") from exc
        return self.store.get_by_id(user_id)

    def update(self, user: User | None) -> User:
        """Persist the record as given, refreshing updated_at.

        No field merge happens here; callers load, merge and pass the whole
        record back. The two fields that never change after creation,
        username and created_at, are taken from the stored row whatever the
        caller sent. Raises UserNotFound if no row has user.id.
        """
        if user is None or user.id is None:
            raise ValueError("user with an id is required")
        stored = self.store.get_by_id(user.id)
        if stored is None:
            raise UserNotFound()
        record = replace(user, username=stored.username, created_at=stored.created_at, updated_at=self._now())
        try:
            saved = self.store.save_user(record)
        except IntegrityError as exc:
            raise Conflict("Username or email already exists.") from exc
        if not saved:
            raise UserNotFound()
        return record

    def soft_delete(self, user_id: int | None) -> bool:
        """Mark a user deleted. Returns False if missing or if persistence fails.

        Persistence errors are logged and reported as False rather than raised.
        """
        if user_id is None:
            raise ValueError("user_id is required")
        try:
            user = self.store.get_by_id(user_id)
            if user is None:
                return False
            user.deleted = 1
            user.updated_at = self._now()
            return self.store.save_user(user)
        except SQLAlchemyError:
            logger.exception("Soft delete failed for user %s", user_id)
            return False

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    def verify_credentials(self, username: str | None, password: str | None) -> bool:
        """Return True if an active user has exactly this password.

        Plain equality, no hashing: stored passwords are whatever registration
        received.
        """
        if username is None or password is None:
            return False
        user = self.find_by_username(username)
        if user is None:
            return False
        return password == user.password
