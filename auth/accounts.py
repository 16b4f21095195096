"""
auth/accounts.py -- Account lifecycle operations.

Composes the directory and the session authority into the operations the
HTTP layer exposes: register, login, logout, kick-out, profile read/update
and admin delete. Also owns bootstrap seeding of the two canonical accounts.

Every failure is raised as an auth.errors.AccountError subclass; the API layer
renders it. Nothing here knows about requests or responses.

Login error policy:
  - Unknown username and wrong password raise the same InvalidCredentials.
  - A soft-deleted account with the correct password raises AccountDisabled,
    so a disabled user learns why. A wrong password against a deleted account
    is still InvalidCredentials, so the disabled state never leaks to someone
    who does not hold the password.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from auth.directory import UserDirectory
from auth.errors import AccountDisabled, Conflict, InvalidCredentials, SelfDeletion, UserNotFound, ValidationFailed
from auth.models import User
from auth.sessions import SessionAuthority
from core.config import Settings

logger = logging.getLogger("gatekeeper.accounts")


@dataclass
class LoginResult:
    user: User
    token: str


def _require(value: str | None, field: str) -> str:
    """Return value unchanged, or raise ValidationFailed naming the field if blank."""
    if value is None or not str(value).strip():
        raise ValidationFailed(f"{field} must not be blank.")
    return value


def _optional(value: str | None) -> str | None:
    """Trim an optional field; blank becomes None so "no value" has one form."""
    if value is None:
        return None
    return value.strip() or None


class AccountService:
    """Register, authenticate and manage user accounts."""

    def __init__(self, directory: UserDirectory, sessions: SessionAuthority) -> None:
        self.directory = directory
        self.sessions = sessions

    # ------------------------------------------------------------------
    # Public flows
    # ------------------------------------------------------------------

    def register(
        self,
        username: str | None,
        password: str | None,
        email: str | None,
        phone: str | None = None,
    ) -> User:
        """Create an active account. Conflicts are detected before anything is written."""
        username = _require(username, "username").strip()
        password = _require(password, "password")
        email = _require(email, "email").strip()

        if self.directory.exists_by_username(username):
            raise Conflict("Username already exists.")
        if self.directory.exists_by_email(email):
            raise Conflict("Email is already registered.")

        user = self.directory.create(
            User(username=username, password=password, email=email, phone=_optional(phone))
        )
        logger.info("Registered user %s (id=%s)", user.username, user.id)
        return user

    def login(self, username: str | None, password: str | None) -> LoginResult:
        """Check credentials and issue a session token."""
        username = _require(username, "username").strip()
        password = _require(password, "password")

        user = self.directory.find_by_username(username)
        if user is None:
            record = self.directory.get_record_by_username(username)
            if record is not None and record.is_deleted and record.password == password:
                raise AccountDisabled()
            raise InvalidCredentials()
        if user.is_deleted:
            raise AccountDisabled()
        if password != user.password:
            raise InvalidCredentials()

        token = self.sessions.issue(user.id)
        logger.info("User %s logged in", user.username)
        return LoginResult(user=user, token=token)

    def logout(self, token: str | None) -> bool:
        """End the presenting session. Not being logged in is not an error."""
        return self.sessions.invalidate(token)

    # ------------------------------------------------------------------
    # Authenticated flows
    # ------------------------------------------------------------------

    def profile(self, user_id: int) -> User:
        user = self.directory.find_by_id(user_id)
        if user is None:
            raise UserNotFound()
        return user

    def update_profile(self, user_id: int, email: str | None, phone: str | None) -> User:
        """Merge email and phone onto the stored record; nothing else changes."""
        email = _require(email, "email").strip()
        user = self.profile(user_id)
        if email != user.email and self.directory.exists_by_email(email):
            raise Conflict("Email is already registered.")
        user.email = email
        user.phone = _optional(phone)
        return self.directory.update(user)

    def kickout(self, token: str | None, target_id: int | str | None) -> int:
        """Force every session of target_id to end. Any logged-in caller may do this.

        target_id may arrive as the raw query string; it is parsed only after
        the caller is known to be logged in, so anonymous callers always get
        NotAuthenticated.
        """
        self.sessions.require_authenticated(token)
        try:
            parsed = int(str(target_id).strip()) if target_id is not None else None
        except ValueError:
            parsed = None
        if parsed is None or parsed <= 0:
            raise ValidationFailed("userId must be a positive integer.")
        return self.sessions.force_invalidate(parsed)

    def delete_user(self, token: str | None, target_id: int) -> None:
        """Soft-delete target_id and end its sessions. Nobody may delete themselves."""
        caller_id = self.sessions.require_authenticated(token)
        if caller_id == target_id:
            raise SelfDeletion()
        if not self.directory.soft_delete(target_id):
            raise UserNotFound()
        self.sessions.force_invalidate(target_id)
        logger.info("User %s soft-deleted by %s", target_id, caller_id)

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    def seed_defaults(self, settings: Settings) -> list[str]:
        """Create the elevated and the demo account if their usernames are free.

        Idempotent. A soft-deleted seed account still holds its username and
        is left alone. Returns the usernames created on this call.
        """
        accounts = [
            User(
                username=settings.admin_username,
                password=settings.admin_password,
                email=settings.admin_email,
                phone=settings.admin_phone,
            ),
            User(
                username=settings.demo_username,
                password=settings.demo_password,
                email=settings.demo_email,
                phone=settings.demo_phone,
            ),
        ]
        created: list[str] = []
        for account in accounts:
            if self.directory.exists_by_username(account.username):
                logger.info("Seed account %s already present, skipping", account.username)
                continue
            try:
                self.directory.create(account)
            except Conflict:
                logger.warning("Seed account %s collides with an existing email, skipping", account.username)
                continue
            logger.info("Seed account %s created", account.username)
            created.append(account.username)
        return created
