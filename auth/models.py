"""
auth/models.py -- Domain dataclasses for account entities.

Pattern: Data class (pure data container, zero logic). Dataclasses own domain
shape; the store, directory and routes do the work.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A user account record.

    deleted is tri-state: None (never set) and 0 both mean active, 1 means
    soft-deleted. Soft-deleted rows are never physically removed -- their
    username and email stay reserved so the identity cannot be re-registered.

    password holds whatever was supplied at registration. Login compares it by
    exact equality; see auth/tokens.py for the hashing utility.

    created_at / updated_at are ISO 8601 UTC strings. created_at is set once;
    updated_at is refreshed by every mutation including soft delete.
    """

    username: str
    password: str | None = None
    email: str | None = None
    phone: str | None = None
    id: int | None = None
    deleted: int | None = None  # None/0 = active, 1 = soft-deleted
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted == 1


@dataclass
class Session:
    """One issued session token, bound to a subject (user id).

    The token handed to the client is a signed JWT whose jti claim points at
    this row. Revoking the row (logout, kick-out) kills the token even though
    its signature and expiry are still valid.
    """

    jti: str
    user_id: int
    expires_at: str
    id: int | None = None
    created_at: str | None = None
    is_active: bool = True
