"""
auth/policies.py -- Authorization Policy Resolver.

Derives the role set and permission set of a subject at evaluation time.
Nothing is cached: a soft delete or a kick-out takes effect on the very next
check.

Policy:
  - A subject that does not resolve to an active user has no roles and no
    permissions.
  - The elevated account (Settings.admin_username) holds the "admin" role;
    every other active user holds "user".
  - Permissions are the union of ROLE_PERMISSIONS over the subject's roles.

Failures never reach the caller. A subject id that does not parse as an
integer, or a lookup that raises, is logged and degrades to the empty set --
authorization fails closed.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging

from auth.directory import UserDirectory
from auth.models import User

logger = logging.getLogger("gatekeeper.policy")

ROLE_ADMIN = "admin"
ROLE_USER = "user"

_BASE_PERMISSIONS = frozenset({"user:info", "user:update"})

ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    ROLE_USER: _BASE_PERMISSIONS,
    ROLE_ADMIN: _BASE_PERMISSIONS | {"user:delete", "user:list", "admin:dashboard", "admin:kickout"},
}


def parse_subject_id(subject_id) -> int | None:
    """Coerce a subject id given as int or numeric string. None if it does not parse."""
    if subject_id is None or isinstance(subject_id, bool):
        return None
    try:
        return int(str(subject_id).strip())
    except ValueError:
        return None


class PolicyResolver:
    """Maps a subject id to its current roles and permissions."""

    def __init__(self, directory: UserDirectory, admin_username: str = "admin") -> None:
        self.directory = directory
        self.admin_username = admin_username

    def role_tags(self, user: User) -> set[str]:
        """Role tags held by an active user record."""
        if user.username == self.admin_username:
            return {ROLE_ADMIN}
        return {ROLE_USER}

    def _active_user(self, subject_id) -> User | None:
        user_id = parse_subject_id(subject_id)
        if user_id is None:
            logger.warning("Policy lookup skipped: malformed subject id %r", subject_id)
            return None
        try:
            return self.directory.find_by_id(user_id)
        except Exception:
            logger.exception("Policy lookup failed for subject %r", subject_id)
            return None

    def roles_for(self, subject_id) -> set[str]:
        user = self._active_user(subject_id)
        if user is None:
            return set()
        return self.role_tags(user)

    def permissions_for(self, subject_id) -> set[str]:
        user = self._active_user(subject_id)
        if user is None:
            return set()
        permissions: set[str] = set()
        for role in self.role_tags(user):
            permissions |= ROLE_PERMISSIONS.get(role, frozenset())
        return permissions

    def has_role(self, subject_id, role: str) -> bool:
        return role in self.roles_for(subject_id)

    def has_permission(self, subject_id, permission: str) -> bool:
        return permission in self.permissions_for(subject_id)
