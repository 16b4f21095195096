"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication and authorization.

The session token is read from, in priority order:
  1. Authorization: Bearer <token> header -- API clients.
  2. The session cookie (Settings.token_name) -- set by POST /auth/login.
An explicit header wins so a client can act as a different user than the one
its cookie jar remembers.

try_get_current_user_id() is the soft variant (returns None on failure).
get_current_user_id() wraps it and raises NotAuthenticated (401).
require_role() / require_permission() build dependencies that additionally
consult the PolicyResolver and raise Forbidden (403).

All raised errors are auth.errors.AccountError subclasses; api/main.py renders
them into the response envelope.

Layer rule: no imports from api/. fastapi is allowed because this module is
part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Request

from auth.errors import Forbidden, NotAuthenticated
from auth.policies import PolicyResolver
from auth.sessions import SessionAuthority
from core.config import get_settings


def get_token(request: Request) -> str | None:
    """Return the presented session token, or None if the request carries none."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
        if token:
            return token
    return request.cookies.get(get_settings().token_name) or None


def try_get_current_user_id(request: Request) -> int | None:
    """Resolve the request's token to a subject id. Never raises."""
    sessions: SessionAuthority = request.app.state.sessions
    return sessions.current_subject(get_token(request))


def get_current_user_id(request: Request) -> int:
    """Require a live session. Raises NotAuthenticated (401) otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user_id: int = Depends(get_current_user_id)): ...
    """
    user_id = try_get_current_user_id(request)
    if user_id is None:
        raise NotAuthenticated()
    return user_id


def require_role(role: str) -> Callable[[Request], int]:
    """Build a dependency that requires a live session holding `role`.

    Raises NotAuthenticated (401) without a session, Forbidden (403) without the role.
    """

    def dependency(request: Request) -> int:
        user_id = get_current_user_id(request)
        policy: PolicyResolver = request.app.state.policy
        if not policy.has_role(user_id, role):
            raise Forbidden(f"Role '{role}' required.")
        return user_id

    return dependency


def require_permission(permission: str) -> Callable[[Request], int]:
    """Build a dependency that requires a live session holding `permission`."""

    def dependency(request: Request) -> int:
        user_id = get_current_user_id(request)
        policy: PolicyResolver = request.app.state.policy
        if not policy.has_permission(user_id, permission):
            raise Forbidden(f"Permission '{permission}' required.")
        return user_id

    return dependency
