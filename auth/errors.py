"""
auth/errors.py -- Account error taxonomy.

Every failure an account operation can report is an AccountError carrying the
envelope code it renders as. api/main.py turns these into
{"code": ..., "message": ..., "data": null} responses with the same HTTP
status, so services raise and never build responses themselves.

Layer rule: no imports from api/.
"""

from __future__ import annotations


class AccountError(Exception):
    """Base class for account-service failures."""

    code: int = 500
    default_message: str = "Account operation failed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(AccountError):
    """A required field is missing or blank. The message names the field."""

    code = 400
    default_message = "Invalid request."


class SelfDeletion(AccountError):
    code = 400
    default_message = "You cannot delete your own account."


class InvalidCredentials(AccountError):
    """Login failed. Deliberately identical for unknown user and wrong password."""

    code = 401
    default_message = "Invalid username or password."


class NotAuthenticated(AccountError):
    code = 401
    default_message = "Authentication required."


class AccountDisabled(AccountError):
    code = 403
    default_message = "Account is disabled."


class Forbidden(AccountError):
    code = 403
    default_message = "Insufficient permissions."


class UserNotFound(AccountError):
    code = 404
    default_message = "User not found."


class Conflict(AccountError):
    """Duplicate username or email. Raised before anything is written."""

    code = 409
    default_message = "Resource already exists."
