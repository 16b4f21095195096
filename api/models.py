"""
API request and response models for Gatekeeper REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py, which own the
internal domain representation. Route handlers map between the two.

Every response -- success or failure -- uses the ApiResponse envelope:
    {"code": 200, "message": "success", "data": {...}}
code mirrors the HTTP status; anything other than 200 carries data=null.
JSON keys are camelCase (userId, createdAt, ...).
"""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from auth.models import User

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base for transport models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------


class ApiResponse(BaseModel, Generic[T]):
    """Uniform response envelope."""

    code: int = 200
    message: str = "success"
    data: Optional[T] = None

    @classmethod
    def success(cls, data=None, message: str = "success"):
        return cls(code=200, message=message, data=data)

    @classmethod
    def error(cls, code: int, message: str):
        return cls(code=code, message=message, data=None)


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------
#
# Required fields are Optional here on purpose: blank and missing values are
# rejected by AccountService with a field-specific 400, not by pydantic with
# a generic 422.


class RegisterRequest(CamelModel):
    username: Optional[str] = Field(default=None, max_length=64)
    password: Optional[str] = Field(default=None, max_length=64)
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=32)


class LoginRequest(CamelModel):
    username: Optional[str] = Field(default=None, max_length=64)
    password: Optional[str] = Field(default=None, max_length=64)


class ProfileUpdate(CamelModel):
    """Body for PUT /user/profile. Only email and phone are applied."""

    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=32)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserOut(CamelModel):
    """A user record with the password removed."""

    id: int
    username: str
    email: Optional[str] = None
    phone: Optional[str] = None
    deleted: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "UserOut":
        """Build the redacted view of a domain User."""
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            phone=user.phone,
            deleted=user.deleted or 0,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class RegisterData(CamelModel):
    user_id: int
    username: str
    email: str


class LoginData(CamelModel):
    token: str
    user_id: int
    username: str
    email: Optional[str] = None
    phone: Optional[str] = None


class LoginStatus(CamelModel):
    is_login: bool
    user_id: Optional[int] = None
    token: Optional[str] = None


class PermissionsData(CamelModel):
    permissions: list[str]
    roles: list[str]
    user_id: int


class DashboardData(CamelModel):
    message: str
    total_users: int
    current_admin: int


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
