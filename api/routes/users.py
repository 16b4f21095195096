"""
api/routes/users.py -- Profile and user administration endpoints.

Routes:
  GET    /user/profile          -- own profile (requires auth)
  PUT    /user/profile          -- update own email/phone (permission user:update)
  GET    /user/list             -- every account incl. soft-deleted (role admin)
  DELETE /user/{user_id}        -- soft-delete and kick out (role admin + permission user:delete)
  GET    /user/permissions      -- own roles and permissions (requires auth)
  GET    /user/admin/dashboard  -- admin summary (role admin)

Roles and permissions are evaluated per request by auth.policies.PolicyResolver;
nothing is cached in the token.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.models import ApiResponse, DashboardData, PermissionsData, ProfileUpdate, UserOut
from auth.accounts import AccountService
from auth.dependencies import get_current_user_id, get_token, require_permission, require_role
from auth.directory import UserDirectory
from auth.policies import ROLE_ADMIN, PolicyResolver

router = APIRouter()


@router.get("/user/profile", response_model=ApiResponse[UserOut])
def get_profile(request: Request, user_id: int = Depends(get_current_user_id)) -> ApiResponse[UserOut]:
    accounts: AccountService = request.app.state.accounts
    return ApiResponse[UserOut].success(UserOut.from_user(accounts.profile(user_id)))


@router.put("/user/profile", response_model=ApiResponse[UserOut])
def update_profile(
    request: Request,
    body: ProfileUpdate,
    user_id: int = Depends(require_permission("user:update")),
) -> ApiResponse[UserOut]:
    """Replace email and phone on the caller's record. Other fields in the body are ignored."""
    accounts: AccountService = request.app.state.accounts
    user = accounts.update_profile(user_id, body.email, body.phone)
    return ApiResponse[UserOut].success(UserOut.from_user(user), message="Profile updated.")


@router.get("/user/list", response_model=ApiResponse[list[UserOut]])
def list_users(request: Request, _admin_id: int = Depends(require_role(ROLE_ADMIN))) -> ApiResponse[list[UserOut]]:
    """List every account, soft-deleted ones included, with passwords removed."""
    directory: UserDirectory = request.app.state.directory
    return ApiResponse[list[UserOut]].success([UserOut.from_user(u) for u in directory.list_all()])


@router.delete(
    "/user/{user_id}",
    response_model=ApiResponse[str],
    dependencies=[Depends(require_role(ROLE_ADMIN)), Depends(require_permission("user:delete"))],
)
def delete_user(request: Request, user_id: int) -> ApiResponse[str]:
    """Soft-delete a user and end their sessions. Deleting yourself is refused."""
    accounts: AccountService = request.app.state.accounts
    accounts.delete_user(get_token(request), user_id)
    return ApiResponse[str].success("User deleted.")


@router.get("/user/permissions", response_model=ApiResponse[PermissionsData])
def get_permissions(request: Request, user_id: int = Depends(get_current_user_id)) -> ApiResponse[PermissionsData]:
    policy: PolicyResolver = request.app.state.policy
    return ApiResponse[PermissionsData].success(
        PermissionsData(
            permissions=sorted(policy.permissions_for(user_id)),
            roles=sorted(policy.roles_for(user_id)),
            user_id=user_id,
        )
    )


@router.get("/user/admin/dashboard", response_model=ApiResponse[DashboardData])
def admin_dashboard(
    request: Request,
    admin_id: int = Depends(require_role(ROLE_ADMIN)),
) -> ApiResponse[DashboardData]:
    directory: UserDirectory = request.app.state.directory
    return ApiResponse[DashboardData].success(
        DashboardData(
            message="Welcome to the admin console.",
            total_users=directory.count(),
            current_admin=admin_id,
        )
    )
