"""
api/routes/auth.py -- Registration, login and session endpoints.

Routes:
  POST /auth/register          -- create an account (public)
  POST /auth/login             -- password login; returns token and sets cookie (public)
  GET  /auth/isLogin           -- report whether the presented token is live (public)
  GET  /auth/userInfo          -- current user, password redacted (requires auth)
  POST /auth/logout            -- end the presented session, clear cookie (public)
  POST /auth/kickout?userId=   -- end every session of a user (requires auth)

Security:
  Login returns one message for unknown username and wrong password.
  Cache-Control: no-store on login responses so tokens are not cached.
  Kick-out only checks that the caller is logged in. The admin:kickout
  permission exists in the policy table but this route does not demand it.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response

from api.models import ApiResponse, LoginData, LoginRequest, LoginStatus, RegisterData, RegisterRequest, UserOut
from auth.accounts import AccountService
from auth.dependencies import get_current_user_id, get_token
from auth.sessions import SessionAuthority
from auth.tokens import clear_auth_cookie, set_auth_cookie

# Auth policy:
# - POST /auth/register:  public
# - POST /auth/login:     public
# - GET  /auth/isLogin:   public -- answers false rather than 401
# - GET  /auth/userInfo:  requires auth (get_current_user_id)
# - POST /auth/logout:    public -- logging out without a session is a no-op
# - POST /auth/kickout:   requires auth (checked inside AccountService.kickout)
router = APIRouter()


@router.post("/auth/register", response_model=ApiResponse[RegisterData])
def register(request: Request, body: RegisterRequest) -> ApiResponse[RegisterData]:
    """Create an account. Duplicate username or email is a 409, checked before any write."""
    accounts: AccountService = request.app.state.accounts
    user = accounts.register(body.username, body.password, body.email, body.phone)
    return ApiResponse[RegisterData].success(
        RegisterData(user_id=user.id, username=user.username, email=user.email),
        message="Registration successful.",
    )


@router.post("/auth/login", response_model=ApiResponse[LoginData])
def login(request: Request, response: Response, body: LoginRequest) -> ApiResponse[LoginData]:
    """Authenticate with username and password and open a new session.

    Sessions are additive: logging in again does not end earlier sessions.
    """
    accounts: AccountService = request.app.state.accounts
    result = accounts.login(body.username, body.password)
    set_auth_cookie(response, result.token)
    response.headers["Cache-Control"] = "no-store"
    return ApiResponse[LoginData].success(
        LoginData(
            token=result.token,
            user_id=result.user.id,
            username=result.user.username,
            email=result.user.email,
            phone=result.user.phone,
        )
    )


@router.get("/auth/isLogin", response_model=ApiResponse[LoginStatus])
def is_login(request: Request) -> ApiResponse[LoginStatus]:
    sessions: SessionAuthority = request.app.state.sessions
    token = get_token(request)
    user_id = sessions.current_subject(token)
    if user_id is None:
        return ApiResponse[LoginStatus].success(LoginStatus(is_login=False))
    return ApiResponse[LoginStatus].success(LoginStatus(is_login=True, user_id=user_id, token=token))


@router.get("/auth/userInfo", response_model=ApiResponse[UserOut])
def user_info(request: Request, user_id: int = Depends(get_current_user_id)) -> ApiResponse[UserOut]:
    """Return the logged-in user's record without the password."""
    accounts: AccountService = request.app.state.accounts
    return ApiResponse[UserOut].success(UserOut.from_user(accounts.profile(user_id)))


@router.post("/auth/logout", response_model=ApiResponse[str])
def logout(request: Request, response: Response) -> ApiResponse[str]:
    accounts: AccountService = request.app.state.accounts
    accounts.logout(get_token(request))
    clear_auth_cookie(response)
    return ApiResponse[str].success("Logged out.")


@router.post("/auth/kickout", response_model=ApiResponse[str])
def kickout(
    request: Request,
    user_id: Optional[str] = Query(default=None, alias="userId"),
) -> ApiResponse[str]:
    """Force-logout every session of userId.

    userId is taken as a string and parsed by the service after the login
    check, so an anonymous caller gets 401 whatever the parameter holds.
    """
    accounts: AccountService = request.app.state.accounts
    accounts.kickout(get_token(request), user_id)
    return ApiResponse[str].success("User sessions ended.")
