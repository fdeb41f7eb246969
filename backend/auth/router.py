# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Auth endpoints – register, login, email verification, password reset,
current-user info.

Security notes
--------------
* Login returns the *same* error message whether the email doesn't exist,
  the account has no password, or the password is wrong.  This prevents
  user-enumeration attacks.
* forgot-password does tell unknown emails apart ("User not found").  The
  frontend relies on that message; see DESIGN.md.
* Session cookies are http-only; they carry Secure unless COOKIE_SECURE is
  switched off for local HTTP development.
"""

import re

from fastapi import APIRouter, Depends, Request, Response

from auth.schemas import (
    AuthRequest,
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    ResetPasswordRequest,
    StatusResponse,
    UserOut,
    VerifyEmailRequest,
)
from core.config import settings
from core.errors import RequestValidationFailed
from core.security import get_auth_service, get_client_ip, get_current_user

router = APIRouter(prefix="/auth", tags=["auth"])

_SESSION_COOKIE = "token"


def _validate_new_password(pw: str) -> str | None:
    """
    Return an error string if the password does not meet the minimum policy,
    or None if it is acceptable.

    Policy: >= 8 chars, at least one uppercase, one lowercase, one digit.
    """
    if len(pw) < 8:
        return "Password must be at least 8 characters"
    if not re.search(r"[A-Z]", pw):
        return "Password must contain at least one uppercase letter"
    if not re.search(r"[a-z]", pw):
        return "Password must contain at least one lowercase letter"
    if not re.search(r"[0-9]", pw):
        return "Password must contain at least one digit"
    return None


def _check_new_password(pw: str) -> None:
    err = _validate_new_password(pw)
    if err:
        raise RequestValidationFailed(err)


def _auth_response(result) -> AuthResponse:
    return AuthResponse(user=UserOut.model_validate(result.user), token=result.token)


# ---------------------------------------------------------------------------
# POST /auth  – combined register / login
# ---------------------------------------------------------------------------


@router.post("", response_model=AuthResponse, response_model_exclude_none=True)
def register_or_login(body: AuthRequest, request: Request, service=Depends(get_auth_service)):
    """``action: "register"`` creates an account; anything else logs in."""
    email = (body.email or "").strip()
    if not email or not body.password:
        raise RequestValidationFailed("Email and password are required")

    ip = get_client_ip(request)
    if body.action == "register":
        _check_new_password(body.password)
        result = service.register(email, body.password, body.name, request_ip=ip)
    else:
        result = service.login(email, body.password, request_ip=ip)
    return _auth_response(result)


# ---------------------------------------------------------------------------
# POST /auth/login
# ---------------------------------------------------------------------------


@router.post("/login", response_model=AuthResponse, response_model_exclude_none=True)
def login(body: LoginRequest, request: Request, response: Response, service=Depends(get_auth_service)):
    """Authenticate, return a signed JWT and set it as the session cookie."""
    email = (body.email or "").strip()
    if not email or not body.password:
        raise RequestValidationFailed("Email and password are required")

    result = service.login(email, body.password, body.remember_me, request_ip=get_client_ip(request))

    # 30 days with remember-me, 24 hours otherwise
    response.set_cookie(
        _SESSION_COOKIE,
        result.token,
        max_age=result.max_age,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        path="/",
    )
    return _auth_response(result)


# ---------------------------------------------------------------------------
# POST /auth/logout
# ---------------------------------------------------------------------------


@router.post("/logout", response_model=StatusResponse)
def logout(response: Response):
    """Drop the session cookie.  The token itself stays valid until it expires."""
    response.delete_cookie(_SESSION_COOKIE, path="/")
    return StatusResponse()


# ---------------------------------------------------------------------------
# POST /auth/verify-email
# ---------------------------------------------------------------------------


@router.post("/verify-email", response_model=StatusResponse)
def verify_email(body: VerifyEmailRequest, request: Request, service=Depends(get_auth_service)):
    if not body.token:
        raise RequestValidationFailed("Verification token is required")
    service.verify_email(body.token, request_ip=get_client_ip(request))
    return StatusResponse()


# ---------------------------------------------------------------------------
# POST /auth/forgot-password
# ---------------------------------------------------------------------------


@router.post("/forgot-password", response_model=StatusResponse)
def forgot_password(body: ForgotPasswordRequest, request: Request, service=Depends(get_auth_service)):
    email = (body.email or "").strip()
    if not email:
        raise RequestValidationFailed("Email is required")
    service.request_password_reset(email, request_ip=get_client_ip(request))
    return StatusResponse()


# ---------------------------------------------------------------------------
# POST /auth/reset-password
# ---------------------------------------------------------------------------


@router.post("/reset-password", response_model=StatusResponse)
def reset_password(body: ResetPasswordRequest, request: Request, service=Depends(get_auth_service)):
    if not body.token or not body.new_password:
        raise RequestValidationFailed("Token and new password are required")
    _check_new_password(body.new_password)
    service.reset_password(body.token, body.new_password, request_ip=get_client_ip(request))
    return StatusResponse()


# ---------------------------------------------------------------------------
# GET /auth/me
# ---------------------------------------------------------------------------


@router.get("/me", response_model=AuthResponse, response_model_exclude_none=True)
def me(current_user=Depends(get_current_user)):
    """Return the authenticated user's public profile (no secrets)."""
    return AuthResponse(user=UserOut.model_validate(current_user))
