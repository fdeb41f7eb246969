# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""Pydantic request / response models for the auth endpoints."""

from typing import Optional

from pydantic import BaseModel, Field

# Request fields are optional so that missing values reach the handler and
# get the endpoint's own "… is required" message instead of a schema error.
# JSON keys are camelCase (rememberMe, newPassword); snake_case is accepted too.


class _Request(BaseModel):
    model_config = {"populate_by_name": True}


# -- Requests --------------------------------------------------------------


class AuthRequest(_Request):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None
    action: Optional[str] = None  # "register" or "login"


class LoginRequest(_Request):
    email: Optional[str] = None
    password: Optional[str] = None
    remember_me: bool = Field(False, alias="rememberMe")


class VerifyEmailRequest(_Request):
    token: Optional[str] = None


class ForgotPasswordRequest(_Request):
    email: Optional[str] = None


class ResetPasswordRequest(_Request):
    token: Optional[str] = None
    new_password: Optional[str] = Field(None, alias="newPassword")


# -- Responses -------------------------------------------------------------


class UserOut(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    image: Optional[str] = None
    is_verified: bool = Field(serialization_alias="isVerified")

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    success: bool = True
    user: Optional[UserOut] = None
    token: Optional[str] = None


class StatusResponse(BaseModel):
    success: bool = True
