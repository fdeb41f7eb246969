# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""Pydantic request / response models for the admin endpoints."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


# -- Requests --------------------------------------------------------------


class AdminLoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None
    two_factor_code: Optional[str] = Field(None, alias="twoFactorCode")

    model_config = {"populate_by_name": True}


class TrialActivationRequest(BaseModel):
    code: Optional[str] = None


# -- Responses -------------------------------------------------------------


class AdminLoginResponse(BaseModel):
    success: bool = True
    role: str
    token: str
    expiration: Optional[datetime] = None


class TrialActivationResponse(BaseModel):
    success: bool = True
    token: str
    expiration: datetime


class AdminClaimsResponse(BaseModel):
    success: bool = True
    subject: str
    role: str
    expiration: Optional[datetime] = None   # trial end, trial_admin only
    expires_at: datetime = Field(serialization_alias="expiresAt")


# -- Security event responses ----------------------------------------------


class SecurityEventRow(BaseModel):
    id: int
    action: str
    subject: Optional[str] = None
    detail: Optional[str] = None
    request_ip: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class SecurityEventListResponse(BaseModel):
    success: bool = True
    events: List[SecurityEventRow]
