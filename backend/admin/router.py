# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Admin endpoints – console login with 2FA, token check, trial activation and
the security event feed.

Endpoints that read data are guarded by ``require_admin``: a request needs a
valid ``admin`` or ``trial_admin`` token (Bearer header or the adminToken
cookie).  A regular user session token gets 401 before any handler runs.
"""

import io
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import StreamingResponse
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment, Border, Side

from admin.schemas import (
    AdminClaimsResponse,
    AdminLoginRequest,
    AdminLoginResponse,
    SecurityEventListResponse,
    SecurityEventRow,
    TrialActivationRequest,
    TrialActivationResponse,
)
from auth.schemas import StatusResponse
from core.config import settings
from core.errors import RequestValidationFailed
from core.security import (
    TrialAdminClaims,
    get_admin_authority,
    get_audit_trail,
    get_client_ip,
    require_admin,
)

router = APIRouter(prefix="/admin", tags=["admin"])

_ADMIN_COOKIE = "adminToken"


# ---------------------------------------------------------------------------
# POST /admin/login
# ---------------------------------------------------------------------------


@router.post("/login", response_model=AdminLoginResponse, response_model_exclude_none=True)
def admin_login(
    body: AdminLoginRequest,
    request: Request,
    response: Response,
    authority=Depends(get_admin_authority),
):
    """
    Password + TOTP login.  The token is returned in the body and set as a
    strict same-site, http-only cookie (1 hour for admin, 7 days for trial).
    """
    if not body.username or not body.password or not body.two_factor_code:
        raise RequestValidationFailed("Username, password and 2FA code are required")

    result = authority.login(
        body.username,
        body.password,
        body.two_factor_code,
        request_ip=get_client_ip(request),
    )

    response.set_cookie(
        _ADMIN_COOKIE,
        result.token,
        max_age=result.max_age,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
        path="/",
    )
    return AdminLoginResponse(role=result.role, token=result.token, expiration=result.expiration)


# ---------------------------------------------------------------------------
# POST /admin/logout
# ---------------------------------------------------------------------------


@router.post("/logout", response_model=StatusResponse)
def admin_logout(response: Response):
    response.delete_cookie(_ADMIN_COOKIE, path="/")
    return StatusResponse()


# ---------------------------------------------------------------------------
# GET /admin/auth  – who am I
# ---------------------------------------------------------------------------


@router.get("/auth", response_model=AdminClaimsResponse, response_model_exclude_none=True)
def admin_auth(claims=Depends(require_admin)):
    """Return the decoded claims of a valid admin / trial-admin token."""
    return AdminClaimsResponse(
        subject=claims.subject,
        role=claims.role,
        expiration=claims.expiration if isinstance(claims, TrialAdminClaims) else None,
        expires_at=claims.expires_at,
    )


# ---------------------------------------------------------------------------
# POST /admin/trial  – redeem a trial activation code
# ---------------------------------------------------------------------------


@router.post("/trial", response_model=TrialActivationResponse)
def activate_trial(
    body: TrialActivationRequest,
    request: Request,
    authority=Depends(get_admin_authority),
):
    code = (body.code or "").strip()
    if not code:
        raise RequestValidationFailed("Trial code is required")

    result = authority.activate_trial(code, request_ip=get_client_ip(request))
    return TrialActivationResponse(token=result.token, expiration=result.expiration)


# ---------------------------------------------------------------------------
# GET /admin/security/events  – newest-first security events
# ---------------------------------------------------------------------------


@router.get("/security/events", response_model=SecurityEventListResponse)
def list_security_events(
    action: Optional[str] = Query(None, description="Only events with this action, e.g. login_failed"),
    limit: int = Query(200, ge=1, le=1000),
    claims=Depends(require_admin),
    audit=Depends(get_audit_trail),
):
    rows = audit.recent(limit=limit, action=action)
    return SecurityEventListResponse(events=[SecurityEventRow.model_validate(r) for r in rows])


# ---------------------------------------------------------------------------
# GET /admin/security/events/export  – download security events as Excel
# ---------------------------------------------------------------------------

_EVENT_HEADER_FONT  = Font(name="Calibri", size=11, bold=True, color="FFFFFF")
_EVENT_HEADER_FILL  = PatternFill(start_color="3B82F6", end_color="3B82F6", fill_type="solid")
_EVENT_HEADER_ALIGN = Alignment(horizontal="center", vertical="center")
_EVENT_THIN_BORDER  = Border(
    left=Side(style="thin", color="CCCCCC"),
    right=Side(style="thin", color="CCCCCC"),
    top=Side(style="thin", color="CCCCCC"),
    bottom=Side(style="thin", color="CCCCCC"),
)

_EVENT_EXPORT_HEADERS = ["ID", "Time", "Action", "Subject", "Request IP", "Details"]
_EVENT_COL_WIDTHS = [8, 20, 26, 36, 16, 40]


@router.get("/security/events/export")
def export_security_events(
    claims=Depends(require_admin),
    audit=Depends(get_audit_trail),
):
    """Export the most recent security events as an Excel file."""
    rows = audit.recent(limit=10_000)

    wb = Workbook()
    ws = wb.active
    ws.title = "Security Events"

    # Header row
    ws.append(_EVENT_EXPORT_HEADERS)
    for cell in ws[1]:
        cell.font = _EVENT_HEADER_FONT
        cell.fill = _EVENT_HEADER_FILL
        cell.alignment = _EVENT_HEADER_ALIGN
        cell.border = _EVENT_THIN_BORDER

    # Data rows
    for row in rows:
        ws.append([
            row.id,
            row.created_at.strftime("%Y-%m-%d %H:%M:%S") if row.created_at else "",
            row.action,
            row.subject or "",
            row.request_ip or "",
            row.detail or "",
        ])
        row_idx = ws.max_row
        for col_idx in range(1, len(_EVENT_EXPORT_HEADERS) + 1):
            ws.cell(row=row_idx, column=col_idx).border = _EVENT_THIN_BORDER

    for col_idx, width in enumerate(_EVENT_COL_WIDTHS, start=1):
        ws.column_dimensions[chr(64 + col_idx)].width = width

    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    wb.close()

    return StreamingResponse(
        buf,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": 'attachment; filename="security-events.xlsx"'},
    )
