# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
FastAPI application factory.

Responsibilities
----------------
* Build the auth services once – token codec, password hasher, mail
  dispatcher, audit trail, AuthService, AdminAuthority – and park them on
  ``app.state`` for the request handlers.
* Register CORS and request-logging middleware.
* Render every :class:`AuthError` (and body validation failures) as the
  ``{"success": false, "error": ...}`` envelope.
* Mount the feature routers (auth, admin) and a /health endpoint.

Tests call :func:`create_app` with their own session factory, clock and
mailer; uvicorn serves the module-level ``app``.
"""

import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from admin.authority import AdminAuthority
from admin.router import router as admin_router
from auth.router import router as auth_router
from auth.service import AuthService
from core.audit import AuditTrail
from core.clock import SystemClock
from core.config import settings
from core.errors import AuthError
from core.logger import logger
from core.mailer import MailDispatcher, SmtpMailer
from core.security import PasswordHasher, TokenCodec
from database import SessionLocal


# ---------------------------------------------------------------------------
# Request-logging middleware
# ---------------------------------------------------------------------------
# Logs every inbound request: method, path, client IP, status, latency.
# Request bodies (passwords, tokens, 2FA codes) are NOT echoed – only the
# URL and metadata are recorded.


class _RequestLogMiddleware(BaseHTTPMiddleware):
    """Log method, path, client IP, response status and latency (ms)."""

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        client_ip = request.client.host if request.client else "unknown"

        logger.info(
            "%s %s | client=%s status=%d latency=%.1fms",
            request.method,
            request.url.path,
            client_ip,
            response.status_code,
            elapsed_ms,
        )
        return response


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------


async def _auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed with an internal error", request.method, request.url.path)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message},
    )


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Invalid request body"},
    )


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_app(session_factory=None, mailer=None, clock=None, cfg=None) -> FastAPI:
    cfg = cfg or settings
    session_factory = session_factory or SessionLocal
    clock = clock or SystemClock()

    app = FastAPI(title="VoyageX Auth", version="1.0.0")

    codec = TokenCodec(cfg.secret_key, clock)
    hasher = PasswordHasher(cfg.password_hash_rounds)
    audit = AuditTrail(session_factory)
    mail = MailDispatcher(mailer or SmtpMailer(cfg), max_workers=cfg.mail_workers, cfg=cfg)

    app.state.mail_dispatcher = mail
    app.state.audit_trail = audit
    app.state.auth_service = AuthService(session_factory, codec, hasher, mail, audit, clock, cfg)
    app.state.admin_authority = AdminAuthority(session_factory, codec, hasher, audit, clock, cfg)

    # -- CORS ----------------------------------------------------------------
    # Cookies are used for sessions, so origins must be listed explicitly.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Authorization", "Content-Type"],
    )
    app.add_middleware(_RequestLogMiddleware)

    app.add_exception_handler(AuthError, _auth_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    app.include_router(auth_router)
    app.include_router(admin_router)

    @app.on_event("startup")
    async def _on_startup():
        logger.info("VoyageX auth service starting up")

    @app.on_event("shutdown")
    async def _on_shutdown():
        mail.shutdown()
        logger.info("VoyageX auth service shutting down")

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
