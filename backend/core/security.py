# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Central security module.  All cryptographic primitives and auth guards live
here.  No other module should touch raw crypto directly.

Responsibilities
----------------
1. Password hashing / verification          (passlib pbkdf2_sha256)
2. Session tokens and their claim types     (PyJWT / HS256)
3. One-time tokens for verify / reset mails (secrets)
4. Time-based one-time codes for admin 2FA  (RFC 6238, HMAC-SHA1)
5. FastAPI dependency guards                (get_current_user, require_admin)
"""

import base64
import hashlib
import hmac
import secrets
import struct
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

import jwt as _jwt        # PyJWT
from passlib.hash import pbkdf2_sha256 as _pbkdf2  # pure Python, no binary deps
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.clock import SystemClock
from core.config import settings
from core.errors import AdminAccessRequiredError, InvalidTokenError
from core.logger import logger

# ---------------------------------------------------------------------------
# 1.  pbkdf2_sha256 – password hashing
# ---------------------------------------------------------------------------
# passlib embeds a random salt and the round count in the hash string, so two
# hashes of the same password never compare equal.  Always go through
# verify(); never compare hash strings.
# ---------------------------------------------------------------------------


class PasswordHasher:
    """Salted, slow one-way hashing.  ``rounds`` is the tunable work factor."""

    def __init__(self, rounds: Optional[int] = None):
        self._scheme = _pbkdf2.using(rounds=rounds or settings.password_hash_rounds)

    def hash(self, plain: str) -> str:
        """Return the full passlib hash string, e.g. ``$pbkdf2-sha256$...``."""
        return self._scheme.hash(plain)

    def verify(self, plain: str, stored_hash: Optional[str]) -> bool:
        """
        Constant-time verification of *plain* against *stored_hash*.

        A missing or malformed hash is a mismatch, not an error – OAuth-only
        accounts have no hash and must simply fail password login.
        """
        if not stored_hash:
            return False
        try:
            return self._scheme.verify(plain, stored_hash)
        except ValueError:
            logger.warning("Stored password hash is not a pbkdf2_sha256 hash")
            return False


# ---------------------------------------------------------------------------
# 2.  JWT – session tokens
# ---------------------------------------------------------------------------
# Claims are a closed set of three shapes, tagged in the payload by ``kind``.
# ``expires_at`` is filled in by TokenCodec.verify from the ``exp`` claim.

ROLE_ADMIN = "admin"
ROLE_TRIAL_ADMIN = "trial_admin"

_ALGORITHM = "HS256"


@dataclass(frozen=True)
class StandardClaims:
    user_id: str
    email: str
    expires_at: Optional[datetime] = None

    kind = "standard"
    role = None


@dataclass(frozen=True)
class AdminClaims:
    username: str
    expires_at: Optional[datetime] = None

    kind = ROLE_ADMIN
    role = ROLE_ADMIN

    @property
    def subject(self) -> str:
        return self.username


@dataclass(frozen=True)
class TrialAdminClaims:
    # trial admin username, or the trial code that was activated
    subject: str
    # hard end of the trial; the token is rejected after it even if ``exp``
    # is later
    expiration: datetime
    expires_at: Optional[datetime] = None

    kind = ROLE_TRIAL_ADMIN
    role = ROLE_TRIAL_ADMIN


SessionClaims = Union[StandardClaims, AdminClaims, TrialAdminClaims]


class TokenCodec:
    """Sign and verify session tokens with the process-wide secret."""

    def __init__(self, secret_key: str, clock=None):
        self._secret_key = secret_key
        self._clock = clock or SystemClock()

    def issue(self, claims: SessionClaims, validity: timedelta) -> str:
        """Sign *claims* with ``exp = now + validity``."""
        now = self._clock.now()
        payload = {"kind": claims.kind, "iat": int(now.timestamp())}
        if isinstance(claims, StandardClaims):
            payload["sub"] = claims.user_id
            payload["email"] = claims.email
        elif isinstance(claims, AdminClaims):
            payload["sub"] = claims.username
            payload["role"] = ROLE_ADMIN
        else:
            payload["sub"] = claims.subject
            payload["role"] = ROLE_TRIAL_ADMIN
            payload["expiration"] = claims.expiration.isoformat()
        payload["exp"] = int((now + validity).timestamp())
        return _jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def verify(self, token: str) -> SessionClaims:
        """
        Decode and verify a token.  Raises :class:`InvalidTokenError` on any
        failure (expired, bad signature, malformed, unknown kind) – callers
        get no hint which one it was.
        """
        try:
            payload = _jwt.decode(
                token,
                self._secret_key,
                algorithms=[_ALGORITHM],
                # time claims are checked below against the injected clock
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "require": ["exp", "sub"],
                },
            )
        except _jwt.InvalidTokenError:
            raise InvalidTokenError()

        now = self._clock.now()
        try:
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
            claims = self._claims_from_payload(payload)
        except (KeyError, TypeError, ValueError):
            raise InvalidTokenError()

        if expires_at <= now:
            raise InvalidTokenError()
        if isinstance(claims, TrialAdminClaims) and claims.expiration <= now:
            raise InvalidTokenError()
        return replace(claims, expires_at=expires_at)

    @staticmethod
    def _claims_from_payload(payload: dict) -> SessionClaims:
        kind = payload.get("kind")
        if kind == StandardClaims.kind:
            return StandardClaims(user_id=str(payload["sub"]), email=str(payload["email"]))
        if kind == AdminClaims.kind:
            return AdminClaims(username=str(payload["sub"]))
        if kind == TrialAdminClaims.kind:
            expiration = datetime.fromisoformat(payload["expiration"])
            if expiration.tzinfo is None:
                expiration = expiration.replace(tzinfo=timezone.utc)
            return TrialAdminClaims(subject=str(payload["sub"]), expiration=expiration)
        raise ValueError(f"unknown token kind {kind!r}")


# ---------------------------------------------------------------------------
# 3.  One-time tokens (email verification, password reset)
# ---------------------------------------------------------------------------


def generate_one_time_token() -> str:
    """256 random bits, hex encoded (64 chars).  Validity is tracked by the caller."""
    return secrets.token_hex(32)


# ---------------------------------------------------------------------------
# 4.  TOTP – admin second factor
# ---------------------------------------------------------------------------
# Compatible with authenticator apps: base32 secret, HMAC-SHA1, 30 s steps,
# 6 digits.  verify_totp accepts the current step ± window for clock skew.


def _decode_totp_secret(secret: str) -> bytes:
    cleaned = secret.replace(" ", "").upper()
    padded = cleaned + "=" * ((8 - len(cleaned) % 8) % 8)
    return base64.b32decode(padded, casefold=True)


def generate_totp(
    secret: str,
    for_time: float,
    *,
    interval: Optional[int] = None,
    digits: Optional[int] = None,
) -> str:
    """Return the code for the time step containing *for_time* (unix seconds)."""
    interval = interval or settings.totp_interval_seconds
    digits = digits or settings.totp_digits
    key = _decode_totp_secret(secret)
    counter = struct.pack(">Q", int(for_time // interval))
    digest = hmac.new(key, counter, hashlib.sha1).digest()
    offset = digest[-1] & 0x0F
    code_int = (struct.unpack(">I", digest[offset:offset + 4])[0] & 0x7FFFFFFF) % (10 ** digits)
    return str(code_int).zfill(digits)


def verify_totp(
    secret: str,
    code: str,
    at: datetime,
    *,
    interval: Optional[int] = None,
    digits: Optional[int] = None,
    window: Optional[int] = None,
) -> bool:
    interval = interval or settings.totp_interval_seconds
    digits = digits or settings.totp_digits
    window = settings.totp_window if window is None else window

    code = (code or "").strip()
    if not secret or len(code) != digits or not code.isdigit():
        return False

    timestamp = at.timestamp()
    try:
        candidates = [
            generate_totp(secret, timestamp + step * interval, interval=interval, digits=digits)
            for step in range(-window, window + 1)
        ]
    except (ValueError, TypeError):
        logger.warning("TOTP secret is not valid base32")
        return False

    matched = False
    for candidate in candidates:
        # no early exit: every candidate is compared
        matched |= hmac.compare_digest(candidate, code)
    return matched


# ---------------------------------------------------------------------------
# 5.  FastAPI dependency guards
# ---------------------------------------------------------------------------
# The services are built once by create_app() and parked on app.state.

_bearer = HTTPBearer(auto_error=False)


def get_auth_service(request: Request):
    return request.app.state.auth_service


def get_admin_authority(request: Request):
    return request.app.state.admin_authority


def get_audit_trail(request: Request):
    return request.app.state.audit_trail


def _token_from(request: Request, credentials: Optional[HTTPAuthorizationCredentials], cookie: str) -> str:
    """Bearer header first, then the named cookie.  Missing → 401."""
    if credentials and credentials.scheme.lower() == "bearer" and credentials.credentials:
        return credentials.credentials
    token = request.cookies.get(cookie)
    if token:
        return token
    raise InvalidTokenError()


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
):
    """
    Dependency: verify a standard session token and load the user behind it.
    Returns the sanitized user view.  Raises 401 on any failure.
    """
    token = _token_from(request, credentials, "token")
    return get_auth_service(request).current_user(token)


def require_admin(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> SessionClaims:
    """
    Dependency: verify an admin or trial-admin token and return its claims.
    A valid *user* session token is not enough – 401 "Admin access required".
    """
    token = _token_from(request, credentials, "adminToken")
    claims = get_admin_authority(request).verify(token)
    if isinstance(claims, StandardClaims):
        raise AdminAccessRequiredError()
    return claims


# -- IP Address extraction ----------------------------------------------------


def get_client_ip(request: Request) -> str:
    """
    Extract the client IP address from the request.
    Checks X-Forwarded-For header first (for proxies), then falls back to client host.
    Returns the IP address as a string (supports both IPv4 and IPv6).
    """
    # Check X-Forwarded-For header (common when behind proxy/load balancer)
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # X-Forwarded-For can contain multiple IPs, take the first (original client)
        return forwarded.split(",")[0].strip()

    # Fall back to direct client address
    if request.client:
        return request.client.host

    return "unknown"
