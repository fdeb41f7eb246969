# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Admin authority – console login with password + TOTP, and trial activation.

Two identities exist, both configured in etc/app.conf:

* the regular admin   → role ``admin``,       token valid 1 hour
* the trial admin     → role ``trial_admin``, token valid 7 days with an
                        explicit ``expiration`` claim

Trial activation codes live in the ``trial_codes`` table.  Each one can be
claimed once; the claim is a compare-and-set on ``used`` so concurrent
activations of the same code produce exactly one winner.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from admin.store import TrialCodeStore
from core.clock import SystemClock, ensure_utc
from core.config import settings
from core.errors import (
    InvalidCredentialsError,
    InvalidTrialCodeError,
    InvalidTwoFactorCodeError,
    TrialCodeAlreadyUsedError,
    TrialCodeExpiredError,
)
from core.logger import logger
from core.security import (
    ROLE_ADMIN,
    ROLE_TRIAL_ADMIN,
    AdminClaims,
    SessionClaims,
    TrialAdminClaims,
    verify_totp,
)
from database import session_scope


@dataclass(frozen=True)
class AdminIdentity:
    username: str
    password_hash: str
    totp_secret: str
    role: str


@dataclass(frozen=True)
class AdminLoginResult:
    token: str
    role: str
    expiration: Optional[datetime]
    max_age: int


@dataclass(frozen=True)
class TrialActivation:
    token: str
    expiration: datetime


class AdminAuthority:
    def __init__(self, session_factory, codec, hasher, audit, clock=None, cfg=None):
        self._session_factory = session_factory
        self._codec = codec
        self._hasher = hasher
        self._audit = audit
        self._clock = clock or SystemClock()
        self._cfg = cfg = cfg or settings

        self._admin = AdminIdentity(
            cfg.admin_username, cfg.admin_password_hash, cfg.admin_totp_secret, ROLE_ADMIN
        )
        self._trial = AdminIdentity(
            cfg.trial_admin_username,
            cfg.trial_admin_password_hash,
            cfg.trial_admin_totp_secret,
            ROLE_TRIAL_ADMIN,
        )

    @property
    def _trial_validity(self) -> timedelta:
        return timedelta(days=self._cfg.trial_admin_token_expire_days)

    def login(
        self,
        username: str,
        password: str,
        two_factor_code: str,
        request_ip: Optional[str] = None,
    ) -> AdminLoginResult:
        identity = self._trial if username == self._trial.username else self._admin

        # password_hash is precomputed; an empty one never verifies
        if username != identity.username or not self._hasher.verify(password, identity.password_hash):
            self._audit.record("admin_login_failed", subject=username, detail="credentials", request_ip=request_ip)
            logger.warning("Admin login rejected for %r: bad credentials", username)
            raise InvalidCredentialsError()

        now = self._clock.now()
        if not verify_totp(identity.totp_secret, two_factor_code, now):
            self._audit.record("admin_login_failed", subject=username, detail="2fa", request_ip=request_ip)
            logger.warning("Admin login rejected for %r: bad 2FA code", username)
            raise InvalidTwoFactorCodeError()

        if identity.role == ROLE_ADMIN:
            validity = timedelta(minutes=self._cfg.admin_token_expire_minutes)
            claims = AdminClaims(username=identity.username)
            expiration = None
        else:
            validity = self._trial_validity
            expiration = now + validity
            claims = TrialAdminClaims(subject=identity.username, expiration=expiration)

        token = self._codec.issue(claims, validity)
        self._audit.record("admin_login", subject=identity.username, detail=identity.role, request_ip=request_ip)
        logger.info("Admin %r logged in as %s", identity.username, identity.role)
        return AdminLoginResult(
            token=token,
            role=identity.role,
            expiration=expiration,
            max_age=int(validity.total_seconds()),
        )

    def activate_trial(self, code: str, request_ip: Optional[str] = None) -> TrialActivation:
        now = self._clock.now()

        with session_scope(self._session_factory, "activate_trial") as db:
            store = TrialCodeStore(db)
            trial = store.get(code)
            if trial is None:
                logger.warning("Trial activation with unknown code")
                raise InvalidTrialCodeError()
            if trial.used:
                logger.warning("Trial activation with used code %s", code)
                raise TrialCodeAlreadyUsedError()

            expires_at = ensure_utc(trial.expires_at)
            if expires_at < now:
                logger.warning("Trial activation with expired code %s", code)
                raise TrialCodeExpiredError()

            if not store.claim(code, now):
                # another request claimed it between our read and the UPDATE
                raise TrialCodeAlreadyUsedError()
            db.commit()

        # the token never outlives the code's own expiry
        validity = min(self._trial_validity, expires_at - now)
        token = self._codec.issue(TrialAdminClaims(subject=code, expiration=expires_at), validity)

        self._audit.record("trial_activated", subject=code, request_ip=request_ip)
        logger.info("Trial code %s activated, valid until %s", code, expires_at.isoformat())
        return TrialActivation(token=token, expiration=expires_at)

    def verify(self, token: str) -> SessionClaims:
        return self._codec.verify(token)
