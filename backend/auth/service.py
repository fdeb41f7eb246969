# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
User authentication service – registration, login, email verification,
password reset and OAuth account linking.

Security notes
--------------
* Login fails with the *same* error whether the email is unknown, the
  account has no password (OAuth-only) or the password is wrong.  A dummy
  hash is verified for unknown emails so response time does not tell them
  apart either.
* Verification and reset tokens are consumed by a conditional UPDATE; a
  token can succeed at most once.
* Mail is dispatched in the background.  A mail failure is logged and never
  undoes the registration or reset request that triggered it.
* Login does not require a verified email.  Features that need a verified
  address check ``is_verified`` themselves.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError

from auth.store import UserStore
from core.clock import SystemClock
from core.config import settings
from core.errors import (
    DuplicateEmailError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    InvalidTokenError,
    UserNotFoundError,
)
from core.logger import logger, mask_email
from core.security import StandardClaims, generate_one_time_token
from database import session_scope
from models.user import User


@dataclass(frozen=True)
class UserView:
    """What callers may see of a user – never the hash or any token."""

    id: str
    email: str
    name: Optional[str]
    image: Optional[str]
    is_verified: bool

    @classmethod
    def of(cls, user: User) -> "UserView":
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            image=user.image,
            is_verified=bool(user.is_verified),
        )


@dataclass(frozen=True)
class AuthResult:
    user: UserView
    token: str
    # lifetime of ``token``; the HTTP layer uses it as the cookie max-age
    max_age: int


class AuthService:
    def __init__(self, session_factory, codec, hasher, mail, audit, clock=None, cfg=None):
        self._session_factory = session_factory
        self._codec = codec
        self._hasher = hasher
        self._mail = mail
        self._audit = audit
        self._clock = clock or SystemClock()
        self._cfg = cfg or settings
        self._dummy_hash: Optional[str] = None

    # -- helpers -------------------------------------------------------------

    def _session_validity(self, remember_me: bool) -> timedelta:
        if remember_me:
            return timedelta(days=self._cfg.remember_me_token_expire_days)
        return timedelta(minutes=self._cfg.session_token_expire_minutes)

    def _issue(self, view: UserView, remember_me: bool = False) -> AuthResult:
        validity = self._session_validity(remember_me)
        token = self._codec.issue(StandardClaims(user_id=view.id, email=view.email), validity)
        return AuthResult(user=view, token=token, max_age=int(validity.total_seconds()))

    def _burn_hash_time(self, password: str) -> None:
        if self._dummy_hash is None:
            self._dummy_hash = self._hasher.hash(generate_one_time_token())
        self._hasher.verify(password, self._dummy_hash)

    def _dispatch(self, send, to: str, token: str) -> None:
        try:
            send(to, token)
        except Exception:
            logger.exception("Could not queue mail to %s", mask_email(to))

    # -- operations ----------------------------------------------------------

    def register(
        self,
        email: str,
        password: str,
        name: Optional[str] = None,
        request_ip: Optional[str] = None,
    ) -> AuthResult:
        now = self._clock.now()
        verification_token = generate_one_time_token()

        with session_scope(self._session_factory, "register") as db:
            store = UserStore(db)
            if store.get_by_email(email) is not None:
                logger.info("Registration rejected, email taken: %s", mask_email(email))
                raise DuplicateEmailError()

            user = User(
                email=email,
                password_hash=self._hasher.hash(password),
                name=name,
                is_verified=False,
                email_verification_token=verification_token,
                email_verification_expiry=now + timedelta(hours=self._cfg.email_verification_expire_hours),
            )
            try:
                store.add(user)
                store.commit()
            except IntegrityError:
                # lost a race with a concurrent registration of the same email
                raise DuplicateEmailError()
            view = UserView.of(user)

        self._dispatch(self._mail.send_verification_email, email, verification_token)
        self._audit.record("register", subject=view.id, request_ip=request_ip)
        logger.info("User %s registered (%s)", view.id, mask_email(email))
        return self._issue(view)

    def login(
        self,
        email: str,
        password: str,
        remember_me: bool = False,
        request_ip: Optional[str] = None,
    ) -> AuthResult:
        with session_scope(self._session_factory, "login") as db:
            store = UserStore(db)
            user = store.get_by_email(email)

            if user is None or not user.password_hash:
                # unknown or OAuth-only: pay the same hashing cost as a real check
                self._burn_hash_time(password)
                ok = False
            else:
                ok = self._hasher.verify(password, user.password_hash)

            if not ok:
                self._audit.record("login_failed", subject=mask_email(email), request_ip=request_ip)
                logger.warning("Failed login for %s", mask_email(email))
                raise InvalidCredentialsError()

            user.last_login = self._clock.now()
            if remember_me:
                user.remember_me_token = generate_one_time_token()
            store.commit()
            view = UserView.of(user)

        self._audit.record(
            "user_login",
            subject=view.id,
            detail="remember_me" if remember_me else None,
            request_ip=request_ip,
        )
        logger.info("User %s logged in", view.id)
        return self._issue(view, remember_me)

    def verify_email(self, token: str, request_ip: Optional[str] = None) -> None:
        now = self._clock.now()
        with session_scope(self._session_factory, "verify_email") as db:
            store = UserStore(db)
            user = store.consume_verification_token(token, now)
            if user is None:
                logger.warning("Email verification with invalid or expired token")
                raise InvalidOrExpiredTokenError()
            store.commit()
            user_id = user.id

        self._audit.record("verify_email", subject=user_id, request_ip=request_ip)
        logger.info("User %s verified their email", user_id)

    def request_password_reset(self, email: str, request_ip: Optional[str] = None) -> None:
        now = self._clock.now()
        reset_token = generate_one_time_token()

        with session_scope(self._session_factory, "request_password_reset") as db:
            store = UserStore(db)
            user = store.get_by_email(email)
            if user is None:
                logger.info("Password reset requested for unknown %s", mask_email(email))
                raise UserNotFoundError()

            user.reset_token = reset_token
            user.reset_token_expiry = now + timedelta(minutes=self._cfg.password_reset_expire_minutes)
            store.commit()
            user_id = user.id

        self._dispatch(self._mail.send_password_reset_email, email, reset_token)
        self._audit.record("password_reset_requested", subject=user_id, request_ip=request_ip)
        logger.info("Password reset requested for user %s", user_id)

    def reset_password(self, token: str, new_password: str, request_ip: Optional[str] = None) -> None:
        now = self._clock.now()
        # hash outside the UPDATE so the row is not held during the slow part
        new_hash = self._hasher.hash(new_password)

        with session_scope(self._session_factory, "reset_password") as db:
            store = UserStore(db)
            user = store.consume_reset_token(token, now, new_hash)
            if user is None:
                logger.warning("Password reset with invalid or expired token")
                raise InvalidOrExpiredTokenError()
            store.commit()
            user_id = user.id

        self._audit.record("password_reset", subject=user_id, request_ip=request_ip)
        logger.info("User %s reset their password", user_id)

    def oauth_upsert(
        self,
        provider: str,
        provider_id: str,
        email: str,
        name: Optional[str] = None,
        image: Optional[str] = None,
        request_ip: Optional[str] = None,
    ) -> AuthResult:
        """
        Sign in through an external identity provider.  The caller has already
        authenticated the provider identity; this only links and issues.
        """
        with session_scope(self._session_factory, "oauth_upsert") as db:
            store = UserStore(db)
            user = store.find_for_oauth(email, provider, provider_id)
            created = user is None
            if created:
                try:
                    user = store.add(
                        User(
                            email=email,
                            name=name,
                            image=image,
                            oauth_provider=provider,
                            oauth_provider_id=provider_id,
                            is_verified=True,
                        )
                    )
                except IntegrityError:
                    # a concurrent first sign-in inserted the row; link to it instead
                    db.rollback()
                    user = store.find_for_oauth(email, provider, provider_id)
                    if user is None:
                        raise
                    created = False
            if not created:
                user.oauth_provider = provider
                user.oauth_provider_id = provider_id
                user.name = name or user.name
                user.image = image or user.image
                user.is_verified = True
            user.last_login = self._clock.now()
            store.commit()
            view = UserView.of(user)

        self._audit.record(
            "oauth_login",
            subject=view.id,
            detail=f"provider={provider} created={created}",
            request_ip=request_ip,
        )
        logger.info("User %s signed in with %s", view.id, provider)
        return self._issue(view)

    def current_user(self, token: str) -> UserView:
        """Resolve a standard session token to the user behind it."""
        claims = self._codec.verify(token)
        if not isinstance(claims, StandardClaims):
            raise InvalidTokenError()
        with session_scope(self._session_factory, "current_user") as db:
            user = UserStore(db).get(claims.user_id)
            if user is None:
                raise InvalidTokenError()
            return UserView.of(user)
