"""Shared pytest fixtures for the auth service tests."""

from __future__ import annotations

import os
import tempfile
from datetime import datetime, timedelta, timezone

import pytest
from passlib.hash import pbkdf2_sha256

# ---------------------------------------------------------------------------
# Environment – must be in place before any backend module reads settings
# ---------------------------------------------------------------------------

TEST_ROUNDS = 1000

ADMIN_PASSWORD = "AdminPass1!"
ADMIN_TOTP_SECRET = "JBSWY3DPEHPK3PXP"
TRIAL_ADMIN_PASSWORD = "TrialPass1!"
TRIAL_ADMIN_TOTP_SECRET = "KRSXG5CTMVRXEZLU"

_DB_DIR = tempfile.mkdtemp(prefix="voyagex-tests-")

os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR}/test.db"
os.environ["SECRET_KEY"] = "test-secret-key-that-is-long-enough-for-hs256-signing"
os.environ["PASSWORD_HASH_ROUNDS"] = str(TEST_ROUNDS)
os.environ["ADMIN_USERNAME"] = "admin"
os.environ["ADMIN_PASSWORD_HASH"] = pbkdf2_sha256.using(rounds=TEST_ROUNDS).hash(ADMIN_PASSWORD)
os.environ["ADMIN_TOTP_SECRET"] = ADMIN_TOTP_SECRET
os.environ["TRIAL_ADMIN_USERNAME"] = "trial_admin"
os.environ["TRIAL_ADMIN_PASSWORD_HASH"] = pbkdf2_sha256.using(rounds=TEST_ROUNDS).hash(TRIAL_ADMIN_PASSWORD)
os.environ["TRIAL_ADMIN_TOTP_SECRET"] = TRIAL_ADMIN_TOTP_SECRET
os.environ["SMTP_HOST"] = ""
os.environ["APP_URL"] = "https://voyagex.test"

from fastapi.testclient import TestClient  # noqa: E402

from admin.authority import AdminAuthority  # noqa: E402
from admin.store import TrialCodeStore  # noqa: E402
from auth.service import AuthService  # noqa: E402
from core.audit import AuditTrail  # noqa: E402
from core.config import settings  # noqa: E402
from core.mailer import MailDispatcher  # noqa: E402
from core.security import PasswordHasher, TokenCodec, generate_totp  # noqa: E402
from database import Base, SessionLocal, engine  # noqa: E402
from main import create_app  # noqa: E402
import models.audit_log  # noqa: F401, E402
import models.trial_code  # noqa: F401, E402
import models.user  # noqa: F401, E402


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime | None = None):
        self._now = now or datetime.now(timezone.utc)

    def now(self) -> datetime:
        return self._now

    def advance(self, **delta) -> None:
        self._now += timedelta(**delta)


class RecordingMailer:
    """Mailer double: keeps every message, optionally blows up instead."""

    def __init__(self):
        self.sent: list[tuple[str, str, str]] = []
        self.fail = False

    def send_email(self, to: str, subject: str, html: str) -> bool:
        if self.fail:
            raise ConnectionRefusedError("smtp down")
        self.sent.append((to, subject, html))
        return True


@pytest.fixture(autouse=True)
def _schema():
    """Fresh tables for every test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture()
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture()
def dispatcher(mailer):
    mail = MailDispatcher(mailer, max_workers=1)
    yield mail
    mail.shutdown()


@pytest.fixture()
def codec(clock) -> TokenCodec:
    return TokenCodec(settings.secret_key, clock)


@pytest.fixture()
def hasher() -> PasswordHasher:
    return PasswordHasher(TEST_ROUNDS)


@pytest.fixture()
def audit() -> AuditTrail:
    return AuditTrail(SessionLocal)


@pytest.fixture()
def auth_service(codec, hasher, dispatcher, audit, clock) -> AuthService:
    return AuthService(SessionLocal, codec, hasher, dispatcher, audit, clock)


@pytest.fixture()
def admin_authority(codec, hasher, audit, clock) -> AdminAuthority:
    return AdminAuthority(SessionLocal, codec, hasher, audit, clock)


@pytest.fixture()
def app(mailer, clock):
    application = create_app(session_factory=SessionLocal, mailer=mailer, clock=clock)
    yield application
    application.state.mail_dispatcher.shutdown()


@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture()
def make_trial_code(clock):
    """Provision a trial code expiring *days* from the frozen now."""

    def _make(code: str, days: float = 30, used: bool = False) -> datetime:
        expires_at = clock.now() + timedelta(days=days)
        db = SessionLocal()
        try:
            store = TrialCodeStore(db)
            store.provision(code, expires_at)
            if used:
                store.claim(code, clock.now())
            db.commit()
        finally:
            db.close()
        return expires_at

    return _make


def totp_for(secret: str, clock: FrozenClock, steps: int = 0) -> str:
    return generate_totp(secret, clock.now().timestamp() + steps * settings.totp_interval_seconds)


def load_user(email: str):
    db = SessionLocal()
    try:
        user = db.query(models.user.User).filter(models.user.User.email == email).first()
        if user is not None:
            db.expunge(user)
        return user
    finally:
        db.close()
