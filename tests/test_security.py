"""Password hashing, session token codec, one-time tokens and TOTP."""

from datetime import timedelta

import jwt
import pytest

from conftest import ADMIN_TOTP_SECRET, FrozenClock, totp_for
from core.errors import InvalidTokenError
from core.security import (
    AdminClaims,
    StandardClaims,
    TokenCodec,
    TrialAdminClaims,
    generate_one_time_token,
    generate_totp,
    verify_totp,
)


# -- PasswordHasher ----------------------------------------------------------


def test_hash_is_salted_and_verifies(hasher):
    first = hasher.hash("Secret123!")
    second = hasher.hash("Secret123!")

    assert first != second
    assert first.startswith("$pbkdf2-sha256$")
    assert hasher.verify("Secret123!", first)
    assert hasher.verify("Secret123!", second)


def test_verify_rejects_wrong_password(hasher):
    assert not hasher.verify("secret123!", hasher.hash("Secret123!"))


@pytest.mark.parametrize("stored", [None, "", "not-a-hash", "$2b$10$abcdefghijklmnopqrstuv"])
def test_verify_fails_closed_without_usable_hash(hasher, stored):
    assert hasher.verify("Secret123!", stored) is False


# -- TokenCodec --------------------------------------------------------------


def test_standard_claims_round_trip(codec, clock):
    token = codec.issue(StandardClaims(user_id="u1", email="alice@example.com"), timedelta(hours=24))
    claims = codec.verify(token)

    assert isinstance(claims, StandardClaims)
    assert claims.user_id == "u1"
    assert claims.email == "alice@example.com"
    assert claims.expires_at == (clock.now() + timedelta(hours=24)).replace(microsecond=0)


def test_admin_claims_carry_role(codec):
    claims = codec.verify(codec.issue(AdminClaims(username="admin"), timedelta(hours=1)))

    assert isinstance(claims, AdminClaims)
    assert claims.role == "admin"
    assert claims.subject == "admin"


def test_trial_claims_carry_explicit_expiration(codec, clock):
    end = clock.now() + timedelta(days=7)
    claims = codec.verify(codec.issue(TrialAdminClaims(subject="VOYAGEX-2024-001", expiration=end), timedelta(days=7)))

    assert isinstance(claims, TrialAdminClaims)
    assert claims.role == "trial_admin"
    assert claims.expiration == end


def test_expired_token_is_rejected(codec, clock):
    token = codec.issue(StandardClaims(user_id="u1", email="a@example.com"), timedelta(minutes=5))
    clock.advance(minutes=5)

    with pytest.raises(InvalidTokenError):
        codec.verify(token)


def test_trial_token_rejected_after_trial_end_even_if_exp_later(codec, clock):
    end = clock.now() + timedelta(hours=1)
    token = codec.issue(TrialAdminClaims(subject="trial_admin", expiration=end), timedelta(days=7))
    clock.advance(hours=2)

    with pytest.raises(InvalidTokenError):
        codec.verify(token)


def test_tampered_and_foreign_tokens_are_indistinguishable(codec, clock):
    token = codec.issue(StandardClaims(user_id="u1", email="a@example.com"), timedelta(hours=1))
    header, payload, signature = token.split(".")
    tampered = ".".join([header, payload, signature[:-2] + ("AA" if signature[-2:] != "AA" else "BB")])
    foreign = TokenCodec("another-secret-key-that-is-also-long-enough", clock).issue(
        StandardClaims(user_id="u1", email="a@example.com"), timedelta(hours=1)
    )

    messages = set()
    for bad in (tampered, foreign, "not.a.token", ""):
        with pytest.raises(InvalidTokenError) as excinfo:
            codec.verify(bad)
        messages.add(excinfo.value.message)
    assert messages == {"Invalid or expired token"}


def test_unknown_kind_is_rejected(codec, clock):
    token = jwt.encode(
        {"sub": "x", "kind": "superuser", "exp": int((clock.now() + timedelta(hours=1)).timestamp())},
        "test-secret-key-that-is-long-enough-for-hs256-signing",
        algorithm="HS256",
    )
    with pytest.raises(InvalidTokenError):
        codec.verify(token)


# -- one-time tokens ---------------------------------------------------------


def test_one_time_tokens_are_long_and_unique():
    tokens = {generate_one_time_token() for _ in range(200)}

    assert len(tokens) == 200
    assert all(len(t) == 64 and int(t, 16) >= 0 for t in tokens)


# -- TOTP --------------------------------------------------------------------

# RFC 6238 appendix B, SHA1 seed "12345678901234567890"
_RFC_SECRET = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"


@pytest.mark.parametrize(
    "for_time, expected",
    [(59, "94287082"), (1111111109, "07081804"), (1234567890, "89005924"), (2000000000, "69279037")],
)
def test_generate_totp_matches_rfc_vectors(for_time, expected):
    assert generate_totp(_RFC_SECRET, for_time, interval=30, digits=8) == expected


def test_verify_totp_accepts_one_step_of_skew(clock):
    assert verify_totp(ADMIN_TOTP_SECRET, totp_for(ADMIN_TOTP_SECRET, clock), clock.now())
    assert verify_totp(ADMIN_TOTP_SECRET, totp_for(ADMIN_TOTP_SECRET, clock, steps=-1), clock.now())
    assert verify_totp(ADMIN_TOTP_SECRET, totp_for(ADMIN_TOTP_SECRET, clock, steps=1), clock.now())


def test_verify_totp_rejects_stale_and_malformed_codes():
    clock = FrozenClock()
    stale = totp_for(ADMIN_TOTP_SECRET, clock, steps=-3)

    assert not verify_totp(ADMIN_TOTP_SECRET, stale, clock.now())
    assert not verify_totp(ADMIN_TOTP_SECRET, "12345", clock.now())
    assert not verify_totp(ADMIN_TOTP_SECRET, "abcdef", clock.now())
    assert not verify_totp(ADMIN_TOTP_SECRET, "", clock.now())
    assert not verify_totp("", "123456", clock.now())
    assert not verify_totp("not base32 !!", "123456", clock.now())
