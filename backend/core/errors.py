# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Error taxonomy for the auth and admin services.

Every failure a caller can observe is one of these classes.  Messages are
fixed per category so that no response reveals which check actually failed
(unknown email vs. wrong password, tampered vs. expired token …).
The HTTP layer renders them as ``{"success": false, "error": message}``.
"""


class AuthError(Exception):
    """Base class – carries the user-visible message and HTTP status."""

    message = "Authentication failed"
    status_code = 400

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class DuplicateEmailError(AuthError):
    message = "User already exists"


class InvalidCredentialsError(AuthError):
    message = "Invalid credentials"
    status_code = 401


class InvalidOrExpiredTokenError(AuthError):
    """One-time verification / reset token missing, wrong or past its window."""

    message = "Invalid or expired token"


class InvalidTokenError(AuthError):
    """Bearer session token failed signature, structure or expiry checks."""

    message = "Invalid or expired token"
    status_code = 401


class UserNotFoundError(AuthError):
    message = "User not found"


class InvalidTwoFactorCodeError(AuthError):
    message = "Invalid 2FA code"
    status_code = 401


class InvalidTrialCodeError(AuthError):
    message = "Invalid trial code"


class TrialCodeAlreadyUsedError(AuthError):
    message = "This trial code has already been used"


class TrialCodeExpiredError(AuthError):
    message = "This trial code has expired"


class AdminAccessRequiredError(AuthError):
    message = "Admin access required"
    status_code = 401


class RequestValidationFailed(AuthError):
    message = "Invalid request"


class InternalAuthError(AuthError):
    """Store, mail or other unexpected failure – details stay in the log."""

    message = "Internal server error. Please try again."
    status_code = 500
