# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
User record store.

Token consumption is a conditional UPDATE guarded by the token value and its
expiry; only the request whose UPDATE touches the row wins.  Two concurrent
verifications of the same token therefore yield exactly one success.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from models.user import User


class UserStore:
    def __init__(self, db: Session):
        self.db = db

    # -- lookups -------------------------------------------------------------

    def get(self, user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()

    def get_by_oauth(self, provider: str, provider_id: str) -> Optional[User]:
        return (
            self.db.query(User)
            .filter(User.oauth_provider == provider, User.oauth_provider_id == provider_id)
            .first()
        )

    def find_for_oauth(self, email: str, provider: str, provider_id: str) -> Optional[User]:
        """Account already linked to the provider identity, else the one owning *email*."""
        return self.get_by_oauth(provider, provider_id) or self.get_by_email(email)

    # -- writes --------------------------------------------------------------

    def add(self, user: User) -> User:
        self.db.add(user)
        self.db.flush()  # assigns user.id, raises IntegrityError on duplicate email
        return user

    def commit(self) -> None:
        self.db.commit()

    def consume_verification_token(self, token: str, now: datetime) -> Optional[User]:
        """Mark the owner verified and clear the token pair.  None if no live token matched."""
        user = (
            self.db.query(User)
            .filter(User.email_verification_token == token, User.email_verification_expiry > now)
            .first()
        )
        if user is None:
            return None

        rows = (
            self.db.query(User)
            .filter(
                User.id == user.id,
                User.email_verification_token == token,
                User.email_verification_expiry > now,
            )
            .update(
                {
                    User.is_verified: True,
                    User.email_verification_token: None,
                    User.email_verification_expiry: None,
                },
                synchronize_session=False,
            )
        )
        return user if rows == 1 else None

    def consume_reset_token(self, token: str, now: datetime, new_password_hash: str) -> Optional[User]:
        """Commit the new hash and clear the reset pair in one UPDATE.  None if no live token matched."""
        user = (
            self.db.query(User)
            .filter(User.reset_token == token, User.reset_token_expiry > now)
            .first()
        )
        if user is None:
            return None

        rows = (
            self.db.query(User)
            .filter(
                User.id == user.id,
                User.reset_token == token,
                User.reset_token_expiry > now,
            )
            .update(
                {
                    User.password_hash: new_password_hash,
                    User.reset_token: None,
                    User.reset_token_expiry: None,
                },
                synchronize_session=False,
            )
        )
        return user if rows == 1 else None
