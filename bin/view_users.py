# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
List registered users, newest first, with their verification state.

    python bin/view_users.py

Token values are never printed – only whether one is pending.
"""

import os
import sys

_PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
_BACKEND_DIR  = os.path.join(_PROJECT_ROOT, "backend")
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

from database import SessionLocal   # noqa: E402
from models.user import User        # noqa: E402


def view_users():
    db = SessionLocal()
    try:
        users = db.query(User).order_by(User.created_at.desc()).all()

        print("\nRegistered Users:")
        print("=================")
        for user in users:
            print(f"\nID: {user.id}")
            print(f"Email: {user.email}")
            print(f"Name: {user.name or 'Not provided'}")
            print(f"Verified: {'Yes' if user.is_verified else 'No'}")
            print(f"Sign-in: {user.oauth_provider or 'password'}")
            print(f"Created At: {user.created_at}")
            print(f"Verification Token: {'Present' if user.email_verification_token else 'None'}")
            print(f"Token Expiry: {user.email_verification_expiry or 'None'}")
            print("-----------------")
        print(f"\n{len(users)} user(s)")
    finally:
        db.close()


if __name__ == "__main__":
    view_users()
