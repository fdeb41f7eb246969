# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""Trial activation code store."""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from models.trial_code import TrialCode


class TrialCodeStore:
    def __init__(self, db: Session):
        self.db = db

    def get(self, code: str) -> Optional[TrialCode]:
        return self.db.query(TrialCode).filter(TrialCode.code == code).first()

    def claim(self, code: str, now: datetime) -> bool:
        """
        Compare-and-set ``used`` from False to True.  Returns True only for the
        single caller whose UPDATE flipped the flag.
        """
        rows = (
            self.db.query(TrialCode)
            .filter(TrialCode.code == code, TrialCode.used.is_(False))
            .update({TrialCode.used: True, TrialCode.used_at: now}, synchronize_session=False)
        )
        return rows == 1

    def provision(self, code: str, expires_at: datetime) -> bool:
        """Insert an unused code.  Returns False if the code already exists."""
        if self.get(code) is not None:
            return False
        self.db.add(TrialCode(code=code, used=False, expires_at=expires_at))
        self.db.flush()
        return True

    def all(self) -> list[TrialCode]:
        return self.db.query(TrialCode).order_by(TrialCode.code).all()
