# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""TrialCode ORM model – single-use promotional codes for trial admin access."""

from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.sql import func

from database import Base


class TrialCode(Base):
    __tablename__ = "trial_codes"

    code = Column(String(64), primary_key=True)            # e.g. "VOYAGEX-2024-001"
    # flips False → True exactly once, via TrialCodeStore.claim()
    used = Column(Boolean, nullable=False, default=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
