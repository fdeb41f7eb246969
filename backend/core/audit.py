# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Audit trail of security events (registrations, logins, token consumption,
admin logins, trial activations).

Recording is best-effort: a failed audit insert is logged and never fails
the auth operation that triggered it.
"""

from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from core.logger import logger
from models.audit_log import AuditLog


class AuditTrail:
    def __init__(self, session_factory):
        self._session_factory = session_factory

    def record(
        self,
        action: str,
        subject: Optional[str] = None,
        detail: Optional[str] = None,
        request_ip: Optional[str] = None,
    ) -> None:
        db = self._session_factory()
        try:
            db.add(AuditLog(action=action, subject=subject, detail=detail, request_ip=request_ip))
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Could not record audit event %s", action)
        finally:
            db.close()

    def recent(self, limit: int = 200, action: Optional[str] = None) -> list[AuditLog]:
        """Newest-first audit rows, optionally filtered by action."""
        db = self._session_factory()
        try:
            q = db.query(AuditLog)
            if action:
                q = q.filter(AuditLog.action == action)
            rows = q.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()
            # detach so callers can read attributes after the session closes
            db.expunge_all()
            return rows
        finally:
            db.close()
