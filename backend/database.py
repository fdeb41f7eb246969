# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
SQLAlchemy engine, session factory, declarative base, and the
``session_scope`` unit of work used by the services.
"""

from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from core.config import settings
from core.errors import AuthError, InternalAuthError
from core.logger import logger

# SQLite (tests, local runs) needs cross-thread access: the request handler,
# the mail pool and the TestClient all touch the same engine.
_connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

# pool_pre_ping keeps idle connections alive across MySQL's wait_timeout
engine = create_engine(settings.database_url, pool_pre_ping=True, connect_args=_connect_args)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


@contextmanager
def session_scope(session_factory, operation: str):
    """
    Service boundary for one unit of work.

    Yields a session; the caller commits explicitly.  On any exception the
    session is rolled back.  :class:`AuthError` passes through untouched;
    anything else (driver errors, lost connections …) is logged with the
    operation name and replaced by a generic :class:`InternalAuthError`.
    """
    db = session_factory()
    try:
        yield db
    except AuthError:
        db.rollback()
        raise
    except Exception as exc:
        db.rollback()
        logger.exception("%s failed", operation)
        raise InternalAuthError() from exc
    finally:
        db.close()
