# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Alembic environment for the auth schema (users, trial_codes, audit_logs).

alembic.ini puts ``backend/`` on sys.path, so the application's Settings and
models import exactly as they do under uvicorn.  The connection string comes
from etc/app.conf through Settings; alembic.ini carries none.
"""

from alembic import context
from sqlalchemy import create_engine

from core.config import settings
from database import Base

# Every model module must be imported for autogenerate to see its table.
import models.user        # noqa: F401, E402
import models.trial_code  # noqa: F401, E402
import models.audit_log   # noqa: F401, E402

target_metadata = Base.metadata

# SQLite cannot ALTER most constraints in place; batch mode copies the table.
_batch = settings.database_url.startswith("sqlite")


def run_migrations_online():
    connectable = create_engine(settings.database_url)
    with connectable.connect() as conn:
        context.configure(
            connection=conn,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=_batch,
        )
        with context.begin_transaction():
            context.run_migrations()
    connectable.dispose()


def run_migrations_offline():
    context.configure(
        url=settings.database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        render_as_batch=_batch,
    )
    with context.begin_transaction():
        context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
