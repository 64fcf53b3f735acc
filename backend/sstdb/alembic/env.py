"""Migration environment for the employee and settings tables. Run from `backend/`."""

from __future__ import annotations

from logging.config import fileConfig

from alembic import context

from sstdb.apps.training import models  # noqa: F401  registers tables on Base.metadata
from sstdb.database import WRITE_DB_URL, Base, write_engine

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

COMPARE = {"target_metadata": Base.metadata, "compare_type": True}


def run_migrations_offline() -> None:
    """Render SQL for the database named by DATABASE_WRITE_URL / DATABASE_URL."""
    context.configure(url=WRITE_DB_URL, literal_binds=True, **COMPARE)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    with write_engine.connect() as connection:
        context.configure(connection=connection, **COMPARE)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
