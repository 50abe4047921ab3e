"""Alembic environment for the snapshot, trend and gap tables"""
import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import create_engine, pool

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from core.db import Base, db_settings  # noqa: E402
from core.models import VideoSnapshot, Trend, ContentGap, TrackedChannel  # noqa: E402,F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata
DATABASE_URL = db_settings.database_url

# SQLite has no ALTER for constraints; batch mode rebuilds the table instead
RENDER_AS_BATCH = DATABASE_URL.startswith("sqlite")


def run_migrations_offline():
    """Emit SQL without a live connection"""
    context.configure(
        url=DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        render_as_batch=RENDER_AS_BATCH,
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_with(connection):
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=connection.dialect.name == "sqlite",
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    # A caller (e.g. the test suite) may hand over an open connection
    connection = config.attributes.get("connection")
    if connection is not None:
        _run_with(connection)
        return

    connectable = create_engine(DATABASE_URL, poolclass=pool.NullPool)
    with connectable.connect() as connection:
        _run_with(connection)


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
