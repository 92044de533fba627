"""
Alembic environment configuration for the server inventory.

Reads DATABASE_URL from the environment (falling back to core.config
settings), targets the inventory ORM metadata, and enables batch mode for
SQLite compatibility.
"""

import os
import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import engine_from_config, pool

# backend/ on sys.path so core.* and modules.* import as they do at runtime
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from core.base import Base  # noqa: E402
import modules.inventory.models  # noqa: E402,F401  registers the tables

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def get_url():
    url = os.environ.get("DATABASE_URL")
    if url:
        return url
    from core.config import settings
    return settings.database_url


def run_migrations_offline():
    """Emit SQL without a database connection."""
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True,  # SQLite compatibility
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    configuration = config.get_section(config.config_ini_section, {})
    configuration["sqlalchemy.url"] = get_url()

    connectable = engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=True,  # SQLite compatibility
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
