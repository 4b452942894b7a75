"""Alembic environment — runs migrations against the intake database.

The URL comes from the same ``DatabaseSettings`` the server uses
(``INTAKE_DATABASE_URL`` / ``DATABASE_URL`` / ``PG_*``), rewritten to the
synchronous psycopg2 driver because Alembic's migration runner is
synchronous.  The placeholder in ``alembic.ini`` is never used.
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from intake_db.config import load_database_settings

# Importing the package registers every model on Base.metadata
from intake_db.models import Base

# Kept apart from other services' Alembic histories in a shared database
VERSION_TABLE = "intake_alembic_version"

config = context.config
config.set_main_option("sqlalchemy.url", load_database_settings().sync_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _configure_options() -> dict:
    return {
        "target_metadata": target_metadata,
        "version_table": VERSION_TABLE,
        # Catch column type drift and changed JSONB server defaults
        "compare_type": True,
        "compare_server_default": True,
    }


def run_migrations_offline() -> None:
    """Emit SQL for the intake schema without connecting."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_options(),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Connect and apply pending intake migrations."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, **_configure_options())
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
