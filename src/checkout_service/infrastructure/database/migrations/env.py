"""Alembic environment for the checkout schema."""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool, text

from checkout_service.config import get_settings
from checkout_service.infrastructure.database.models import SCHEMA, Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def include_object(obj, name, type_, reflected, compare_to) -> bool:
    """Only manage tables in the checkout schema; orders and products belong to the storefront."""
    if type_ == "table":
        return obj.schema == SCHEMA
    return True


def _context_options() -> dict:
    return {
        "target_metadata": target_metadata,
        "version_table_schema": SCHEMA,
        "include_schemas": True,
        "include_object": include_object,
    }


def run_migrations_offline() -> None:
    """Emit migration SQL without a database connection."""
    context.configure(
        url=get_settings().database_url_sync,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_context_options(),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply migrations over a synchronous psycopg2 connection."""
    section = config.get_section(config.config_ini_section) or {}
    section["sqlalchemy.url"] = get_settings().database_url_sync
    engine = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with engine.connect() as connection:
        connection.execute(text(f"CREATE SCHEMA IF NOT EXISTS {SCHEMA}"))
        connection.commit()

        context.configure(connection=connection, **_context_options())
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
