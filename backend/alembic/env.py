"""
Alembic environment for the college events schema.

Migrations run with the synchronous driver (DATABASE_URL_SYNC); the
application itself talks to the same database through asyncpg.
"""

from logging.config import fileConfig
from sqlalchemy import engine_from_config, pool
from alembic import context

from college_events.db.base import Base
from college_events.models import User, Event, PendingEvent, Ticket  # noqa: F401 - registers tables on Base.metadata
from college_events.core.config import get_settings

config = context.config
config.set_main_option("sqlalchemy.url", get_settings().DATABASE_URL_SYNC)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# Column types and server defaults matter here: price precision and the
# counters' defaults are part of the inventory contract.
CONFIGURE_OPTIONS = {
    "target_metadata": target_metadata,
    "compare_type": True,
    "compare_server_default": True,
}


def run_migrations_offline() -> None:
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **CONFIGURE_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, **CONFIGURE_OPTIONS)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
