"""Alembic environment for the soulsmith tables."""

from __future__ import annotations

from alembic import context
from sqlalchemy import create_engine, pool

from soulsmith.adapters.sqlalchemy import mapper_registry, start_mappers
from soulsmith.config import get_database_config

config = context.config

start_mappers()

# batch mode lets SQLite alter the fragment and ledger_event tables
CONFIGURE_OPTIONS = {
    "target_metadata": mapper_registry.metadata,
    "render_as_batch": True,
    "compare_type": True,
}


def _database_url() -> str:
    return config.get_main_option("sqlalchemy.url") or get_database_config().uri


def _migrate(**options: object) -> None:
    context.configure(**CONFIGURE_OPTIONS, **options)
    with context.begin_transaction():
        context.run_migrations()


def run_offline() -> None:
    _migrate(url=_database_url(), literal_binds=True)


def run_online() -> None:
    shared = config.attributes.get("connection")
    if shared is not None:
        _migrate(connection=shared)
        return

    engine = create_engine(_database_url(), poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            _migrate(connection=connection)
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_offline()
else:
    run_online()
