"""Alembic entry points for the soulsmith schema."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Final

from alembic import command
from alembic.config import Config

from soulsmith.config import get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

# Revisions ship inside the package so installed wheels can migrate too.
MIGRATIONS_PATH: Final[Path] = Path(__file__).resolve().parent
HEAD: Final[str] = "head"


def alembic_config(database_uri: str | None = None) -> Config:
    """Return an Alembic config pointed at the bundled revision scripts."""

    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS_PATH))
    if database_uri is not None:
        config.set_main_option("sqlalchemy.url", database_uri)
    return config


def upgrade_head(*, engine: Engine | None = None, database_uri: str | None = None) -> None:
    """Bring the soul, fragment, condensation, submitter and outbox tables up to date.

    With an ``engine`` the upgrade runs on one of its connections, which is how
    in-memory SQLite databases survive the migration.
    """

    if engine is None:
        command.upgrade(alembic_config(database_uri or get_database_config().uri), HEAD)
        return
    config = alembic_config()
    with engine.begin() as connection:
        config.attributes["connection"] = connection
        command.upgrade(config, HEAD)
