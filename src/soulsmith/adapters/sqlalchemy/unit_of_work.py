"""SQLAlchemy unit of work for the soul pipeline."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from soulsmith.adapters.sqlalchemy.mappings import start_mappers
from soulsmith.adapters.sqlalchemy.migrations import upgrade_head
from soulsmith.adapters.sqlalchemy.repositories import (
    SqlAlchemyCondensationRepository,
    SqlAlchemyFragmentRepository,
    SqlAlchemyLedgerEventRepository,
    SqlAlchemySoulRepository,
    SqlAlchemySubmitterRepository,
)
from soulsmith.config import DatabaseConfig, get_database_config
from soulsmith.domain.ports.unit_of_work import SoulRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = getLogger(__name__)

# seconds a SQLite writer waits for a concurrent review or condensation to commit
SQLITE_BUSY_TIMEOUT = 30


class StartupError(RuntimeError):
    """Raised when a unit of work is used outside its ``with`` block."""


def _create_engine(database_uri: str | None) -> Engine:
    database = DatabaseConfig(uri=database_uri) if database_uri else get_database_config()
    connect_args = {"timeout": SQLITE_BUSY_TIMEOUT} if database.is_sqlite else {}
    return create_engine(database.uri, connect_args=connect_args)


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    migrate: bool = True,
) -> sessionmaker[Session]:
    """Map the model onto ``engine``, migrate it and hand back a session factory.

    Every application or test builds its own factory; nothing is kept at module
    level, so two databases can live side by side in one process.
    """

    resolved_engine = engine or _create_engine(database_uri)
    start_mappers()
    if migrate:
        upgrade_head(engine=resolved_engine)
    log.debug("SQLAlchemy adapter ready on %s", resolved_engine.url)
    # expire_on_commit=False keeps returned souls and fragments readable after the block
    return sessionmaker(bind=resolved_engine, expire_on_commit=False)


class SqlAlchemyUnitOfWork:
    """One session, one transaction, all five soul repositories."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory
        self._session: Session | None = None
        self._repositories: SoulRepositories | None = None

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work is already open")
        session = self.session_factory()
        self._session = session
        self._repositories = SoulRepositories(
            souls=SqlAlchemySoulRepository(session),
            fragments=SqlAlchemyFragmentRepository(session),
            submitters=SqlAlchemySubmitterRepository(session),
            condensations=SqlAlchemyCondensationRepository(session),
            ledger_events=SqlAlchemyLedgerEventRepository(session),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        try:
            # leaving without commit() discards the work
            session.rollback()
        finally:
            session.close()
            self._session = None
            self._repositories = None
        return False

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def repositories(self) -> SoulRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session


if TYPE_CHECKING:
    from soulsmith.domain.ports.unit_of_work import SoulUnitOfWork

    _uow_check: SoulUnitOfWork = SqlAlchemyUnitOfWork(sessionmaker())
