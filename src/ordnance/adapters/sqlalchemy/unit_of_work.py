"""SQLAlchemy-backed unit of work for weapon documents and migration audit records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from ordnance.adapters.sqlalchemy.mappings import create_all_tables
from ordnance.adapters.sqlalchemy.repositories import (
    SqlAlchemyMigrationLog,
    SqlAlchemyWeaponRepository,
)
from ordnance.config.storage import get_database_uri
from ordnance.domain.ports.unit_of_work import WeaponRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call ordnance.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Initialise the SQLAlchemy engine, tables, and session factory."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or create_engine(database_uri or get_database_uri())
    create_all_tables(resolved_engine)
    _STATE.engine = resolved_engine


def is_started() -> bool:
    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


class SqlAlchemyWeaponUnitOfWork:
    """One session around weapon documents and their migration audit log.

    Leaving the block after an exception rolls back; committing is explicit.
    """

    def __init__(self) -> None:
        self.session_factory: sessionmaker[Session] = _STATE.session_factory
        self._session: Session | None = None
        self._repositories: WeaponRepositories | None = None

    def __enter__(self) -> SqlAlchemyWeaponUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = self.session_factory()
        self._repositories = WeaponRepositories(
            weapons=SqlAlchemyWeaponRepository(self._session),
            migrations=SqlAlchemyMigrationLog(self._session),
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
            if exc_type is not None:
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
    def repositories(self) -> WeaponRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session


if TYPE_CHECKING:
    from ordnance.domain.ports.unit_of_work import WeaponUnitOfWork

    _uow_check: WeaponUnitOfWork = SqlAlchemyWeaponUnitOfWork()
