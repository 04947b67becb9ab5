"""Persistence store port and adapters.

Provides StorePort (Protocol) and two implementations:

- PostgresStore — SQLAlchemy async engine on the asyncpg driver
- MockStore — test double that serves canned rows and records writes

The port is deliberately narrow: callers hand over SQL text with
``:name`` bind parameters and get plain dict rows back.  The directory
reader and the audit logger own their statements; the store only
executes them.

Every statement is its own unit of work — no transaction spans two
calls.  Driver and connection errors surface as
:class:`~bedtime._errors.StoreError`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, TypeAlias, runtime_checkable

import asyncpg
from sqlalchemy import text
from sqlalchemy.engine import URL
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from bedtime._errors import StoreError
from bedtime._settings import Settings

logger = logging.getLogger(__name__)

# asyncpg server errors raised during connect are not always wrapped by
# SQLAlchemy, e.g. InvalidPasswordError.
_DRIVER_ERRORS = (SQLAlchemyError, asyncpg.PostgresError, OSError)

Row: TypeAlias = dict[str, Any]
"""One result row keyed by column name."""

# ---------------------------------------------------------------------------
# Ports (Protocols)
# ---------------------------------------------------------------------------


@runtime_checkable
class StorePort(Protocol):
    """Port contract for the relational store.

    ``fetch_all`` runs a query and returns every row; ``execute`` runs
    a write statement and commits it.
    """

    async def fetch_all(
        self,
        statement: str,
        params: Mapping[str, object] | None = None,
    ) -> list[Row]: ...

    async def execute(
        self,
        statement: str,
        params: Mapping[str, object] | None = None,
    ) -> None: ...


@runtime_checkable
class StoreLifecycle(Protocol):
    """Adapters that hold a connection implement start/stop."""

    async def start(self) -> None: ...

    async def stop(self) -> None: ...


# ---------------------------------------------------------------------------
# Mock / test-double adapter
# ---------------------------------------------------------------------------


@dataclass
class MockStore:
    """In-memory test double for :class:`StorePort`.

    Serves ``rows`` for every query and records every write.  Failures
    are injected with ``query_error`` (raised by every query) and
    ``fail_on_execute`` (1-based index of the write that raises
    ``execute_error``).  ``latency`` delays every call, for exercising
    deadlines.
    """

    rows: list[Row] = field(default_factory=list)
    queries: list[tuple[str, dict[str, object]]] = field(default_factory=list)
    executed: list[tuple[str, dict[str, object]]] = field(default_factory=list)
    query_error: Exception | None = None
    fail_on_execute: int | None = None
    execute_error: Exception = field(
        default_factory=lambda: StoreError("connection closed"),
    )
    latency: float = 0.0
    started: bool = False
    stopped: bool = False
    _execute_calls: int = field(default=0, init=False, repr=False)

    # -- StorePort methods -------------------------------------------------

    async def fetch_all(
        self,
        statement: str,
        params: Mapping[str, object] | None = None,
    ) -> list[Row]:
        """Record the query and return a copy of ``rows``."""
        if self.latency:
            await asyncio.sleep(self.latency)
        self.queries.append((statement, dict(params or {})))
        if self.query_error is not None:
            raise self.query_error
        return [dict(row) for row in self.rows]

    async def execute(
        self,
        statement: str,
        params: Mapping[str, object] | None = None,
    ) -> None:
        """Record a write, or raise if this call is the injected failure."""
        if self.latency:
            await asyncio.sleep(self.latency)
        self._execute_calls += 1
        if self._execute_calls == self.fail_on_execute:
            raise self.execute_error
        self.executed.append((statement, dict(params or {})))

    # -- StoreLifecycle methods --------------------------------------------

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.stopped = True

    # -- Test helpers -------------------------------------------------------

    @property
    def execute_count(self) -> int:
        """Number of writes that completed."""
        return len(self.executed)

    def written_params(self) -> list[dict[str, object]]:
        """Bind parameters of every completed write, in order."""
        return [params for _, params in self.executed]


# ---------------------------------------------------------------------------
# Real adapter
# ---------------------------------------------------------------------------


def build_database_url(settings: Settings) -> URL:
    """Build the ``postgresql+asyncpg`` URL from the connection settings."""
    return URL.create(
        "postgresql+asyncpg",
        username=settings.db_user,
        password=settings.db_password.get_secret_value(),
        host=settings.db_host,
        port=settings.db_port,
        database=settings.db_name,
    )


@dataclass
class PostgresStore:
    """Production store adapter backed by a SQLAlchemy async engine.

    :meth:`start` creates the engine and checks connectivity so an
    unreachable database fails the run before any device is touched.
    :meth:`stop` disposes the connection pool.
    """

    url: URL | str
    pool_size: int = 5

    _engine: AsyncEngine | None = field(default=None, init=False, repr=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> PostgresStore:
        """Create a store sized for ``settings.max_workers`` concurrent writers."""
        return cls(
            url=build_database_url(settings),
            pool_size=max(settings.max_workers, 1),
        )

    # -- StorePort methods -------------------------------------------------

    async def fetch_all(
        self,
        statement: str,
        params: Mapping[str, object] | None = None,
    ) -> list[Row]:
        """Run a query and return every row as a dict."""
        engine = self._require_engine()
        try:
            async with engine.connect() as conn:
                result = await conn.execute(text(statement), dict(params or {}))
                return [dict(row) for row in result.mappings()]
        except _DRIVER_ERRORS as exc:
            msg = f"query failed: {exc}"
            raise StoreError(msg) from exc

    async def execute(
        self,
        statement: str,
        params: Mapping[str, object] | None = None,
    ) -> None:
        """Run a write statement in its own transaction and commit."""
        engine = self._require_engine()
        try:
            async with engine.begin() as conn:
                await conn.execute(text(statement), dict(params or {}))
        except _DRIVER_ERRORS as exc:
            msg = f"statement failed: {exc}"
            raise StoreError(msg) from exc

    # -- Lifecycle ----------------------------------------------------------

    async def start(self) -> None:
        """Create the engine and verify the database is reachable.

        Raises:
            StoreError: If the connection cannot be established.
        """
        if self._engine is not None:
            logger.debug("PostgresStore.start() called while already started")
            return
        engine = create_async_engine(
            self.url,
            pool_size=self.pool_size,
            pool_pre_ping=True,
        )
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except _DRIVER_ERRORS as exc:
            await engine.dispose()
            msg = f"cannot connect to store: {exc}"
            raise StoreError(msg) from exc
        except BaseException:
            await engine.dispose()
            raise
        self._engine = engine
        logger.info("Connected to store %s", engine.url.render_as_string())

    async def stop(self) -> None:
        """Dispose of the connection pool.

        Idempotent — safe to call multiple times.
        """
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None

    # -- Internal -----------------------------------------------------------

    def _require_engine(self) -> AsyncEngine:
        if self._engine is None:
            msg = "store is not connected"
            raise StoreError(msg)
        return self._engine
