# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""PostgreSQL async adapter using psycopg3 with connection pooling.

acquire() gets a connection from a psycopg_pool.AsyncConnectionPool sized
by ``max_open``, release() returns it. Connections are in autocommit mode;
transactions are explicit BEGIN / COMMIT / ROLLBACK on a pinned connection.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..errors import DatabaseClosedError
from .base import DbAdapter, leading_keyword, pyformat_placeholders

if TYPE_CHECKING:
    from collections.abc import Sequence

_CHECK_NAME = "_dbclient_check"
_PREPARABLE = frozenset({"SELECT", "INSERT", "UPDATE", "DELETE", "MERGE", "VALUES", "WITH", "TABLE"})


class PostgresAdapter(DbAdapter):
    """PostgreSQL async adapter with connection pooling.

    DSN is a ``postgresql://`` URL or a libpq ``key=value`` string.
    Placeholders are psycopg's ``%s`` / ``%(name)s``. Prepared statement
    executions use server-side prepared statements (``prepare=True``).

    Pool is initialized lazily on first acquire().
    """

    driver = "postgres"
    extra = "postgresql"
    default_pool_size = 10

    def __init__(self, dsn: str, max_open: int = 0, connect_timeout: float = 30.0):
        super().__init__(dsn, max_open)
        self.connect_timeout = connect_timeout
        self._pool: Any = None

        # Verify psycopg is available at init time
        import psycopg  # noqa: F401
        import psycopg_pool  # noqa: F401

    async def _ensure_pool(self) -> None:
        """Initialize connection pool if not already open."""
        if self._pool is not None:
            return

        from psycopg_pool import AsyncConnectionPool

        max_size = self.max_open if self.max_open > 0 else self.default_pool_size
        pool = AsyncConnectionPool(
            self.dsn,
            min_size=1,
            max_size=max_size,
            open=False,
            kwargs={"autocommit": True},
        )
        try:
            await pool.open(wait=True, timeout=self.connect_timeout)
        except BaseException:
            await pool.close()
            raise
        self._pool = pool

    async def acquire(self) -> Any:
        """Acquire connection from pool."""
        if self._closed:
            raise DatabaseClosedError()
        await self._ensure_pool()
        return await self._pool.getconn()

    async def release(self, conn: Any) -> None:
        """Return connection to pool (a closed pool closes it)."""
        await self._pool.putconn(conn)

    async def shutdown(self) -> None:
        """Close connection pool."""
        self._closed = True
        if self._pool:
            await self._pool.close()

    async def execute(
        self, conn: Any, query: str, args: Sequence[Any] = (), *, prepared: bool = False
    ) -> Any:
        """Execute query, return the psycopg cursor."""
        cur = conn.cursor()
        try:
            await cur.execute(query, self.bind(args), prepare=True if prepared else None)
        except BaseException:
            await cur.close()
            raise
        return cur

    async def prepare(self, conn: Any, query: str) -> None:
        """Compile query with PREPARE, deallocated straight away.

        Statements PREPARE does not accept (DDL, utility commands) are left
        for execution to check.
        """
        if leading_keyword(query) not in _PREPARABLE:
            return
        await conn.execute(
            f"PREPARE {_CHECK_NAME} AS {pyformat_placeholders(query, lambda n: f'${n}')}"
        )
        await conn.execute(f"DEALLOCATE {_CHECK_NAME}")
