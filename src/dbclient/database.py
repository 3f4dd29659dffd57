# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Driver-neutral database handle with statements, transactions and row sets.

Sits between Client and the adapters:

    Database     pool handle; every call borrows a connection and gives it back
    Transaction  pins one connection from begin() until commit()/rollback()
    Statement    query compiled by the driver, bound to a Database or a Transaction
    Rows         async iterator over a cursor; returns the connection on close
    Row          first row of a query, or the "no rows" condition
    Result       outcome of a statement that returns no rows

Row values are whatever the driver returns, converted to tuples. Driver
exceptions are never caught or translated here.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import TYPE_CHECKING, Any

from .adapters import get_adapter
from .errors import NoRowsError, StatementClosedError, TransactionDoneError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from .adapters import AsyncCursor, DbAdapter

logger = logging.getLogger(__name__)


class Result:
    """Outcome of an execute: affected row count and last inserted id."""

    def __init__(self, rowcount: int, lastrowid: Any = None):
        self._rowcount = rowcount
        self._lastrowid = lastrowid

    def rows_affected(self) -> int:
        """Rows changed by the statement (-1 when the driver cannot tell)."""
        return self._rowcount

    def last_insert_id(self) -> Any:
        """Id generated by the last INSERT, None when unsupported."""
        return self._lastrowid


class Row:
    """First row of a single-row query.

    ``err`` is always None: driver errors are raised by the call that built
    the Row. An empty result surfaces as NoRowsError from scan().
    """

    err = None

    def __init__(self, values: tuple[Any, ...] | None):
        self._values = values

    def scan(self) -> tuple[Any, ...]:
        """Return the row values.

        Raises:
            NoRowsError: If the query returned no rows.
        """
        if self._values is None:
            raise NoRowsError()
        return self._values


class Rows:
    """Lazy rows of a query.

    Iterate with ``async for``; the cursor is closed (and the connection
    given back) when iteration ends or close() is called. Callers that stop
    early must close explicitly, or use ``async with``.
    """

    def __init__(self, cursor: AsyncCursor, release: Callable[[], Awaitable[None]] | None = None):
        self._cursor = cursor
        self._release = release
        self.closed = False

    @property
    def columns(self) -> list[str]:
        description = self._cursor.description
        return [col[0] for col in description] if description else []

    def __aiter__(self) -> Rows:
        return self

    async def __anext__(self) -> tuple[Any, ...]:
        if self.closed:
            raise StopAsyncIteration
        row = await self._cursor.fetchone() if self._cursor.description is not None else None
        if row is None:
            await self.close()
            raise StopAsyncIteration
        return tuple(row)

    async def fetchall(self) -> list[tuple[Any, ...]]:
        """Consume the remaining rows and close."""
        return [row async for row in self]

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            await self._cursor.close()
        finally:
            if self._release is not None:
                await self._release()

    async def __aenter__(self) -> Rows:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()


class _Executor:
    """Shared query/exec plumbing; subclasses decide where connections come from."""

    adapter: DbAdapter

    async def _borrow(self) -> Any:
        raise NotImplementedError

    async def _give_back(self, conn: Any) -> None:
        raise NotImplementedError

    async def _query(self, query: str, args: Sequence[Any], prepared: bool = False) -> Rows:
        conn = await self._borrow()
        try:
            cursor = await self.adapter.execute(conn, query, args, prepared=prepared)
        except BaseException:
            await self._give_back(conn)
            raise
        return Rows(cursor, partial(self._give_back, conn))

    async def _query_row(self, query: str, args: Sequence[Any], prepared: bool = False) -> Row:
        conn = await self._borrow()
        try:
            cursor = await self.adapter.execute(conn, query, args, prepared=prepared)
            try:
                row = await cursor.fetchone() if cursor.description is not None else None
            finally:
                await cursor.close()
        finally:
            await self._give_back(conn)
        return Row(None if row is None else tuple(row))

    async def _exec(self, query: str, args: Sequence[Any], prepared: bool = False) -> Result:
        conn = await self._borrow()
        try:
            cursor = await self.adapter.execute(conn, query, args, prepared=prepared)
            try:
                return Result(cursor.rowcount, getattr(cursor, "lastrowid", None))
            finally:
                await cursor.close()
        finally:
            await self._give_back(conn)

    async def query(self, query: str, *args: Any) -> Rows:
        """Run a query, return its rows."""
        return await self._query(query, args)

    async def query_row(self, query: str, *args: Any) -> Row:
        """Run a query, keep only its first row."""
        return await self._query_row(query, args)

    async def exec(self, query: str, *args: Any) -> Result:
        """Run a statement that returns no rows."""
        return await self._exec(query, args)


class Statement:
    """Prepared query bound to a Database or a Transaction.

    Executions go through the owner, so a statement of a finished
    transaction raises TransactionDoneError and one of a closed database
    raises DatabaseClosedError. prepare() lets the driver compile the text
    first, so bad SQL fails before a Statement exists.
    """

    def __init__(self, owner: _Executor, query: str):
        self.owner = owner
        self.query_text = query
        self.closed = False

    def _check(self) -> None:
        if self.closed:
            raise StatementClosedError()

    async def query(self, *args: Any) -> Rows:
        self._check()
        return await self.owner._query(self.query_text, args, prepared=True)

    async def query_row(self, *args: Any) -> Row:
        self._check()
        return await self.owner._query_row(self.query_text, args, prepared=True)

    async def exec(self, *args: Any) -> Result:
        self._check()
        return await self.owner._exec(self.query_text, args, prepared=True)

    def close(self) -> None:
        self.closed = True


class Database(_Executor):
    """Pool handle over one adapter.

    Usage:
        db = Database.open("sqlite", "/data/app.db", max_open=4)
        await db.ping()
        await db.exec("INSERT INTO t (a) VALUES (?)", 1)
        row = await db.query_row("SELECT a FROM t")
        await db.close()
    """

    def __init__(self, adapter: DbAdapter):
        self.adapter = adapter

    @classmethod
    def open(cls, driver: str, dsn: str, max_open: int = 0) -> Database:
        """Create the adapter for ``driver``; no connection is made yet."""
        return cls(get_adapter(driver, dsn, max_open))

    @property
    def driver(self) -> str:
        return self.adapter.driver

    async def _borrow(self) -> Any:
        return await self.adapter.acquire()

    async def _give_back(self, conn: Any) -> None:
        await self.adapter.release(conn)

    async def ping(self) -> None:
        conn = await self.adapter.acquire()
        try:
            await self.adapter.ping(conn)
        finally:
            await self.adapter.release(conn)

    async def prepare(self, query: str) -> Statement:
        logger.debug("%s: prepare %r", self.driver, query)
        conn = await self.adapter.acquire()
        try:
            await self.adapter.prepare(conn, query)
        finally:
            await self.adapter.release(conn)
        return Statement(self, query)

    async def begin(self) -> Transaction:
        conn = await self.adapter.acquire()
        try:
            await self.adapter.begin(conn)
        except BaseException:
            await self.adapter.release(conn)
            raise
        logger.debug("%s: transaction started", self.driver)
        return Transaction(self, conn)

    async def close(self) -> None:
        await self.adapter.shutdown()
        logger.debug("%s: database closed", self.driver)


class Transaction(_Executor):
    """Transaction pinned to one connection.

    After commit() or rollback() every call, including those of statements
    prepared on it, raises TransactionDoneError. The connection goes back to
    the pool whether commit/rollback succeeds or not.
    """

    def __init__(self, database: Database, conn: Any):
        self.database = database
        self.adapter = database.adapter
        self._conn = conn
        self.done = False

    async def _borrow(self) -> Any:
        if self.done:
            raise TransactionDoneError()
        return self._conn

    async def _give_back(self, conn: Any) -> None:
        pass

    async def prepare(self, query: str) -> Statement:
        if self.done:
            raise TransactionDoneError()
        await self.adapter.prepare(self._conn, query)
        return Statement(self, query)

    async def commit(self) -> None:
        await self._finish(self.adapter.commit)

    async def rollback(self) -> None:
        await self._finish(self.adapter.rollback)

    async def _finish(self, end: Callable[[Any], Awaitable[None]]) -> None:
        if self.done:
            raise TransactionDoneError()
        self.done = True
        try:
            await end(self._conn)
        finally:
            await self.adapter.release(self._conn)
            logger.debug("%s: transaction finished (%s)", self.database.driver, end.__name__)
