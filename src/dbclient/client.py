# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""SQL client: one handle, one connection pool, one transaction at a time.

Client wraps a Database and keeps up to three more slots on top of it:

    statement     prepared with set_prepare(), used by *_prepare()
    transaction   started with begin_transaction(), ended with end_transaction()
    tx statement  prepared with set_prepare_transaction(), dies with the transaction

Every operation checks that the slot it needs is filled and otherwise raises
the matching PreconditionError, whose text is part of the public contract:

    NotOpenError               "please call Open first"
    NoPrepareError             "please call SetPrepare first"
    NoTransactionError         "please call BeginTransaction first"
    NoPrepareTransactionError  "please call SetPrepareTransaction first"

Driver errors are passed through untouched. Nothing is retried, and a
failing statement inside a transaction does not roll it back: pass the
exception to end_transaction() to do that.

Usage:
    client = Client()
    await client.open(Driver.SQLITE, "/data/app.db", 1)
    await client.execute("CREATE TABLE t (a INT)")

    await client.begin_transaction()
    try:
        await client.execute_transaction("INSERT INTO t VALUES (?)", 1)
    except Exception as e:
        await client.end_transaction(e)  # ROLLBACK
        raise
    await client.end_transaction()  # COMMIT

    (a,) = await client.query_row("SELECT a FROM t")
    await client.close()

A Client is meant for one task at a time; use several clients for
concurrent work. Per-call deadlines come from asyncio (``asyncio.timeout``
or ``asyncio.wait_for`` around any call).
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from .adapters import Driver
from .database import Database
from .errors import NoPrepareError, NoPrepareTransactionError, NoTransactionError, NotOpenError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from .config import ClientConfig
    from .database import Row, Rows, Statement, Transaction

logger = logging.getLogger(__name__)


class Client:
    """Stateful SQL handle over one driver.

    Attributes:
        driver: Driver tag set by open(), None while closed.
    """

    def __init__(self) -> None:
        self.driver: Driver | str | None = None
        self._database: Database | None = None
        self._statement: Statement | None = None
        self._transaction: Transaction | None = None
        self._tx_statement: Statement | None = None

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._database is not None

    @property
    def in_transaction(self) -> bool:
        return self._transaction is not None

    def get_driver(self) -> Driver | str | None:
        """Return the driver tag given to open(), None when closed."""
        return self.driver

    def _require_open(self) -> Database:
        if self._database is None:
            raise NotOpenError()
        return self._database

    def _require_statement(self) -> Statement:
        if self._statement is None:
            raise NoPrepareError()
        return self._statement

    def _require_transaction(self) -> Transaction:
        if self._transaction is None:
            raise NoTransactionError()
        return self._transaction

    def _require_tx_statement(self) -> Statement:
        if self._tx_statement is None:
            raise NoPrepareTransactionError()
        return self._tx_statement

    # -------------------------------------------------------------------------
    # Connection
    # -------------------------------------------------------------------------

    async def open(
        self,
        driver: Driver | str,
        dsn: str,
        max_open: int = 1,
        *,
        connect_timeout: float | None = None,
    ) -> None:
        """Open the database, closing any previous one first.

        Creates the driver pool limited to ``max_open`` connections and pings
        the server. On failure the handle stays closed.

        ex) await client.open(Driver.MYSQL, "user:password@tcp(host:3306)/db", 1)

        Raises:
            UnknownDriverError: If ``driver`` is not a registered tag.
            DriverNotInstalledError: If the driver library is missing.
            TimeoutError: If ``connect_timeout`` expires.
        """
        await self.close()

        database = Database.open(driver, dsn, max_open)
        try:
            if connect_timeout is None:
                await database.ping()
            else:
                await asyncio.wait_for(database.ping(), connect_timeout)
        except BaseException:
            await database.close()
            raise

        self._database = database
        try:
            self.driver = Driver(str(driver))
        except ValueError:
            # Adapter added with register_adapter()
            self.driver = str(driver)
        logger.debug("Opened %s database (max_open=%s)", self.driver, max_open)

    async def open_config(self, config: ClientConfig) -> None:
        """Open using a ClientConfig."""
        await self.open(
            config.driver, config.dsn, config.max_open, connect_timeout=config.connect_timeout
        )

    async def close(self) -> None:
        """Close the database. Safe to call when already closed.

        Discards, in order, the transaction statement, the transaction (rolled
        back), the statement and the connection pool. The handle is closed
        afterwards even if the rollback fails.
        """
        database = self._database
        if database is None:
            return
        tx_statement, transaction, statement = (
            self._tx_statement,
            self._transaction,
            self._statement,
        )
        self._tx_statement = self._transaction = self._statement = None
        self._database = None
        self.driver = None

        try:
            if tx_statement is not None:
                tx_statement.close()
            if transaction is not None:
                await transaction.rollback()
        finally:
            if statement is not None:
                statement.close()
            await database.close()
            logger.debug("Closed %s database", database.driver)

    async def ping(self) -> None:
        """Verify the server is reachable."""
        await self._require_open().ping()

    # -------------------------------------------------------------------------
    # Direct queries
    # -------------------------------------------------------------------------

    async def query(self, query: str, *args: Any) -> Rows:
        """Run a query and return its rows.

        ex)
            rows = await client.query("SELECT field FROM t WHERE a = ?", 1)
            async with rows:
                async for (field,) in rows:
                    ...
        """
        return await self._require_open().query(query, *args)

    async def query_row(self, query: str, *args: Any) -> tuple[Any, ...]:
        """Run a query and return the values of its first row.

        ex) (field,) = await client.query_row("SELECT field FROM t")

        Raises:
            NoRowsError: If the query returned no rows.
        """
        row = await self._require_open().query_row(query, *args)
        return row.scan()

    async def execute(self, query: str, *args: Any) -> None:
        """Execute a statement.

        ex 1) await client.execute("INSERT INTO t VALUES (1)")
        ex 2) await client.execute("INSERT INTO t VALUES (?)", value)
        """
        result = await self._require_open().exec(query, *args)
        result.rows_affected()

    # -------------------------------------------------------------------------
    # Prepared statement
    # -------------------------------------------------------------------------

    async def set_prepare(self, query: str) -> None:
        """Prepare a statement, replacing the previous one.

        The driver compiles query first; if it fails, the previous
        statement stays in place.

        ex)
            await client.set_prepare("INSERT INTO t (a) VALUES (?)")
            await client.execute_prepare(value)
        """
        statement = await self._require_open().prepare(query)
        previous, self._statement = self._statement, statement
        if previous is not None:
            previous.close()

    async def query_prepare(self, *args: Any) -> Rows:
        """Run the prepared statement and return its rows."""
        return await self._require_statement().query(*args)

    async def query_row_prepare(self, *args: Any) -> Row:
        """Run the prepared statement and return its first row.

        ex)
            row = await client.query_row_prepare(value)
            (field,) = row.scan()
        """
        return await self._require_statement().query_row(*args)

    async def execute_prepare(self, *args: Any) -> None:
        """Execute the prepared statement."""
        await self._require_statement().exec(*args)

    # -------------------------------------------------------------------------
    # Transaction
    # -------------------------------------------------------------------------

    async def begin_transaction(self) -> None:
        """Begin a transaction. It must be finished with end_transaction().

        A transaction still active is rolled back first.
        """
        database = self._require_open()
        if self._transaction is not None:
            logger.debug("Rolling back unfinished transaction before begin")
            await self.end_transaction(RuntimeError("transaction restarted"))
        self._transaction = await database.begin()

    async def end_transaction(self, outcome: Any = None) -> None:
        """End the transaction: commit if ``outcome`` is None, rollback otherwise.

        ``outcome`` is typically the exception raised inside the transaction.
        The transaction and its prepared statement are discarded before the
        commit or rollback runs, so the handle is out of the transaction even
        when that call fails.

        ex)
            await client.begin_transaction()
            error = None
            try:
                await client.execute_transaction("UPDATE ...")
            except Exception as e:
                error = e
            await client.end_transaction(error)
        """
        transaction = self._require_transaction()
        self._transaction = None
        self._tx_statement = None
        if outcome is None:
            await transaction.commit()
        else:
            await transaction.rollback()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Client]:
        """Context manager around begin_transaction() / end_transaction().

        Usage:
            async with client.transaction():
                await client.execute_transaction("UPDATE ...")
            # COMMIT on success, ROLLBACK on exception

        A transaction the block already ended itself is left alone.
        """
        await self.begin_transaction()
        transaction = self._transaction
        try:
            yield self
        except BaseException as e:
            if self._transaction is transaction:
                await self.end_transaction(e)
            raise
        if self._transaction is transaction:
            await self.end_transaction()

    async def query_transaction(self, query: str, *args: Any) -> Rows:
        """Run a query inside the transaction and return its rows."""
        return await self._require_transaction().query(query, *args)

    async def query_row_transaction(self, query: str, *args: Any) -> tuple[Any, ...]:
        """Run a query inside the transaction and return its first row's values.

        Raises:
            NoRowsError: If the query returned no rows.
        """
        row = await self._require_transaction().query_row(query, *args)
        return row.scan()

    async def execute_transaction(self, query: str, *args: Any) -> None:
        """Execute a statement inside the transaction."""
        result = await self._require_transaction().exec(query, *args)
        result.rows_affected()

    async def set_prepare_transaction(self, query: str) -> None:
        """Prepare a statement inside the transaction, replacing the previous one."""
        statement = await self._require_transaction().prepare(query)
        previous, self._tx_statement = self._tx_statement, statement
        if previous is not None:
            previous.close()

    async def query_prepare_transaction(self, *args: Any) -> Rows:
        """Run the transaction's prepared statement and return its rows."""
        return await self._require_tx_statement().query(*args)

    async def query_row_prepare_transaction(self, *args: Any) -> Row:
        """Run the transaction's prepared statement and return its first row."""
        return await self._require_tx_statement().query_row(*args)

    async def execute_prepare_transaction(self, *args: Any) -> None:
        """Execute the transaction's prepared statement."""
        await self._require_tx_statement().exec(*args)

    # -------------------------------------------------------------------------
    # Context manager
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> Client:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()


__all__ = ["Client"]
